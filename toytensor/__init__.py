"""Strided tensors with broadcasting, reverse-mode autograd and SGD."""

__version__ = "0.1.0"