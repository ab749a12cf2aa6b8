"""Factory functions for new tensors."""

from __future__ import annotations

import math

import numpy as np

from .errors import InvalidArgumentError
from .tensor import DTYPE, Tensor


def empty(shape, requires_grad=False):
    return Tensor(shape, 0.0, requires_grad)


def empty_like(input, requires_grad=False):
    return empty(input.shape, requires_grad)


def zeros(shape, requires_grad=False):
    return Tensor(shape, 0.0, requires_grad)


def zeros_like(input, requires_grad=False):
    return zeros(input.shape, requires_grad)


def ones(shape, requires_grad=False):
    return Tensor(shape, 1.0, requires_grad)


def ones_like(input, requires_grad=False):
    return ones(input.shape, requires_grad)


def _range_values(start, end, step):
    value = DTYPE(start)
    step = DTYPE(step)
    while value < end:
        yield float(value)
        value = DTYPE(value + step)


def arange(start, end, step=1.0, requires_grad=False):
    """Return a 1-D tensor of start, start + step, ... below end."""
    if step <= 0:
        raise InvalidArgumentError("arange() step must be positive")
    values = list(_range_values(start, end, step))
    return Tensor([len(values)], values, requires_grad)


def rand(shape, requires_grad=False):
    """Return a tensor of samples drawn uniformly from [0, 1)."""
    size = math.prod(int(length) for length in shape)
    return Tensor(shape, np.random.random_sample(size), requires_grad)


def randn(shape, requires_grad=False):
    """Return a tensor of samples from the standard normal distribution."""
    size = math.prod(int(length) for length in shape)
    return Tensor(shape, np.random.standard_normal(size), requires_grad)


def rand_like(input, requires_grad=False):
    return rand(input.shape, requires_grad)


def randn_like(input, requires_grad=False):
    return randn(input.shape, requires_grad)