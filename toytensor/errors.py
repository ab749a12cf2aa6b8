"""Exceptions raised by tensor operations."""


class TensorError(Exception):
    """Base class of every error raised by the package."""

    default_message = "tensor error"

    def __init__(self, message=None):
        super().__init__(message if message is not None else self.default_message)


class InvalidArgumentError(TensorError, ValueError):
    """An argument is out of range or otherwise not acceptable."""

    default_message = "invalid argument"


class ShapeIncompatibleError(TensorError, ValueError):
    """Tensor shapes do not fit the requested operation."""

    default_message = "tensor shapes are incompatible"


class OperationNotImplementedError(TensorError, NotImplementedError):
    """The operation is not supported for the given tensors."""

    default_message = "operation not implemented"


class BackwardNotImplementedError(TensorError, NotImplementedError):
    """The operation has no backward pass for tensors that require grad."""

    default_message = "backward of operation not implemented"