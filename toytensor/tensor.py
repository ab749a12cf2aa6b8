"""Strided n-dimensional float tensors that take part in automatic differentiation."""

from __future__ import annotations

import itertools
import math
import numbers
import operator

import numpy as np

from . import autograd
from .errors import (
    InvalidArgumentError,
    OperationNotImplementedError,
    ShapeIncompatibleError,
)

DTYPE = np.float32


def _ops():
    # Imported on use: the operations module depends on this one.
    from . import operations

    return operations


def _is_number(value):
    return isinstance(value, numbers.Real)


def _contiguous_strides(shape):
    strides = []
    accumulated = 1
    for length in reversed(shape):
        strides.append(accumulated)
        accumulated *= length
    strides.reverse()
    return strides


def _format_value(value):
    return f"{float(value):g}"


def _coerce(value):
    """Return value as a tensor, or None when it cannot take part in arithmetic."""
    if isinstance(value, Tensor):
        return value
    if _is_number(value):
        return Tensor.scalar(value)
    return None


def _as_tensor(value):
    tensor = _coerce(value)
    if tensor is None:
        raise TypeError(f"expected a Tensor or a number, got {type(value).__name__}")
    return tensor


class Tensor:
    """A view of shared float storage described by shape, strides and offset."""

    def __init__(self, shape, data=None, requires_grad=False):
        if _is_number(shape):
            if data is not None:
                raise InvalidArgumentError(
                    "a scalar tensor takes its value from the first argument"
                )
            dims = []
            values = np.array([shape], dtype=DTYPE)
        else:
            dims = [int(length) for length in shape]
            if any(length < 0 for length in dims):
                raise InvalidArgumentError("tensor shape can't contain negative lengths")
            size = math.prod(dims)
            values = np.zeros(size, dtype=DTYPE)
            if data is None:
                pass
            elif _is_number(data):
                values.fill(data)
            elif callable(data):
                values[:] = [data() for _ in range(size)]
            else:
                given = np.asarray(data, dtype=DTYPE).ravel()
                count = min(size, given.size)
                values[:count] = given[:count]

        self._storage = values
        self._shape = dims
        self._strides = _contiguous_strides(dims)
        self._offset = 0
        self.grad_info = autograd.GradInfo() if requires_grad else None

    @staticmethod
    def scalar(value, requires_grad=False):
        """Create a zero-dimensional tensor holding value."""
        return Tensor(value, requires_grad=requires_grad)

    @classmethod
    def _wrap(cls, storage, shape, strides, offset=0, grad_info=None):
        tensor = cls.__new__(cls)
        tensor._storage = storage
        tensor._shape = list(shape)
        tensor._strides = list(strides)
        tensor._offset = offset
        tensor.grad_info = grad_info
        return tensor

    @classmethod
    def _from_numpy(cls, array, requires_grad=False):
        """Create a contiguous tensor holding a copy of a numpy array."""
        values = np.array(array, dtype=DTYPE)
        grad_info = autograd.GradInfo() if requires_grad else None
        return cls._wrap(
            values.ravel(), values.shape, _contiguous_strides(values.shape), 0, grad_info
        )

    def _numpy(self):
        """Return a writable numpy view over the elements of this tensor."""
        itemsize = self._storage.itemsize
        return np.lib.stride_tricks.as_strided(
            self._storage[self._offset:],
            shape=tuple(self._shape),
            strides=tuple(stride * itemsize for stride in self._strides),
            writeable=True,
        )

    def _as_strided(self, shape, strides, offset=None):
        """Return a tensor over the same storage and grad info with a new layout."""
        return self._wrap(
            self._storage,
            shape,
            strides,
            self._offset if offset is None else offset,
            self.grad_info,
        )

    @property
    def shape(self):
        return tuple(self._shape)

    @property
    def strides(self):
        return tuple(self._strides)

    @property
    def offset(self):
        return self._offset

    def dim(self):
        return len(self._shape)

    def numel(self):
        return math.prod(self._shape)

    def is_scalar(self):
        return self.dim() == 0

    def is_contiguous(self):
        expected = _contiguous_strides(self._shape)
        return all(
            length == 1 or stride == wanted
            for length, stride, wanted in zip(self._shape, self._strides, expected)
        )

    @property
    def requires_grad(self):
        return self.grad_info is not None

    @property
    def grad(self):
        return self.grad_info.grad if self.grad_info is not None else None

    @property
    def grad_fn(self):
        return self.grad_info.grad_fn if self.grad_info is not None else None

    def indices(self):
        """Yield every index tuple of the tensor in row-major order."""
        return itertools.product(*(range(length) for length in self._shape))

    def _locate(self, index):
        if isinstance(index, (tuple, list)):
            if len(index) != self.dim():
                raise IndexError(
                    f"expected {self.dim()} indices, got {len(index)}"
                )
            return tuple(operator.index(i) for i in index)
        position = operator.index(index)
        count = self.numel()
        if position < 0:
            position += count
        if not 0 <= position < count:
            raise IndexError(f"index {index} out of range for {count} elements")
        if self.is_scalar():
            return ()
        return tuple(int(i) for i in np.unravel_index(position, tuple(self._shape)))

    def __getitem__(self, index):
        """Return one element, by flat row-major position or by index tuple."""
        return float(self._numpy()[self._locate(index)])

    def __setitem__(self, index, value):
        self._numpy()[self._locate(index)] = value

    def item(self):
        if self.numel() != 1:
            raise InvalidArgumentError("item() requires a tensor with exactly one element")
        return float(self._numpy().flat[0])

    def tolist(self):
        return self._numpy().tolist()

    def meta_copy(self):
        """Return a tensor sharing storage and grad info with its own layout."""
        return self._as_strided(self._shape, self._strides)

    def deep_copy(self):
        """Return a contiguous copy of the data; grad info stays shared."""
        values = np.array(self._numpy(), dtype=DTYPE)
        return self._wrap(
            values.ravel(), self._shape, _contiguous_strides(self._shape), 0, self.grad_info
        )

    def detach(self):
        result = self.meta_copy()
        result.grad_info = None
        return result

    def fill(self, data):
        values = np.asarray(data, dtype=DTYPE).ravel()
        if values.size != self.numel():
            raise InvalidArgumentError("Data size doesn't match with tensor size")
        target = self._numpy()
        target[...] = values.reshape(target.shape)

    def strict_equal(self, other):
        if self.shape != other.shape:
            return False
        return bool(np.array_equal(self._numpy(), other._numpy()))

    def strict_allclose(self, other, rtol=1e-5, atol=1e-8, equal_nan=False):
        if self.shape != other.shape:
            return False
        a = self._numpy().astype(np.float64)
        b = other._numpy().astype(np.float64)
        a_nan = np.isnan(a)
        b_nan = np.isnan(b)
        with np.errstate(invalid="ignore"):
            close = np.abs(a - b) <= atol + rtol * np.abs(b)
        verdict = np.where(a_nan | b_nan, a_nan & b_nan & bool(equal_nan), close)
        return bool(np.all(verdict))

    def __eq__(self, other):
        if not isinstance(other, Tensor):
            return NotImplemented
        return self.strict_equal(other)

    def __ne__(self, other):
        if not isinstance(other, Tensor):
            return NotImplemented
        return not self.strict_equal(other)

    __hash__ = None

    def _format_level(self, array):
        if array.ndim == 1:
            return "[" + ",".join(_format_value(v) for v in array) + "]"
        return "[" + ",\n".join(self._format_level(sub) for sub in array) + "]"

    def __str__(self):
        if self.is_scalar():
            return _format_value(self.item())
        return self._format_level(self._numpy())

    def __repr__(self):
        suffix = ", requires_grad=True" if self.requires_grad else ""
        return f"Tensor(shape={self.shape}, data={self.tolist()}{suffix})"

    def view(self, shape):
        if not self.is_contiguous():
            raise OperationNotImplementedError(
                "view() doesn't support incontiguous memory format tensor"
            )
        new_shape = [int(length) for length in shape]
        if new_shape.count(-1) > 1:
            raise InvalidArgumentError("view() shape can't contain more than one -1")
        if any(length < -1 for length in new_shape):
            raise InvalidArgumentError("view() shape can't contain negative lengths")

        total = self.numel()
        known = math.prod(length for length in new_shape if length != -1)
        if -1 in new_shape:
            if known == 0 or total % known != 0:
                raise ShapeIncompatibleError("view() new shape is incompatible")
            new_shape[new_shape.index(-1)] = total // known
        elif known != total:
            raise ShapeIncompatibleError("view() new shape is incompatible")

        result = self._as_strided(new_shape, _contiguous_strides(new_shape))
        if autograd.is_grad_enabled() and autograd.is_either_requires_grad([self]):
            autograd.update_backward_graph(result, autograd.ViewBackward(), [self])
        return result

    def expand(self, shape):
        new_shape = [int(length) for length in shape]
        if len(new_shape) != self.dim():
            raise ShapeIncompatibleError("expand shape incompatible")

        shape_out = list(self._shape)
        strides_out = list(self._strides)
        for dim, (current, target) in enumerate(zip(self._shape, new_shape)):
            if current != target:
                if current != 1:
                    raise ShapeIncompatibleError("expand shape incompatible")
                shape_out[dim] = target
                strides_out[dim] = 0

        result = self._as_strided(shape_out, strides_out)
        autograd.check_backward_implemented("expand", [self])
        return result

    def squeeze_(self, dim):
        ndim = self.dim()
        if not -ndim <= dim < ndim:
            raise InvalidArgumentError("squeeze dim out of valid range")
        if dim < 0:
            dim += ndim
        if self._shape[dim] != 1:
            raise InvalidArgumentError("squeeze dim shape not 1")

        del self._shape[dim]
        del self._strides[dim]

        autograd.check_not_requires_grad("squeeze_", [self])
        return self

    def unsqueeze_(self, dim):
        ndim = self.dim()
        if not -ndim - 1 <= dim <= ndim:
            raise InvalidArgumentError("unsqueeze_ dim out of valid range")
        if dim < 0:
            dim += ndim + 1

        stride = math.prod(self._shape[dim:])
        self._strides.insert(dim, stride)
        self._shape.insert(dim, 1)

        autograd.check_not_requires_grad("unsqueeze_", [self])
        return self

    def squeeze(self, dim):
        return _ops().squeeze(self, dim)

    def unsqueeze(self, dim):
        return _ops().unsqueeze(self, dim)

    def unfold(self, dim, size, step):
        return _ops().unfold(self, dim, size, step)

    def transpose(self, dim1=None, dim2=None):
        """Swap two dimensions; without arguments, transpose a 2-D tensor."""
        if dim1 is None and dim2 is None:
            if self.dim() != 2:
                raise ShapeIncompatibleError("transpose() without dims needs a 2-D tensor")
            dim1, dim2 = 0, 1
        elif dim1 is None or dim2 is None:
            raise InvalidArgumentError("transpose() needs both dims or neither")
        return _ops().transpose(self, dim1, dim2)

    def sum(self, dims=None, keep_dim=False):
        return _ops().sum(self, dims, keep_dim)

    def mean(self, dims=None, keep_dim=False):
        return _ops().mean(self, dims, keep_dim)

    def select(self, dim, index, keep_dim=False):
        return _ops().select(self, dim, index, keep_dim)

    def slice(self, dim, start, end):
        return _ops().slice(self, dim, start, end)

    def add(self, other):
        return _ops().add(self, _as_tensor(other))

    def sub(self, other):
        return _ops().sub(self, _as_tensor(other))

    def mul(self, other):
        return _ops().mul(self, _as_tensor(other))

    def div(self, other):
        return _ops().div(self, _as_tensor(other))

    def pow(self, other):
        return _ops().pow(self, _as_tensor(other))

    def _inplace(self, other, ufunc, opname):
        other = _as_tensor(other)
        target = self._numpy()
        try:
            operand = np.broadcast_to(other._numpy(), target.shape)
        except ValueError as exc:
            raise ShapeIncompatibleError(
                f"{opname}: shape {other.shape} can't be broadcast to {self.shape}"
            ) from exc
        with np.errstate(all="ignore"):
            ufunc(target, operand, out=target)

        autograd.check_not_requires_grad(opname, [self, other])
        return self

    def add_(self, other):
        return self._inplace(other, np.add, "add_")

    def sub_(self, other):
        return self._inplace(other, np.subtract, "sub_")

    def mul_(self, other):
        return self._inplace(other, np.multiply, "mul_")

    def div_(self, other):
        return self._inplace(other, np.divide, "div_")

    def bernoulli_(self, p):
        """Set every element to 1 with probability p and to 0 otherwise."""
        if not 0.0 <= p <= 1.0:
            raise InvalidArgumentError("bernoulli_ probability must be within [0, 1]")
        target = self._numpy()
        target[...] = np.random.random_sample(target.shape) < p

        autograd.check_not_requires_grad("bernoulli_", [self])
        return self

    def backward(self):
        autograd.backward(self)

    def __add__(self, other):
        other = _coerce(other)
        return NotImplemented if other is None else _ops().add(self, other)

    def __radd__(self, other):
        other = _coerce(other)
        return NotImplemented if other is None else _ops().add(other, self)

    def __sub__(self, other):
        other = _coerce(other)
        return NotImplemented if other is None else _ops().sub(self, other)

    def __rsub__(self, other):
        other = _coerce(other)
        return NotImplemented if other is None else _ops().sub(other, self)

    def __mul__(self, other):
        other = _coerce(other)
        return NotImplemented if other is None else _ops().mul(self, other)

    def __rmul__(self, other):
        other = _coerce(other)
        return NotImplemented if other is None else _ops().mul(other, self)

    def __truediv__(self, other):
        other = _coerce(other)
        return NotImplemented if other is None else _ops().div(self, other)

    def __rtruediv__(self, other):
        other = _coerce(other)
        return NotImplemented if other is None else _ops().div(other, self)

    def __xor__(self, other):
        other = _coerce(other)
        return NotImplemented if other is None else _ops().pow(self, other)

    def __rxor__(self, other):
        other = _coerce(other)
        return NotImplemented if other is None else _ops().pow(other, self)

    def __neg__(self):
        return _ops().neg(self)

    def __gt__(self, other):
        other = _coerce(other)
        return NotImplemented if other is None else _ops().gt(self, other)

    def __lt__(self, other):
        other = _coerce(other)
        return NotImplemented if other is None else _ops().lt(self, other)

    def __ge__(self, other):
        other = _coerce(other)
        return NotImplemented if other is None else _ops().ge(self, other)

    def __le__(self, other):
        other = _coerce(other)
        return NotImplemented if other is None else _ops().le(self, other)