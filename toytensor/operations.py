"""Tensor operations: element-wise arithmetic, reductions and layout changes."""

from __future__ import annotations

import math
import numbers

import numpy as np

from . import autograd
from .errors import InvalidArgumentError, ShapeIncompatibleError
from .tensor import Tensor


def _as_tensor(value):
    if isinstance(value, Tensor):
        return value
    if isinstance(value, numbers.Real):
        return Tensor.scalar(value)
    raise TypeError(f"expected a Tensor or a number, got {type(value).__name__}")


def _record(result, node_factory, tensors):
    """Attach a backward node to result when any input needs grad."""
    if autograd.is_grad_enabled() and autograd.is_either_requires_grad(tensors):
        autograd.update_backward_graph(result, node_factory(), tensors)
    return result


def _values(tensor):
    return tensor._numpy().astype(np.float64)


def _check_broadcastable(tensors):
    try:
        np.broadcast_shapes(*(tensor.shape for tensor in tensors))
    except ValueError as exc:
        shapes = ", ".join(str(tensor.shape) for tensor in tensors)
        raise ShapeIncompatibleError(f"shapes {shapes} can't be broadcast together") from exc


def _elementwise(func, *tensors):
    _check_broadcastable(tensors)
    with np.errstate(all="ignore"):
        values = func(*(_values(tensor) for tensor in tensors))
    return Tensor._from_numpy(values)


def _normalize_dim(tensor, dim):
    return dim + tensor.dim() if dim < 0 else dim


def _checked_dim(tensor, dim, opname):
    dim = _normalize_dim(tensor, dim)
    if not 0 <= dim < tensor.dim():
        raise InvalidArgumentError(f"{opname}() arg dim out of range")
    return dim


def where(condition, input, other):
    """Pick input where condition is non-zero and other elsewhere."""
    condition, input, other = (_as_tensor(t) for t in (condition, input, other))
    result = _elementwise(lambda c, a, b: np.where(c != 0, a, b), condition, input, other)
    # The condition gets no gradient; it is only kept to route the incoming one.
    return _record(result, lambda: autograd.WhereBackward(condition), [input, other])


def add(self, other):
    self, other = _as_tensor(self), _as_tensor(other)
    return _record(_elementwise(np.add, self, other), autograd.AddBackward, [self, other])


def sub(self, other):
    self, other = _as_tensor(self), _as_tensor(other)
    return _record(_elementwise(np.subtract, self, other), autograd.SubBackward, [self, other])


def mul(self, other):
    """Element-wise (Hadamard) product."""
    self, other = _as_tensor(self), _as_tensor(other)
    return _record(_elementwise(np.multiply, self, other), autograd.MulBackward, [self, other])


def div(self, other):
    self, other = _as_tensor(self), _as_tensor(other)
    return _record(_elementwise(np.divide, self, other), autograd.DivBackward, [self, other])


def pow(self, other):
    self, other = _as_tensor(self), _as_tensor(other)
    return _record(_elementwise(np.power, self, other), autograd.PowBackward, [self, other])


def exp(tensor):
    return _record(_elementwise(np.exp, tensor), autograd.ExpBackward, [tensor])


def log(tensor):
    return _record(_elementwise(np.log, tensor), autograd.LogBackward, [tensor])


def neg(tensor):
    return _record(_elementwise(np.negative, tensor), autograd.NegBackward, [tensor])


def abs(tensor):
    return _record(_elementwise(np.abs, tensor), autograd.AbsBackward, [tensor])


def sign(tensor):
    result = _elementwise(np.sign, tensor)
    autograd.check_backward_implemented("sign", [tensor])
    return result


def bernoulli(p):
    """Draw 1 with the probability held in each element of p, else 0."""
    probabilities = _values(p)
    if np.any((probabilities < 0) | (probabilities > 1)):
        raise InvalidArgumentError("bernoulli() probabilities must be within [0, 1]")
    drawn = np.random.random_sample(probabilities.shape) < probabilities
    result = Tensor._from_numpy(drawn)
    return _record(result, autograd.AbsBackward, [p])


def unsqueeze(tensor, dim):
    with autograd.grad_mode(False):
        result = tensor.meta_copy()
        result.unsqueeze_(dim)
    autograd.check_backward_implemented("unsqueeze", [tensor])
    return result


def squeeze(tensor, dim):
    with autograd.grad_mode(False):
        result = tensor.meta_copy()
        result.squeeze_(dim)
    autograd.check_backward_implemented("squeeze", [tensor])
    return result


def unfold(tensor, dim, size, step):
    """Return a view holding every slice of length size along dim, step apart."""
    if not 0 <= dim < tensor.dim():
        raise InvalidArgumentError("unfold dim exceed tensor dim range")
    length = tensor.shape[dim]
    if size <= 0 or step <= 0:
        raise InvalidArgumentError("unfold size and step must be positive")
    if size > length:
        raise InvalidArgumentError("unfold size exceeds the length of the dim")

    stride = tensor.strides[dim]
    shape = list(tensor.shape)
    strides = list(tensor.strides)
    shape[dim] = (length - size) // step + 1
    strides[dim] = stride * step
    shape.append(size)
    strides.append(stride)

    result = tensor._as_strided(shape, strides)
    autograd.check_backward_implemented("unfold", [tensor])
    return result


def cat(tensors, dim):
    """Join tensors along dim; all other dims must match."""
    tensors = list(tensors)
    if len(tensors) < 2:
        raise InvalidArgumentError("cat() tensors count less than 2")
    first = tensors[0]
    ndim = first.dim()
    if not -ndim <= dim < ndim:
        raise InvalidArgumentError("cat() arg dim out of range")
    dim = dim + ndim if dim < 0 else dim

    for tensor in tensors[1:]:
        if tensor.dim() != ndim or any(
            a != b
            for axis, (a, b) in enumerate(zip(tensor.shape, first.shape))
            if axis != dim
        ):
            raise ShapeIncompatibleError("cat() tensors has incompatible shapes")

    result = Tensor._from_numpy(np.concatenate([t._numpy() for t in tensors], axis=dim))
    autograd.check_backward_implemented("cat", tensors)
    return result


def gt(self, other):
    # Comparisons have no derivative; the result never requires grad.
    return _elementwise(np.greater, _as_tensor(self), _as_tensor(other))


def lt(self, other):
    return _elementwise(np.less, _as_tensor(self), _as_tensor(other))


def ge(self, other):
    return _elementwise(np.greater_equal, _as_tensor(self), _as_tensor(other))


def le(self, other):
    return _elementwise(np.less_equal, _as_tensor(self), _as_tensor(other))


def select(tensor, axis, index, keep_dim=False):
    """Copy out the slice at index along axis."""
    axis = _normalize_dim(tensor, axis)
    if not 0 <= axis < tensor.dim():
        raise InvalidArgumentError("dim is invalid")
    if not 0 <= index < tensor.shape[axis]:
        raise InvalidArgumentError("select() index out of range")
    values = np.take(tensor._numpy(), index, axis=axis)
    if keep_dim:
        values = np.expand_dims(values, axis)
    return Tensor._from_numpy(values)


def _sum_all(tensor):
    result = Tensor.scalar(float(np.sum(_values(tensor))))
    return _record(result, autograd.SumBackward, [tensor])


def _sum_axis(tensor, axis, keep_dim):
    axis = _normalize_dim(tensor, axis)
    if not 0 <= axis < tensor.dim():
        raise InvalidArgumentError("dim is invalid")
    result = Tensor._from_numpy(np.sum(_values(tensor), axis=axis, keepdims=keep_dim))
    autograd.check_backward_implemented("sum", [tensor])
    return result


def _sum_axes(tensor, dims, keep_dim):
    axes = [_normalize_dim(tensor, dim) for dim in dims]
    if any(not 0 <= axis < tensor.dim() for axis in axes):
        raise InvalidArgumentError("dim is invalid")
    if any(later <= earlier for earlier, later in zip(axes, axes[1:])):
        raise InvalidArgumentError("axes in dims should be in ascending order")
    result = Tensor._from_numpy(np.sum(_values(tensor), axis=tuple(axes), keepdims=keep_dim))
    autograd.check_backward_implemented("sum", [tensor])
    return result


def sum(tensor, dims=None, keep_dim=False):
    """Sum all elements, one dim, or a list of dims in ascending order."""
    if dims is None:
        return _sum_all(tensor)
    if isinstance(dims, numbers.Integral):
        return _sum_axis(tensor, int(dims), keep_dim)
    return _sum_axes(tensor, list(dims), keep_dim)


def mean(tensor, dims=None, keep_dim=False):
    """Average over all elements, one dim, or a list of dims."""
    if dims is None:
        count = tensor.numel()
    elif isinstance(dims, numbers.Integral):
        count = tensor.shape[_normalize_dim(tensor, int(dims))]
    else:
        count = math.prod(tensor.shape[_normalize_dim(tensor, d)] for d in dims)
    return div(sum(tensor, dims, keep_dim), Tensor.scalar(count))


def transpose(tensor, dim1=None, dim2=None):
    """Swap two dims as a view; without dims, transpose a 2-D tensor."""
    if dim1 is None and dim2 is None:
        if tensor.dim() != 2:
            raise ShapeIncompatibleError("transpose() without dims needs a 2-D tensor")
        dim1, dim2 = 0, 1
    elif dim1 is None or dim2 is None:
        raise InvalidArgumentError("transpose() needs both dims or neither")

    dim1 = _normalize_dim(tensor, dim1)
    dim2 = _normalize_dim(tensor, dim2)
    if not (0 <= dim1 < tensor.dim() and 0 <= dim2 < tensor.dim()):
        raise InvalidArgumentError("transpose args dim out of range")

    shape = list(tensor.shape)
    strides = list(tensor.strides)
    shape[dim1], shape[dim2] = shape[dim2], shape[dim1]
    strides[dim1], strides[dim2] = strides[dim2], strides[dim1]

    result = tensor._as_strided(shape, strides)
    autograd.check_backward_implemented("transpose", [tensor])
    return result


def slice(tensor, dim, start, end):
    """Return a view of elements start..end-1 along dim."""
    dim = _checked_dim(tensor, dim, "slice")
    if not (start >= 0 and end <= tensor.shape[dim] and start < end):
        raise InvalidArgumentError("slice() args start & end are not valid")

    shape = list(tensor.shape)
    shape[dim] = end - start
    offset = tensor.offset + tensor.strides[dim] * start

    result = tensor._as_strided(shape, tensor.strides, offset)
    autograd.check_backward_implemented("slice", [tensor])
    return result


def flip(input, dims):
    """Return a copy with the order of elements reversed along each of dims."""
    values = input._numpy()
    for dim in dims:
        values = np.flip(values, _checked_dim(input, dim, "flip"))
    result = Tensor._from_numpy(values)
    autograd.check_backward_implemented("flip", [input])
    return result