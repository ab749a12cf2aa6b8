"""Reverse-mode automatic differentiation: graph nodes and the backward pass."""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from collections import deque
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any

from .errors import BackwardNotImplementedError, InvalidArgumentError


class _GradState(threading.local):
    enabled = True


_state = _GradState()


def is_grad_enabled():
    """Return whether operations currently record the backward graph."""
    return _state.enabled


@contextmanager
def grad_mode(enable=False):
    """Set gradient recording for the enclosed block, restoring it afterwards."""
    previous = _state.enabled
    _state.enabled = enable
    try:
        yield
    finally:
        _state.enabled = previous


def _ops():
    # Imported on use: the operations module itself depends on this one.
    from . import operations

    return operations


def _scalar_like(tensor, value):
    return type(tensor).scalar(value)


def _grad_info(tensor):
    return getattr(tensor, "grad_info", None)


@dataclass(eq=False)
class GradInfo:
    """Gradient bookkeeping attached to a tensor that requires grad."""

    grad: Any = None
    grad_fn: Any = None


class Edge:
    """Link from a node to one of the tensors its output was computed from."""

    def __init__(self, tensor):
        self.tensor = tensor

    def node(self):
        """Return the node producing the tensor, or None for a constant."""
        info = _grad_info(self.tensor)
        return info.grad_fn if info is not None else None


class Node(ABC):
    """A step of the backward graph."""

    def __init__(self):
        self.edges = []

    def add_edge(self, edge):
        self.edges.append(edge)

    @abstractmethod
    def apply(self, grads):
        """Map the gradients of the outputs to gradients of the edges."""

    def __call__(self, grads):
        return self.apply(list(grads))

    def name(self):
        return type(self).__name__

    def id(self):
        return f"{self.name()}_{id(self)}"


def _reduce_to_shape(grad, shape):
    """Sum a broadcast gradient back down to the shape of its operand."""
    shape = tuple(shape)
    if tuple(grad.shape) == shape:
        return grad
    if not shape:
        return grad.sum()
    while len(grad.shape) > len(shape):
        grad = grad.sum(0, keep_dim=False)
    for dim, (grad_len, target_len) in enumerate(zip(tuple(grad.shape), shape)):
        if target_len == 1 and grad_len != 1:
            grad = grad.sum(dim, keep_dim=True)
    return grad


class UnaryNode(Node):
    """Node of an operation with a single tensor input."""

    def apply(self, grads):
        return [self.calculate_grad(grads[0], self.edges[0].tensor)]

    @abstractmethod
    def calculate_grad(self, grad, input):
        """Return the gradient with respect to the input."""


class BinaryNode(Node):
    """Node of an operation with two tensor inputs."""

    def apply(self, grads):
        grad = grads[0]
        lhs, rhs = (edge.tensor for edge in self.edges)
        lhs_grad = rhs_grad = None
        if _grad_info(lhs) is not None:
            lhs_grad = _reduce_to_shape(self.calculate_lhs_grad(grad, lhs, rhs), lhs.shape)
        if _grad_info(rhs) is not None:
            rhs_grad = _reduce_to_shape(self.calculate_rhs_grad(grad, lhs, rhs), rhs.shape)
        return [lhs_grad, rhs_grad]

    @abstractmethod
    def calculate_lhs_grad(self, grad, lhs, rhs):
        """Return the gradient with respect to the left operand."""

    @abstractmethod
    def calculate_rhs_grad(self, grad, lhs, rhs):
        """Return the gradient with respect to the right operand."""


class LeafNodeBackward(Node):
    """Accumulates the incoming gradient into a leaf tensor."""

    def apply(self, grads):
        info = self.edges[0].tensor.grad_info
        incoming = grads[0]
        info.grad = incoming.deep_copy() if info.grad is None else info.grad + incoming
        return []


class UnimplementedNodeBackward(Node):
    """Stands for an operation whose backward pass is not available."""

    def __init__(self, message):
        super().__init__()
        self.message = message

    def apply(self, grads):
        raise BackwardNotImplementedError(self.message)


class AddBackward(BinaryNode):
    def calculate_lhs_grad(self, grad, lhs, rhs):
        return grad

    def calculate_rhs_grad(self, grad, lhs, rhs):
        return grad


class SubBackward(BinaryNode):
    def calculate_lhs_grad(self, grad, lhs, rhs):
        return grad

    def calculate_rhs_grad(self, grad, lhs, rhs):
        return -grad


class MulBackward(BinaryNode):
    def calculate_lhs_grad(self, grad, lhs, rhs):
        return grad * rhs

    def calculate_rhs_grad(self, grad, lhs, rhs):
        return grad * lhs


class DivBackward(BinaryNode):
    def calculate_lhs_grad(self, grad, lhs, rhs):
        return grad / rhs

    def calculate_rhs_grad(self, grad, lhs, rhs):
        return -(grad * lhs) / (rhs * rhs)


class PowBackward(BinaryNode):
    def calculate_lhs_grad(self, grad, lhs, rhs):
        exponent = rhs - _scalar_like(rhs, 1.0)
        return grad * rhs * (lhs ^ exponent)

    def calculate_rhs_grad(self, grad, lhs, rhs):
        return grad * (lhs ^ rhs) * _ops().log(lhs)


class WhereBackward(BinaryNode):
    """Backward of where(); the condition only selects, it gets no gradient."""

    def __init__(self, condition):
        super().__init__()
        self.condition = condition

    def calculate_lhs_grad(self, grad, lhs, rhs):
        return _ops().where(self.condition, grad, _scalar_like(grad, 0.0))

    def calculate_rhs_grad(self, grad, lhs, rhs):
        return _ops().where(self.condition, _scalar_like(grad, 0.0), grad)


class ExpBackward(UnaryNode):
    def calculate_grad(self, grad, input):
        return grad * _ops().exp(input)


class LogBackward(UnaryNode):
    def calculate_grad(self, grad, input):
        return grad / input


class NegBackward(UnaryNode):
    def calculate_grad(self, grad, input):
        return -grad


class AbsBackward(UnaryNode):
    def calculate_grad(self, grad, input):
        return grad * _ops().sign(input)


class SumBackward(UnaryNode):
    def calculate_grad(self, grad, input):
        shape = list(input.shape)
        return grad.view([1] * len(shape)).expand(shape)


class ViewBackward(UnaryNode):
    def calculate_grad(self, grad, input):
        return grad.deep_copy().view(list(input.shape))


def is_either_requires_grad(tensors):
    """Return whether any of the tensors requires grad."""
    return any(_grad_info(tensor) is not None for tensor in tensors)


def _ensure_leaf_node(tensor):
    info = tensor.grad_info
    if info.grad_fn is None:
        leaf = LeafNodeBackward()
        leaf.add_edge(Edge(tensor))
        info.grad_fn = leaf
    return info.grad_fn


def update_backward_graph(result, node, tensors):
    """Make node the gradient function of result, fed by the given tensors."""
    for tensor in tensors:
        if _grad_info(tensor) is not None:
            _ensure_leaf_node(tensor)
        node.add_edge(Edge(tensor))
    result.grad_info = GradInfo(grad_fn=node)


def check_backward_implemented(opname, tensors):
    """Raise if an operation without a backward pass gets tensors needing grad."""
    if is_grad_enabled() and is_either_requires_grad(tensors):
        raise BackwardNotImplementedError(
            f"{opname} called on tensors that requires grad hasn't been supported yet."
        )


def check_not_requires_grad(opname, tensors):
    """Raise if an in-place operation is applied to tensors needing grad."""
    if is_grad_enabled() and is_either_requires_grad(tensors):
        raise BackwardNotImplementedError(
            f"{opname} is not supposed to be called on tensors that requires grad"
        )


def _children(node):
    if isinstance(node, LeafNodeBackward):
        return
    for edge in node.edges:
        child = edge.node()
        if child is not None:
            yield child


def _in_degrees(root):
    degrees = {root: 0}
    stack = [root]
    while stack:
        node = stack.pop()
        for child in _children(node):
            if child not in degrees:
                degrees[child] = 0
                stack.append(child)
            degrees[child] += 1
    return degrees


def backward(root, gradient=None):
    """Propagate gradient from root to every leaf tensor that requires grad."""
    info = _grad_info(root)
    if info is None:
        raise InvalidArgumentError("backward() called on a tensor that doesn't require grad")
    if gradient is None:
        gradient = _scalar_like(root, 1.0)
    root_node = _ensure_leaf_node(root) if info.grad_fn is None else info.grad_fn

    with grad_mode(False):
        degrees = _in_degrees(root_node)
        pending = {root_node: gradient}
        ready = deque([root_node])
        while ready:
            node = ready.popleft()
            outputs = node([pending.pop(node)])
            for edge, grad in zip(node.edges, outputs):
                child = edge.node()
                if child is None or grad is None:
                    continue
                pending[child] = grad if child not in pending else pending[child] + grad
                degrees[child] -= 1
                if degrees[child] == 0:
                    ready.append(child)