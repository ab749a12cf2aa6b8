"""Optimisers that update parameters from their gradients."""

from __future__ import annotations

from . import autograd
from .errors import InvalidArgumentError


class SGD:
    """Stochastic gradient descent with optional momentum and weight decay."""

    def __init__(
        self,
        params,
        lr,
        momentum=0.0,
        dampening=0.0,
        weight_decay=0.0,
        nesterov=False,
        maximize=False,
    ):
        if lr < 0:
            raise InvalidArgumentError("SGD learning rate must not be negative")
        self.params = list(params)
        self.lr = lr
        self.momentum = momentum
        self.dampening = dampening
        self.weight_decay = weight_decay
        self.nesterov = nesterov
        self.maximize = maximize
        self._buffers = [None] * len(self.params)

    def step(self):
        """Update every parameter that has a gradient."""
        with autograd.grad_mode(False):
            for position, param in enumerate(self.params):
                grad = param.grad
                if grad is None:
                    continue
                if self.weight_decay:
                    grad = grad + self.weight_decay * param
                if self.momentum:
                    buffer = self._buffers[position]
                    if buffer is None:
                        buffer = grad.deep_copy()
                    else:
                        buffer = self.momentum * buffer + (1 - self.dampening) * grad
                    self._buffers[position] = buffer
                    grad = grad + self.momentum * buffer if self.nesterov else buffer

                if self.maximize:
                    param.add_(self.lr * grad)
                else:
                    param.sub_(self.lr * grad)

    def zero_grad(self):
        """Forget the gradients accumulated in the parameters."""
        for param in self.params:
            if param.grad_info is not None:
                param.grad_info.grad = None