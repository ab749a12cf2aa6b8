# toytensor

A small tensor library built for learning how tensors and automatic
differentiation work. Tensors are strided views over shared flat float32
storage, so `view`, `transpose`, `slice`, `unfold` and `expand` copy no data.
Element-wise operations broadcast their operands, and operations on tensors
that require gradients record a backward graph that `backward()` walks in
reverse.

## Installation

```
pip install .
```

To run the test suite:

```
pip install ".[test]"
pytest
```

## Modules

- `toytensor.tensor` – the `Tensor` class.
- `toytensor.creation` – `empty`, `zeros`, `ones`, `arange`, `rand`, `randn`
  and their `*_like` variants.
- `toytensor.operations` – element-wise arithmetic (`add`, `sub`, `mul`,
  `div`, `pow`, `exp`, `log`, `neg`, `abs`, `sign`), comparisons (`gt`, `lt`,
  `ge`, `le`), `where`, `bernoulli`, reductions (`sum`, `mean`, `select`) and
  layout operations (`squeeze`, `unsqueeze`, `unfold`, `transpose`, `slice`,
  `cat`, `flip`).
- `toytensor.autograd` – backward graph nodes, `backward` and `grad_mode`.
- `toytensor.optim` – the `SGD` optimizer.
- `toytensor.errors` – the exception classes.

## Creating tensors

```python
from toytensor.tensor import Tensor
from toytensor.creation import ones, zeros, arange, randn

a = Tensor([2, 3], [1, 2, 3, 4, 5, 6])
b = ones([2, 3])
s = Tensor.scalar(2.0)
r = arange(0, 24).view([2, 3, 4])
noise = randn([4, 1])
```

## Operations

Arithmetic operators accept tensors or plain numbers and broadcast in the
usual way. `^` raises to a power, and comparisons return tensors of 0s and 1s.

```python
from toytensor.operations import where, cat, flip, neg

c = a + b            # element-wise add
d = a ^ s            # element-wise power
mask = a > b         # 1.0 where a > b, else 0.0
e = where(mask, a, neg(a))

r.transpose(0, 1)    # strided view, no copy
r.slice(2, 1, 3)     # narrow dimension 2 to [1, 3)
r.sum([0, 1], True)  # reduce over several dimensions, keeping them
cat([b, b], 0)       # concatenate along a dimension
flip(r, [1, 2])      # reverse the order along dimensions
```

Compare tensors exactly with `==`, or within a tolerance with
`strict_allclose(other, rtol, atol, equal_nan)`:

```python
assert (a - a) == zeros([2, 3])
assert a.strict_allclose(a + 1e-6, 1e-5, 1e-5)
```

## Automatic differentiation

```python
w = Tensor([3], [1.0, 2.0, 3.0], requires_grad=True)
x = Tensor([3], [4.0, 5.0, 6.0])

loss = (w * x).sum()
loss.backward()
print(w.grad)        # [4,5,6]
```

Gradients are recorded for `add`, `sub`, `mul`, `div`, `pow`, `where`, `exp`,
`log`, `neg`, `abs`, the full `sum()` and `view`. Other operations raise
`BackwardNotImplementedError` when given a tensor that requires gradients,
and in-place operations such as `add_` raise it too. Calling `backward()` on a
tensor that does not require gradients raises `InvalidArgumentError`.

Use `grad_mode` to switch graph recording off for a block:

```python
from toytensor.autograd import grad_mode

with grad_mode(False):
    y = w * 2
```

## Optimization

```python
from toytensor.optim import SGD

opt = SGD([w], lr=0.01, momentum=0.9)
for _ in range(100):
    opt.zero_grad()
    loss = ((w * x).sum() - 10) ^ Tensor.scalar(2.0)
    loss.backward()
    opt.step()
```

`SGD` also takes `dampening`, `weight_decay`, `nesterov` and `maximize`.

## Errors

Every error raised by the library derives from `toytensor.errors.TensorError`:
`InvalidArgumentError`, `ShapeIncompatibleError`,
`OperationNotImplementedError` and `BackwardNotImplementedError`.

## What is not included

The package provides tensors, their operations, gradients and an SGD
optimizer only. It has no matrix multiplication, no neural-network layers,
activation functions, loss functions, convolution or dropout, and no command
line tool.