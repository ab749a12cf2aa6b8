import math

import pytest

from toytensor.autograd import grad_mode
from toytensor.errors import (
    BackwardNotImplementedError,
    InvalidArgumentError,
    OperationNotImplementedError,
    ShapeIncompatibleError,
)
from toytensor.tensor import Tensor


def _range_tensor(shape):
    return Tensor(shape, list(range(math.prod(shape))))


def test_scalar_construction():
    t = Tensor(18)
    assert t.shape == ()
    assert t.dim() == 0
    assert t.is_scalar()
    assert t.numel() == 1
    assert t.item() == 18
    assert t[0] == 18
    assert Tensor.scalar(2.5).item() == 2.5


def test_fill_value_construction_with_grad():
    t = Tensor([1, 1], 0.0109, True)
    assert t.tolist() == [[pytest.approx(0.0109)]]
    assert t.requires_grad
    assert t.grad is None
    assert t.grad_fn is None


def test_short_data_is_padded_with_zeros():
    assert Tensor([2, 2], [1, 2]).tolist() == [[1.0, 2.0], [0.0, 0.0]]


def test_long_data_is_truncated():
    assert Tensor([2], [1, 2, 3]).tolist() == [1.0, 2.0]


def test_empty_data_gives_zeros():
    assert Tensor([3, 2], []) == Tensor([3, 2])
    assert Tensor([3, 2]).tolist() == [[0.0, 0.0]] * 3


def test_callable_data():
    values = iter(range(6))
    t = Tensor([2, 3], lambda: next(values))
    assert t.tolist() == [[0.0, 1.0, 2.0], [3.0, 4.0, 5.0]]


def test_negative_shape_rejected():
    with pytest.raises(InvalidArgumentError):
        Tensor([2, -3])


def test_contiguous_strides():
    assert Tensor([2, 3, 4, 6]).strides == (72, 24, 6, 1)
    assert Tensor([2, 3, 5, 7]).strides == (105, 35, 7, 1)
    assert Tensor([2, 3, 4, 6]).is_contiguous()
    assert Tensor([2, 3, 4]).numel() == 24


def test_view_roundtrip():
    t = _range_tensor([2, 3, 4])
    flat = t.view([-1])
    assert flat.shape == (24,)
    assert flat.tolist() == [float(i) for i in range(24)]
    assert flat.view([2, 3, 4]) == t


def test_view_infers_dimension_and_strides():
    t = _range_tensor([144])
    assert t.view([2, -1, 4, 6]).shape == (2, 3, 4, 6)
    assert t.view([2, 3, 4, 6]).strides == (72, 24, 6, 1)


def test_view_errors():
    t = _range_tensor([2, 3, 4])
    with pytest.raises(InvalidArgumentError):
        t.view([-1, -1])
    with pytest.raises(ShapeIncompatibleError):
        t.view([5])
    with pytest.raises(ShapeIncompatibleError):
        t.view([-1, 5])


def test_view_shares_storage():
    t = _range_tensor([2, 3])
    flat = t.view([6])
    flat[0] = 100
    assert t[0, 0] == 100


def test_view_of_noncontiguous_raises():
    t = Tensor([1, 2], [1, 2]).expand([3, 2])
    assert not t.is_contiguous()
    with pytest.raises(OperationNotImplementedError):
        t.view([6])


def test_view_records_backward_node():
    t = Tensor([2, 2], [1, 2, 3, 4], True)
    v = t.view([4])
    assert v.requires_grad
    assert v.grad_fn.name() == "ViewBackward"
    assert v.grad_fn.edges[0].tensor is t


def test_expand_repeats_values():
    t = Tensor([1, 3], [1, 2, 3])
    e = t.expand([2, 3])
    assert e.shape == (2, 3)
    assert e.strides == (0, 1)
    assert e.tolist() == [t.tolist()[0], t.tolist()[0]]


def test_expand_errors():
    t = Tensor([2, 3])
    with pytest.raises(ShapeIncompatibleError):
        t.expand([3, 3])
    with pytest.raises(ShapeIncompatibleError):
        t.expand([2, 3, 1])
    with pytest.raises(BackwardNotImplementedError):
        Tensor([1, 3], 1, True).expand([2, 3])


def test_squeeze_in_place():
    t = Tensor([2, 1, 3], 1)
    assert t.squeeze_(1) is t
    assert t == Tensor([2, 3], 1)
    assert Tensor([2, 1, 3], 1).squeeze_(-2).shape == (2, 3)


def test_squeeze_errors():
    with pytest.raises(InvalidArgumentError):
        Tensor([2, 1, 3]).squeeze_(0)
    with pytest.raises(InvalidArgumentError):
        Tensor([2, 1, 3]).squeeze_(3)
    with pytest.raises(BackwardNotImplementedError):
        Tensor([1, 2], 1, True).squeeze_(0)


def test_unsqueeze_in_place():
    assert Tensor([2, 3], 1).unsqueeze_(-3) == Tensor([1, 2, 3], 1)
    assert Tensor([2, 3], 1).unsqueeze_(0) == Tensor([1, 2, 3], 1)
    assert Tensor([2, 3], 1).unsqueeze_(-1) == Tensor([2, 3, 1], 1)
    assert Tensor([2, 3], 1).unsqueeze_(2) == Tensor([2, 3, 1], 1)


def test_unsqueeze_errors():
    with pytest.raises(InvalidArgumentError):
        Tensor([2, 3]).unsqueeze_(3)
    with pytest.raises(InvalidArgumentError):
        Tensor([2, 3]).unsqueeze_(-4)
    with pytest.raises(BackwardNotImplementedError):
        Tensor([2, 3], 1, True).unsqueeze_(0)


def test_add_then_sub_restores_values():
    a = Tensor([3, 2], [1, 2, 3, 4, 5, 6])
    original = a.deep_copy()
    b = Tensor([2], [0, 3])
    assert a.add_(b) is a
    assert a != original
    a.sub_(b)
    assert a == original


def test_add_in_place_broadcasts():
    a = Tensor([3, 2], [1, 2, 3, 4, 5, 6])
    a.add_(Tensor([1, 2], [1, 1]))
    assert a == Tensor([3, 2], [2, 3, 4, 5, 6, 7])


def test_mul_then_div_with_number_restores_values():
    a = Tensor([2, 2], [1, 2, 3, 4])
    original = a.deep_copy()
    a.mul_(4)
    assert a != original
    a.div_(4)
    assert a == original


def test_in_place_shape_mismatch():
    with pytest.raises(ShapeIncompatibleError):
        Tensor([2, 3]).add_(Tensor([3, 2]))


def test_in_place_on_requires_grad():
    a = Tensor([2], [1, 2], True)
    with pytest.raises(BackwardNotImplementedError):
        a.sub_(Tensor([2], [1, 2]))
    b = Tensor([2], [1, 2], True)
    with grad_mode(False):
        b.sub_(Tensor([2], [1, 2]))
    assert b == Tensor([2], [0, 0])


def test_bernoulli_extremes():
    assert Tensor([3, 4], 5).bernoulli_(0.0) == Tensor([3, 4], 0)
    assert Tensor([3, 4], 5).bernoulli_(1.0) == Tensor([3, 4], 1)
    with pytest.raises(InvalidArgumentError):
        Tensor([2]).bernoulli_(2.0)


def test_bernoulli_values_are_binary():
    t = Tensor([50]).bernoulli_(0.5)
    assert set(t.tolist()) <= {0.0, 1.0}


def test_strict_equal_and_shapes():
    assert Tensor([2, 3]) != Tensor([3, 2])
    assert not Tensor([2, 3]).strict_equal(Tensor([3, 2]))
    assert Tensor([2], [1, 2]) == Tensor([2], [1, 2])


def test_strict_allclose():
    a = Tensor([2], [1.0, 2.0])
    b = Tensor([2], [1.0005, 2.0])
    assert not a.strict_equal(b)
    assert a.strict_allclose(b, 1e-2, 1e-4)
    assert not a.strict_allclose(b, 0.0, 1e-5)
    assert not a.strict_allclose(Tensor([1, 2], [1.0, 2.0]))


def test_strict_allclose_nan():
    a = Tensor([1], [math.nan])
    assert a != a
    assert not a.strict_allclose(a)
    assert a.strict_allclose(a, equal_nan=True)


def test_getitem_and_setitem():
    t = _range_tensor([2, 3])
    assert t[4] == 4
    assert t[-1] == 5
    assert t[1, 2] == 5
    t[0, 1] = 42
    assert t[1] == 42
    with pytest.raises(IndexError):
        t[(0,)]
    with pytest.raises(IndexError):
        t[6]


def test_getitem_on_expanded_tensor():
    t = Tensor([3], [7, 8, 9]).view([1, 3]).expand([2, 3])
    assert [t[i] for i in range(6)] == [7.0, 8.0, 9.0] * 2


def test_meta_copy_shares_storage_deep_copy_does_not():
    t = _range_tensor([2, 2])
    shared = t.meta_copy()
    copied = t.deep_copy()
    shared[0] = 10
    assert t[0] == 10
    assert copied[0] == 0
    assert copied.is_contiguous()


def test_deep_copy_of_expanded_is_contiguous():
    t = Tensor([1, 2], [1, 2]).expand([2, 2])
    copy = t.deep_copy()
    assert copy.is_contiguous()
    assert copy == t


def test_detach_drops_grad():
    t = Tensor([2], [1, 2], True)
    d = t.detach()
    assert not d.requires_grad
    assert t.requires_grad
    assert d == t


def test_fill():
    t = Tensor([2, 2])
    t.fill([1, 2, 3, 4])
    assert t == Tensor([2, 2], [1, 2, 3, 4])
    with pytest.raises(InvalidArgumentError):
        t.fill([1, 2, 3])


def test_indices_row_major():
    idx = list(Tensor([2, 3]).indices())
    assert len(idx) == 6
    assert idx[0] == (0, 0)
    assert idx[1] == (0, 1)
    assert idx[-1] == (1, 2)
    assert list(Tensor(3).indices()) == [()]


def test_item_requires_one_element():
    with pytest.raises(InvalidArgumentError):
        Tensor([2]).item()
    assert Tensor([1, 1], 3).item() == 3


def test_str_format():
    assert str(Tensor([2, 2], [1, 2, 3, 4])) == "[[1,2],\n[3,4]]"
    assert str(Tensor([3], [1, 0.5, 2])) == "[1,0.5,2]"
    assert str(Tensor(2.5)) == "2.5"


def test_backward_without_grad_raises():
    with pytest.raises(InvalidArgumentError):
        Tensor([2], [1, 2]).backward()