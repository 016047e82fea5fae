import numpy as np
import pytest

from college_model import AttributeVector


def test_random_ranges():
    rng = np.random.default_rng(0)
    attrs = AttributeVector.random(rng, 3, 20, 20)

    assert attrs.constant.shape == (3,)
    assert attrs.constant.dtype == bool
    assert np.all(attrs.independent > 0) and np.all(attrs.independent <= 1)
    assert np.all(attrs.dependent > 0) and np.all(attrs.dependent <= 1)
    assert attrs.normalized_dependent().sum() == pytest.approx(1.0)


def test_constant_attributes_are_read_only():
    attrs = AttributeVector([True, False], [0.5], [1.0, 1.0])
    with pytest.raises(ValueError):
        attrs.constant[0] = False


def test_set_dependent_keeps_normalization():
    attrs = AttributeVector([], [], [1.0, 2.0, 3.0, 4.0])

    attrs.set_dependent(1, 0.5)

    normalized = attrs.normalized_dependent()
    assert normalized[1] == pytest.approx(0.5)
    assert normalized.sum() == pytest.approx(1.0)
    # the others keep their relative proportions
    assert normalized[3] / normalized[0] == pytest.approx(4.0)


def test_set_dependent_to_zero():
    attrs = AttributeVector([], [], [1.0, 1.0])
    attrs.set_dependent(0, 0.0)
    assert attrs.normalized_dependent() == pytest.approx([0.0, 1.0])


@pytest.mark.parametrize('value', [1.0, -0.1, 1.5])
def test_set_dependent_rejects_impossible_values(value):
    attrs = AttributeVector([], [], [1.0, 1.0, 1.0])
    with pytest.raises(ValueError):
        attrs.set_dependent(0, value)


def test_lone_dependent_attribute():
    attrs = AttributeVector([], [], [0.3])
    attrs.set_dependent(0, 1.0)
    assert attrs.normalized_dependent() == pytest.approx([1.0])

    with pytest.raises(ValueError):
        attrs.set_dependent(0, 0.5)


def test_snapshot_and_copy_are_detached():
    attrs = AttributeVector([True], [0.1, 0.2], [1.0, 3.0])
    indep, dep = attrs.snapshot()
    clone = attrs.copy()

    attrs.set_independent(0, 0.9)
    attrs.set_dependent(0, 0.5)

    assert indep == pytest.approx([0.1, 0.2])
    assert dep == pytest.approx([0.25, 0.75])
    assert clone.independent == pytest.approx([0.1, 0.2])
    assert clone.normalized_dependent() == pytest.approx([0.25, 0.75])
