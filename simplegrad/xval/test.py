# Tests for the cross validation search
# Test by running: python -m simplegrad.xval.test (or pytest)

import math
import random

import numpy as np
import pytest

from ..autograd import Value
from ..nn import make_moons, svm_max_margin
from .xval import DEFAULT_LAMBDA, CrossValidation, FloatingRange


def reset_seeds(seed: int = 0):
    random.seed(seed)
    np.random.seed(seed)


class ConstantCrossValidation(CrossValidation):
    ''' Every lambda yields the same model, so every lambda scores the same '''

    def _mini_train(self, values, labels, l2_lambda):
        return lambda x: Value(1.0)


def test_floating_range():
    r = FloatingRange(0.0, 0.01, 0.0005)
    values = list(r)
    assert len(values) == 21 == len(r)
    assert values[0] == 0.0
    assert math.isclose(values[-1], 0.01)
    assert all(isinstance(v, float) for v in values)

    assert list(FloatingRange(1.0, 0.5, 0.1)) == []
    with pytest.raises(ValueError):
        FloatingRange(0.0, 1.0, 0.0)


def test_search():
    reset_seeds()
    X, Y = make_moons(20, noise=0.1, seed=1)
    xv = CrossValidation(X, Y, [3, 1], FloatingRange(0.0, 0.002, 0.001), k=4, iterations=2)

    best = xv.search()

    assert len(xv.scores) == 3
    assert best in xv.scores
    assert xv.scores[best] == max(xv.scores.values())
    assert all(0.0 <= s <= 1.0 for s in xv.scores.values())
    assert xv.model is not None


def test_search_with_hinge_loss():
    reset_seeds()
    X, Y = make_moons(12, noise=0.1, seed=2)
    xv = CrossValidation(X, Y, [2, 1], FloatingRange(0.0, 0.001, 0.001), loss_fn=svm_max_margin, k=3, iterations=1)
    assert xv.search() in (0.0, 0.001)


def test_ties_go_to_first_lambda():
    X, Y = make_moons(10, noise=0.0, seed=0)
    xv = ConstantCrossValidation(X, Y, [1], FloatingRange(0.001, 0.003, 0.001), k=5)
    assert xv.search() == 0.001
    assert len(set(xv.scores.values())) == 1


def test_empty_range_falls_back_to_default():
    X, Y = make_moons(10, noise=0.0, seed=0)
    xv = CrossValidation(X, Y, [1], FloatingRange(1.0, 0.0, 0.5), k=2)
    assert xv.search() == DEFAULT_LAMBDA
    assert xv.scores == {}


def test_needs_two_folds():
    X, Y = make_moons(10, noise=0.0, seed=0)
    with pytest.raises(ValueError):
        CrossValidation(X, Y, [1], FloatingRange(0.0, 0.1, 0.1), k=1)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
