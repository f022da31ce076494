# Testing script for the neural network built on our autograd
# Test by running: python -m simplegrad.nn.test (or pytest)

import logging
import math
import random

import numpy as np
import pytest
import torch

from ..autograd import Value
from .data import group, make_moons
from .losses import alpha, get_loss, l2, mse, svm_max_margin
from .nn import MLP, Layer, Neuron, TrainConfig, accuracy, sgd_step, train


def reset_seeds(seed: int = 0):
    random.seed(seed)
    np.random.seed(seed)
    torch.manual_seed(seed)


def grad_sum(params: list[Value]) -> float:
    return sum(p.grad for p in params)


def test_neuron():
    n = Neuron(10, non_linear=True)

    assert len(n.w) == 10
    assert n.b.data == 0.0
    assert all(-1.0 <= w.data < 1.0 for w in n.w)
    assert len(n.parameters()) == 11

    for p in n.parameters():
        p.grad = 3.0
    n.zero_grad()
    assert grad_sum(n.parameters()) == 0.0


def test_neuron_forward():
    n = Neuron(2, non_linear=False)
    n.w[0].data, n.w[1].data, n.b.data = 0.5, -2.0, 1.0
    assert n([2.0, 1.0]).data == 0.0
    assert n([-4.0, 1.0]).data == -3.0

    n.non_linear = True
    assert n([-4.0, 1.0]).data == 0.0


def test_layer():
    layer = Layer(8, 2, non_linear=False)

    assert len(layer.neurons) == 2
    assert layer.neurons[0].b.data == 0.0
    assert len(layer([0.0] * 8)) == 2

    layer.zero_grad()
    assert grad_sum(layer.parameters()) == 0.0


def test_mlp():
    m = MLP(8, [4, 2])

    assert len(m.layers[0].neurons) == 4
    assert len(m.layers[-1].neurons) == 2
    assert all(n.non_linear for n in m.layers[0].neurons)
    assert not any(n.non_linear for n in m.layers[-1].neurons)
    assert len(m.parameters()) == 4 * 9 + 2 * 5

    out = m([1.0] * 8)
    assert isinstance(out, list) and len(out) == 2

    m.zero_grad()
    assert grad_sum(m.parameters()) == 0.0


def test_mlp_matches_torch():
    ''' Same weights in a PyTorch tensor network give the same output and parameter grads '''
    reset_seeds()
    model = MLP(3, [4, 1])
    x = [0.5, -1.5, 2.0]

    # weights as (input, output) matrices, so that a layer is x @ W + b
    hidden, output = model.layers
    W1 = torch.tensor([[n.w[i].data for n in hidden.neurons] for i in range(3)], dtype=torch.float64, requires_grad=True)
    b1 = torch.tensor([n.b.data for n in hidden.neurons], dtype=torch.float64, requires_grad=True)
    W2 = torch.tensor([[n.w[i].data for n in output.neurons] for i in range(4)], dtype=torch.float64, requires_grad=True)
    b2 = torch.tensor([n.b.data for n in output.neurons], dtype=torch.float64, requires_grad=True)

    xt = torch.tensor(x, dtype=torch.float64)
    yt = ((xt @ W1 + b1).relu() @ W2 + b2).sum()
    yt.backward()

    y = model(x)
    y.backward()

    assert math.isclose(y.data, yt.item(), rel_tol=1e-9, abs_tol=1e-12)
    assert W1.grad is not None and W2.grad is not None and b1.grad is not None
    for j, n in enumerate(hidden.neurons):
        for i in range(3):
            assert math.isclose(n.w[i].grad, W1.grad[i, j].item(), rel_tol=1e-9, abs_tol=1e-12)
        assert math.isclose(n.b.grad, b1.grad[j].item(), rel_tol=1e-9, abs_tol=1e-12)
    for i in range(4):
        assert math.isclose(output.neurons[0].w[i].grad, W2.grad[i, 0].item(), rel_tol=1e-9, abs_tol=1e-12)


def test_mse():
    predicted = Value(1.111378)
    assert round(mse(predicted, 2.314213).data, 6) == 1.446812

    loss = mse(predicted, 2.0)
    loss.backward()
    assert math.isclose(predicted.grad, 2 * (1.111378 - 2.0))


def test_svm_max_margin():
    predicted = Value(1.111378)
    assert round(svm_max_margin(predicted, 2.314213).data, 6) == 0.0
    assert round(svm_max_margin(predicted, 0.003).data, 6) == 0.996666


def test_l2():
    params = [Value(1.0), Value(-2.0), Value(3.0)]
    reg = l2(params, 0.5)
    assert reg.data == 7.0

    reg.backward()
    assert [p.grad for p in params] == [1.0, -2.0, 3.0]

    assert math.isclose(l2(params).data, 14e-4)
    lam = Value(0.1)
    assert math.isclose(l2(params, lam).data, 1.4)


def test_alpha():
    assert alpha(0, 500) == 0.03
    assert round(alpha(314, 500), 5) == 0.01744
    assert math.isclose(alpha(500, 500), 0.01)


def test_get_loss():
    assert get_loss("mse") is mse
    assert get_loss("svm") is svm_max_margin
    with pytest.raises(ValueError):
        get_loss("hinge")


def test_groups():
    dummy_dataset = np.array([
        [ 5.39412337e-01,  8.61363932e-01],
        [-1.03234535e+00,  5.77661126e-02],
        [-1.12251058e+00,  4.40911069e-01],
        [ 6.34512779e-01, -3.86770491e-01],
        [ 4.74812014e-01,  7.05693581e-01],
        [ 9.23972493e-01,  4.34679296e-01],
        [ 6.05938266e-01, -3.99049289e-01],
        [ 3.38158252e-01,  1.00461575e+00],
        [-9.65489273e-01,  1.44116250e-01],
        [ 1.73508562e+00, -3.03348212e-01],
    ])
    dummy_labels = np.array([-1.0, -1.0, -1.0, 1.0, -1.0, -1.0, 1.0, -1.0, -1.0, 1.0])

    groups, labels = group(dummy_dataset, dummy_labels, 5)

    assert len(groups) == 5
    for i, g in enumerate(groups):
        assert np.array_equal(g, dummy_dataset[2 * i:2 * i + 2])

    assert len(labels) == 5
    assert [list(lbl) for lbl in labels] == [[-1.0, -1.0], [-1.0, 1.0], [-1.0, -1.0], [1.0, -1.0], [-1.0, 1.0]]

    # remainder rows are dropped
    groups, labels = group(dummy_dataset, dummy_labels, 3)
    assert [len(g) for g in groups] == [3, 3, 3]

    groups, labels = group(dummy_dataset, dummy_labels)
    assert len(groups) == 1 and len(groups[0]) == 10

    with pytest.raises(ValueError):
        group(dummy_dataset, dummy_labels, 11)
    with pytest.raises(ValueError):
        group(dummy_dataset, dummy_labels[:5], 2)


def test_make_moons():
    X, Y = make_moons(100, noise=0.1, seed=0)
    assert X.shape == (100, 2)
    assert Y.shape == (100,)
    assert set(np.unique(Y)) == {-1.0, 1.0}
    assert (Y == 1.0).sum() == 50

    X2, Y2 = make_moons(100, noise=0.1, seed=0)
    assert np.array_equal(X, X2) and np.array_equal(Y, Y2)


def test_sgd_step():
    p = Value(1.0)
    p.grad = 2.0
    sgd_step([p], 0.1)
    assert math.isclose(p.data, 0.8)


def test_accuracy():
    X = np.array([[1.0], [-2.0], [3.0], [-0.5]])
    Y = np.array([1.0, -1.0, -1.0, -1.0])
    assert accuracy(lambda x: Value(x[0]), X, Y) == 0.75


def test_train_reduces_loss(caplog):
    reset_seeds()
    X, Y = make_moons(20, noise=0.1, seed=0)
    model = MLP(2, [4, 1])

    with caplog.at_level(logging.INFO, logger="simplegrad.nn.nn"):
        history = train(model, X, Y, TrainConfig(iterations=30, l2_lambda=1e-4, log_every=10))

    assert len(history) == 30
    assert history[-1] < history[0]
    assert sum("Epoch [" in r.getMessage() for r in caplog.records) == 3
    assert all("Reg: " in r.getMessage() for r in caplog.records)
    assert not any("Prediction: " in r.getMessage() for r in caplog.records)


def test_train_on_single_sample(caplog):
    ''' The fit used by the demo: one sample, MSE + L2, decaying step size '''
    reset_seeds()
    model = MLP(2, [5, 5, 1])
    x, label = np.array([[0.3, -0.4]]), np.array([1.0])
    error_before = abs(model(x[0]).data - 1.0)

    with caplog.at_level(logging.INFO, logger="simplegrad.nn.nn"):
        history = train(model, x, label, TrainConfig(iterations=50, l2_lambda=1e-4))
    assert history[-1] < history[0]
    assert abs(model(x[0]).data - 1.0) < error_before

    # the run logs the prediction and the penalty of every pass, as the demo reports them
    messages = [r.getMessage() for r in caplog.records]
    assert len(messages) == 5
    assert all("Prediction: " in m and "Reg: " in m for m in messages)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
