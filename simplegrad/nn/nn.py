# A simple multi-layer perceptron neural network on our autograd implementation

from dataclasses import dataclass
from typing import Callable, Sequence
import logging
import random

import numpy as np

from ..autograd import Value
from .losses import LossFn, alpha, get_loss, l2

logger = logging.getLogger(__name__)


# Mimic the PyTorch API
class Module:
    def zero_grad(self):
        for p in self.parameters():
            p.grad = 0.0

    def parameters(self) -> list[Value]:
        return []


# A single neuron in the network
class Neuron(Module):
    def __init__(self, input_size: int, non_linear: bool = True):
        self.w = [Value(random.uniform(-1.0, 1.0)) for _ in range(input_size)]
        self.b = Value(0.0)
        self.non_linear = non_linear

    def __call__(self, x: Sequence["Value | float"]) -> Value:
        assert len(x) == len(self.w), f"expected {len(self.w)} inputs, got {len(x)}"
        r = sum((w * xi for w, xi in zip(self.w, x)), self.b)
        if self.non_linear:
            r = r.relu()
        return r

    def parameters(self) -> list[Value]:
        return self.w + [self.b]

    def __repr__(self):
        return f"{'ReLU' if self.non_linear else 'Linear'}Neuron({len(self.w)})"


# A single layer in the neural network
class Layer(Module):
    def __init__(self, input_size: int, output_size: int, non_linear: bool):
        self.neurons = [Neuron(input_size, non_linear=non_linear) for _ in range(output_size)]

    def __call__(self, x: Sequence["Value | float"]) -> list[Value]:
        return [n(x) for n in self.neurons]

    def parameters(self) -> list[Value]:
        return [p for n in self.neurons for p in n.parameters()]

    def __repr__(self):
        return f"Layer of [{', '.join(str(n) for n in self.neurons)}]"


# A multi-layer perceptron
class MLP(Module):
    def __init__(self, input_size: int, layer_sizes: list[int]):
        '''
        layer_sizes lists the number of neurons per layer, the output layer included.
        Every layer is ReLU except the output layer, which is linear.
        '''
        assert len(layer_sizes) > 0, "an MLP needs at least an output layer"
        sizes = [input_size] + layer_sizes
        self.layers = [
            Layer(sizes[i], sizes[i + 1], non_linear=(i != len(layer_sizes) - 1))
            for i in range(len(layer_sizes))
        ]

    def __call__(self, x: Sequence["Value | float"]) -> "Value | list[Value]":
        # forward pass
        out: Sequence[Value | float] = x
        for layer in self.layers:
            out = layer(out)
        return out[0] if len(out) == 1 else list(out)  # type: ignore

    def parameters(self) -> list[Value]:
        return [p for layer in self.layers for p in layer.parameters()]

    def __repr__(self):
        return f"MLP of [{', '.join(str(layer) for layer in self.layers)}]"


#############################################################
## Training
#############################################################

@dataclass
class TrainConfig:
    iterations: int = 50
    # a name from LOSSES or a loss function
    loss: str | LossFn = "mse"
    # weight of the L2 penalty, None for no regularization
    l2_lambda: float | None = None
    # fixed step size, None to follow the schedule
    learning_rate: float | None = None
    schedule: Callable[[int, int], float] = alpha
    # None for silent training
    log_every: int | None = 10


def sgd_step(params: list[Value], learning_rate: float):
    # Stochastic Gradient Descent
    for p in params:
        p.data -= learning_rate * p.grad


def train(model: MLP, X: np.ndarray, Y: np.ndarray, config: TrainConfig | None = None) -> list[float]:
    '''
    Full batch gradient descent on (X, Y). Returns the total loss of every iteration.
    '''
    config = config or TrainConfig()
    assert len(X) == len(Y) and len(X) > 0
    loss_fn = get_loss(config.loss)
    params = model.parameters()
    history: list[float] = []

    for step in range(config.iterations):
        # forward pass
        preds = [model(x) for x in X]
        loss: Value = sum(loss_fn(p, y) for p, y in zip(preds, Y)) / len(Y)  # type: ignore
        reg = l2(params, config.l2_lambda) if config.l2_lambda is not None else Value(0.0)
        total = loss + reg

        # backward pass
        model.zero_grad()
        total.backward()

        lr = config.learning_rate if config.learning_rate is not None else config.schedule(step, config.iterations)
        sgd_step(params, lr)

        history.append(total.data)
        if config.log_every is not None and (step + 1) % config.log_every == 0:
            # a single sample run also reports the prediction it is fitting
            prediction = f", Prediction: {preds[0].data:.6f}" if len(preds) == 1 else ""
            logger.info(f"Epoch [{step+1}/{config.iterations}], alpha={lr:.4f}{prediction}, Loss: {loss.data:.4f}, Reg: {reg.data:.6f}, Total: {total.data:.4f}")

    return history


def accuracy(model: Callable, X: np.ndarray, Y: np.ndarray) -> float:
    ''' Share of samples whose prediction falls on the same side of 0 as the label '''
    hits = [(model(x).data > 0) == (y > 0) for x, y in zip(X, Y)]
    return float(sum(hits)) / len(hits)
