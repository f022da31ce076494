# Loss functions, regularization and learning rate schedule for training on our autograd

from typing import Callable, Iterable

from ..autograd import Value

LossFn = Callable[[Value, float], Value]


def mse(predicted: Value, expected: float) -> Value:
    ''' Squared error of a single prediction '''
    return (predicted - float(expected)) ** 2


def svm_max_margin(predicted: Value, expected: float) -> Value:
    ''' Hinge loss, expects labels in {-1, +1} '''
    return (predicted * -float(expected) + 1.0).relu()


def l2(params: Iterable[Value], lam: "Value | float" = 1e-4) -> Value:
    ''' L2 regularization term: lam * sum(p^2) '''
    squared = sum((p ** 2 for p in params), Value(0.0))
    return lam * squared


# KEY IDEA: decay the learning rate linearly over the run, from 0.03 down to 0.01
# the constants are tuned for small MLPs; a different architecture may need other values
def alpha(step: int, iterations: int) -> float:
    return 0.03 - 0.02 * step / iterations


LOSSES: dict[str, LossFn] = {
    "mse": mse,
    "svm": svm_max_margin,
}


def get_loss(name: "str | LossFn") -> LossFn:
    if callable(name):
        return name
    if name not in LOSSES:
        raise ValueError(f"unknown loss {name!r}, expected one of {sorted(LOSSES)}")
    return LOSSES[name]
