# K-fold cross validation to choose the L2 regularization strength of an MLP

from typing import Callable, Iterator
import logging

import numpy as np

from ..nn import MLP, TrainConfig, accuracy, alpha, group, mse, train
from ..nn.losses import LossFn

logger = logging.getLogger(__name__)

# returned when the search range is empty
DEFAULT_LAMBDA = 1e-4


class FloatingRange:
    '''start, start + step, ... up to end included'''

    def __init__(self, start: float, end: float, step: float):
        if step <= 0:
            raise ValueError(f"step must be positive, got {step}")
        self.start = start
        self.end = end
        self.step = step

    def __iter__(self) -> Iterator[float]:
        # KEY IDEA: half a step of slack, float drift must not drop `end` from the range
        return (float(v) for v in np.arange(self.start, self.end + self.step / 2, self.step))

    def __len__(self) -> int:
        return len(np.arange(self.start, self.end + self.step / 2, self.step))

    def __repr__(self):
        return f"FloatingRange({self.start}, {self.end}, {self.step})"


class CrossValidation:
    def __init__(
        self,
        data,
        labels,
        layer_sizes: list[int],
        hyper_range: FloatingRange,
        loss_fn: LossFn = mse,
        schedule: Callable[[int, int], float] = alpha,
        k: int = 10,
        iterations: int = 10,
    ):
        if k < 2:
            raise ValueError(f"cross validation needs at least 2 folds, got {k}")
        self.values, self.labels = group(data, labels, k)
        self.input_size = self.values[0].shape[1]
        self.layer_sizes = layer_sizes
        self.hyper_range = hyper_range
        self.loss_fn = loss_fn
        self.schedule = schedule
        self.k = k
        self.iterations = iterations
        # mean holdout accuracy per tried lambda, in search order
        self.scores: dict[float, float] = {}
        self.model: MLP | None = None

    def search(self) -> float:
        ''' Return the lambda with the best mean holdout accuracy, the first one on ties '''
        logger.info(f"Cross validating L2 lambda from {self.hyper_range.start} to {self.hyper_range.end} over {self.k} folds")

        for h in self.hyper_range:
            scores: list[float] = []
            for ki in range(self.k):
                # fold ki is held out, a fresh model learns on the others
                training_values = self.values[:ki] + self.values[ki + 1:]
                training_labels = self.labels[:ki] + self.labels[ki + 1:]
                self.model = self._mini_train(training_values, training_labels, h)
                scores.append(accuracy(self.model, self.values[ki], self.labels[ki]))

            avg_score = sum(scores) / len(scores)
            self.scores[h] = avg_score
            logger.info(f"hyperpar={h:.4f}, accuracy={avg_score * 100:.0f}%")

        if not self.scores:
            return DEFAULT_LAMBDA
        # max() keeps the first of equal keys, dicts keep insertion order
        return max(self.scores, key=lambda h: self.scores[h])

    def _mini_train(self, values: list[np.ndarray], labels: list[np.ndarray], l2_lambda: float) -> MLP:
        model = MLP(self.input_size, self.layer_sizes)
        config = TrainConfig(
            iterations=self.iterations,
            loss=self.loss_fn,
            l2_lambda=l2_lambda,
            schedule=self.schedule,
            log_every=None,
        )
        # a few passes on each training group in turn
        for inputs, expectations in zip(values, labels):
            train(model, inputs, expectations, config)
        return model

    def __repr__(self):
        return f"CrossValidation(layer_sizes={self.layer_sizes}, k={self.k}, range={self.hyper_range})"
