# End to end run: pick the L2 strength by cross validation, then fit an MLP on one sample
# Run with: python -m simplegrad.demo

from dataclasses import dataclass, field
import logging
import random

import numpy as np

from .nn import MLP, TrainConfig, get_loss, make_moons, train
from .xval import CrossValidation, FloatingRange

logger = logging.getLogger(__name__)


@dataclass
class DemoConfig:
    # WATCH OUT: another architecture may need a different learning rate schedule
    layer_sizes: list[int] = field(default_factory=lambda: [5, 5, 1])
    n_samples: int = 100
    noise: float = 0.1
    seed: int | None = None
    # L2 lambda candidates
    lambda_start: float = 0.0
    lambda_end: float = 0.01
    lambda_step: float = 0.0005
    folds: int = 10
    fold_iterations: int = 10
    loss: str = "mse"
    iterations: int = 50


def main(config: DemoConfig) -> MLP:
    if config.seed is not None:
        random.seed(config.seed)
    X, Y = make_moons(config.n_samples, noise=config.noise, seed=config.seed)

    xv = CrossValidation(
        X, Y,
        config.layer_sizes,
        FloatingRange(config.lambda_start, config.lambda_end, config.lambda_step),
        loss_fn=get_loss(config.loss),
        k=config.folds,
        iterations=config.fold_iterations,
    )
    l2_lambda = xv.search()
    logger.info(f"L2 lambda value={l2_lambda:.4f}")

    index = np.random.default_rng(config.seed).integers(len(X))
    inputs, label = X[index], Y[index]
    logger.info(f"Input values={inputs}, expected value={label}")

    model = MLP(X.shape[1], config.layer_sizes)
    train(model, inputs[None, :], np.array([label]), TrainConfig(iterations=config.iterations, loss=config.loss, l2_lambda=l2_lambda, log_every=1))
    logger.info(f"Prediction={model(inputs).data:.6f}")
    return model


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(message)s", datefmt="%d/%m/%Y, %H:%M:%S")
    main(DemoConfig(seed=0))
