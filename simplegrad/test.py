# Smoke test of the end to end run
# Test by running: python -m simplegrad.test (or pytest)

import logging

import pytest

from . import demo
from .demo import DemoConfig, main
from .nn import MLP, svm_max_margin
from .xval import CrossValidation


def test_demo(caplog):
    config = DemoConfig(
        layer_sizes=[3, 1],
        n_samples=12,
        seed=0,
        lambda_start=0.0,
        lambda_end=0.001,
        lambda_step=0.001,
        folds=3,
        fold_iterations=2,
        iterations=5,
    )
    with caplog.at_level(logging.INFO):
        model = main(config)

    assert isinstance(model, MLP)
    messages = [r.getMessage() for r in caplog.records]
    assert any(m.startswith("L2 lambda value=") for m in messages)
    assert sum(m.startswith("Epoch [") for m in messages) == 5
    assert messages[-1].startswith("Prediction=")


def test_demo_loss_drives_the_lambda_search(monkeypatch):
    ''' The loss named in the config is used by the cross validation as well as the final fit '''
    searches: list[CrossValidation] = []

    class RecordingCrossValidation(CrossValidation):
        def __init__(self, *args, **kwargs):
            super().__init__(*args, **kwargs)
            searches.append(self)

    monkeypatch.setattr(demo, "CrossValidation", RecordingCrossValidation)
    config = DemoConfig(
        layer_sizes=[2, 1],
        n_samples=9,
        seed=0,
        lambda_start=0.0,
        lambda_end=0.0,
        lambda_step=0.001,
        folds=3,
        fold_iterations=1,
        loss="svm",
        iterations=1,
    )
    main(config)

    assert len(searches) == 1
    assert searches[0].loss_fn is svm_max_margin


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
