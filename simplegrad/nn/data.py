# Toy datasets and fold splitting

import numpy as np


def make_moons(n_samples: int = 100, noise: float = 0.1, seed: int | None = None) -> tuple[np.ndarray, np.ndarray]:
    '''
    Two interleaving half circles, shuffled.

    Returns X of shape (n_samples, 2) and labels in {-1.0, +1.0}, -1 for the upper moon.
    '''
    rng = np.random.default_rng(seed)
    n_outer = n_samples // 2
    n_inner = n_samples - n_outer

    outer = np.linspace(0, np.pi, n_outer)
    inner = np.linspace(0, np.pi, n_inner)
    X = np.vstack([
        np.column_stack([np.cos(outer), np.sin(outer)]),
        np.column_stack([1 - np.cos(inner), 0.5 - np.sin(inner)]),
    ])
    Y = np.concatenate([-np.ones(n_outer), np.ones(n_inner)])

    if noise > 0:
        X = X + rng.normal(scale=noise, size=X.shape)

    # KEY IDEA: shuffle, as group() slices consecutive rows into folds
    perm = rng.permutation(n_samples)
    return X[perm], Y[perm]


def group(data, labels, k: int | None = None) -> tuple[list[np.ndarray], list[np.ndarray]]:
    '''
    Split data and labels into k consecutive groups of len(data) // k rows each.

    Rows left over by the integer division are dropped. Without k the data stays in one group.
    '''
    data = np.asarray(data, dtype=float)
    labels = np.asarray(labels, dtype=float)
    if len(data) != len(labels):
        raise ValueError(f"got {len(data)} samples but {len(labels)} labels")

    k = 1 if k is None else k
    if not 1 <= k <= len(data):
        raise ValueError(f"cannot split {len(data)} samples into {k} groups")

    size = len(data) // k
    data_groups = [data[i * size:(i + 1) * size] for i in range(k)]
    label_groups = [labels[i * size:(i + 1) * size] for i in range(k)]
    return data_groups, label_groups
