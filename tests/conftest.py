import os
from pathlib import Path

import numpy as np
import pandas as pd
import pytest
from scipy.special import expit


@pytest.fixture
def regression_df():
    """Continuous outcome with a curved age effect and a three-level group."""
    rng = np.random.default_rng(432)
    n = 300
    age = rng.uniform(20, 80, n)
    group = rng.choice(["a", "b", "c"], size=n)
    bmi = rng.normal(27, 4, n)
    y = 10 + 0.3 * age - 0.004 * (age - 50) ** 2 + np.where(group == "b", 2.0, 0.0) + 0.2 * bmi + rng.normal(0, 2, n)
    return pd.DataFrame({
        "id": np.arange(1, n + 1),
        "y": y,
        "age": age,
        "bmi": bmi,
        "group": pd.Categorical(group, categories=["a", "b", "c"]),
    })


@pytest.fixture
def binary_df():
    rng = np.random.default_rng(7)
    n = 400
    x1 = rng.normal(0, 1, n)
    x2 = rng.normal(0, 1, n)
    sex = rng.choice(["F", "M"], size=n)
    p = expit(-0.2 + 1.2 * x1 - 0.6 * x2 + np.where(sex == "M", 0.5, 0.0))
    outcome = np.where(rng.uniform(size=n) < p, "yes", "no")
    return pd.DataFrame({"outcome": outcome, "x1": x1, "x2": x2, "sex": sex})


@pytest.fixture
def ordinal_df():
    rng = np.random.default_rng(11)
    n = 400
    x = rng.normal(0, 1, n)
    latent = 1.5 * x + rng.logistic(0, 1, n)
    rating = pd.cut(latent, bins=[-np.inf, -1.0, 0.5, 2.0, np.inf], labels=["poor", "fair", "good", "excellent"])
    return pd.DataFrame({
        "rating": pd.Categorical(rating, categories=["poor", "fair", "good", "excellent"], ordered=True),
        "x": x,
    })


@pytest.fixture
def multinomial_df():
    rng = np.random.default_rng(5)
    n = 450
    x = rng.normal(0, 1, n)
    eta = np.column_stack([np.zeros(n), 0.3 + 1.0 * x, -0.2 - 1.0 * x])
    prob = np.exp(eta) / np.exp(eta).sum(axis=1, keepdims=True)
    draws = np.array([rng.choice(3, p=row) for row in prob])
    labels = np.array(["walk", "bus", "car"])[draws]
    return pd.DataFrame({"mode": labels, "x": x})


@pytest.fixture
def count_df():
    """Counts with structural zeros: Poisson mean exp(0.5 + 0.8 x), 30% excess zeros."""
    rng = np.random.default_rng(21)
    n = 500
    x = rng.normal(0, 1, n)
    mu = np.exp(0.5 + 0.8 * x)
    zero = rng.uniform(size=n) < 0.3
    visits = np.where(zero, 0, rng.poisson(mu))
    return pd.DataFrame({"visits": visits, "x": x, "years": rng.uniform(0.5, 2.0, n)})


@pytest.fixture
def survival_df():
    rng = np.random.default_rng(3)
    n = 300
    x = rng.normal(0, 1, n)
    arm = rng.choice(["control", "treated"], size=n)
    hazard = 0.1 * np.exp(0.7 * x - 0.5 * (arm == "treated"))
    t_event = rng.exponential(1 / hazard)
    t_cens = rng.uniform(5, 30, n)
    return pd.DataFrame({
        "time": np.minimum(t_event, t_cens) + 0.01,
        "event": (t_event <= t_cens).astype(int),
        "x": x,
        "arm": arm,
    })


@pytest.fixture
def remission_df():
    """Two-arm remission data: A has 23 remissions in 26 patients, B 14 in 18."""
    rng = np.random.default_rng(6)
    rows = []
    for treatment, n, events in (("A", 26, 23), ("B", 18, 14)):
        censor = np.array([1] * events + [0] * (n - events))
        rng.shuffle(censor)
        time = rng.integers(1, 60, size=n)
        for t, c in zip(time, censor):
            rows.append({"treatment": treatment, "time": int(t), "censor": int(c)})
    df = pd.DataFrame(rows)
    df.insert(0, "patient", np.arange(1, len(df) + 1))
    return df


@pytest.fixture
def data_dir():
    """Directory holding local copies of the public datasets, if any."""
    path = os.environ.get("STATLAB_DATA_DIR")
    if not path or not Path(path).is_dir():
        pytest.skip("STATLAB_DATA_DIR not set")
    return Path(path)
