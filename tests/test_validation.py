import numpy as np
import pandas as pd
import pytest

from statlab.core.exceptions import ConvergenceError
from statlab.models import fit_model
from statlab.models.fitting import FittedModel
from statlab.models.spec import ModelSpec
from statlab.validation import METHODS, validate_bootstrap, validate_cv, validate_holdout


@pytest.fixture
def linear_fit(regression_df):
    return fit_model(regression_df, ModelSpec("ols", "y", ["age", "group"], splines={"age": 4}, name="spline"))


def test_bootstrap_same_seed_is_reproducible(linear_fit, regression_df):
    a = validate_bootstrap(linear_fit, regression_df, replicates=20, seed=432)
    b = validate_bootstrap(linear_fit, regression_df, replicates=20, seed=432)
    pd.testing.assert_frame_equal(a.table, b.table)
    c = validate_bootstrap(linear_fit, regression_df, replicates=20, seed=1)
    assert not np.isclose(a.table.loc["r2", "optimism"], c.table.loc["r2", "optimism"])


def test_bootstrap_corrects_for_optimism(linear_fit, regression_df):
    res = validate_bootstrap(linear_fit, regression_df, replicates=25, seed=432)
    assert list(res.table.columns) == ["apparent", "optimism", "corrected", "n"]
    assert list(res.table.index) == ["r2", "rmse", "mae"]
    r2 = res.table.loc["r2"]
    assert r2["apparent"] == pytest.approx(linear_fit.statistics["r2"])
    assert r2["corrected"] == pytest.approx(r2["apparent"] - r2["optimism"])
    # in-sample fit flatters the model
    assert r2["optimism"] > 0
    assert res.validated("r2") == pytest.approx(r2["corrected"])
    assert res.apparent("r2") == pytest.approx(r2["apparent"])
    assert res.replicates == 25 and res.n_failed == 0



def test_bootstrap_counts_replicates_that_fail_to_converge(linear_fit, regression_df, monkeypatch):
    refit = FittedModel.refit
    calls = []

    def flaky_refit(self, table, enforce_budget=False):
        calls.append(1)
        if len(calls) % 2:
            raise ConvergenceError("did not converge", model_name=self.name)
        return refit(self, table, enforce_budget=enforce_budget)

    monkeypatch.setattr(FittedModel, "refit", flaky_refit)
    res = validate_bootstrap(linear_fit, regression_df, replicates=10, seed=432)
    assert res.n_failed == 5
    assert res.replicates == 10
    assert (res.table["n"] == 5).all()


def test_bootstrap_rejects_kaplan_meier(remission_df):
    km = fit_model(remission_df, ModelSpec("km", "time", event="censor"))
    with pytest.raises(ValueError):
        validate_bootstrap(km, remission_df, replicates=5)
    with pytest.raises(ValueError):
        validate_bootstrap(fit_model(remission_df, ModelSpec("cox", "time", ["treatment"], event="censor")),
                           remission_df, replicates=0)


def test_holdout_partition_and_columns(binary_df):
    spec = ModelSpec("logit", "outcome", ["x1", "x2"])
    res = validate_holdout(spec, binary_df, test_size=0.25, seed=432)
    assert res.details["n_train"] == 300
    assert res.details["n_test"] == 100
    assert list(res.table.columns) == ["training", "test", "difference"]
    assert "c_statistic" in res.table.index
    row = res.table.loc["c_statistic"]
    assert row["difference"] == pytest.approx(row["training"] - row["test"])
    assert res.validated("c_statistic") == pytest.approx(row["test"])
    again = validate_holdout(spec, binary_df, test_size=0.25, seed=432)
    pd.testing.assert_frame_equal(res.table, again.table)


def test_cv_summarises_folds(count_df):
    spec = ModelSpec("poisson", "visits", ["x"])
    res = validate_cv(spec, count_df, folds=5, repeats=2, seed=432)
    assert res.replicates == 10
    assert list(res.table.columns) == ["mean", "std", "median", "iqr", "count"]
    assert list(res.table.index) == ["rmse", "mae", "mean_deviance"]
    assert (res.table["count"] == 10).all()
    assert res.apparent("rmse") is None
    assert res.validated("rmse") == pytest.approx(res.table.loc["rmse", "mean"])


def test_cv_accepts_fitted_models_and_config(survival_df):
    fitted = fit_model(survival_df, ModelSpec("cox", "time", ["x"], event="event"))
    res = validate_cv(fitted, survival_df, folds=3, seed=432)
    assert set(res.table.index) == {"c_statistic", "dxy"}
    res2 = validate_cv({"family": "cox", "outcome": "time", "event": "event", "predictors": ["x"]},
                       survival_df, folds=3, seed=432)
    pd.testing.assert_frame_equal(res.table, res2.table)
    with pytest.raises(ValueError):
        validate_cv({"family": "km", "outcome": "time", "event": "event"}, survival_df)


def test_result_to_dict(linear_fit, regression_df):
    out = validate_bootstrap(linear_fit, regression_df, replicates=5, seed=3).to_dict()
    assert out["method"] == "bootstrap"
    assert out["model"] == "spline"
    assert out["table"][0]["statistic"] == "r2"


def test_methods_registry():
    assert set(METHODS) == {"bootstrap", "holdout", "cv"}
