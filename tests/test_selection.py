import numpy as np
import pandas as pd
import pytest

from statlab.core.exceptions import ConfigurationError
from statlab.models import fit_model
from statlab.models.spec import ModelSpec
from statlab.selection import compare_models, is_nested, likelihood_ratio_test, select_parsimonious, vuong_test


# --- Parsimony rule ---
def test_simpler_model_kept_within_margin():
    rows = [
        {"name": "big", "n_params": 8, "validated": 0.705},
        {"name": "small", "n_params": 3, "validated": 0.70},
    ]
    decisions = []
    assert select_parsimonious(rows, "validated", margin=0.01, decisions=decisions) == "small"
    assert decisions[0].endswith("keep")


def test_complex_model_wins_beyond_margin():
    rows = [
        {"name": "small", "n_params": 3, "validated": 0.70},
        {"name": "medium", "n_params": 5, "validated": 0.75},
        {"name": "big", "n_params": 8, "validated": 0.755},
    ]
    assert select_parsimonious(rows, "validated", margin=0.01) == "medium"


def test_lower_is_better_metric():
    rows = pd.DataFrame({"name": ["a", "b"], "n_params": [2, 4], "rmse": [10.0, 9.0]})
    assert select_parsimonious(rows, "rmse", margin=0.5, higher_is_better=False) == "b"
    assert select_parsimonious(rows, "rmse", margin=1.5, higher_is_better=False) == "a"


def test_ties_in_parameters_keep_input_order():
    rows = [{"name": "first", "n_params": 3, "m": 1.0}, {"name": "second", "n_params": 3, "m": 1.0}]
    assert select_parsimonious(rows, "m", margin=0.0) == "first"


@pytest.mark.parametrize("rows,margin", [
    ([], 0.1),
    ([{"name": "a", "n_params": 1}], 0.1),
    ([{"name": "a", "n_params": 1, "m": 1.0}], -0.1),
])
def test_select_parsimonious_errors(rows, margin):
    with pytest.raises(ValueError):
        select_parsimonious(rows, "m", margin)


# --- Likelihood tests ---
def test_likelihood_ratio_nested_ols(regression_df):
    small = fit_model(regression_df, ModelSpec("ols", "y", ["age"], name="small"))
    large = fit_model(regression_df, ModelSpec("ols", "y", ["age", "group"], name="large"))
    test = likelihood_ratio_test(small, large)
    assert test["df"] == 2.0
    assert test["statistic"] == pytest.approx(2 * (large.loglike - small.loglike))
    # group b shifts the mean by 2
    assert test["p_value"] < 0.001
    with pytest.raises(ValueError):
        likelihood_ratio_test(large, small)


def test_likelihood_ratio_needs_same_rows(regression_df):
    a = fit_model(regression_df, ModelSpec("ols", "y", ["age"]))
    b = fit_model(regression_df.iloc[:200], ModelSpec("ols", "y", ["age", "group"]))
    with pytest.raises(ValueError):
        likelihood_ratio_test(a, b)


def test_vuong_prefers_zero_inflation(count_df):
    poisson = fit_model(count_df, ModelSpec("poisson", "visits", ["x"], name="poisson"))
    zip_ = fit_model(count_df, ModelSpec("zip", "visits", ["x"], name="zip"))
    test = vuong_test(zip_, poisson)
    assert test["statistic"] > 0
    assert test["preferred"] == "zip"
    flipped = vuong_test(poisson, zip_)
    assert flipped["statistic"] == pytest.approx(-test["statistic"])
    corrected = vuong_test(zip_, poisson, correction="bic")
    assert corrected["statistic"] < test["statistic"]
    with pytest.raises(ValueError):
        vuong_test(zip_, poisson, correction="hqic")



def test_nesting_rules():
    base = ModelSpec("ols", "y", ["age", "group"])
    assert is_nested(base, base.with_predictor("bmi"))
    assert is_nested(base, base.with_spline("age", 4))
    assert is_nested(base, base.with_interaction("age", "group"))
    assert not is_nested(base.with_spline("age", 4), base.with_spline("age", 5))
    assert not is_nested(base, ModelSpec("ols", "y", ["age", "bmi"]))
    assert not is_nested(base, ModelSpec("ols", "bmi", ["age", "group"]))
    assert not is_nested(ModelSpec("poisson", "y", ["age"]), ModelSpec("zip", "y", ["age"]))

# --- Comparison ---
def test_compare_nested_linear_models(regression_df):
    specs = [
        ModelSpec("ols", "y", ["age", "bmi", "group"], splines={"age": 4}, name="spline"),
        ModelSpec("ols", "y", ["age", "bmi", "group"], name="linear"),
    ]
    result = compare_models(regression_df, specs, validation="bootstrap", seed=432, metric="r2",
                            margin=0.0, replicates=10)
    assert list(result.table["name"]) == ["linear", "spline"]
    assert list(result.table.columns) == [
        "name", "family", "formula", "n_params", "df_used", "aic", "bic", "apparent", "validated", "selected",
    ]
    assert result.table["selected"].sum() == 1
    assert result.selected in {"linear", "spline"}
    assert result.selected_model.name == result.selected
    assert len(result.decisions) == 1
    assert result.tests[0]["test"] == "likelihood_ratio"
    assert result.tests[0]["model_a"] == "linear"
    assert set(result.validations) == {"linear", "spline"}


def test_compare_is_reproducible(regression_df):
    specs = [
        {"name": "a", "family": "ols", "outcome": "y", "predictors": ["age"]},
        {"name": "b", "family": "ols", "outcome": "y", "predictors": ["age", "group"]},
    ]
    r1 = compare_models(regression_df, specs, validation="cv", seed=7, folds=5)
    r2 = compare_models(regression_df, specs, validation="cv", seed=7, folds=5)
    pd.testing.assert_frame_equal(r1.table, r2.table)
    # default metric is the family's first validation statistic
    assert r1.metric == "r2"


def test_compare_count_families_adds_vuong(count_df):
    specs = [
        ModelSpec("poisson", "visits", ["x"], name="poisson"),
        ModelSpec("zip", "visits", ["x"], name="zip"),
    ]
    result = compare_models(count_df, specs, validation=None, metric="mean_deviance", margin=0.0)
    assert result.higher_is_better is False
    assert result.tests[0]["test"] == "vuong"
    assert (result.table["validated"] == result.table["apparent"]).all()


def test_compare_names_unnamed_candidates(regression_df):
    specs = [ModelSpec("ols", "y", ["age"]), ModelSpec("ols", "y", ["age", "bmi"])]
    result = compare_models(regression_df, specs, validation=None)
    assert list(result.table["name"]) == ["model_1", "model_2"]


def test_compare_errors(regression_df, remission_df):
    spec = ModelSpec("ols", "y", ["age"], name="a")
    with pytest.raises(ConfigurationError):
        compare_models(regression_df, [spec, spec])
    with pytest.raises(ConfigurationError):
        compare_models(regression_df, [spec], validation="jackknife")
    with pytest.raises(ConfigurationError):
        compare_models(regression_df, [spec], validation=None, metric="c_statistic")
    with pytest.raises(ValueError):
        compare_models(remission_df, [ModelSpec("km", "time", event="censor")])
    with pytest.raises(ValueError):
        compare_models(regression_df, [])


def test_non_nested_candidates_get_vuong_not_lr(regression_df):
    specs = [
        ModelSpec("ols", "y", ["age", "bmi"], name="age_bmi"),
        ModelSpec("ols", "y", ["group"], name="group_only"),
    ]
    result = compare_models(regression_df, specs, validation=None)
    assert [t["test"] for t in result.tests] == ["vuong"]
    assert {result.tests[0]["model_a"], result.tests[0]["model_b"]} == {"age_bmi", "group_only"}
