import numpy as np
import pandas as pd
import pytest

from statlab.core.exceptions import ConvergenceError, DegreesOfFreedomError, ModelFitError
from statlab.models import fit_model
from statlab.models.budget import DfBudgetPolicy
from statlab.models.fitting import FittedModel
from statlab.models.spec import ModelSpec
from statlab.models.survival import KaplanMeierFit

WALD_COLUMNS = ["term", "estimate", "std_err", "statistic", "p_value", "ci_low", "ci_high"]


# --- Linear ---
def test_ols_fit_recovers_group_effect(regression_df):
    fitted = fit_model(regression_df, ModelSpec("ols", "y", ["age", "bmi", "group"], name="linear"))
    assert isinstance(fitted, FittedModel)
    coef = fitted.coefficients.set_index("term")
    assert list(fitted.coefficients.columns) == WALD_COLUMNS
    assert coef.loc["group[T.b]", "estimate"] == pytest.approx(2.0, abs=0.8)
    assert coef.loc["group[T.b]", "ci_low"] < coef.loc["group[T.b]", "estimate"] < coef.loc["group[T.b]", "ci_high"]
    # 5 coefficients plus the residual variance
    assert fitted.n_params == 6
    assert fitted.df_used == 4
    for key in ("r2", "adj_r2", "aic", "bic", "loglike", "sigma", "f_statistic"):
        assert key in fitted.statistics
    assert fitted.statistics["r2"] == pytest.approx(fitted.evaluate()["r2"])
    assert fitted.df_budget == pytest.approx(6.0)


def test_ols_predict_new_rows(regression_df):
    fitted = fit_model(regression_df, ModelSpec("ols", "y", ["age", "group"], splines={"age": 4}))
    pred = fitted.predict(regression_df.iloc[:10])
    assert pred.shape == (10,)
    np.testing.assert_allclose(pred, fitted.predict()[:10])


def test_ols_diagnostics(regression_df):
    fitted = fit_model(regression_df, ModelSpec("ols", "y", ["age", "group"]))
    diag = fitted.diagnostics()
    assert list(diag.columns) == ["fitted", "residual", "studentized", "leverage", "cooks_distance", "qq_theoretical"]
    assert len(diag) == len(regression_df)
    # leverages sum to the number of coefficients
    assert diag["leverage"].sum() == pytest.approx(4.0)
    assert diag["qq_theoretical"].is_unique


def test_ols_rejects_categorical_outcome(regression_df):
    with pytest.raises(ModelFitError):
        fit_model(regression_df, ModelSpec("ols", "group", ["age"]))


def test_budget_enforced_unless_disabled(regression_df):
    spec = ModelSpec("ols", "y", ["age", "bmi", "group"], splines={"age": 5, "bmi": 4})
    with pytest.raises(DegreesOfFreedomError) as exc:
        fit_model(regression_df, spec)
    assert exc.value.details["df_used"] == 9
    fitted = fit_model(regression_df, spec, enforce_budget=False)
    assert fitted.df_used == 9
    loose = fit_model(regression_df, spec, policy=DfBudgetPolicy(base=10))
    assert loose.df_budget > 9


# --- Binary ---
def test_logit_models_second_level(binary_df):
    fitted = fit_model(binary_df, ModelSpec("logistic", "outcome", ["x1", "x2", "sex"]))
    assert fitted.design.outcome_levels == ("no", "yes")
    assert fitted.statistics["n_events"] == (binary_df["outcome"] == "yes").sum()
    coef = fitted.coefficients.set_index("term")
    assert np.isnan(coef.loc["Intercept", "odds_ratio"])
    assert coef.loc["x1", "odds_ratio"] > 1
    assert coef.loc["x2", "odds_ratio"] < 1
    assert coef.loc["x1", "ratio_ci_low"] == pytest.approx(np.exp(coef.loc["x1", "ci_low"]))
    stats = fitted.statistics
    assert stats["c_statistic"] > 0.7
    assert stats["dxy"] == pytest.approx(2 * stats["c_statistic"] - 1)
    assert 0 < stats["nagelkerke_r2"] < 1
    assert 0 < stats["brier"] < 0.25
    assert stats["lr_p_value"] < 0.001


def test_logit_probabilities_on_new_rows(binary_df):
    fitted = fit_model(binary_df, ModelSpec("logit", "outcome", ["x1"]))
    prob = fitted.predict(binary_df.iloc[:25])
    assert ((prob > 0) & (prob < 1)).all()


def test_logit_rejects_three_levels(multinomial_df):
    with pytest.raises(ModelFitError):
        fit_model(multinomial_df, ModelSpec("logit", "mode", ["x"]))



def test_logit_perfect_separation_is_convergence_error():
    x = np.linspace(-2, 2, 200)
    df = pd.DataFrame({"x": x, "outcome": np.where(x > 0, "yes", "no")})
    with pytest.raises(ConvergenceError):
        fit_model(df, ModelSpec("logit", "outcome", ["x"]))


# --- Ordinal ---
def test_ordinal_thresholds_and_probabilities(ordinal_df):
    fitted = fit_model(ordinal_df, ModelSpec("ordinal", "rating", ["x"]))
    terms = fitted.coefficients["term"].tolist()
    assert terms == ["x", "poor|fair", "fair|good", "good|excellent"]
    coef = fitted.coefficients.set_index("term")
    assert coef.loc["x", "estimate"] == pytest.approx(1.5, abs=0.4)
    assert np.isnan(coef.loc["poor|fair", "odds_ratio"])
    probs = fitted.predict()
    assert probs.shape == (len(ordinal_df), 4)
    np.testing.assert_allclose(probs.sum(axis=1), 1.0)
    assert fitted.statistics["c_statistic"] > 0.7
    assert fitted.n_params == 4


# --- Multinomial ---
def test_multinomial_reference_is_first_level(multinomial_df):
    fitted = fit_model(multinomial_df, ModelSpec("multinomial", "mode", ["x"]))
    assert fitted.design.outcome_levels == ("bus", "car", "walk")
    terms = fitted.coefficients["term"].tolist()
    assert terms == ["car: Intercept", "car: x", "walk: Intercept", "walk: x"]
    probs = fitted.predict(multinomial_df.iloc[:30])
    assert probs.shape == (30, 3)
    np.testing.assert_allclose(probs.sum(axis=1), 1.0)
    assert "nagelkerke_r2" in fitted.statistics


# --- Counts ---
def test_poisson_underpredicts_excess_zeros(count_df):
    fitted = fit_model(count_df, ModelSpec("poisson", "visits", ["x"], exposure="years"))
    assert "rate_ratio" in fitted.coefficients.columns
    assert fitted.statistics["observed_zeros"] > fitted.statistics["expected_zeros"]
    assert (fitted.predict() > 0).all()


def test_zip_inflation_terms_come_first(count_df):
    spec = ModelSpec("zip", "visits", ["x"], inflation_predictors=["x"])
    fitted = fit_model(count_df, spec)
    terms = fitted.coefficients["term"].tolist()
    assert terms == ["inflate_Intercept", "inflate_x", "Intercept", "x"]
    assert fitted.n_params == 4
    coef = fitted.coefficients.set_index("term")
    assert coef.loc["x", "estimate"] == pytest.approx(0.8, abs=0.25)
    observed = fitted.statistics["observed_zeros"]
    assert abs(fitted.statistics["expected_zeros"] - observed) < 0.1 * observed
    poisson = fit_model(count_df, ModelSpec("poisson", "visits", ["x"]))
    assert fitted.loglike > poisson.loglike



def test_zip_stopped_early_is_convergence_error(count_df):
    spec = ModelSpec("zip", "visits", ["x"], inflation_predictors=["x"])
    with pytest.raises(ConvergenceError) as exc:
        fit_model(count_df, spec, maxiter=1)
    assert isinstance(exc.value, ModelFitError)


def test_count_outcome_must_be_integer(count_df):
    bad = count_df.assign(visits=count_df["visits"] + 0.5)
    with pytest.raises(ModelFitError):
        fit_model(bad, ModelSpec("poisson", "visits", ["x"]))


# --- Survival ---
def test_cox_hazard_ratios(survival_df):
    fitted = fit_model(survival_df, ModelSpec("cox", "time", ["x", "arm"], event="event"))
    coef = fitted.coefficients.set_index("term")
    assert "Intercept" not in coef.index
    assert coef.loc["x", "hazard_ratio"] > 1
    assert coef.loc["arm[T.treated]", "hazard_ratio"] < 1
    stats = fitted.statistics
    assert stats["n_events"] == survival_df["event"].sum()
    assert stats["c_statistic"] > 0.6
    assert fitted.n_params == 2
    assert fitted.summary_text


def test_kaplan_meier_through_fit_model(remission_df):
    spec = ModelSpec("km", "time", event="censor", strata="treatment")
    fit = fit_model(remission_df, spec)
    assert isinstance(fit, KaplanMeierFit)
    assert fit.n_obs == 44


# --- Serialisation ---
def test_to_dict_is_plain_data(binary_df):
    fitted = fit_model(binary_df, ModelSpec("logit", "outcome", ["x1"], name="base"))
    out = fitted.to_dict()
    assert out["name"] == "base"
    assert out["family"] == "logit"
    assert out["formula"] == "outcome ~ x1"
    assert isinstance(out["coefficients"], list)
    assert all(isinstance(v, float) for v in out["statistics"].values())


def test_fit_model_accepts_config_mapping(regression_df):
    fitted = fit_model(regression_df, {"family": "ols", "outcome": "y", "predictors": ["age"]})
    assert fitted.family.value == "ols"
    with pytest.raises(ValueError):
        fit_model(regression_df, {"family": "ols", "outcome": "y", "predictors": ["age"]}, conf_level=1.5)


def test_fit_does_not_touch_input(regression_df):
    before = regression_df.copy()
    fit_model(regression_df, ModelSpec("ols", "y", ["age", "group"], splines={"age": 3}))
    pd.testing.assert_frame_equal(regression_df, before)
