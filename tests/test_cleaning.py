import numpy as np
import pandas as pd
import pytest

from statlab.cleaning.derive import bucket, bmi, expression, log, ratio
from statlab.cleaning.impute import pmm_impute
from statlab.cleaning.pipeline import CleaningPipeline, pipeline_from_config
from statlab.core.exceptions import (
    BucketCoverageError,
    CleaningError,
    ConfigurationError,
    DuplicateIdentifierError,
    MissingColumnError,
    SampleSizeError,
)


@pytest.fixture
def vehicles():
    rng = np.random.default_rng(1)
    n = 500
    return pd.DataFrame({
        "id": np.arange(n),
        "cylinders": rng.choice([3, 4, 5, 6, 8, 10], size=n),
        "drive": rng.choice(["Front-Wheel Drive", "2-Wheel Drive", "Part-time 4-Wheel Drive", "All-Wheel Drive"], size=n),
        "comb08": rng.integers(12, 45, size=n),
        "displ": rng.uniform(1.0, 6.5, size=n).round(1),
        "junk": "x",
    })


# --- Steps ---
def test_select_keeps_order_and_renames(vehicles):
    result = CleaningPipeline().select(["comb08", "id"], rename={"comb08": "mpg"}).run(vehicles)
    assert list(result.table.columns) == ["mpg", "id"]


def test_select_missing_column_fails(vehicles):
    with pytest.raises(MissingColumnError) as exc:
        CleaningPipeline().select(["id", "nope"]).run(vehicles)
    assert exc.value.columns == ["nope"]


def test_raw_table_is_never_modified(vehicles):
    before = vehicles.copy()
    CleaningPipeline().filter(query="cylinders == 4").derive("x2", "expression", expr="displ * 2").run(vehicles)
    pd.testing.assert_frame_equal(vehicles, before)


def test_filter_query_and_predicate(vehicles):
    result = (
        CleaningPipeline()
        .filter(query="cylinders in [4, 6, 8]", label="4/6/8 cylinders")
        .filter(predicate=lambda d: d["drive"] != "2-Wheel Drive")
        .run(vehicles)
    )
    assert set(result.table["cylinders"]) <= {4, 6, 8}
    assert "2-Wheel Drive" not in set(result.table["drive"])
    assert result.audit[0].note.startswith("4/6/8 cylinders")


def test_filter_unknown_column_is_missing_column_error(vehicles):
    with pytest.raises(MissingColumnError):
        CleaningPipeline().filter(query="no_such_column > 3").run(vehicles)


def test_derive_expression_unknown_column_is_missing_column_error(vehicles):
    with pytest.raises(MissingColumnError) as exc:
        CleaningPipeline().derive("z", "expression", expr="displ + no_such_column").run(vehicles)
    assert exc.value.columns == ["no_such_column"]


def test_expression_comparison_with_missing_value_is_false():
    df = pd.DataFrame({"obese_pct": [40.0, np.nan, 30.0]})
    assert expression(df, "obese_pct > 35").tolist() == [True, False, False]


def test_unknown_derivation_is_configuration_error(vehicles):
    with pytest.raises(ConfigurationError):
        CleaningPipeline().derive("z", "no_such_derivation", source="displ").run(vehicles)


def test_filter_needs_exactly_one_condition():
    with pytest.raises(CleaningError):
        CleaningPipeline().filter()


def test_sample_is_deterministic_and_without_replacement(vehicles):
    p = CleaningPipeline(id_column="id").sample(200, seed=432)
    a = p.run(vehicles).table
    b = p.run(vehicles).table
    pd.testing.assert_frame_equal(a, b)
    assert len(a) == 200
    assert a["id"].is_unique
    c = CleaningPipeline().sample(200, seed=433).run(vehicles).table
    assert set(c["id"]) != set(a["id"])


def test_sample_larger_than_table(vehicles):
    with pytest.raises(SampleSizeError):
        CleaningPipeline().sample(len(vehicles) + 1, seed=1).run(vehicles)


def test_duplicate_identifier_detected():
    df = pd.DataFrame({"id": [1, 2, 2], "v": [1, 2, 3]})
    with pytest.raises(DuplicateIdentifierError):
        CleaningPipeline(id_column="id").drop_missing().run(df)


def test_retype_categorical_counts_unknown_levels():
    df = pd.DataFrame({"g": ["lo", "hi", "mid", "lo"]})
    result = CleaningPipeline().retype("g", "categorical", levels=["lo", "hi"], ordered=True).run(df)
    g = result.table["g"]
    assert list(g.cat.categories) == ["lo", "hi"]
    assert g.cat.ordered
    assert g.isna().sum() == 1
    assert "1 value(s)" in result.audit[0].note


def test_retype_categorical_requires_levels():
    with pytest.raises(CleaningError):
        CleaningPipeline().retype("g", "categorical")


def test_retype_boolean_and_integer():
    df = pd.DataFrame({"flag": ["yes", "no", "maybe"], "n": ["1", "2.0", "x"]})
    out = CleaningPipeline().retype("flag", "boolean").retype("n", "integer").run(df).table
    assert out["flag"].tolist()[:2] == [True, False]
    assert pd.isna(out["flag"].iloc[2])
    assert out["n"].iloc[1] == 2
    assert pd.isna(out["n"].iloc[2])


def test_drop_missing_and_audit_counts():
    df = pd.DataFrame({"a": [1, None, 3], "b": [1, 2, None]})
    result = CleaningPipeline().drop_missing(["a"]).run(df)
    assert result.n_rows == 2
    audit = result.audit_frame()
    assert list(audit.columns) == ["step", "rows_before", "rows_after", "n_columns", "note"]
    assert audit.loc[0, "rows_before"] == 3
    assert audit.loc[0, "rows_after"] == 2


def test_collapse_rare_and_drop_unused_levels():
    df = pd.DataFrame({"make": pd.Categorical(["a"] * 12 + ["b"] * 11 + ["c", "d"], categories=list("abcde"))})
    result = CleaningPipeline().collapse_rare_levels("make", min_count=10).drop_unused_levels().run(df)
    make = result.table["make"]
    assert set(make.cat.categories) == {"a", "b", "Other"}
    assert (make == "Other").sum() == 2
    assert result.audit[1].rows_before == result.audit[1].rows_after


def test_impute_pmm_fills_only_missing_with_observed_values():
    rng = np.random.default_rng(2)
    x = rng.normal(size=100)
    y = 2 * x + rng.normal(scale=0.1, size=100)
    y[[3, 10, 50]] = np.nan
    df = pd.DataFrame({"x": x, "y": y})
    filled = pmm_impute(df, "y", ["x"], donors=3, seed=432)
    assert filled.notna().all()
    observed = set(df["y"].dropna())
    assert all(v in observed for v in filled[[3, 10, 50]])
    pd.testing.assert_series_equal(filled, pmm_impute(df, "y", ["x"], donors=3, seed=432))
    assert filled.drop([3, 10, 50]).equals(df["y"].drop([3, 10, 50]))


def test_impute_pmm_needs_complete_predictors():
    df = pd.DataFrame({"x": [1.0, None, 3.0, 4.0], "y": [1.0, 2.0, None, 4.0]})
    with pytest.raises(CleaningError):
        pmm_impute(df, "y", ["x"])


# --- Derivations ---
def test_bucket_half_open_and_coverage():
    df = pd.DataFrame({"age": [18, 29.9, 30, 64, 65]})
    out = bucket(df, "age", breaks=[18, 30, 65, 120], labels=["18-29", "30-64", "65+"])
    assert out.tolist() == ["18-29", "18-29", "30-64", "30-64", "65+"]
    with pytest.raises(BucketCoverageError):
        bucket(pd.DataFrame({"age": [10, 20]}), "age", breaks=[18, 30])


def test_bmi_log_ratio_expression():
    df = pd.DataFrame({"weight": [80.0], "height": [200.0], "cost": [2000.0], "mpg": [0.0], "v": [np.e]})
    assert bmi(df).iloc[0] == pytest.approx(20.0)
    assert log(df, "v").iloc[0] == pytest.approx(1.0)
    assert np.isnan(ratio(df, "cost", "mpg").iloc[0])
    assert expression(df, "weight / 2").iloc[0] == pytest.approx(40.0)


# --- Configuration ---
def test_pipeline_from_config(vehicles):
    cfg = {
        "id_column": "id",
        "steps": [
            {"select": {"columns": ["id", "cylinders", "drive", "comb08", "displ"]}},
            {"filter": {"query": "cylinders in [4, 6, 8]", "label": "cyl"}},
            {"derive": {"column": "log_displ", "function": "log", "source": "displ"}},
            {"sample": {"n": 50, "seed": 432}},
        ],
    }
    result = pipeline_from_config(cfg).run(vehicles)
    assert result.n_rows == 50
    assert "log_displ" in result.table.columns
    assert [a.step for a in result.audit] == ["select", "filter", "derive", "sample"]


def test_pipeline_from_config_errors():
    with pytest.raises(ConfigurationError):
        pipeline_from_config({"steps": [{"explode": {}}]})
    with pytest.raises(ConfigurationError):
        pipeline_from_config({"steps": [{"sample": {"n": 5}}]})
    with pytest.raises(ConfigurationError):
        pipeline_from_config({"steps": [{"select": {"columns": ["a"]}, "sample": {"n": 1, "seed": 1}}]})
