from typing import Any, Dict

import numpy as np
import pandas as pd
import pytest

from statlab.check_runners.base_runner import BaseCheckRunner
from statlab.check_runners.cleaning_audit_runner import CleaningAuditCheckRunner
from statlab.check_runners.correlation_runner import CorrelationCheckRunner
from statlab.check_runners.distribution_runner import DistributionCheckRunner
from statlab.check_runners.missingness_runner import MissingnessCheckRunner
from statlab.check_runners.vif_runner import VIFCheckRunner
from statlab.core.context import AnalysisContext
from statlab.core.exceptions import CheckNotFoundError
from statlab.engine.check_agent_registry import (
    CHECK_RUNNER_CLASSES,
    get_runner_class,
    list_available_checks,
    register_check,
)


@pytest.fixture
def context(regression_df, tmp_path):
    table = regression_df.assign(age_months=regression_df["age"] * 12 + 0.01 * np.arange(len(regression_df)))
    return AnalysisContext(
        table=table,
        outcome="y",
        predictors=["age", "bmi", "age_months", "group"],
        id_column="id",
        artifacts_dir=tmp_path,
    )


class _FailingRunner(BaseCheckRunner):
    @property
    def name(self) -> str:
        return "FailingCheck"

    def execute(self) -> Dict[str, Any]:
        raise RuntimeError("boom")


# --- Registry ---
def test_registry_lists_checks_in_order():
    assert list_available_checks()[:5] == [
        "CleaningAuditCheck", "MissingnessCheck", "DistributionCheck", "CorrelationCheck", "VIFCheck",
    ]
    assert get_runner_class("VIFCheck") is VIFCheckRunner
    with pytest.raises(CheckNotFoundError):
        get_runner_class("SHAPCheck")


def test_register_check_requires_base_class():
    with pytest.raises(TypeError):
        register_check("NotARunner", dict)
    register_check("FailingCheck", _FailingRunner)
    try:
        assert "FailingCheck" in list_available_checks()
    finally:
        CHECK_RUNNER_CLASSES.pop("FailingCheck")


# --- Base runner ---
def test_run_captures_errors(context):
    assert _FailingRunner(context).run() == {"error": "boom"}


def test_disabled_check_returns_none(regression_df, tmp_path):
    ctx = AnalysisContext(table=regression_df, config={"summaries": {"VIFCheck": {"enabled": False}}},
                          artifacts_dir=tmp_path)
    assert VIFCheckRunner(ctx).run() is None


def test_config_overrides_settings_defaults(regression_df, tmp_path):
    ctx = AnalysisContext(table=regression_df, config={"summaries": {"VIFCheck": {"threshold": 50}}},
                          artifacts_dir=tmp_path)
    runner = VIFCheckRunner(ctx)
    assert runner.get_config_value("threshold") == 50


def test_output_dir_follows_check_name(context, tmp_path):
    out = CorrelationCheckRunner(context).get_output_dir()
    assert out == tmp_path / "correlation"
    assert out.is_dir()


# --- Runners ---
def test_correlation_runner_flags_age_pair(context, tmp_path):
    messages = []
    result = CorrelationCheckRunner(context).run(progress_callback=messages.append)
    assert messages == ["Running CorrelationCheck..."]
    assert result["method"] == "spearman"
    assert result["status"] == "warning"
    pair = result["top_pairs"][0]
    assert {pair["feature_1"], pair["feature_2"]} == {"age", "age_months"}
    assert (tmp_path / "correlation" / "spearman_corr.csv").exists()


def test_vif_runner_uses_candidate_predictors(context, tmp_path):
    result = VIFCheckRunner(context).run()
    assert set(result["vif_values"]) == {"age", "bmi", "age_months", "group_b", "group_c"}
    assert "age" in result["high_vif_features"]
    assert "bmi" not in result["high_vif_features"]
    saved = pd.read_csv(tmp_path / "vif" / "vif.csv")
    assert list(saved.columns) == ["term", "vif"]


def test_missingness_runner(regression_df, tmp_path):
    table = regression_df.copy()
    table.loc[:9, "bmi"] = np.nan
    result = MissingnessCheckRunner(AnalysisContext(table=table, artifacts_dir=tmp_path)).run()
    assert result["complete_cases"] == len(table) - 10
    assert result["columns_with_missing"] == 1
    assert result["table"].iloc[0]["variable"] == "bmi"
    assert (tmp_path / "missingness" / "missingness.csv").exists()


def test_distribution_runner(context):
    result = DistributionCheckRunner(context).run()
    assert "age" in result["numeric"].index
    assert result["categorical"]["group"]["n_levels"] == 3


def test_cleaning_audit_runner(regression_df, tmp_path):
    audit = pd.DataFrame([{"step": "filter", "rows_before": 300, "rows_after": 250, "n_columns": 5, "note": ""}])
    ctx = AnalysisContext(table=regression_df.iloc[:250], raw_df=regression_df, audit=audit,
                          id_column="id", artifacts_dir=tmp_path)
    result = CleaningAuditCheckRunner(ctx).run()
    assert result["rows_removed"] == 50
    assert result["id_unique"] is True
    assert (tmp_path / "cleaningaudit" / "cleaning_audit.csv").exists()
