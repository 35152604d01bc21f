import docx
import pandas as pd
import pytest
import yaml

from statlab.core.exceptions import ConfigurationError, DuplicateIdentifierError
from statlab.engine.core_engine_agent import AnalysisEngine
from statlab.report.report_builder import ReportBuilder
from statlab.run import run_analysis, run_from_yaml


def _config(tmp_path, **overrides):
    config = {
        "name": "Synthetic",
        "seed": 432,
        "cleaning": {
            "id_column": "id",
            "steps": [
                {"select": {"columns": ["id", "y", "age", "bmi", "group"]}},
                {"filter": {"query": "age >= 25", "label": "adults over 25"}},
            ],
        },
        "models": [
            {"name": "linear", "family": "ols", "outcome": "y", "predictors": ["age", "bmi", "group"]},
            {"name": "spline", "family": "ols", "outcome": "y", "predictors": ["age", "bmi", "group"],
             "splines": {"age": 3}},
        ],
        "validation": {"method": "bootstrap", "replicates": 10},
        "selection": {"metric": "r2", "margin": 0.01},
        "output": {"artifacts_dir": str(tmp_path / "artifacts"), "cleaned_path": "clean.parquet"},
    }
    config.update(overrides)
    return config


def _headings(path):
    return [p.text for p in docx.Document(str(path)).paragraphs if p.style.name.startswith(("Heading", "Title"))]


# --- Engine ---
def test_engine_runs_every_stage(regression_df, tmp_path):
    results = AnalysisEngine(_config(tmp_path), raw_df=regression_df).run()
    n_kept = int((regression_df["age"] >= 25).sum())
    assert results["cleaning"]["n_rows"] == n_kept
    assert results["cleaning"]["n_raw_rows"] == len(regression_df)
    assert list(results["cleaning"]["audit"]["step"]) == ["select", "filter"]
    assert set(results["summaries"]) == {
        "CleaningAuditCheck", "MissingnessCheck", "DistributionCheck", "CorrelationCheck", "VIFCheck",
    }
    assert set(results["models"]) == {"linear", "spline"}
    assert set(results["validation"]) == {"linear", "spline"}
    assert results["selection"].selected in {"linear", "spline"}
    assert results["summary"]["selected_model"] == results["selection"].selected
    assert results["summary"]["failed_checks"] == []
    assert set(results["figures"]) == {"linear diagnostics", "spline diagnostics"}
    cleaned = pd.read_parquet(results["cleaned_path"])
    assert len(cleaned) == n_kept


def test_engine_is_deterministic(regression_df, tmp_path):
    config = _config(tmp_path, output={"artifacts_dir": str(tmp_path), "figures": False})
    a = AnalysisEngine(config, raw_df=regression_df).run()
    b = AnalysisEngine(config, raw_df=regression_df).run()
    pd.testing.assert_frame_equal(a["selection"].table, b["selection"].table)
    assert a["figures"] == {}


def test_single_candidate_has_no_selection(regression_df, tmp_path):
    config = _config(tmp_path, models=[{"name": "only", "family": "ols", "outcome": "y", "predictors": ["age"]}],
                     validation={"method": "cv", "folds": 3})
    results = AnalysisEngine(config, raw_df=regression_df).run()
    assert results["selection"] is None
    assert results["validation"]["only"].method == "cv"
    assert results["summary"]["selected_model"] is None


def test_engine_kaplan_meier_and_cox(remission_df, tmp_path):
    config = {
        "name": "Remission",
        "cleaning": {"id_column": "patient"},
        "skip_checks": ["CorrelationCheck", "VIFCheck"],
        "models": [
            {"name": "km", "family": "km", "outcome": "time", "event": "censor", "strata": "treatment"},
            {"name": "cox", "family": "cox", "outcome": "time", "event": "censor", "predictors": ["treatment"]},
        ],
        "validation": {"method": None},
        "output": {"artifacts_dir": str(tmp_path)},
    }
    results = AnalysisEngine(config, raw_df=remission_df).run()
    km = results["kaplan_meier"]["km"]
    assert km.summary.set_index("stratum").loc["A", "events"] == 23
    assert "CorrelationCheck" not in results["summaries"]
    assert list(results["models"]) == ["cox"]
    assert results["validation"] == {}
    assert "km survival" in results["figures"]


def test_engine_errors(regression_df, tmp_path):
    with pytest.raises(ConfigurationError):
        AnalysisEngine(_config(tmp_path, validation={"method": "jackknife"}), raw_df=regression_df).run()
    with pytest.raises(ConfigurationError):
        AnalysisEngine({"models": []}).load()
    with pytest.raises(ConfigurationError):
        AnalysisEngine(["not", "a", "mapping"])
    dup = pd.concat([regression_df, regression_df.iloc[:1]])
    with pytest.raises(DuplicateIdentifierError):
        AnalysisEngine(_config(tmp_path), raw_df=dup).run()


# --- Report ---
def test_report_has_all_sections(regression_df, tmp_path):
    results = AnalysisEngine(_config(tmp_path), raw_df=regression_df).run()
    path = ReportBuilder(results, output_path=tmp_path / "out" / "report.docx").build()
    assert path.exists()
    headings = _headings(path)
    for expected in ("Synthetic: statistical analysis report", "Data cleaning", "Exploratory summaries",
                     "Fitted models", "Validation", "Model selection", "Figures"):
        assert expected in headings
    assert "Kaplan-Meier estimates" not in headings
    document = docx.Document(str(path))
    assert len(document.tables) > 5
    assert len(document.inline_shapes) == 2


def test_run_analysis_writes_report(remission_df, tmp_path):
    config = {
        "name": "Remission",
        "models": [{"name": "km", "family": "km", "outcome": "time", "event": "censor", "strata": "treatment"}],
        "output": {"artifacts_dir": str(tmp_path), "report_path": str(tmp_path / "remission.docx")},
    }
    results = run_analysis(config, raw_df=remission_df)
    assert results["report_path"] == str((tmp_path / "remission.docx").resolve())
    assert results["generated_at"]
    assert "Kaplan-Meier estimates" in _headings(tmp_path / "remission.docx")


def test_run_analysis_rejects_directory_report_path(remission_df, tmp_path):
    config = {"models": [{"family": "km", "outcome": "time", "event": "censor"}],
              "output": {"artifacts_dir": str(tmp_path)}}
    with pytest.raises(ConfigurationError):
        run_analysis(config, raw_df=remission_df, report_path=tmp_path)


def test_run_from_yaml_resolves_data_relative_to_file(regression_df, tmp_path):
    regression_df.to_csv(tmp_path / "data.csv", index=False)
    config = _config(tmp_path, data={"path": "data.csv"})
    config["cleaning"]["steps"].insert(
        0, {"retype": {"column": "group", "kind": "categorical", "levels": ["a", "b", "c"]}})
    (tmp_path / "analysis.yaml").write_text(yaml.safe_dump(config))
    results = run_from_yaml(tmp_path / "analysis.yaml", report_path=tmp_path / "report.docx")
    assert results["cleaning"]["n_raw_rows"] == len(regression_df)
    assert (tmp_path / "report.docx").exists()
