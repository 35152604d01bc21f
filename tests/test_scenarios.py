"""
End-to-end runs of the bundled analysis files on the public datasets.

Set STATLAB_DATA_DIR to a directory holding vehicles.csv,
oh_counties_2022.csv and remission.csv to run these.
"""

import pytest

from statlab.config.settings import settings
from statlab.run import run_analysis
from statlab.utils.yaml_loader import load_yaml_config


def _bundled(name, data_dir, tmp_path, **validation):
    config = load_yaml_config(settings.get_pipeline_path(name))
    path = data_dir / config["data"]["path"]
    if not path.exists():
        pytest.skip(f"{path.name} not in STATLAB_DATA_DIR")
    config["data"]["path"] = str(path)
    config["output"] = {**config["output"], "artifacts_dir": str(tmp_path), "report_path": str(tmp_path / "r.docx")}
    if validation:
        config["validation"] = validation
    return config


def test_epa_vehicles(data_dir, tmp_path):
    config = _bundled("epa_vehicles", data_dir, tmp_path, method="bootstrap", replicates=20)
    results = run_analysis(config)
    audit = results["cleaning"]["audit"].set_index("step")
    assert audit.loc["sample", "rows_after"] == 1200
    n = results["cleaning"]["n_rows"]
    # the published 1191 depends on which 1200 rows R's sample() drew; numpy's
    # default_rng draws a different subset, so only the range is stable
    assert 1100 < n <= 1200
    assert set(results["models"]) == {"linear", "spline_displ", "spline_interaction"}
    assert results["selection"].selected in results["models"]
    assert (tmp_path / "r.docx").exists()

    again = run_analysis(config)
    assert again["cleaning"]["n_rows"] == n


def test_ohio_counties(data_dir, tmp_path):
    config = _bundled("ohio_counties_2022", data_dir, tmp_path, method="cv", folds=5, repeats=2)
    results = run_analysis(config)
    assert results["summaries"]["CleaningAuditCheck"]["raw_shape"] == (88, 44)
    assert results["cleaning"]["n_rows"] == 88
    comparison = results["selection"]
    assert comparison.metric == "rmse"
    assert comparison.higher_is_better is False


def test_remission(data_dir, tmp_path):
    config = _bundled("remission", data_dir, tmp_path, method="bootstrap", replicates=20)
    results = run_analysis(config)
    km = results["kaplan_meier"]["remission_km"].summary.set_index("stratum")
    assert (km.loc["A", "n"], km.loc["A", "events"]) == (26, 23)
    assert (km.loc["B", "n"], km.loc["B", "events"]) == (18, 14)
    assert list(results["models"]) == ["remission_cox"]
