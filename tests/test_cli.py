import pytest
import yaml

from statlab.cli.arg_parser import parse_args
from statlab.cli.main import main, run_command


def test_parse_run_arguments():
    args = parse_args(["run", "analysis.yaml", "--report", "out.docx"])
    assert args.command == "run"
    assert args.analysis == "analysis.yaml"
    assert args.report == "out.docx"
    assert args.verbose is False


def test_parse_init_defaults():
    args = parse_args(["init"])
    assert args.template == "starter"
    assert args.output == "analysis.yaml"
    assert args.overwrite is False


def test_parse_rejects_unknown_template():
    with pytest.raises(SystemExit):
        parse_args(["init", "--template", "iris"])


def test_init_writes_template(tmp_path):
    dest = tmp_path / "epa.yaml"
    with pytest.raises(SystemExit) as exc:
        main(["init", "--template", "epa", "--output", str(dest)])
    assert exc.value.code == 0
    assert yaml.safe_load(dest.read_text())["name"] == "epa_vehicles"

    with pytest.raises(SystemExit) as exc:
        main(["init", "--template", "epa", "--output", str(dest)])
    assert exc.value.code == 1


def test_run_command_reports_selection(regression_df, tmp_path, capsys):
    regression_df.drop(columns="group").to_csv(tmp_path / "data.csv", index=False)
    config = {
        "name": "cli",
        "data": {"path": "data.csv"},
        "models": [
            {"name": "age_only", "family": "ols", "outcome": "y", "predictors": ["age"]},
            {"name": "age_bmi", "family": "ols", "outcome": "y", "predictors": ["age", "bmi"]},
        ],
        "validation": {"method": "holdout", "test_size": 0.3},
        "output": {"artifacts_dir": str(tmp_path / "artifacts"), "figures": False},
    }
    path = tmp_path / "analysis.yaml"
    path.write_text(yaml.safe_dump(config))
    assert run_command(str(path), report=str(tmp_path / "cli.docx")) == 0
    out = capsys.readouterr().out
    assert "2 model(s) fitted" in out
    assert "Selected model:" in out
    assert (tmp_path / "cli.docx").exists()


def test_run_command_returns_error_code(tmp_path, capsys):
    assert run_command(str(tmp_path / "missing.yaml")) == 1
    assert "❌" in capsys.readouterr().out
