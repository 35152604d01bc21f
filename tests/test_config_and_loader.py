import pandas as pd
import pytest

from statlab.config.settings import StatlabSettings
from statlab.core.exceptions import ConfigurationError, DataLoadError
from statlab.utils.data_loader import is_url, load_dataframe, save_table
from statlab.utils.yaml_generator import generate_analysis_yaml
from statlab.utils.yaml_loader import load_yaml_config


# --- Settings ---
def test_settings_defaults():
    s = StatlabSettings()
    assert s.default_seed == 432
    assert s.conf_level == 0.95
    assert (s.df_budget_base, s.df_budget_offset, s.df_budget_per) == (4.0, 100.0, 100.0)


def test_settings_environment_override(monkeypatch):
    monkeypatch.setenv("STATLAB_SEED", "99")
    monkeypatch.setenv("STATLAB_DEBUG", "yes")
    monkeypatch.setenv("STATLAB_BOOTSTRAP_REPLICATES", "not-a-number")
    s = StatlabSettings()
    assert s.default_seed == 99
    assert s.debug is True
    assert s.bootstrap_replicates == 200


def test_check_defaults_follow_thresholds():
    s = StatlabSettings(vif_threshold=10.0)
    assert s.get_check_defaults("VIFCheck")["threshold"] == 10.0
    assert s.get_check_defaults("UnknownCheck") == {}


# --- Loader ---
def test_is_url():
    assert is_url("https://example.org/data.csv")
    assert not is_url("data/data.csv")


def test_load_csv_and_tsv(tmp_path):
    df = pd.DataFrame({"a": [1, 2], "b": ["x", "y"]})
    df.to_csv(tmp_path / "t.csv", index=False)
    df.to_csv(tmp_path / "t.tsv", index=False, sep="\t")
    pd.testing.assert_frame_equal(load_dataframe(tmp_path / "t.csv"), df)
    pd.testing.assert_frame_equal(load_dataframe(tmp_path / "t.tsv"), df)


def test_load_unsupported_extension(tmp_path):
    with pytest.raises(ValueError, match="Unsupported"):
        load_dataframe(tmp_path / "table.docx")


def test_load_missing_file_raises_data_load_error(tmp_path):
    with pytest.raises(DataLoadError):
        load_dataframe(tmp_path / "absent.csv")


def test_save_table_keeps_categories(tmp_path):
    df = pd.DataFrame({"g": pd.Categorical(["lo", "hi", "lo"], categories=["lo", "hi"], ordered=True), "v": [1, 2, 3]})
    path = save_table(df, tmp_path / "clean.parquet")
    back = load_dataframe(path)
    assert list(back["g"].cat.categories) == ["lo", "hi"]
    assert back["g"].cat.ordered


def test_save_table_rejects_text_formats(tmp_path):
    with pytest.raises(ValueError):
        save_table(pd.DataFrame({"a": [1]}), tmp_path / "clean.csv")


# --- YAML ---
def test_load_yaml_config(tmp_path):
    path = tmp_path / "a.yaml"
    path.write_text("name: demo\nseed: 1\n")
    assert load_yaml_config(path) == {"name": "demo", "seed": 1}


def test_load_yaml_config_rejects_non_mapping(tmp_path):
    path = tmp_path / "a.yaml"
    path.write_text("- 1\n- 2\n")
    with pytest.raises(ConfigurationError):
        load_yaml_config(path)


@pytest.mark.parametrize("template", ["starter", "epa", "ohio", "remission"])
def test_generate_analysis_yaml(tmp_path, template):
    dest = tmp_path / f"{template}.yaml"
    generate_analysis_yaml(template=template, dest_path=dest)
    config = load_yaml_config(dest)
    assert config["models"]
    assert "data" in config


def test_generate_analysis_yaml_refuses_overwrite(tmp_path):
    dest = tmp_path / "analysis.yaml"
    dest.write_text("keep: me\n")
    with pytest.raises(FileExistsError):
        generate_analysis_yaml(template="starter", dest_path=dest)
    generate_analysis_yaml(template="starter", dest_path=dest, overwrite=True)
    assert "keep" not in dest.read_text()
