from pathlib import Path

import yaml

from statlab.core.exceptions import ConfigurationError


def load_yaml_config(path):
    path = Path(path)
    if not path.exists():
        raise ConfigurationError(f"Analysis file not found: {path}")
    try:
        with open(path, "r", encoding="utf-8") as f:
            config = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {path}: {e}") from e
    if not isinstance(config, dict):
        raise ConfigurationError(f"{path} must contain a mapping at the top level")
    return config
