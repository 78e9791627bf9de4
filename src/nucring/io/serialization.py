"""YAML serialization for AnalysisConfig."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml

from nucring.core.config import AnalysisConfig
from nucring.core.exceptions import ConfigurationError


def config_to_yaml(config: AnalysisConfig, path: Path) -> None:
    """Serialize an AnalysisConfig to a YAML file.

    Args:
        config: The configuration to serialize.
        path: File path to write.
    """
    data: dict[str, Any] = config.to_dict()
    with open(path, "w") as f:
        yaml.safe_dump(data, f, default_flow_style=False, sort_keys=False)


def config_from_yaml(path: Path) -> AnalysisConfig:
    """Deserialize an AnalysisConfig from a YAML file.

    Unknown keys are kept in ``AnalysisConfig.extra`` rather than rejected.

    Args:
        path: Path to the YAML file.

    Returns:
        A validated AnalysisConfig.

    Raises:
        FileNotFoundError: If the YAML file doesn't exist.
        ConfigurationError: If the YAML is not a mapping or holds invalid values.
    """
    path = Path(path)
    with open(path) as f:
        try:
            data = yaml.safe_load(f)
        except yaml.YAMLError as exc:
            raise ConfigurationError(message=f"{path}: {exc}") from exc

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigurationError(
            message=f"{path}: expected a mapping, got {type(data).__name__}"
        )

    channels = data.get("measure_channels")
    if isinstance(channels, (int, str)):
        data["measure_channels"] = [channels]

    return AnalysisConfig.from_dict(data)
