"""Load scenario configs from YAML; the packaged defaults.yaml is the fallback."""

import logging
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

from .schema import Config

log = logging.getLogger("rewardstream.config")

DEFAULTS_PATH = Path(__file__).parent / "defaults.yaml"


def load_config(yaml_path: Optional[Union[str, Path]] = None) -> Config:
    """
    Read a scenario config.

    An empty file yields the schema defaults. Anything other than a mapping
    at the top level is rejected before validation.

    Raises:
        ValueError: top level is not a mapping
        pydantic.ValidationError: the mapping fails the schema
    """
    path = Path(yaml_path) if yaml_path is not None else DEFAULTS_PATH
    with path.open('r') as f:
        data = yaml.safe_load(f)

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: expected a mapping at the top level, got {type(data).__name__}")

    config = config_from_dict(data)
    log.debug("loaded config %s (hash %s)", path, config.compute_hash())
    return config


def config_from_dict(data: Dict[str, Any]) -> Config:
    return Config.from_dict(data)
