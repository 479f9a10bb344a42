"""Configuration management for memory analyses.

Configurations are nested dictionaries with the sections ``lags``,
``memory``, ``features``, ``diagnostics`` and ``logging``. They are layered:
packaged defaults, then a project or user file, then ``MEMORIA_*``
environment variables. The analysis sections are checked against the
pydantic models of ``memoria.types`` before a pipeline runs.
"""

import copy
import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Tuple, Union

import pydantic
import yaml

from ..types import AnalysisConfig

ENV_PREFIX = "MEMORIA_"

# Nesting separator in environment variable names
ENV_NESTING = "__"

DEFAULT_CONFIG_PATH = Path(__file__).parent.parent / "config" / "default.yaml"

PROJECT_CONFIG_PATH = Path("config") / "memoria.yaml"

logger = logging.getLogger(__name__)


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    merged = dict(base)
    for key, value in override.items():
        if isinstance(merged.get(key), dict) and isinstance(value, dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def _parse_env_value(raw: str) -> Any:
    # "20" -> 20, "[0, 1]" -> [0, 1], "true" -> True, anything else stays text
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        return raw


class Config:
    """Nested analysis configuration with dot-path access.

    ``config.get("memory.repetitions")`` reads and
    ``config.set("lags.response", "Pinus")`` writes a nested key, creating
    intermediate sections as needed.
    """

    def __init__(self, config_dict: Optional[Dict[str, Any]] = None):
        self._config: Dict[str, Any] = copy.deepcopy(config_dict) if config_dict else {}

    @classmethod
    def from_yaml(cls, file_path: Union[str, Path]) -> 'Config':
        """Read a YAML file. An empty file gives an empty configuration."""
        with open(cls._existing(file_path), 'r') as f:
            return cls(yaml.safe_load(f))

    @classmethod
    def from_json(cls, file_path: Union[str, Path]) -> 'Config':
        """Read a JSON file."""
        with open(cls._existing(file_path), 'r') as f:
            return cls(json.load(f))

    @classmethod
    def from_file(cls, file_path: Union[str, Path]) -> 'Config':
        """
        Read a configuration file, YAML or JSON by extension.

        Parameters
        ----------
        file_path : str or Path
            ``.json`` files are read as JSON, everything else as YAML

        Returns
        -------
        config : Config
            Configuration instance
        """
        if Path(file_path).suffix.lower() == '.json':
            return cls.from_json(file_path)
        return cls.from_yaml(file_path)

    @classmethod
    def from_env(cls, prefix: str = ENV_PREFIX) -> 'Config':
        """
        Collect configuration keys from environment variables.

        The part after ``prefix`` is lower-cased and split into sections at
        every double underscore, so ``MEMORIA_MEMORY__REPETITIONS=20`` sets
        ``memory.repetitions`` to 20. Values are parsed as JSON when
        possible.

        Parameters
        ----------
        prefix : str
            Prefix of the variables to read

        Returns
        -------
        config : Config
            Configuration holding only the keys found in the environment
        """
        config = cls()
        for name, raw in os.environ.items():
            if not name.startswith(prefix) or len(name) == len(prefix):
                continue
            key = name[len(prefix):].lower().replace(ENV_NESTING, '.')
            config.set(key, _parse_env_value(raw))
            logger.debug(f"Configuration key '{key}' taken from ${name}")
        return config

    @staticmethod
    def _existing(file_path: Union[str, Path]) -> Path:
        file_path = Path(file_path)
        if not file_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {file_path}")
        return file_path

    def get(self, key: str, default: Any = None) -> Any:
        """
        Read a value by dot path.

        Parameters
        ----------
        key : str
            Dot-separated path, e.g. ``"lags.oldest_sample"``
        default : Any
            Returned when any part of the path is missing

        Returns
        -------
        value : Any
            Stored value or ``default``
        """
        node: Any = self._config
        for part in key.split('.'):
            if not isinstance(node, dict) or part not in node:
                return default
            node = node[part]
        return node

    def set(self, key: str, value: Any) -> None:
        """Write a value by dot path, replacing non-section values on the way."""
        *sections, leaf = key.split('.')
        node = self._config
        for part in sections:
            if not isinstance(node.get(part), dict):
                node[part] = {}
            node = node[part]
        node[leaf] = value

    def update(self, other: Union['Config', Dict[str, Any], None]) -> None:
        """Deep-merge ``other`` into this configuration; ``other`` wins on conflicts."""
        other_dict = other.to_dict() if isinstance(other, Config) else (other or {})
        self._config = _deep_merge(self._config, other_dict)

    def save(self, file_path: Union[str, Path], format: str = 'yaml') -> None:
        """
        Write the configuration to disk.

        Parameters
        ----------
        file_path : str or Path
            Output file
        format : str
            'yaml' or 'json'
        """
        if format not in ('yaml', 'json'):
            raise ValueError(f"Unsupported format: {format}")

        with open(file_path, 'w') as f:
            if format == 'yaml':
                yaml.safe_dump(self._config, f, default_flow_style=False, indent=2, sort_keys=False)
            else:
                json.dump(self._config, f, indent=2)

    def to_dict(self) -> Dict[str, Any]:
        """Deep copy of the configuration dictionary."""
        return copy.deepcopy(self._config)

    def to_analysis_config(self) -> AnalysisConfig:
        """Validate the analysis sections and return them as a typed model."""
        return AnalysisConfig(**self._config)

    def keys(self) -> List[str]:
        return list(self._config)

    def __iter__(self) -> Iterator[str]:
        return iter(self._config)

    def __getitem__(self, key: str) -> Any:
        return self.get(key)

    def __setitem__(self, key: str, value: Any) -> None:
        self.set(key, value)

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None

    def __repr__(self) -> str:
        return f"Config({self._config})"


def load_default_config() -> Config:
    """
    Load the base configuration of an analysis.

    ``config/memoria.yaml`` under the working directory takes the place of
    the packaged defaults when it exists.
    """
    for config_path in (Path.cwd() / PROJECT_CONFIG_PATH, DEFAULT_CONFIG_PATH):
        if config_path.exists():
            logger.debug(f"Loading base configuration from {config_path}")
            return Config.from_yaml(config_path)
    return Config()


def merge_configs(*configs: Union[Config, Dict[str, Any], None]) -> Config:
    """
    Layer configurations from lowest to highest precedence.

    ``None`` entries are skipped, so optional layers (a user file that was
    not given) can be passed as is.

    Returns
    -------
    merged : Config
        New configuration; the inputs are left untouched
    """
    merged = Config()
    for config in configs:
        if config is not None:
            merged.update(config)
    return merged


def validate_config(config: Union[Config, Dict[str, Any]]) -> Tuple[bool, List[str]]:
    """
    Check a configuration against the analysis models.

    Parameters
    ----------
    config : Config or Dict[str, Any]
        Configuration to check. Sections other than the analysis ones are
        accepted as they are.

    Returns
    -------
    is_valid : bool
        Whether every analysis section validates
    errors : List[str]
        One "section.key: message" entry per problem
    """
    config_dict = config.to_dict() if isinstance(config, Config) else config

    try:
        AnalysisConfig(**config_dict)
    except pydantic.ValidationError as e:
        return False, [
            f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
            for error in e.errors()
        ]
    return True, []
