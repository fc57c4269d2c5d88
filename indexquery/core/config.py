from __future__ import annotations

"""
Configuration and option models.

``QueryOptions`` is the options mapping accepted by the query entry points and
``IndexQueryConfig`` holds package-wide settings, loadable from a dict or a
YAML file.
"""

import pathlib
from typing import Any, Dict, Mapping, Optional, Union

import structlog
import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from indexquery.utils.exceptions import ConfigurationError

logger = structlog.get_logger(__name__)


class IndexQueryConfig(BaseModel):
    """Settings for building queries and for logging."""

    filters_key: str = Field(
        default="with",
        description="Options key holding the filter values",
    )
    case_insensitive_contains: bool = Field(
        default=True,
        description="Whether the contains operator ignores case",
    )
    logging: Dict[str, Any] = Field(
        default_factory=lambda: {
            'level': 'INFO',
            'format': 'json',
            'console': {
                'enabled': True,
                'level': 'INFO',
            },
            'file': {
                'enabled': False,
                'path': 'logs/indexquery.log',
                'rotation': '10 MB',
                'retention': '30 days',
            },
        },
        description='Logging settings',
    )

    @field_validator('filters_key')
    @classmethod
    def validate_filters_key(cls, value: str) -> str:
        if not value:
            raise ValueError('filters_key must not be empty.')
        return value

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "IndexQueryConfig":
        """
        Build a configuration from a mapping.

        Raises:
            ConfigurationError: If the data does not validate
        """
        try:
            return cls.model_validate(dict(data))
        except ValidationError as e:
            keys = [".".join(str(p) for p in err["loc"]) for err in e.errors()]
            raise ConfigurationError(
                f"Invalid configuration: {e}",
                config_key=keys[0] if keys else None,
            ) from e

    @classmethod
    def from_yaml(cls, path: Union[str, pathlib.Path]) -> "IndexQueryConfig":
        """
        Load configuration from a YAML file.

        Raises:
            ConfigurationError: If the file cannot be read or does not validate
        """
        config_path = pathlib.Path(path)
        try:
            with open(config_path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigurationError(
                f"Failed to load configuration from {config_path}: {e}"
            ) from e

        if not isinstance(data, dict):
            raise ConfigurationError(
                f"Configuration file {config_path} must contain a mapping"
            )

        logger.debug("Loaded configuration file", path=str(config_path))
        return cls.from_dict(data)


class QueryOptions(BaseModel):
    """Options accepted by ``query`` and ``query_children``.

    Only the filter values are recognized; other keys are ignored.
    """

    model_config = ConfigDict(extra='ignore', populate_by_name=True)

    filters: Dict[str, Any] = Field(default_factory=dict, alias='with')

    @field_validator('filters', mode='before')
    @classmethod
    def stringify_keys(cls, value: Any) -> Any:
        if value is None:
            return {}
        if isinstance(value, Mapping):
            return {str(getattr(k, 'value', k)): v for k, v in value.items()}
        return value

    @classmethod
    def coerce(
            cls,
            options: Union["QueryOptions", Mapping[str, Any], None],
            config: Optional[IndexQueryConfig] = None,
    ) -> "QueryOptions":
        """
        Normalize the options argument of the entry points.

        Args:
            options: QueryOptions, a mapping, or None
            config: Configuration naming the filter values key

        Returns:
            QueryOptions instance

        Raises:
            ConfigurationError: If the options cannot be interpreted
        """
        if isinstance(options, cls):
            return options
        if options is None:
            return cls()
        if not isinstance(options, Mapping):
            raise ConfigurationError(
                f"Options must be a mapping, got {type(options).__name__}"
            )

        key = (config or get_default_config()).filters_key
        try:
            return cls(filters=options.get(key))
        except ValidationError as e:
            raise ConfigurationError(
                f"Invalid filter values: {e}", config_key=key
            ) from e


_default_config = IndexQueryConfig()


def get_default_config() -> IndexQueryConfig:
    return _default_config


def set_default_config(config: Union[IndexQueryConfig, Mapping[str, Any]]) -> IndexQueryConfig:
    """Replace the configuration used when callers pass none."""
    global _default_config
    if not isinstance(config, IndexQueryConfig):
        config = IndexQueryConfig.from_dict(config)
    _default_config = config
    return _default_config
