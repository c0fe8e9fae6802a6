"""Error extractor configuration from YAML file.

Loads from cloudutil/config/config.yaml by default:
- Rate limit reason codes and the domains they must come from
- Resource-not-ready and quota reason codes
- Exception chain depth limit

Environment variables ARE supported using ${VAR_NAME} syntax in YAML files.
"""

import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from cloudutil.errors.api_error_extractor import (
    RATE_LIMIT_DOMAINS,
    ApiErrorExtractor,
    reasons_for,
)
from cloudutil.errors.chain import DEFAULT_MAX_CHAIN_DEPTH

logger = logging.getLogger(__name__)

CONFIG_SECTION = "error_extractor"

# Default config file shipped next to this module
DEFAULT_CONFIG_FILE = Path(__file__).parent / "config.yaml"


def load_yaml(path: Path) -> Dict[str, Any]:
    """Load YAML file and return dict."""
    if not path.exists():
        return {}
    with open(path, "r") as f:
        return yaml.safe_load(f) or {}


def _expand_env_vars(data: Any) -> Any:
    """Recursively expand ${VAR_NAME} and ${VAR_NAME:-default} environment variables in config data."""
    if isinstance(data, dict):
        return {key: _expand_env_vars(value) for key, value in data.items()}
    elif isinstance(data, list):
        return [_expand_env_vars(item) for item in data]
    elif isinstance(data, str):
        pattern = r"\$\{([^}:]+)(?::-(([^}]*))?)?\}"

        def replacer(match):
            var_name = match.group(1)
            default_value = match.group(2) if match.group(2) is not None else match.group(0)
            return os.getenv(var_name, default_value)

        return re.sub(pattern, replacer, data)
    else:
        return data


def _deep_merge(base: Dict[str, Any], overlay: Dict[str, Any]) -> Dict[str, Any]:
    """Deep merge overlay into base dict."""
    result = base.copy()
    for key, value in overlay.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


@dataclass
class ExtractorConfig:
    """ApiErrorExtractor configuration.

    Configuration structure:
        error_extractor:
          rate_limit_reasons: [...]          # reason codes signalling rate limiting
          rate_limit_domains: [...]          # domains a rate limit reason must come from
          resource_not_ready_reasons: [...]
          quota_reasons: [...]
          max_chain_depth: 100               # exceptions visited per chain
    """

    rate_limit_reasons: List[str] = field(
        default_factory=lambda: sorted(reasons_for("rate_limited"))
    )
    rate_limit_domains: List[str] = field(
        default_factory=lambda: sorted(RATE_LIMIT_DOMAINS)
    )
    resource_not_ready_reasons: List[str] = field(
        default_factory=lambda: sorted(reasons_for("resource_not_ready"))
    )
    quota_reasons: List[str] = field(
        default_factory=lambda: sorted(reasons_for("quota_exceeded"))
    )
    max_chain_depth: int = DEFAULT_MAX_CHAIN_DEPTH

    def validate(self) -> None:
        """Validate configuration for correctness and constraints."""
        for key in (
            "rate_limit_reasons",
            "rate_limit_domains",
            "resource_not_ready_reasons",
            "quota_reasons",
        ):
            values = getattr(self, key)
            if not isinstance(values, list) or not values:
                raise ValueError(f"{CONFIG_SECTION}: {key} must be a non-empty list")
            if not all(isinstance(value, str) and value for value in values):
                raise ValueError(
                    f"{CONFIG_SECTION}: {key} must contain non-empty strings, got {values}"
                )

        if self.max_chain_depth <= 0:
            raise ValueError(
                f"{CONFIG_SECTION}: max_chain_depth must be > 0, got {self.max_chain_depth}"
            )

    def create_extractor(self) -> ApiErrorExtractor:
        return ApiErrorExtractor.from_config(self)


def load_config(
    config_path: Optional[Path] = None,
    overrides: Optional[Dict[str, Any]] = None,
) -> ExtractorConfig:
    """Load extractor configuration from a YAML file.

    Missing keys fall back to the built-in defaults.

    Environment variables ARE supported using ${VAR_NAME} syntax in YAML files.
    """
    if config_path is None:
        config_path = DEFAULT_CONFIG_FILE

    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    logger.info("Loading configuration from file: %s", config_path)
    yaml_data = _expand_env_vars(load_yaml(config_path))

    section = yaml_data.get(CONFIG_SECTION, {})
    if not isinstance(section, dict):
        raise ValueError(
            f"Invalid config file: '{CONFIG_SECTION}:' must be a mapping, "
            f"got {type(section).__name__}"
        )

    if overrides:
        logger.debug("Applying overrides: %s", list(overrides.keys()))
        section = _deep_merge(section, overrides)

    defaults = ExtractorConfig()
    try:
        max_chain_depth = int(section.get("max_chain_depth", defaults.max_chain_depth))
    except (TypeError, ValueError) as e:
        raise ValueError(
            f"{CONFIG_SECTION}: max_chain_depth must be an integer, "
            f"got {section.get('max_chain_depth')!r}"
        ) from e

    config = ExtractorConfig(
        rate_limit_reasons=section.get("rate_limit_reasons", defaults.rate_limit_reasons),
        rate_limit_domains=section.get("rate_limit_domains", defaults.rate_limit_domains),
        resource_not_ready_reasons=section.get(
            "resource_not_ready_reasons", defaults.resource_not_ready_reasons
        ),
        quota_reasons=section.get("quota_reasons", defaults.quota_reasons),
        max_chain_depth=max_chain_depth,
    )
    config.validate()
    return config


# Singleton instance
_extractor_config: Optional[ExtractorConfig] = None


def get_config() -> ExtractorConfig:
    """Get or load the singleton extractor config instance."""
    global _extractor_config
    if _extractor_config is None:
        _extractor_config = load_config()
    return _extractor_config


def set_config(config: ExtractorConfig) -> None:
    """Set the singleton extractor config instance (useful for testing)."""
    global _extractor_config
    _extractor_config = config


def reset_config() -> None:
    """Reset the singleton config instance (forces reload on next get_config() call)."""
    global _extractor_config
    _extractor_config = None
