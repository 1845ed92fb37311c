import os
import re
from pathlib import Path
from typing import Any, cast

import structlog
import yaml  # type: ignore[import-untyped]

_logger = structlog.get_logger()

# $(VAR) or $(VAR:-fallback)
_ENV_PATTERN = re.compile(r"\$\(([A-Za-z_][A-Za-z0-9_]*)(?::-([^)]*))?\)")


def _expand(value: Any, required_vars: set[str]) -> Any:
    """Recursively substitute ``$(VAR)`` placeholders with environment values.

    A placeholder may carry an inline fallback, ``$(VAR:-default)``, used
    when the variable is unset. Variables listed in *required_vars* must be
    present in the environment; a missing one raises :class:`ValueError`.
    """

    def _substitute(match: re.Match[str]) -> str:
        name, fallback = match.group(1), match.group(2)
        found = os.getenv(name)
        if found is not None:
            return found
        if name in required_vars:
            raise ValueError(f"Missing required environment variable: {name}")
        return fallback or ""

    if isinstance(value, str):
        return _ENV_PATTERN.sub(_substitute, value)
    if isinstance(value, dict):
        return {key: _expand(item, required_vars) for key, item in value.items()}
    if isinstance(value, list):
        return [_expand(item, required_vars) for item in value]
    return value


def load_yaml_config(
    config_path: Path,
    defaults: dict[str, Any] | None = None,
    required_vars: set[str] | None = None,
) -> dict[str, Any]:
    """Read a YAML mapping from *config_path* with env placeholders resolved.

    Args:
        config_path: Path to the YAML file.
        defaults: Returned when the file does not exist.
        required_vars: Environment variable names that must be set.
    """
    if not config_path.exists():
        _logger.warning("config_not_found", path=str(config_path))
        return dict(defaults or {})

    with open(config_path, encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}

    if not isinstance(raw, dict):
        raise ValueError(f"Config file {config_path} must contain a mapping at the top level")

    return cast(dict[str, Any], _expand(raw, required_vars or set()))
