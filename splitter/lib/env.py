"""Environment helpers for configuration files.

Expands ``${VAR}`` and ``${VAR:-default}`` references in YAML settings
and loads ``.env`` files via python-dotenv.
"""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Any, Dict, Optional, Union

from dotenv import load_dotenv

__all__ = ["expand_env_vars", "expand_options", "load_env_file"]

# ${NAME} or ${NAME:-fallback}
ENV_VAR_PATTERN = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)(?::-([^}]*))?\}")


def load_env_file(
    path: Optional[Union[str, Path]] = None,
    *,
    override: bool = False,
) -> bool:
    """Load variables from a .env file into ``os.environ``.

    Args:
        path: .env file to load; None searches the working directory
            and its parents.
        override: Replace variables that are already set.

    Returns:
        True if a file was found and loaded.
    """
    return load_dotenv(dotenv_path=path, override=override)


def expand_env_vars(value: str, *, strict: bool = False) -> str:
    """Substitute environment variables in ``value``.

    Example:
        >>> os.environ["SPLIT_DELIM"] = "|"
        >>> expand_env_vars("${SPLIT_DELIM}")
        '|'
        >>> expand_env_vars("${MISSING:-,}")
        ','

    Raises:
        KeyError: In strict mode, for an unset variable without a default.
    """

    def replace(match: re.Match[str]) -> str:
        name, default = match.group(1), match.group(2)
        if name in os.environ:
            return os.environ[name]
        if default is not None:
            return default
        if strict:
            raise KeyError(f"Environment variable not set: {name}")
        return match.group(0)

    return ENV_VAR_PATTERN.sub(replace, value)


def expand_options(options: Dict[str, Any], *, strict: bool = False) -> Dict[str, Any]:
    """Return a copy of ``options`` with env references expanded in all strings."""

    def expand(item: Any) -> Any:
        if isinstance(item, str):
            return expand_env_vars(item, strict=strict)
        if isinstance(item, dict):
            return {k: expand(v) for k, v in item.items()}
        if isinstance(item, list):
            return [expand(v) for v in item]
        return item

    return {key: expand(value) for key, value in options.items()}
