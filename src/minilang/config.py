"""
Environment-driven settings for minilang.

    MINILANG_MAX_CALL_DEPTH      nested user-function calls allowed (default 100)
    MINILANG_PERMISSIVE_LEAVES   1/true/yes: error leaves evaluate to Nothing
    MINILANG_CHECK_TYPES         1/true/yes: check arguments and results against annotations
    MINILANG_LOG_LEVEL           logging level used by the CLI (default WARNING)
"""

import logging
import os
from dataclasses import dataclass
from typing import Mapping, Optional

ENV_MAX_CALL_DEPTH = "MINILANG_MAX_CALL_DEPTH"
ENV_PERMISSIVE_LEAVES = "MINILANG_PERMISSIVE_LEAVES"
ENV_CHECK_TYPES = "MINILANG_CHECK_TYPES"
ENV_LOG_LEVEL = "MINILANG_LOG_LEVEL"

_TRUE_VALUES = ("1", "true", "yes", "on")
_FALSE_VALUES = ("", "0", "false", "no", "off")


def _parse_flag(name: str, raw: str) -> bool:
    value = raw.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise ValueError(f"{name} must be a boolean flag, got {raw!r}")


@dataclass(frozen=True)
class Settings:
    """Interpreter settings."""
    max_call_depth: int = 100
    # Evaluate error leaves (and other non-value tokens) to Nothing instead
    # of raising InvalidExpressionError.
    permissive_leaves: bool = False
    # Check call arguments and declared return types against annotations.
    check_types: bool = False
    log_level: str = "WARNING"

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        """
        Build settings from environment variables, falling back to defaults.

        Raises:
            ValueError: If a variable is set to a malformed value
        """
        env = os.environ if environ is None else environ
        defaults = cls()

        max_call_depth = defaults.max_call_depth
        raw = env.get(ENV_MAX_CALL_DEPTH)
        if raw is not None and raw.strip():
            try:
                max_call_depth = int(raw)
            except ValueError:
                raise ValueError(f"{ENV_MAX_CALL_DEPTH} must be an integer, got {raw!r}") from None
            if max_call_depth < 1:
                raise ValueError(f"{ENV_MAX_CALL_DEPTH} must be at least 1, got {max_call_depth}")

        permissive_leaves = defaults.permissive_leaves
        raw = env.get(ENV_PERMISSIVE_LEAVES)
        if raw is not None:
            permissive_leaves = _parse_flag(ENV_PERMISSIVE_LEAVES, raw)

        check_types = defaults.check_types
        raw = env.get(ENV_CHECK_TYPES)
        if raw is not None:
            check_types = _parse_flag(ENV_CHECK_TYPES, raw)

        log_level = defaults.log_level
        raw = env.get(ENV_LOG_LEVEL)
        if raw is not None and raw.strip():
            log_level = raw.strip().upper()
            if not isinstance(logging.getLevelName(log_level), int):
                raise ValueError(f"{ENV_LOG_LEVEL} must be a logging level name, got {raw!r}")

        return cls(
            max_call_depth=max_call_depth,
            permissive_leaves=permissive_leaves,
            check_types=check_types,
            log_level=log_level,
        )
