"""Provide the public `digivent` package exports."""

from __future__ import annotations

from .access import AccessDecision, decide_access
from .config import AppConfig, load_app_config
from .context import AppContext
from .results import AppError, ErrorKind, Result

__all__ = [
    "AccessDecision",
    "AppConfig",
    "AppContext",
    "AppError",
    "ErrorKind",
    "Result",
    "decide_access",
    "load_app_config",
]
