"""Load resource-layer configuration from `.digivent/config.yaml` and the environment."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Literal, Mapping, Optional

from .constants import CONFIG_FILE, DEFAULT_REMOTE_TIMEOUT, STATE_DIR_NAME
from .io_utils import _load_data_with_error

BackendMode = Literal["local", "remote"]

ENV_PREFIX = "DIGIVENT"


def _k(suffix: str) -> str:
    return f"{ENV_PREFIX}_{suffix}"


@dataclass(frozen=True)
class AppConfig:
    """Resolved configuration for one :class:`~digivent.context.AppContext`."""

    state_dir: Path
    backend_url: Optional[str] = None
    remote_timeout: float = DEFAULT_REMOTE_TIMEOUT
    seed_demo_data: bool = True
    log_level: str = "INFO"
    strict_transitions: bool = False
    event_budgets: dict[str, float] = field(default_factory=dict)
    error: Optional[str] = None

    @property
    def mode(self) -> BackendMode:
        """``remote`` when a backend URL is configured, otherwise ``local``."""
        return "remote" if self.backend_url else "local"


def _as_dict(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_bool(raw: Any, default: bool) -> bool:
    if isinstance(raw, bool):
        return raw
    if raw is None:
        return default
    return str(raw).strip().lower() in {"1", "true", "yes", "y", "on"}


def _as_float(raw: Any, default: float) -> float:
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        return default
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return default
    return value if value > 0 else default


def _event_budgets(raw: Any) -> dict[str, float]:
    out: dict[str, float] = {}
    for key, value in _as_dict(raw).items():
        if not str(key).strip():
            continue
        try:
            out[str(key)] = float(value)
        except (TypeError, ValueError):
            continue
    return out


def load_app_config(
    state_dir: Optional[Path] = None,
    *,
    env: Optional[Mapping[str, str]] = None,
) -> AppConfig:
    """Load the optional config file and apply environment overrides.

    Args:
        state_dir: State directory; defaults to ``$DIGIVENT_STATE_DIR`` or
            ``./.digivent``.
        env: Environment mapping (defaults to ``os.environ``).

    Returns:
        An :class:`AppConfig`. If the file is malformed, defaults are used and
        the parse error is reported in ``AppConfig.error``.
    """
    env = os.environ if env is None else env
    if state_dir is None:
        raw_dir = (env.get(_k("STATE_DIR")) or "").strip()
        state_dir = Path(raw_dir).expanduser() if raw_dir else Path(STATE_DIR_NAME)
    state_dir = Path(state_dir)

    data, err = _load_data_with_error(state_dir / CONFIG_FILE, {})
    backend_cfg = _as_dict(data.get("backend"))

    backend_url = str(backend_cfg.get("url") or "").strip() or None
    remote_timeout = _as_float(backend_cfg.get("timeout"), DEFAULT_REMOTE_TIMEOUT)
    seed_demo_data = _as_bool(data.get("seed_demo_data"), True)
    log_level = str(_as_dict(data.get("logging")).get("level") or "INFO")
    strict_transitions = _as_bool(_as_dict(data.get("workflow")).get("strict_transitions"), False)

    env_url = env.get(_k("BACKEND_URL"))
    if env_url is not None:
        backend_url = env_url.strip() or None
    remote_timeout = _as_float(env.get(_k("REMOTE_TIMEOUT")), remote_timeout)
    seed_demo_data = _as_bool(env.get(_k("SEED_DEMO_DATA")), seed_demo_data)
    log_level = (env.get(_k("LOG_LEVEL")) or log_level).strip().upper() or "INFO"
    strict_transitions = _as_bool(env.get(_k("STRICT_TRANSITIONS")), strict_transitions)

    return AppConfig(
        state_dir=state_dir,
        backend_url=backend_url,
        remote_timeout=remote_timeout,
        seed_demo_data=seed_demo_data,
        log_level=log_level,
        strict_transitions=strict_transitions,
        event_budgets=_event_budgets(data.get("event_budgets")),
        error=err,
    )
