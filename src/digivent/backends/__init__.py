"""Backend strategies selected once per :class:`~digivent.context.AppContext`."""

from __future__ import annotations

from typing import Optional

from loguru import logger

from ..config import AppConfig
from ..storage import DurableStore
from .interfaces import AuthBackend, ResourceBackend, Scope
from .local import LocalAuthBackend, LocalResourceBackend
from .ports import AuthEvent, BackendClient, BackendError, BackendSession
from .remote import RemoteAuthBackend, RemoteResourceBackend, identity_from_session


def select_backends(
    config: AppConfig,
    durable: DurableStore,
    client: Optional[BackendClient] = None,
) -> tuple[ResourceBackend, AuthBackend]:
    """Pick the remote strategy when a client is available, else the local one."""
    if client is not None:
        logger.info("Using remote backend ({})", config.backend_url or "client supplied")
        return (
            RemoteResourceBackend(client, timeout=config.remote_timeout),
            RemoteAuthBackend(client, timeout=config.remote_timeout),
        )
    if config.mode == "remote":
        logger.warning("Backend URL {} configured but no client supplied; running in local mode", config.backend_url)
    return LocalResourceBackend(durable, seed=config.seed_demo_data), LocalAuthBackend()


__all__ = [
    "AuthBackend",
    "AuthEvent",
    "BackendClient",
    "BackendError",
    "BackendSession",
    "LocalAuthBackend",
    "LocalResourceBackend",
    "RemoteAuthBackend",
    "RemoteResourceBackend",
    "ResourceBackend",
    "Scope",
    "identity_from_session",
    "select_backends",
]
