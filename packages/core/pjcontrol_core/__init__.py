"""Core services: configuration, logging, status polling, and the projector service."""

from .config import AppConfig, load_config, save_config
from .poller import StatusPoller
from .service import ProjectorService, ServiceStatus

__all__ = [
    "AppConfig",
    "ProjectorService",
    "ServiceStatus",
    "StatusPoller",
    "load_config",
    "save_config",
]
