"""Expose dependency helpers for FastAPI routers."""

from .clients import (
    RelayServices,
    build_services,
    get_artifact_store,
    get_handoff_service,
    get_session_resolver,
    get_token_service,
)
from .config import SettingsDependency, get_app_settings

__all__ = [
    "RelayServices",
    "SettingsDependency",
    "build_services",
    "get_app_settings",
    "get_artifact_store",
    "get_handoff_service",
    "get_session_resolver",
    "get_token_service",
]
