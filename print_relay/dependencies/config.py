"""
FastAPI dependency utilities for injecting configuration.
"""

from fastapi import Depends, Request

from print_relay.core.config import AppSettings


def get_app_settings(request: Request) -> AppSettings:
    """Settings the running application was built with."""
    return request.app.state.settings


SettingsDependency = Depends(get_app_settings)

__all__ = ["SettingsDependency", "get_app_settings"]
