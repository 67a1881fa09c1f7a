"""GymDesk studio data layer: cached gateway, change bus and billing schedules."""

from __future__ import annotations

from .config import BaseConfig
from .context import AppContext, create_app_context
from .services.data_client import DataClient

__all__ = ["AppContext", "BaseConfig", "DataClient", "create_app_context"]
