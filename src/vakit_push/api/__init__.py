"""Web API layer."""

from vakit_push.api.app import create_app
from vakit_push.api.dependencies import build_app_state, get_app_state

__all__ = ["build_app_state", "create_app", "get_app_state"]
