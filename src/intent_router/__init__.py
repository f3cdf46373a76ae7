"""Intent routing agent package."""

from .config import AppSettings, IntentRoutingConfig

__all__ = ["AppSettings", "IntentRoutingConfig"]
