"""
Package: config
Description: SDK configuration models.
"""

from .settings import DEFAULT_BASE_URL, QueueSettings, Settings

__all__ = [
    "DEFAULT_BASE_URL",
    "QueueSettings",
    "Settings",
]
