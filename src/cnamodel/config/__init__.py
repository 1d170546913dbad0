"""
Configuration for the CNA modeling tool.

Pydantic-based settings read from CNAMODEL_* environment variables or a
.env file.
"""

from cnamodel.config.settings import Settings, get_settings

__all__ = [
    "Settings",
    "get_settings",
]
