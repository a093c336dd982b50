"""
Local package for the OVPN Manager.

This package provides the application-level configuration through the
app_globals object, and the connection controller built on top of it.
"""

from .config import effective_settings as app_globals

__all__ = ["app_globals"]
