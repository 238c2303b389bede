"""
Integration with the desktop session (start at login).
"""

from .autostart import AutostartError, AutostartRegistrar

__all__ = ["AutostartError", "AutostartRegistrar"]
