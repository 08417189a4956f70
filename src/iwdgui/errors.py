"""
Error types raised by the iwd bus client.
Every public client operation fails with a single IwdGuiError carrying a
human-readable message.
"""

from typing import Optional


class IwdGuiError(RuntimeError):
    """Base class for client-side failures."""


class BusError(IwdGuiError):
    """The bus or the daemon could not complete a call."""

    def __init__(self, message: str, dbus_name: Optional[str] = None):
        """
        Args:
            message: Error text as reported by the transport
            dbus_name: Remote D-Bus error name, if the daemon sent one
        """
        super().__init__(message)
        self.dbus_name = dbus_name


class CatalogError(IwdGuiError):
    """A daemon object is missing a property it cannot be shown without."""
