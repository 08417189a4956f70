"""
Plain records describing what iwd exposes on the bus.
Records are rebuilt from scratch on every catalog read and never hold a
live bus handle; the object path is the only cross-reference.
"""

from dataclasses import dataclass
from typing import Optional

# Shown wherever the daemon did not report a value
PLACEHOLDER = "-"


def format_signal(signal_dbm: int) -> str:
    """Render a raw dBm reading, using the placeholder for zero."""
    if signal_dbm == 0:
        return PLACEHOLDER
    return f"{signal_dbm} dBm"


@dataclass
class AdapterInfo:
    """A wireless device managed by iwd."""
    name: str
    path: str


@dataclass
class VisibleNetwork:
    """A network currently seen by a station."""
    ssid: str
    security: str = PLACEHOLDER
    signal: str = PLACEHOLDER
    signal_dbm: int = 0
    connected: bool = False
    path: str = ""
    device_path: Optional[str] = None


@dataclass
class KnownNetwork:
    """A network iwd has joined before and kept configuration for."""
    name: str
    network_type: str = PLACEHOLDER
    autoconnect: Optional[bool] = None
    hidden: Optional[bool] = None
    path: str = ""


@dataclass
class CredentialRequest:
    """Secret typed by the user for a single connection attempt."""
    secret: str

    @classmethod
    def from_input(cls, text: Optional[str]) -> Optional["CredentialRequest"]:
        """
        Build a request from raw text-field input.

        Blank input means the caller has no credential to offer, so no
        request is created at all.
        """
        if text is None or not text.strip():
            return None
        return cls(secret=text.strip())

    def __repr__(self) -> str:
        return "CredentialRequest(secret=<hidden>)"
