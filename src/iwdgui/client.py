"""
Bus client facade for iwd.
Every operation opens its own bus connection, performs its calls and closes
the connection again before returning.
"""

import logging
from typing import Callable, List, Optional

from iwdgui.agent import CredentialAgent
from iwdgui.bus.constants import (
    KNOWN_NETWORK_IFACE,
    NETWORK_IFACE,
    STATION_IFACE,
)
from iwdgui.bus.transport import BusTransport
from iwdgui.catalog import CatalogReader
from iwdgui.models import AdapterInfo, KnownNetwork, VisibleNetwork
from iwdgui.registration import AgentRegistration

logger = logging.getLogger(__name__)

TransportFactory = Callable[[], BusTransport]


def default_transport_factory() -> BusTransport:
    """Open a connection to the system bus."""
    from iwdgui.bus.gio_transport import GioBusTransport
    return GioBusTransport()


def reconcile_selection(
        adapters: List[AdapterInfo],
        selected: Optional[str]) -> Optional[str]:
    """Return ``selected`` if it is still among ``adapters``, else None."""
    if selected is None:
        return None
    if any(adapter.path == selected for adapter in adapters):
        return selected
    logger.info(f"Selected device {selected} disappeared; clearing selection")
    return None


class IwdClient:
    """
    Control surface over iwd used by the presentation layer.

    All methods either return a value or raise IwdGuiError with a
    descriptive message; nothing is partially applied.
    """

    def __init__(self, transport_factory: Optional[TransportFactory] = None):
        """
        Args:
            transport_factory: Callable returning a fresh BusTransport
                (defaults to a Gio system-bus connection)
        """
        self.transport_factory = transport_factory or default_transport_factory

    def _open(self) -> BusTransport:
        return self.transport_factory()

    def list_adapters(self) -> List[AdapterInfo]:
        """List wireless devices sorted by name."""
        with self._open() as bus:
            return CatalogReader(bus).adapters()

    def list_visible_networks(
            self,
            selected_adapter: Optional[str] = None) -> List[VisibleNetwork]:
        """List networks in range, optionally limited to one device."""
        with self._open() as bus:
            return CatalogReader(bus).visible_networks(selected_adapter)

    def list_known_networks(self) -> List[KnownNetwork]:
        """List networks iwd remembers, sorted by name."""
        with self._open() as bus:
            return CatalogReader(bus).known_networks()

    def scan(self, adapter_path: str) -> None:
        """Ask a station to scan; returns without waiting for results."""
        with self._open() as bus:
            bus.call_method(adapter_path, STATION_IFACE, "Scan")
        logger.info(f"Scan requested on {adapter_path}")

    def connect(self, network_path: str, secret: Optional[str] = None) -> None:
        """
        Connect to a visible network.

        With a secret, a credential agent is registered for the duration of
        the call so iwd can ask for the passphrase. Without one, iwd has to
        use what it already knows.

        Args:
            network_path: Object path of the network
            secret: Passphrase to answer iwd's prompts with
        """
        with self._open() as bus:
            if secret is None:
                bus.call_method(network_path, NETWORK_IFACE, "Connect")
            else:
                with AgentRegistration(bus, CredentialAgent(secret)):
                    bus.call_method(network_path, NETWORK_IFACE, "Connect")
        logger.info(f"Connected to {network_path}")

    def forget(self, known_path: str) -> None:
        """Remove a known network from iwd."""
        with self._open() as bus:
            bus.call_method(known_path, KNOWN_NETWORK_IFACE, "Forget")
        logger.info(f"Forgot known network {known_path}")

    def set_auto_connect(self, known_path: str, enabled: bool) -> None:
        """Enable or disable automatic connection for a known network."""
        with self._open() as bus:
            bus.set_property(known_path, KNOWN_NETWORK_IFACE, "AutoConnect",
                             bool(enabled))
        logger.info(f"AutoConnect for {known_path} set to {enabled}")
