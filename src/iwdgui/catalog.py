"""
Object catalog reader for iwd.
Reads the daemon's object tree in one round trip and turns objects into
domain records according to the interfaces they implement.
"""

import logging
from typing import Any, Dict, List, Optional

from iwdgui.bus.constants import (
    DEVICE_IFACE,
    KNOWN_NETWORK_IFACE,
    NETWORK_IFACE,
)
from iwdgui.bus.transport import BusTransport, ManagedObjects, PropertyBag
from iwdgui.errors import CatalogError
from iwdgui.models import (
    PLACEHOLDER,
    AdapterInfo,
    KnownNetwork,
    VisibleNetwork,
    format_signal,
)

logger = logging.getLogger(__name__)

_MISSING = object()


def _required(props: PropertyBag, name: str, what: str, path: str) -> Any:
    value = props.get(name, _MISSING)
    if value is _MISSING or value is None:
        raise CatalogError(f"Failed to read {what} name at {path}")
    return value


def _objects_with(catalog: ManagedObjects, interface: str) -> Dict[str, PropertyBag]:
    return {
        path: interfaces[interface]
        for path, interfaces in catalog.items()
        if interface in interfaces
    }


class CatalogReader:
    """
    Classifies iwd objects into adapters, visible networks and known networks.

    Required properties (names) abort the whole listing when missing; optional
    ones fall back to placeholders so one sparse object does not hide the rest.
    """

    def __init__(self, transport: BusTransport):
        """
        Args:
            transport: Open bus connection to read from
        """
        self.transport = transport

    def read_catalog(self) -> ManagedObjects:
        """
        Fetch every iwd object with its interfaces and properties.

        Returns:
            Mapping of object path -> interface name -> property bag

        Raises:
            BusError: If the daemon cannot be queried
        """
        catalog = self.transport.get_managed_objects()
        logger.debug(f"Catalog read: {len(catalog)} objects")
        return catalog

    def adapters(self, catalog: Optional[ManagedObjects] = None) -> List[AdapterInfo]:
        """
        List wireless devices sorted by name.

        Raises:
            CatalogError: If a device has no name
        """
        if catalog is None:
            catalog = self.read_catalog()

        adapters = [
            AdapterInfo(name=str(_required(props, "Name", "device", path)),
                        path=path)
            for path, props in _objects_with(catalog, DEVICE_IFACE).items()
        ]
        adapters.sort(key=lambda a: (a.name, a.path))
        return adapters

    def visible_networks(
            self,
            selected_adapter: Optional[str] = None,
            catalog: Optional[ManagedObjects] = None) -> List[VisibleNetwork]:
        """
        List networks in range, sorted by SSID.

        Args:
            selected_adapter: Device path to filter on. Networks whose device
                cannot be resolved are always kept.
            catalog: Previously read catalog to reuse

        Raises:
            CatalogError: If a network has no name
        """
        if catalog is None:
            catalog = self.read_catalog()

        networks = []
        for path, props in _objects_with(catalog, NETWORK_IFACE).items():
            ssid = str(_required(props, "Name", "network", path))
            device_path = props.get("Device")
            device_path = str(device_path) if device_path else None

            if (selected_adapter is not None and device_path is not None
                    and device_path != selected_adapter):
                continue

            signal_dbm = int(props.get("Signal", 0) or 0)
            networks.append(VisibleNetwork(
                ssid=ssid,
                security=str(props.get("Type", PLACEHOLDER)),
                signal=format_signal(signal_dbm),
                signal_dbm=signal_dbm,
                connected=bool(props.get("Connected", False)),
                path=path,
                device_path=device_path,
            ))

        networks.sort(key=lambda n: (n.ssid, n.path))
        return networks

    def known_networks(
            self,
            catalog: Optional[ManagedObjects] = None) -> List[KnownNetwork]:
        """
        List networks iwd remembers, sorted by name.

        AutoConnect and Hidden stay None when iwd does not report them.

        Raises:
            CatalogError: If a known network has no name
        """
        if catalog is None:
            catalog = self.read_catalog()

        known = []
        for path, props in _objects_with(catalog, KNOWN_NETWORK_IFACE).items():
            autoconnect = props.get("AutoConnect")
            hidden = props.get("Hidden")
            known.append(KnownNetwork(
                name=str(_required(props, "Name", "known network", path)),
                network_type=str(props.get("Type", PLACEHOLDER)),
                autoconnect=None if autoconnect is None else bool(autoconnect),
                hidden=None if hidden is None else bool(hidden),
                path=path,
            ))

        known.sort(key=lambda k: (k.name, k.path))
        return known
