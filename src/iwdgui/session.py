"""
Session state behind the iwd-gui window.
Coordinates client calls for each user action and keeps the lists, the
current selections and the status line the UI displays.
"""

import logging
from typing import Any, Dict, List, Optional

from iwdgui.client import IwdClient, TransportFactory, reconcile_selection
from iwdgui.config import load_config, logging_settings
from iwdgui.errors import IwdGuiError
from iwdgui.logging import configure_logging
from iwdgui.models import (
    AdapterInfo,
    CredentialRequest,
    KnownNetwork,
    VisibleNetwork,
)

logger = logging.getLogger(__name__)


def _yes_no(value: Optional[bool]) -> str:
    if value is None:
        return "unknown"
    return "yes" if value else "no"


def format_known_network(known: KnownNetwork) -> str:
    """Render the details panel text for a known network."""
    return (
        f"Name: {known.name}\n"
        f"Type: {known.network_type}\n"
        f"AutoConnect: {_yes_no(known.autoconnect)}\n"
        f"Hidden: {_yes_no(known.hidden)}\n"
        f"Object: {known.path}"
    )


class IwdSession:
    """
    State shared between the window and the iwd client.

    Each action runs to completion before returning. A failed step sets the
    status line and leaves the previously loaded lists untouched.
    """

    def __init__(self, client: IwdClient):
        """
        Args:
            client: Bus client used for every action
        """
        self.client = client
        self.adapters: List[AdapterInfo] = []
        self.selected_adapter: Optional[str] = None
        self.visible_networks: List[VisibleNetwork] = []
        self.known_networks: List[KnownNetwork] = []
        self.selected_known: Optional[str] = None
        self.selected_known_details = ""
        self.selected_known_autoconnect: Optional[bool] = None
        self.status = "Ready"

    def set_status(self, status: str) -> None:
        self.status = status
        logger.info(f"Status: {status}")

    def selected_adapter_name(self) -> str:
        for adapter in self.adapters:
            if adapter.path == self.selected_adapter:
                return adapter.name
        return "(none)"

    def select_adapter(self, path: Optional[str]) -> None:
        self.selected_adapter = path

    def _clear_known_selection(self) -> None:
        self.selected_known = None
        self.selected_known_details = ""
        self.selected_known_autoconnect = None

    def refresh_all(self) -> bool:
        """
        Reload devices, visible networks and saved networks.

        Returns:
            True if everything was loaded
        """
        try:
            adapters = self.client.list_adapters()
        except IwdGuiError as e:
            self.set_status(f"Failed to list devices: {e}")
            return False

        self.adapters = adapters
        if not adapters:
            self.selected_adapter = None
            self.set_status("No wireless devices found")
        elif self.selected_adapter is None:
            self.selected_adapter = adapters[0].path
        else:
            self.selected_adapter = reconcile_selection(
                adapters, self.selected_adapter)

        try:
            visible = self.client.list_visible_networks(self.selected_adapter)
        except IwdGuiError as e:
            self.set_status(f"Failed to load visible networks: {e}")
            return False
        self.visible_networks = visible

        try:
            known = self.client.list_known_networks()
        except IwdGuiError as e:
            self.set_status(f"Failed to load saved networks: {e}")
            return False
        self.known_networks = known

        if self.selected_known is not None:
            found = self.find_known(self.selected_known)
            if found is not None:
                self.selected_known_details = format_known_network(found)
                self.selected_known_autoconnect = found.autoconnect
            else:
                self._clear_known_selection()

        self.set_status(
            f"Loaded {len(self.adapters)} device(s), "
            f"{len(self.visible_networks)} visible network(s), "
            f"{len(self.known_networks)} saved network(s)")
        return True

    def scan(self) -> bool:
        """Request a scan on the selected device, then refresh."""
        if self.selected_adapter is None:
            self.set_status("Select a device first")
            return False

        try:
            self.client.scan(self.selected_adapter)
        except IwdGuiError as e:
            self.set_status(f"Scan failed: {e}")
            return False

        self.set_status("Scan requested")
        self.refresh_all()
        return True

    def find_visible(self, ssid: str) -> Optional[VisibleNetwork]:
        """Find a visible network by SSID on the selected device."""
        for network in self.visible_networks:
            if network.ssid != ssid:
                continue
            if (self.selected_adapter is None or network.device_path is None
                    or network.device_path == self.selected_adapter):
                return network
        return None

    def find_known(self, path: str) -> Optional[KnownNetwork]:
        for known in self.known_networks:
            if known.path == path:
                return known
        return None

    def connect(self, ssid: str, passphrase: str = "") -> bool:
        """
        Connect to a visible network by SSID.

        Args:
            ssid: SSID as typed or picked by the user
            passphrase: Passphrase field contents; blank means none
        """
        ssid = ssid.strip()
        if not ssid:
            self.set_status("SSID cannot be empty")
            return False

        network = self.find_visible(ssid)
        if network is None:
            self.set_status("Selected SSID not found in visible list")
            return False

        request = CredentialRequest.from_input(passphrase)
        try:
            self.client.connect(
                network.path, request.secret if request else None)
        except IwdGuiError as e:
            self.set_status(f"Connection failed: {e}")
            return False

        self.set_status(f"Connect requested for `{network.ssid}`")
        self.refresh_all()
        return True

    def select_known(self, known: KnownNetwork) -> None:
        self.selected_known = known.path
        self.selected_known_autoconnect = known.autoconnect
        self.selected_known_details = format_known_network(known)
        self.set_status(f"Loaded saved network details for `{known.name}`")

    def forget(self, known: KnownNetwork) -> bool:
        """Forget a saved network, then refresh."""
        try:
            self.client.forget(known.path)
        except IwdGuiError as e:
            self.set_status(f"Failed to forget `{known.name}`: {e}")
            return False

        if self.selected_known == known.path:
            self._clear_known_selection()
        self.set_status(f"Forgot saved network `{known.name}`")
        self.refresh_all()
        return True

    def set_auto_connect(self, enabled: bool) -> bool:
        """Toggle AutoConnect on the selected saved network, then refresh."""
        if self.selected_known is None:
            self.set_status("Select a saved network first")
            return False

        try:
            self.client.set_auto_connect(self.selected_known, enabled)
        except IwdGuiError as e:
            self.set_status(f"Failed to update AutoConnect: {e}")
            return False

        self.set_status("Updated AutoConnect")
        self.refresh_all()
        return True

    def get_status(self) -> Dict[str, Any]:
        """Get session state for diagnostics."""
        return {
            'status': self.status,
            'adapters': len(self.adapters),
            'selected_adapter': self.selected_adapter,
            'visible_networks': len(self.visible_networks),
            'known_networks': len(self.known_networks),
            'selected_known': self.selected_known,
        }


def create_session(
        config_path: Optional[str] = None,
        transport_factory: Optional[TransportFactory] = None) -> IwdSession:
    """
    Build a session from the user's configuration.

    Args:
        config_path: Configuration file (defaults to $IWDGUI_CONFIG or
            ~/.config/iwd-gui/config.yaml)
        transport_factory: Bus transport factory (defaults to the system bus)
    """
    settings = logging_settings(load_config(config_path))
    configure_logging(
        log_level=settings['level'],
        log_file=settings['file'],
        console_output=settings['console'])
    return IwdSession(IwdClient(transport_factory))
