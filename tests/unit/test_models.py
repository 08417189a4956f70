"""
Unit tests for the domain records.
"""

import pytest

from iwdgui.models import (
    PLACEHOLDER,
    AdapterInfo,
    CredentialRequest,
    KnownNetwork,
    VisibleNetwork,
    format_signal,
)


class TestFormatSignal:
    """Test signal rendering."""

    def test_zero_is_placeholder(self):
        assert format_signal(0) == PLACEHOLDER

    def test_negative_dbm(self):
        assert format_signal(-45) == "-45 dBm"


class TestRecords:
    """Test record defaults."""

    def test_visible_network_defaults(self):
        """Optional fields start at their placeholders."""
        network = VisibleNetwork(ssid="HomeNet")
        assert network.security == "-"
        assert network.signal == "-"
        assert network.connected is False
        assert network.device_path is None

    def test_known_network_flags_default_to_absent(self):
        known = KnownNetwork(name="HomeNet")
        assert known.autoconnect is None
        assert known.hidden is None

    def test_records_compare_by_value(self):
        assert AdapterInfo("wlan0", "/a/1") == AdapterInfo("wlan0", "/a/1")


class TestCredentialRequest:
    """Test credential request construction from user input."""

    @pytest.mark.parametrize("text", [None, "", "   ", "\t\n"])
    def test_blank_input_gives_no_request(self, text):
        assert CredentialRequest.from_input(text) is None

    def test_input_is_trimmed(self):
        request = CredentialRequest.from_input("  hunter2 ")
        assert request.secret == "hunter2"

    def test_repr_hides_secret(self):
        request = CredentialRequest("hunter2")
        assert "hunter2" not in repr(request)
