"""
Unit tests for the Gio transport.
The GObject introspection modules are replaced with mocks so the tests run
without a system bus.
"""

from unittest.mock import MagicMock, patch

import pytest

from iwdgui.agent import CredentialAgent
from iwdgui.bus.constants import (
    AGENT_MANAGER_IFACE,
    ERROR_CANCELED,
    IWD_SERVICE,
    OBJECT_MANAGER_IFACE,
    PROPERTIES_IFACE,
)
from iwdgui.errors import BusError


class FakeGLibError(Exception):
    """Stands in for GLib.Error."""

    def __init__(self, message):
        super().__init__(message)
        self.message = message


@pytest.fixture
def gi_modules():
    gio = MagicMock(name="Gio")
    glib = MagicMock(name="GLib")
    glib.Error = FakeGLibError
    gio.DBusError.get_remote_error.return_value = None
    return gio, glib


@pytest.fixture
def transport(gi_modules):
    with patch('iwdgui.bus.gio_transport._load_gio', return_value=gi_modules):
        from iwdgui.bus.gio_transport import GioBusTransport
        yield GioBusTransport()


def connection(gi_modules):
    gio, _ = gi_modules
    return gio.DBusConnection.new_for_address_sync.return_value


class TestConnection:
    """Test connection setup."""

    def test_opens_private_system_bus_connection(self, gi_modules, transport):
        gio, _ = gi_modules
        gio.dbus_address_get_for_bus_sync.assert_called_once_with(
            gio.BusType.SYSTEM, None)
        assert gio.DBusConnection.new_for_address_sync.called

    def test_connect_failure_raises_bus_error(self, gi_modules):
        gio, _ = gi_modules
        gio.dbus_address_get_for_bus_sync.side_effect = FakeGLibError(
            "Could not connect: No such file or directory")
        with patch('iwdgui.bus.gio_transport._load_gio', return_value=gi_modules):
            from iwdgui.bus.gio_transport import GioBusTransport
            with pytest.raises(BusError, match="system bus"):
                GioBusTransport()

    def test_close_closes_connection(self, gi_modules, transport):
        transport.close()
        connection(gi_modules).close_sync.assert_called_once_with(None)


class TestCalls:
    """Test method calls and property writes."""

    def test_get_managed_objects(self, gi_modules, transport):
        objects = {"/net/connman/iwd/0": {"net.connman.iwd.Device": {"Name": "wlan0"}}}
        conn = connection(gi_modules)
        conn.call_sync.return_value.unpack.return_value = (objects,)

        assert transport.get_managed_objects() == objects
        args = conn.call_sync.call_args[0]
        assert args[:4] == (IWD_SERVICE, "/", OBJECT_MANAGER_IFACE, "GetManagedObjects")

    def test_call_method_packs_arguments(self, gi_modules, transport):
        _, glib = gi_modules
        conn = connection(gi_modules)
        conn.call_sync.return_value.unpack.return_value = ()

        transport.call_method("/net/connman/iwd", AGENT_MANAGER_IFACE,
                              "RegisterAgent", ("/org/iwdgui/agent",), "o")

        glib.Variant.assert_called_with("(o)", ("/org/iwdgui/agent",))
        args = conn.call_sync.call_args[0]
        assert args[1:4] == ("/net/connman/iwd", AGENT_MANAGER_IFACE, "RegisterAgent")
        assert args[4] is glib.Variant.return_value

    def test_call_without_arguments_sends_none(self, gi_modules, transport):
        _, glib = gi_modules
        conn = connection(gi_modules)
        conn.call_sync.return_value.unpack.return_value = ()
        transport.call_method("/net/1", "net.connman.iwd.Network", "Connect")
        assert conn.call_sync.call_args[0][4] is None
        # Connect waits for iwd however long it takes
        assert conn.call_sync.call_args[0][7] is glib.MAXINT

    def test_remote_error_is_wrapped(self, gi_modules, transport):
        gio, _ = gi_modules
        gio.DBusError.get_remote_error.return_value = "net.connman.iwd.Error.Failed"
        connection(gi_modules).call_sync.side_effect = FakeGLibError("Operation failed")

        with pytest.raises(BusError) as excinfo:
            transport.call_method("/net/1", "net.connman.iwd.Network", "Connect")

        assert str(excinfo.value) == "Operation failed"
        assert excinfo.value.dbus_name == "net.connman.iwd.Error.Failed"

    def test_set_property_bool(self, gi_modules, transport):
        _, glib = gi_modules
        conn = connection(gi_modules)

        transport.set_property("/k/1", "net.connman.iwd.KnownNetwork",
                               "AutoConnect", True)

        glib.Variant.assert_any_call("b", True)
        args = conn.call_sync.call_args[0]
        assert args[2:4] == (PROPERTIES_IFACE, "Set")

    def test_set_property_rejects_unknown_type(self, transport):
        with pytest.raises(BusError):
            transport.set_property("/k/1", "iface", "Name", object())


class TestAgentExport:
    """Test publishing the agent and dispatching its calls."""

    def test_export_and_unexport(self, gi_modules, transport):
        conn = connection(gi_modules)
        conn.register_object.return_value = 7
        conn.unregister_object.return_value = True

        transport.export_object("/org/iwdgui/agent", CredentialAgent("x"))

        assert conn.register_object.call_args[0][0] == "/org/iwdgui/agent"
        assert transport.unexport_object("/org/iwdgui/agent") is True
        conn.unregister_object.assert_called_once_with(7)
        assert transport.unexport_object("/org/iwdgui/agent") is False
        transport.close()

    def test_double_export_rejected(self, gi_modules, transport):
        connection(gi_modules).register_object.return_value = 1
        transport.export_object("/org/iwdgui/agent", CredentialAgent("x"))
        with pytest.raises(BusError):
            transport.export_object("/org/iwdgui/agent", CredentialAgent("y"))
        transport.close()

    def test_dispatch_returns_secret(self, gi_modules, transport):
        _, glib = gi_modules
        invocation = MagicMock()
        parameters = MagicMock()
        parameters.unpack.return_value = ("/net/1",)

        transport._dispatch(CredentialAgent("hunter2"), "RequestPassphrase",
                            parameters, invocation)

        glib.Variant.assert_called_with("(s)", ("hunter2",))
        invocation.return_value.assert_called_once_with(glib.Variant.return_value)

    def test_dispatch_blank_secret_is_canceled(self, transport):
        invocation = MagicMock()
        parameters = MagicMock()
        parameters.unpack.return_value = ("/net/1",)

        transport._dispatch(CredentialAgent(""), "RequestPassphrase",
                            parameters, invocation)

        name, message = invocation.return_dbus_error.call_args[0]
        assert name == ERROR_CANCELED
        assert "empty" in message
        invocation.return_value.assert_not_called()

    def test_dispatch_release_returns_nothing(self, transport):
        invocation = MagicMock()
        transport._dispatch(CredentialAgent("x"), "Release", None, invocation)
        invocation.return_value.assert_called_once_with(None)

    def test_dispatch_unknown_method(self, transport):
        invocation = MagicMock()
        transport._dispatch(CredentialAgent("x"), "Frobnicate", None, invocation)
        assert invocation.return_dbus_error.call_args[0][0] == \
            "org.freedesktop.DBus.Error.UnknownMethod"

    def test_agent_registered_before_loop_starts(self, gi_modules, transport):
        _, glib = gi_modules
        events = []
        context = glib.MainContext.new.return_value
        context.push_thread_default.side_effect = lambda: events.append("push")
        context.pop_thread_default.side_effect = lambda: events.append("pop")
        conn = connection(gi_modules)
        conn.register_object.side_effect = \
            lambda *args: events.append("register") or len(events)
        thread_cls = MagicMock()
        thread_cls.return_value.start.side_effect = lambda: events.append("start")
        thread_cls.return_value.join.side_effect = lambda: events.append("join")

        with patch('iwdgui.bus.gio_transport.threading.Thread', thread_cls):
            transport.export_object("/org/iwdgui/agent", CredentialAgent("x"))
            transport.export_object("/org/iwdgui/other", CredentialAgent("y"))

            assert events == [
                "push", "register", "pop", "start",
                "join", "push", "register", "pop", "start",
            ]
            glib.MainContext.new.assert_called_once_with()
            transport.close()
