"""
D-Bus transport backed by PyGObject's Gio bindings.

Each instance owns a private system-bus connection. Objects exported through
it are served on a dedicated GLib main loop thread, so iwd can call the
credential agent while the caller is blocked in a synchronous method call.
"""

import logging
import threading
from typing import Any, Dict, Optional

from iwdgui.agent import AgentError, AgentRequest
from iwdgui.bus.constants import (
    AGENT_INTROSPECTION_XML,
    IWD_ROOT_PATH,
    IWD_SERVICE,
    OBJECT_MANAGER_IFACE,
    PROPERTIES_IFACE,
)
from iwdgui.bus.transport import BusTransport, ManagedObjects
from iwdgui.errors import BusError

logger = logging.getLogger(__name__)

MANAGED_OBJECTS_TYPE = "(a{oa{sa{sv}}})"


def _load_gio():
    """Import the GObject introspection modules used by this transport."""
    try:
        import gi
        gi.require_version('Gio', '2.0')
        from gi.repository import Gio, GLib
    except (ImportError, ValueError) as e:
        raise BusError(f"PyGObject Gio bindings are not available: {e}") from e
    return Gio, GLib


def _variant_signature(value: Any) -> str:
    if isinstance(value, bool):
        return "b"
    if isinstance(value, int):
        return "i"
    if isinstance(value, str):
        return "s"
    raise BusError(f"Cannot send value of type {type(value).__name__}")


class GioBusTransport(BusTransport):
    """BusTransport implementation on a private Gio.DBusConnection."""

    def __init__(self):
        self.Gio, self.GLib = _load_gio()
        self._registrations: Dict[str, int] = {}
        self._context = None
        self._loop = None
        self._thread = None

        try:
            address = self.Gio.dbus_address_get_for_bus_sync(
                self.Gio.BusType.SYSTEM, None)
            self._conn = self.Gio.DBusConnection.new_for_address_sync(
                address,
                self.Gio.DBusConnectionFlags.AUTHENTICATION_CLIENT
                | self.Gio.DBusConnectionFlags.MESSAGE_BUS_CONNECTION,
                None,
                None)
        except self.GLib.Error as e:
            raise BusError(f"Failed to connect to the system bus: {e.message}") from e

        node_info = self.Gio.DBusNodeInfo.new_for_xml(AGENT_INTROSPECTION_XML)
        self._agent_interface = node_info.interfaces[0]
        logger.debug("System bus connection opened")

    def _wrap(self, error) -> BusError:
        dbus_name = self.Gio.DBusError.get_remote_error(error)
        if dbus_name:
            self.Gio.DBusError.strip_remote_error(error)
        return BusError(error.message, dbus_name=dbus_name)

    def _call(self, path: str, interface: str, method: str,
              params=None, reply_type: Optional[str] = None):
        try:
            return self._conn.call_sync(
                IWD_SERVICE,
                path,
                interface,
                method,
                params,
                self.GLib.VariantType.new(reply_type) if reply_type else None,
                self.Gio.DBusCallFlags.NONE,
                self.GLib.MAXINT,
                None)
        except self.GLib.Error as e:
            raise self._wrap(e) from e

    def get_managed_objects(self) -> ManagedObjects:
        reply = self._call(IWD_ROOT_PATH, OBJECT_MANAGER_IFACE,
                           "GetManagedObjects", reply_type=MANAGED_OBJECTS_TYPE)
        return reply.unpack()[0]

    def call_method(self, path, interface, method, args=(), signature=""):
        params = self.GLib.Variant(f"({signature})", tuple(args)) if args else None
        reply = self._call(path, interface, method, params)
        return reply.unpack() if reply is not None else ()

    def set_property(self, path, interface, name, value):
        params = self.GLib.Variant("(ssv)", (
            interface,
            name,
            self.GLib.Variant(_variant_signature(value), value)))
        self._call(path, PROPERTIES_IFACE, "Set", params)

    def export_object(self, path, agent):
        if path in self._registrations:
            raise BusError(f"An object is already exported at {path}")

        def on_method_call(connection, sender, object_path, interface_name,
                           method_name, parameters, invocation):
            self._dispatch(agent, method_name, parameters, invocation)

        # The loop thread owns the context while it runs, and pushing a
        # context owned by another thread fails. Register with the loop
        # stopped so incoming calls are bound to the private context.
        self._stop_dispatch_thread()
        if self._context is None:
            self._context = self.GLib.MainContext.new()

        self._context.push_thread_default()
        try:
            registration_id = self._conn.register_object(
                path, self._agent_interface, on_method_call, None, None)
        except self.GLib.Error as e:
            raise self._wrap(e) from e
        finally:
            self._context.pop_thread_default()
            self._start_dispatch_thread()

        self._registrations[path] = registration_id
        logger.debug(f"Exported agent object at {path}")

    def _dispatch(self, agent, method_name: str, parameters, invocation) -> None:
        request = AgentRequest.from_method(method_name)
        if request is None:
            invocation.return_dbus_error(
                "org.freedesktop.DBus.Error.UnknownMethod",
                f"Unknown method {method_name}")
            return

        args = parameters.unpack() if parameters is not None else ()
        try:
            reply = agent.handle(request, args)
        except AgentError as e:
            invocation.return_dbus_error(e.dbus_name, str(e))
            return

        if request.reply_signature:
            invocation.return_value(
                self.GLib.Variant(f"({request.reply_signature})", reply))
        else:
            invocation.return_value(None)

    def unexport_object(self, path):
        registration_id = self._registrations.pop(path, None)
        if registration_id is None:
            return False
        removed = self._conn.unregister_object(registration_id)
        logger.debug(f"Removed agent object at {path}")
        return bool(removed)

    def _start_dispatch_thread(self) -> None:
        if self._thread is not None:
            return
        if self._context is None:
            self._context = self.GLib.MainContext.new()
        self._loop = self.GLib.MainLoop.new(self._context, False)
        self._thread = threading.Thread(
            target=self._loop.run, name="iwdgui-bus-dispatch", daemon=True)
        self._thread.start()

    def _stop_dispatch_thread(self) -> None:
        if self._thread is None:
            return

        def quit_loop(*args):
            self._loop.quit()
            return False

        # A quit issued before run() starts is lost, so quit from inside
        # the loop itself
        source = self.GLib.idle_source_new()
        source.set_callback(quit_loop)
        source.attach(self._context)
        self._thread.join()
        self._thread = None
        self._loop = None

    def close(self) -> None:
        for path in list(self._registrations):
            self.unexport_object(path)
        self._stop_dispatch_thread()
        self._context = None
        try:
            self._conn.close_sync(None)
        except self.GLib.Error as e:
            logger.debug(f"Error closing bus connection: {e.message}")
