"""
Bus transport interface for talking to iwd.
Allows an in-memory daemon to be injected in tests and CI environments.
"""

import logging
from abc import ABC, abstractmethod
from copy import deepcopy
from typing import Any, Dict, List, Optional, Tuple

from iwdgui.agent import AgentError, AgentRequest
from iwdgui.bus.constants import (
    AGENT_MANAGER_IFACE,
    AGENT_MANAGER_PATH,
    DEVICE_IFACE,
    KNOWN_NETWORK_IFACE,
    NETWORK_IFACE,
    OBJECT_MANAGER_IFACE,
    PROPERTIES_IFACE,
    STATION_IFACE,
)
from iwdgui.errors import BusError

logger = logging.getLogger(__name__)

PropertyBag = Dict[str, Any]
InterfaceMap = Dict[str, PropertyBag]
ManagedObjects = Dict[str, InterfaceMap]


class BusTransport(ABC):
    """Abstract base class for a single bus connection."""

    @abstractmethod
    def get_managed_objects(self) -> ManagedObjects:
        """
        Fetch iwd's whole object tree in one call.

        Returns:
            Mapping of object path -> interface name -> property bag

        Raises:
            BusError: If the call fails
        """

    @abstractmethod
    def call_method(
            self,
            path: str,
            interface: str,
            method: str,
            args: Tuple = (),
            signature: str = "") -> Tuple:
        """
        Call a method on an iwd object and wait for the reply.

        Args:
            path: Object path
            interface: Interface the method belongs to
            method: Method name
            args: Positional arguments
            signature: D-Bus signature of ``args`` (without parentheses)

        Returns:
            Reply arguments as a tuple (empty for methods without output)

        Raises:
            BusError: If the call fails
        """

    @abstractmethod
    def set_property(
            self,
            path: str,
            interface: str,
            name: str,
            value: Any) -> None:
        """
        Write a property on an iwd object.

        Raises:
            BusError: If the write fails
        """

    @abstractmethod
    def export_object(self, path: str, agent) -> None:
        """
        Publish an agent on the bus so the daemon can call into it.

        Args:
            path: Object path to publish at
            agent: Object providing ``handle(request, args)``

        Raises:
            BusError: If the object cannot be published
        """

    @abstractmethod
    def unexport_object(self, path: str) -> bool:
        """
        Remove an object published with export_object.

        Returns:
            True if something was removed, False if nothing was published
        """

    @abstractmethod
    def close(self) -> None:
        """Release the connection."""

    def __enter__(self) -> "BusTransport":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


class MockIwdDaemon:
    """
    In-memory stand-in for the iwd daemon.

    Holds a managed-objects tree, records every call made by any connection
    and emulates the parts of iwd the client relies on: agent registration,
    asking the registered agent for a passphrase during Connect, Forget and
    the AutoConnect property.
    """

    def __init__(self, objects: Optional[ManagedObjects] = None):
        """
        Args:
            objects: Initial object tree (copied)
        """
        self.objects: ManagedObjects = deepcopy(objects) if objects else {}
        self.calls: List[Tuple[str, str, str, Tuple]] = []
        self.agents: Dict[str, "MockBusTransport"] = {}
        self.received_secrets: List[str] = []
        self.failures: Dict[str, str] = {}
        self.connections: List["MockBusTransport"] = []

    def connect(self) -> "MockBusTransport":
        """Open a new connection to this daemon (usable as a transport factory)."""
        transport = MockBusTransport(self)
        self.connections.append(transport)
        return transport

    def add_adapter(self, path: str, name: str) -> None:
        """Add a device that also exposes a station."""
        self.objects[path] = {
            DEVICE_IFACE: {"Name": name, "Powered": True},
            STATION_IFACE: {"Scanning": False},
        }

    def add_network(self, path: str, **properties) -> None:
        """Add a visible network with the given Network properties."""
        self.objects[path] = {NETWORK_IFACE: dict(properties)}

    def add_known_network(self, path: str, **properties) -> None:
        """Add a known network with the given KnownNetwork properties."""
        self.objects[path] = {KNOWN_NETWORK_IFACE: dict(properties)}

    def fail_on(self, method: str, message: str) -> None:
        """Make every later call to ``method`` raise BusError(message)."""
        self.failures[method] = message

    def method_calls(self, method: str) -> List[Tuple[str, str, str, Tuple]]:
        """Return recorded calls to ``method`` in order."""
        return [call for call in self.calls if call[2] == method]

    def call_names(self) -> List[str]:
        """Return the method names of all recorded calls in order."""
        return [call[2] for call in self.calls]

    def record(self, path: str, interface: str, method: str, args: Tuple) -> None:
        self.calls.append((path, interface, method, tuple(args)))
        if method in self.failures:
            raise BusError(self.failures[method])

    def properties(self, path: str, interface: str) -> PropertyBag:
        interfaces = self.objects.get(path)
        if interfaces is None or interface not in interfaces:
            raise BusError(
                f"No {interface} object at {path}",
                dbus_name="org.freedesktop.DBus.Error.UnknownObject")
        return interfaces[interface]

    def dispatch(self, owner: "MockBusTransport", path: str, interface: str,
                 method: str, args: Tuple) -> Tuple:
        if interface == AGENT_MANAGER_IFACE and path == AGENT_MANAGER_PATH:
            return self._agent_manager_call(owner, method, args)

        props = self.properties(path, interface)

        if interface == NETWORK_IFACE and method == "Connect":
            self._connect(path, props)
        elif interface == KNOWN_NETWORK_IFACE and method == "Forget":
            del self.objects[path]
        elif interface == STATION_IFACE and method == "Scan":
            props["Scanning"] = True
        else:
            raise BusError(
                f"Unknown method {method} on {interface}",
                dbus_name="org.freedesktop.DBus.Error.UnknownMethod")
        return ()

    def _agent_manager_call(self, owner, method: str, args: Tuple) -> Tuple:
        agent_path = args[0]
        if method == "RegisterAgent":
            if agent_path in self.agents:
                raise BusError("Agent already registered",
                               dbus_name="net.connman.iwd.Error.AlreadyExists")
            self.agents[agent_path] = owner
        elif method == "UnregisterAgent":
            if self.agents.get(agent_path) is not owner:
                raise BusError("Agent not registered",
                               dbus_name="net.connman.iwd.Error.NotFound")
            del self.agents[agent_path]
        else:
            raise BusError(
                f"Unknown method {method} on {AGENT_MANAGER_IFACE}",
                dbus_name="org.freedesktop.DBus.Error.UnknownMethod")
        return ()

    def _connect(self, path: str, props: PropertyBag) -> None:
        # Open and already-known networks connect without prompting
        needs_secret = (props.get("Type", "open") != "open"
                        and not props.get("KnownNetwork"))
        if needs_secret:
            agent = self._current_agent()
            if agent is None:
                raise BusError("No Agent registered",
                               dbus_name="net.connman.iwd.Error.NoAgent")
            try:
                passphrase, = agent.handle(AgentRequest.PASSPHRASE, (path,))
            except AgentError as e:
                logger.debug(f"Agent refused passphrase request: {e}")
                raise BusError("Operation aborted",
                               dbus_name="net.connman.iwd.Error.Aborted") from e
            self.received_secrets.append(passphrase)
        props["Connected"] = True

    def _current_agent(self):
        for agent_path, owner in sorted(self.agents.items()):
            agent = owner.exported.get(agent_path)
            if agent is not None and not owner.closed:
                return agent
        return None

    def drop_connection(self, owner: "MockBusTransport") -> None:
        # iwd forgets agents whose bus peer went away
        for agent_path in [p for p, o in self.agents.items() if o is owner]:
            del self.agents[agent_path]


class MockBusTransport(BusTransport):
    """One connection to a MockIwdDaemon; exported objects are per connection."""

    def __init__(self, daemon: MockIwdDaemon):
        self.daemon = daemon
        self.exported: Dict[str, Any] = {}
        self.closed = False

    def _check_open(self) -> None:
        if self.closed:
            raise BusError("Connection is closed")

    def get_managed_objects(self) -> ManagedObjects:
        self._check_open()
        self.daemon.record("/", OBJECT_MANAGER_IFACE, "GetManagedObjects", ())
        return deepcopy(self.daemon.objects)

    def call_method(self, path, interface, method, args=(), signature=""):
        self._check_open()
        self.daemon.record(path, interface, method, args)
        return self.daemon.dispatch(self, path, interface, method, tuple(args))

    def set_property(self, path, interface, name, value):
        self._check_open()
        self.daemon.record(path, PROPERTIES_IFACE, "Set",
                           (interface, name, value))
        props = self.daemon.properties(path, interface)
        if name not in props:
            raise BusError(
                f"No such property '{name}'",
                dbus_name="org.freedesktop.DBus.Error.InvalidArgs")
        props[name] = value

    def export_object(self, path, agent):
        self._check_open()
        if path in self.exported:
            raise BusError(f"An object is already exported at {path}")
        self.exported[path] = agent

    def unexport_object(self, path):
        return self.exported.pop(path, None) is not None

    def close(self):
        if not self.closed:
            self.closed = True
            self.exported.clear()
            self.daemon.drop_connection(self)
