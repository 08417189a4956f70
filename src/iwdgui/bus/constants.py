"""Fixed bus addresses used to talk to iwd."""

IWD_SERVICE = "net.connman.iwd"
IWD_ROOT_PATH = "/"
AGENT_MANAGER_PATH = "/net/connman/iwd"

OBJECT_MANAGER_IFACE = "org.freedesktop.DBus.ObjectManager"
PROPERTIES_IFACE = "org.freedesktop.DBus.Properties"

DEVICE_IFACE = "net.connman.iwd.Device"
STATION_IFACE = "net.connman.iwd.Station"
NETWORK_IFACE = "net.connman.iwd.Network"
KNOWN_NETWORK_IFACE = "net.connman.iwd.KnownNetwork"
AGENT_MANAGER_IFACE = "net.connman.iwd.AgentManager"
AGENT_IFACE = "net.connman.iwd.Agent"

# Where our credential agent is published while a connect call is running
AGENT_PATH = "/org/iwdgui/agent"

ERROR_CANCELED = "net.connman.iwd.Error.Canceled"
ERROR_FAILED = "net.connman.iwd.Error.Failed"

AGENT_INTROSPECTION_XML = """
<node>
  <interface name="net.connman.iwd.Agent">
    <method name="Release"/>
    <method name="Cancel">
      <arg name="reason" type="s" direction="in"/>
    </method>
    <method name="RequestPassphrase">
      <arg name="network" type="o" direction="in"/>
      <arg name="passphrase" type="s" direction="out"/>
    </method>
    <method name="RequestPrivateKeyPassphrase">
      <arg name="network" type="o" direction="in"/>
      <arg name="passphrase" type="s" direction="out"/>
    </method>
    <method name="RequestUserNameAndPassword">
      <arg name="network" type="o" direction="in"/>
      <arg name="user" type="s" direction="out"/>
      <arg name="password" type="s" direction="out"/>
    </method>
    <method name="RequestUserPassword">
      <arg name="network" type="o" direction="in"/>
      <arg name="user" type="s" direction="in"/>
      <arg name="password" type="s" direction="out"/>
    </method>
  </interface>
</node>
"""
