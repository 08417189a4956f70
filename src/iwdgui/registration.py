"""
Scoped registration of the credential agent with iwd's agent manager.
"""

import logging

from iwdgui.agent import CredentialAgent
from iwdgui.bus.constants import (
    AGENT_MANAGER_IFACE,
    AGENT_MANAGER_PATH,
    AGENT_PATH,
)
from iwdgui.bus.transport import BusTransport
from iwdgui.errors import IwdGuiError

logger = logging.getLogger(__name__)


class AgentRegistration:
    """
    Publishes a CredentialAgent and registers it with iwd for one connect call.

    Usage:
        with AgentRegistration(transport, CredentialAgent(secret)):
            transport.call_method(network_path, NETWORK_IFACE, "Connect")

    Leaving the block always unregisters the agent and removes the published
    object. Teardown failures are logged and dropped; iwd may already have
    forgotten the agent on its own.
    """

    def __init__(
            self,
            transport: BusTransport,
            agent: CredentialAgent,
            path: str = AGENT_PATH):
        """
        Args:
            transport: Open bus connection the agent is served on
            agent: Agent answering iwd's prompts
            path: Object path to publish the agent at
        """
        self.transport = transport
        self.agent = agent
        self.path = path
        self.active = False

    def __enter__(self) -> "AgentRegistration":
        # Drop a stale export left behind at the same path
        try:
            if self.transport.unexport_object(self.path):
                logger.debug(f"Removed stale agent object at {self.path}")
        except IwdGuiError as e:
            logger.debug(f"Could not remove stale agent object: {e}")

        self.transport.export_object(self.path, self.agent)
        try:
            self.transport.call_method(
                AGENT_MANAGER_PATH,
                AGENT_MANAGER_IFACE,
                "RegisterAgent",
                (self.path,),
                "o")
        except BaseException:
            self._remove_object()
            raise

        self.active = True
        logger.info(f"Credential agent registered at {self.path}")
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        self.release()
        return False

    def release(self) -> None:
        """Unregister and unpublish the agent; safe to call more than once."""
        if not self.active:
            return
        self.active = False

        try:
            self.transport.call_method(
                AGENT_MANAGER_PATH,
                AGENT_MANAGER_IFACE,
                "UnregisterAgent",
                (self.path,),
                "o")
            logger.info(f"Credential agent unregistered from {self.path}")
        except IwdGuiError as e:
            logger.warning(f"Failed to unregister agent {self.path}: {e}")

        self._remove_object()

    def _remove_object(self) -> None:
        try:
            self.transport.unexport_object(self.path)
        except IwdGuiError as e:
            logger.warning(f"Failed to remove agent object {self.path}: {e}")

        try:
            self.agent.clear()
        except Exception as e:
            logger.warning(f"Failed to clear agent secret: {e}")
