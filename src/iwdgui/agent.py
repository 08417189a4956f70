"""
Credential agent answering iwd's passphrase prompts during a connect call.

iwd calls back into a registered agent (net.connman.iwd.Agent) whenever it
needs a secret. The agent here holds exactly one secret, typed by the user
before the attempt, and hands it out for every request shape iwd may use.
"""

import logging
import threading
from contextlib import contextmanager
from enum import Enum
from typing import Optional, Tuple

from iwdgui.bus.constants import ERROR_CANCELED, ERROR_FAILED

logger = logging.getLogger(__name__)


class AgentError(Exception):
    """Error reply sent back to iwd for an agent request."""

    dbus_name = ERROR_FAILED


class AgentCanceled(AgentError):
    """The user has nothing to offer; iwd aborts the attempt cleanly."""

    dbus_name = ERROR_CANCELED


class AgentFailed(AgentError):
    """The agent itself is broken and cannot answer."""

    dbus_name = ERROR_FAILED


class AgentRequest(Enum):
    """Calls iwd can make on an agent, with the reply signature of each."""
    RELEASE = ("Release", "")
    CANCEL = ("Cancel", "")
    PASSPHRASE = ("RequestPassphrase", "s")
    PRIVATE_KEY_PASSPHRASE = ("RequestPrivateKeyPassphrase", "s")
    USER_NAME_AND_PASSWORD = ("RequestUserNameAndPassword", "ss")
    USER_PASSWORD = ("RequestUserPassword", "s")

    def __init__(self, method_name: str, reply_signature: str):
        self.method_name = method_name
        self.reply_signature = reply_signature

    @classmethod
    def from_method(cls, method_name: str) -> Optional["AgentRequest"]:
        """Look up a request by its D-Bus method name."""
        for request in cls:
            if request.method_name == method_name:
                return request
        return None


class CredentialAgent:
    """
    Answers iwd credential prompts from a single pre-supplied secret.

    The secret is read from the bus dispatch thread while the caller is
    blocked in Network.Connect, so every access goes through a lock. If an
    exception ever escapes while the lock is held the state is treated as
    corrupted and later requests fail instead of guessing.
    """

    def __init__(self, secret: str):
        self._lock = threading.Lock()
        self._secret = secret
        self._poisoned = False

    @contextmanager
    def _guarded(self):
        with self._lock:
            if self._poisoned:
                raise AgentFailed("agent lock poisoned")
            try:
                yield
            except BaseException:
                self._poisoned = True
                raise

    def _secret_or_cancel(self) -> str:
        with self._guarded():
            if not isinstance(self._secret, str):
                raise TypeError(
                    f"stored secret has type {type(self._secret).__name__}")
            secret = self._secret

        if not secret.strip():
            raise AgentCanceled("passphrase is empty")
        return secret

    def clear(self) -> None:
        """Forget the secret once the attempt is over."""
        with self._guarded():
            self._secret = ""

    def release(self) -> None:
        logger.debug("Agent released by iwd")

    def cancel(self, reason: str = "") -> None:
        logger.debug(f"iwd cancelled agent request: {reason}")

    def request_passphrase(self, network: str = "") -> str:
        logger.info(f"Passphrase requested for {network}")
        return self._secret_or_cancel()

    def request_private_key_passphrase(self, network: str = "") -> str:
        logger.info(f"Private key passphrase requested for {network}")
        return self._secret_or_cancel()

    def request_user_name_and_password(self, network: str = "") -> Tuple[str, str]:
        logger.info(f"User name and password requested for {network}")
        return "", self._secret_or_cancel()

    def request_user_password(self, network: str = "", user: str = "") -> str:
        logger.info(f"User password requested for {network}")
        return self._secret_or_cancel()

    def handle(self, request: AgentRequest, args: Tuple = ()) -> Tuple:
        """
        Serve one agent request.

        Args:
            request: Which agent method iwd called
            args: Arguments of the call, as sent by iwd

        Returns:
            Reply arguments matching ``request.reply_signature``

        Raises:
            AgentCanceled: If there is no usable secret
            AgentFailed: If the agent state is corrupted
        """
        try:
            if request is AgentRequest.RELEASE:
                self.release()
                return ()
            if request is AgentRequest.CANCEL:
                self.cancel(*args[:1])
                return ()
            if request is AgentRequest.PASSPHRASE:
                return (self.request_passphrase(*args[:1]),)
            if request is AgentRequest.PRIVATE_KEY_PASSPHRASE:
                return (self.request_private_key_passphrase(*args[:1]),)
            if request is AgentRequest.USER_NAME_AND_PASSWORD:
                return self.request_user_name_and_password(*args[:1])
            if request is AgentRequest.USER_PASSWORD:
                return (self.request_user_password(*args[:2]),)
        except AgentError:
            raise
        except Exception as e:
            logger.error(f"Agent request {request.method_name} failed: {e}")
            raise AgentFailed(str(e)) from e

        raise AgentFailed(f"unsupported agent request {request!r}")
