"""
Agent
-----
Owns the session lifecycle: authenticate, then dispatch forever.

Startup is strictly sequential. Nothing reaches the executor before the
server has accepted the session, and any failure on the way moves the
session to CLOSED and propagates to the caller.
"""

from typing import Optional
import logging

from commands.executor import FunctionExecutor, ProcessLauncher
from infra.config import AgentConfig
from session.auth import Authenticator, select_authenticator
from session.channel import SessionChannel
from .dispatcher import Dispatcher
from .errors import ErrorHandler
from .state_machine import SessionState, StateMachine


class Agent:
    """
    One agent process, one session.

    Collaborators can be injected for tests; by default they are built
    from the configuration.
    """

    def __init__(
        self,
        config: AgentConfig,
        authenticator: Optional[Authenticator] = None,
        launcher: Optional[ProcessLauncher] = None,
        error_handler: Optional[ErrorHandler] = None
    ):
        self.config = config
        self.registry = config.build_registry()
        self.executor = FunctionExecutor(self.registry, launcher=launcher)
        self.authenticator = authenticator or select_authenticator(config)
        self.error_handler = error_handler or ErrorHandler()
        self.state_machine = StateMachine()
        self.dispatcher: Optional[Dispatcher] = None
        self._channel: Optional[SessionChannel] = None
        self._logger = logging.getLogger("macron.agent")

    @property
    def state(self) -> SessionState:
        return self.state_machine.state

    async def connect(self) -> Dispatcher:
        """Authenticate and build the dispatcher for the new session."""
        self.state_machine.transition(
            SessionState.AUTHENTICATING,
            f"{type(self.authenticator).__name__} against {self.config.server.url}",
        )
        self._channel = await self.authenticator.authenticate()
        self.state_machine.transition(SessionState.AUTHENTICATED, "auth_success")

        self.dispatcher = Dispatcher(
            channel=self._channel,
            registry=self.registry,
            executor=self.executor,
            receiver_name=self.config.agent.receiver_name,
            disclosure_password=self.authenticator.disclosure_password,
            strict=self.config.agent.strict,
            error_handler=self.error_handler,
        )
        return self.dispatcher

    async def run(self) -> None:
        """Run until the session ends. Always raises on the way out."""
        self._logger.info(f"Config functions: {len(self.registry)}")
        try:
            dispatcher = await self.connect()
            await dispatcher.run()
        except BaseException as e:
            self.state_machine.close(f"{type(e).__name__}: {e}")
            raise
        finally:
            await self.close()

    async def close(self) -> None:
        if self._channel is not None:
            channel, self._channel = self._channel, None
            await channel.close()
