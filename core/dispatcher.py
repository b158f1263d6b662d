"""
Dispatcher
----------
The execution loop: one inbound message at a time.

    receive -> decode -> functions | exec | ignore

A failed exec (unknown id, launch error) is logged and the loop goes on.
Strict mode turns those into fatal errors instead. Transport and
decoding errors always end the loop.
"""

from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional
import logging

from infra.logging import MessageContext
from session.messages import (
    InboundMessage, MSG_EXEC, MSG_FUNCTIONS, decode, encode, functions_message,
)
from .errors import ErrorHandler

if TYPE_CHECKING:
    from commands.executor import FunctionExecutor
    from commands.registry import FunctionRegistry
    from session.channel import SessionChannel


@dataclass
class DispatchStats:
    """Counters for one session."""
    received: int = 0
    disclosures: int = 0
    executions: int = 0
    failures: int = 0
    ignored: int = 0


class Dispatcher:
    """
    Routes inbound messages to the registry or the executor.

    Nothing runs concurrently: an exec is awaited to completion before the
    next frame is read.
    """

    def __init__(
        self,
        channel: "SessionChannel",
        registry: "FunctionRegistry",
        executor: "FunctionExecutor",
        receiver_name: str,
        disclosure_password: Optional[str] = None,
        strict: bool = False,
        error_handler: Optional[ErrorHandler] = None
    ):
        self.channel = channel
        self.registry = registry
        self.executor = executor
        self.receiver_name = receiver_name
        self.strict = strict
        self.stats = DispatchStats()
        self.error_handler = error_handler or ErrorHandler()
        self._disclosure_password = disclosure_password
        self._logger = logging.getLogger("macron.dispatcher")

    async def run(self) -> None:
        """Dispatch until something fatal happens."""
        self._logger.info("Starting loop...")
        while True:
            await self.step()

    async def step(self) -> InboundMessage:
        """Receive and handle exactly one message."""
        text = await self.channel.receive()
        with MessageContext():
            return await self.handle(text)

    async def handle(self, text: str) -> InboundMessage:
        """Decode one frame and act on it."""
        self.stats.received += 1
        self._logger.debug(f"Message: {text}")

        message = decode(text)

        if message.type == MSG_FUNCTIONS:
            await self._disclose(message)
        elif message.type == MSG_EXEC:
            await self._execute(message)
        else:
            self.stats.ignored += 1
            self._logger.debug(f"Ignoring message of type {message.type!r}")

        return message

    async def _disclose(self, message: InboundMessage) -> None:
        self._logger.info("Sending functions...")
        response = functions_message(
            receiver_name=self.receiver_name,
            functions=self.registry.disclose(),
            client_id=message.client_id,
            password=self._disclosure_password,
        )
        await self.channel.send(encode(response))
        self.stats.disclosures += 1

    async def _execute(self, message: InboundMessage) -> None:
        self._logger.info("Executing function...")
        self.stats.executions += 1

        result = await self.executor.execute(message.id)
        error = result.to_error()
        if error is None:
            return

        self.stats.failures += 1
        if self.strict:
            raise error
        self.error_handler.handle(error)
