"""Debug session: open the port, verify the device, hand out an executor."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from types import TracebackType
from typing import TYPE_CHECKING, Self

from transitions import Machine

from ..config.model import RuntimeConfig
from ..const import LIVENESS_TOKEN
from ..errors import HandshakeError, TransportError
from ..metrics import DebugMetrics
from ..protocol.structures import EchoPacket
from ..transport.serial import SerialTransport, Transport
from .executor import CommandExecutor

logger = logging.getLogger("nesdbg.session")

HANDSHAKE_FAILURE_MESSAGE = "NES FPGA not connected."


class DebugSession:
    """Own a transport for the lifetime of one console session."""

    if TYPE_CHECKING:
        # FSM generated methods and attributes for static analysis
        fsm_state: str
        start_handshake: Callable[[], None]
        complete_handshake: Callable[[], None]
        fail_handshake: Callable[[], None]
        disconnect: Callable[[], None]

    # FSM States
    STATE_CLOSED = "closed"
    STATE_HANDSHAKING = "handshaking"
    STATE_CONNECTED = "connected"
    STATE_FAULT = "fault"

    def __init__(
        self,
        transport: Transport,
        *,
        metrics: DebugMetrics | None = None,
        settle_delay: float = 0.0,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._transport = transport
        self._settle_delay = max(0.0, settle_delay)
        self._sleep = sleep
        self.metrics = metrics if metrics is not None else DebugMetrics()
        self.executor = CommandExecutor(transport, self.metrics)

        self.state_machine = Machine(
            model=self,
            states=[
                self.STATE_CLOSED,
                self.STATE_HANDSHAKING,
                self.STATE_CONNECTED,
                self.STATE_FAULT,
            ],
            initial=self.STATE_CLOSED,
            ignore_invalid_triggers=True,
            model_attribute="fsm_state",
        )
        self.state_machine.add_transition(
            trigger="start_handshake",
            source=[self.STATE_CLOSED, self.STATE_FAULT],
            dest=self.STATE_HANDSHAKING,
        )
        self.state_machine.add_transition(
            trigger="complete_handshake", source=self.STATE_HANDSHAKING, dest=self.STATE_CONNECTED
        )
        self.state_machine.add_transition(trigger="fail_handshake", source="*", dest=self.STATE_FAULT)
        self.state_machine.add_transition(trigger="disconnect", source="*", dest=self.STATE_CLOSED)

    @classmethod
    def from_config(cls, config: RuntimeConfig, metrics: DebugMetrics | None = None) -> Self:
        return cls(
            SerialTransport.from_config(config),
            metrics=metrics,
            settle_delay=config.serial_settle_delay,
        )

    @property
    def transport(self) -> Transport:
        return self._transport

    @property
    def connected(self) -> bool:
        return self.fsm_state == self.STATE_CONNECTED

    def open(self) -> None:
        """Open the transport and run the liveness handshake.

        Raises :class:`HandshakeError` if the device does not echo the
        token back; the transport is closed again in that case.
        """
        self.start_handshake()
        opener = getattr(self._transport, "open", None)
        try:
            if callable(opener):
                opener()
            if self._settle_delay:
                self._sleep(self._settle_delay)
            self._handshake()
        except (HandshakeError, TransportError):
            self.fail_handshake()
            self._transport.close()
            raise
        self.complete_handshake()
        logger.info("NES FPGA connected")

    def _handshake(self) -> None:
        try:
            reply = self.executor.execute(EchoPacket(data=LIVENESS_TOKEN))
        except TransportError as e:
            raise HandshakeError(HANDSHAKE_FAILURE_MESSAGE) from e
        if reply != LIVENESS_TOKEN:
            logger.warning("Liveness echo mismatch", extra={"reply": reply})
            raise HandshakeError(HANDSHAKE_FAILURE_MESSAGE)

    def close(self) -> None:
        if self.fsm_state == self.STATE_CLOSED:
            return
        try:
            self._transport.close()
        finally:
            self.disconnect()

    def __enter__(self) -> Self:
        self.open()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()


__all__ = ["DebugSession", "HANDSHAKE_FAILURE_MESSAGE"]
