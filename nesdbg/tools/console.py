"""Raw packet console.

Operators type packets as hex pairs (``01 00 80 10 00`` reads 16 bytes
from $8000); the response is printed back the same way. Bad input prints
a reason and the session continues.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import TextIO

from ..errors import DecodeError, TransportError
from ..protocol.hextext import decode_from_hex_text, format_hex
from ..services.executor import CommandExecutor

logger = logging.getLogger("nesdbg.console")

PROMPT = "> "
EXIT_COMMANDS = frozenset({"quit", "exit"})


class RawConsole:
    def __init__(self, executor: CommandExecutor) -> None:
        self._executor = executor

    def handle_line(self, line: str) -> str:
        """Decode, send and render one line of operator input."""
        text = line.strip("\r\n")
        try:
            packet = decode_from_hex_text(text)
        except DecodeError as e:
            return f"Error: {e}"

        try:
            response = self._executor.execute(packet)
        except TransportError as e:
            return f"Transport error: {e}"

        if not response:
            return f"OK ({packet.OPCODE.name})"
        return format_hex(response)

    def run(self, lines: Iterable[str], out: TextIO, *, prompt: bool = True) -> None:
        if prompt:
            out.write(PROMPT)
            out.flush()
        for line in lines:
            stripped = line.strip()
            if stripped.lower() in EXIT_COMMANDS:
                break
            if stripped:
                out.write(self.handle_line(line) + "\n")
            if prompt:
                out.write(PROMPT)
                out.flush()
        if prompt:
            out.write("\n")


__all__ = ["RawConsole", "PROMPT"]
