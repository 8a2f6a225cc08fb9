"""Script bridge: the hardware command surface exposed to test scripts.

Scripts see a flat set of callables named after the device commands
(``Echo``, ``CpuMemRd``, ``WaitForHlt`` ...). Every call validates its
arguments, builds one packet and runs it through the command executor.
"""

from __future__ import annotations

import functools
import inspect
import logging
import threading
from collections.abc import Callable, Sequence
from pathlib import Path
from types import SimpleNamespace
from typing import Any

import tenacity

from ..const import DEFAULT_ASM_DIR, DEFAULT_HALT_POLL_INTERVAL, DEFAULT_HALT_WAIT_TIMEOUT
from ..errors import (
    AsmLoadError,
    HaltTimeoutError,
    NesDbgError,
    ScriptCancelledError,
    ScriptUsageError,
)
from ..metrics import DebugMetrics
from ..protocol import protocol
from ..protocol.protocol import CpuReg
from ..protocol.structures import (
    BasePacket,
    CpuMemReadPacket,
    CpuMemWritePacket,
    CpuRegReadPacket,
    CpuRegWritePacket,
    DebugHaltPacket,
    DebugRunPacket,
    EchoPacket,
    PpuMemReadPacket,
    PpuMemWritePacket,
    QueryHaltedPacket,
)
from .executor import CommandExecutor
from .scripting import PythonScriptEngine, ScriptEngine, ScriptResult

logger = logging.getLogger("nesdbg.bridge")

# .prg images start with the little-endian load address.
ASM_HEADER_SIZE = protocol.ADDRESS_SIZE


def _script_command(func: Callable[..., Any]) -> Callable[..., Any]:
    """Turn arity mismatches into :class:`ScriptUsageError`."""
    signature = inspect.signature(func)

    @functools.wraps(func)
    def wrapper(self: ScriptBridge, *args: Any, **kwargs: Any) -> Any:
        try:
            signature.bind(self, *args, **kwargs)
        except TypeError as e:
            raise ScriptUsageError(f"{func.__name__}: {e}") from e
        return func(self, *args, **kwargs)

    return wrapper


def _require_int(command: str, name: str, value: Any, maximum: int = protocol.UINT16_MAX) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ScriptUsageError(f"{command}: {name} must be an integer, got {type(value).__name__}")
    if not 0 <= value <= maximum:
        raise ScriptUsageError(f"{command}: {name} {value} out of range 0..{maximum}")
    return value


def _require_bytes(command: str, values: Any, count: int) -> bytes:
    if isinstance(values, (bytes, bytearray)):
        data = bytes(values)
    elif isinstance(values, Sequence) and not isinstance(values, str):
        for index, item in enumerate(values):
            if isinstance(item, bool) or not isinstance(item, int) or not 0 <= item <= protocol.UINT8_MAX:
                raise ScriptUsageError(f"{command}: byte {index} ({item!r}) is not an integer in 0..255")
        data = bytes(values)
    else:
        raise ScriptUsageError(f"{command}: data must be a sequence of byte values")
    if len(data) != count:
        raise ScriptUsageError(f"{command}: count is {count} but {len(data)} bytes were given")
    return data


def _require_register(command: str, value: Any) -> CpuReg:
    _require_int(command, "register", value, protocol.UINT8_MAX)
    try:
        return CpuReg(value)
    except ValueError as e:
        raise ScriptUsageError(f"{command}: {value} is not a CPU register selector") from e


def _still_running(halted: bool) -> bool:
    return not halted


class ScriptBridge:
    """Binds the script command surface to a :class:`CommandExecutor`."""

    def __init__(
        self,
        executor: CommandExecutor,
        *,
        asm_dir: str | Path = DEFAULT_ASM_DIR,
        halt_poll_interval: float = DEFAULT_HALT_POLL_INTERVAL,
        halt_wait_timeout: float = DEFAULT_HALT_WAIT_TIMEOUT,
        engine: ScriptEngine | None = None,
        metrics: DebugMetrics | None = None,
    ) -> None:
        self._executor = executor
        self._asm_dir = Path(asm_dir)
        self._halt_poll_interval = max(0.0, halt_poll_interval)
        self._halt_wait_timeout = max(0.0, halt_wait_timeout)
        self._engine: ScriptEngine = engine if engine is not None else PythonScriptEngine()
        self._metrics = metrics
        self._cancel = threading.Event()
        self._output: list[str] = []

    # --- output capture ---

    def print(self, *values: Any, sep: str = " ", end: str = "\n") -> None:
        self._output.append(sep.join(str(v) for v in values) + end)

    def take_output(self) -> str:
        """Return and clear what the current script has printed."""
        text = "".join(self._output)
        self._output.clear()
        return text

    # --- cancellation ---

    def cancel(self) -> None:
        """Abort the running script at its next command or WaitForHlt poll."""
        self._cancel.set()

    def reset_cancel(self) -> None:
        self._cancel.clear()

    @property
    def cancelled(self) -> bool:
        return self._cancel.is_set()

    # --- commands ---

    def _run(self, packet: BasePacket) -> bytes:
        if self._cancel.is_set():
            raise ScriptCancelledError(f"Test run cancelled before {type(packet).__name__}")
        return self._executor.execute(packet)

    @_script_command
    def Echo(self, count: Any, data: Any) -> list[int]:  # noqa: N802
        count = _require_int("Echo", "count", count)
        return list(self._run(EchoPacket(data=_require_bytes("Echo", data, count))))

    @_script_command
    def CpuMemRd(self, address: Any, count: Any) -> list[int]:  # noqa: N802
        packet = CpuMemReadPacket(
            address=_require_int("CpuMemRd", "address", address),
            count=_require_int("CpuMemRd", "count", count),
        )
        return list(self._run(packet))

    @_script_command
    def CpuMemWr(self, address: Any, count: Any, data: Any) -> None:  # noqa: N802
        address = _require_int("CpuMemWr", "address", address)
        count = _require_int("CpuMemWr", "count", count)
        self._run(CpuMemWritePacket(address=address, data=_require_bytes("CpuMemWr", data, count)))

    @_script_command
    def PpuMemRd(self, address: Any, count: Any) -> list[int]:  # noqa: N802
        packet = PpuMemReadPacket(
            address=_require_int("PpuMemRd", "address", address),
            count=_require_int("PpuMemRd", "count", count),
        )
        return list(self._run(packet))

    @_script_command
    def PpuMemWr(self, address: Any, count: Any, data: Any) -> None:  # noqa: N802
        address = _require_int("PpuMemWr", "address", address)
        count = _require_int("PpuMemWr", "count", count)
        self._run(PpuMemWritePacket(address=address, data=_require_bytes("PpuMemWr", data, count)))

    @_script_command
    def DbgHlt(self) -> None:  # noqa: N802
        self._run(DebugHaltPacket())

    @_script_command
    def DbgRun(self) -> None:  # noqa: N802
        self._run(DebugRunPacket())

    @_script_command
    def CpuRegRd(self, register: Any) -> int:  # noqa: N802
        response = self._run(CpuRegReadPacket(register=_require_register("CpuRegRd", register)))
        return response[0]

    @_script_command
    def CpuRegWr(self, register: Any, value: Any) -> None:  # noqa: N802
        packet = CpuRegWritePacket(
            register=_require_register("CpuRegWr", register),
            value=_require_int("CpuRegWr", "value", value, protocol.UINT8_MAX),
        )
        self._run(packet)

    def _query_halted(self) -> bool:
        return self._run(QueryHaltedPacket())[0] != 0

    @_script_command
    def WaitForHlt(self, timeout: Any = None) -> None:  # noqa: N802
        """Poll QueryHalted until the CPU reports halted.

        ``timeout`` (seconds) overrides the configured bound; 0 or None
        with no configured bound waits until halted or cancelled.
        """
        if timeout is None:
            limit = self._halt_wait_timeout
        elif isinstance(timeout, bool) or not isinstance(timeout, (int, float)) or timeout < 0:
            raise ScriptUsageError(f"WaitForHlt: timeout must be a non-negative number, got {timeout!r}")
        else:
            limit = float(timeout)

        stop = tenacity.stop_when_event_set(self._cancel)
        if limit > 0:
            stop = stop | tenacity.stop_after_delay(limit)  # type: ignore[assignment]

        retryer = tenacity.Retrying(
            retry=tenacity.retry_if_result(_still_running),
            wait=tenacity.wait_fixed(self._halt_poll_interval),
            stop=stop,
            # Event.wait returns early when cancel() is called mid-sleep.
            sleep=self._cancel.wait,
            reraise=True,
        )
        try:
            retryer(self._query_halted)
        except tenacity.RetryError as e:
            if self._cancel.is_set():
                raise ScriptCancelledError("WaitForHlt cancelled") from e
            raise HaltTimeoutError(f"CPU did not halt within {limit:g}s") from e

    @_script_command
    def LoadAsm(self, filename: Any) -> int:  # noqa: N802
        """Write an assembled .prg image to CPU memory and return its start address."""
        if not isinstance(filename, str) or not filename:
            raise ScriptUsageError("LoadAsm: filename must be a non-empty string")

        path = self._asm_dir / filename
        try:
            image = path.read_bytes()
        except OSError as e:
            raise AsmLoadError(f"Cannot read {path}: {e}") from e

        if len(image) < ASM_HEADER_SIZE:
            raise AsmLoadError(f"{filename} is too short to hold a start address")
        start = protocol.ADDRESS_STRUCT.parse(image[:ASM_HEADER_SIZE])
        code = image[ASM_HEADER_SIZE:]
        if start + len(code) > protocol.UINT16_MAX + 1:
            raise AsmLoadError(f"{filename} ({len(code)} bytes at ${start:04X}) overflows the CPU address space")

        self._run(CpuMemWritePacket(address=start, data=code))
        logger.debug("Loaded %s at $%04X (%d bytes)", filename, start, len(code))
        return start

    # --- script plumbing ---

    def commands(self) -> dict[str, Callable[..., Any]]:
        return {
            "Echo": self.Echo,
            "CpuMemRd": self.CpuMemRd,
            "CpuMemWr": self.CpuMemWr,
            "DbgHlt": self.DbgHlt,
            "DbgRun": self.DbgRun,
            "CpuRegRd": self.CpuRegRd,
            "CpuRegWr": self.CpuRegWr,
            "WaitForHlt": self.WaitForHlt,
            "LoadAsm": self.LoadAsm,
            "PpuMemRd": self.PpuMemRd,
            "PpuMemWr": self.PpuMemWr,
            "print": self.print,
        }

    def namespace(self) -> dict[str, Any]:
        """Globals injected into every script."""
        commands = self.commands()
        namespace: dict[str, Any] = dict(commands)
        namespace["nesdbg"] = SimpleNamespace(**commands)
        namespace.update({result.name: int(result) for result in ScriptResult})
        namespace.update({register.name: int(register) for register in CpuReg})
        return namespace

    def execute_script(self, path: str | Path) -> tuple[ScriptResult, str]:
        """Run one script and map its verdict.

        Returns the result and, for ERROR, a human-readable reason.
        """
        script = Path(path)
        try:
            verdict = self._engine.run(script, self.namespace())
        except NesDbgError as e:
            logger.debug("Script %s aborted", script.name, exc_info=True)
            return self._finish(ScriptResult.ERROR, str(e))
        except (Exception, SystemExit) as e:
            # sys.exit() in a script ends that script, not the batch.
            logger.debug("Script %s raised", script.name, exc_info=True)
            return self._finish(ScriptResult.ERROR, f"{type(e).__name__}: {e}")

        if isinstance(verdict, bool) or not isinstance(verdict, int):
            return self._finish(ScriptResult.ERROR, f"main() returned {verdict!r}; expected PASS, FAIL or ERROR")
        try:
            result = ScriptResult(verdict)
        except ValueError:
            return self._finish(ScriptResult.ERROR, f"main() returned {verdict}; expected 0, 1 or 2")
        return self._finish(result, "")

    def _finish(self, result: ScriptResult, message: str) -> tuple[ScriptResult, str]:
        if self._metrics is not None:
            self._metrics.record_script_result(result)
        return result, message


__all__ = ["ScriptBridge"]
