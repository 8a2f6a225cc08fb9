"""Test run engine: execute a batch of scripts and build the report."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterable
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from transitions import Machine

from ..const import DEFAULT_SCRIPT_DIR, SCRIPT_SUFFIX
from ..errors import EmptySelectionError
from .bridge import ScriptBridge
from .scripting import ScriptResult

logger = logging.getLogger("nesdbg.runner")

ProgressListener = Callable[[int, int], None]

NO_TESTS_SELECTED = "No tests selected."


def discover_scripts(script_dir: str | Path) -> list[str]:
    """Script file names in ``script_dir``, sorted; helpers named ``_*`` are skipped."""
    directory = Path(script_dir)
    if not directory.is_dir():
        return []
    return sorted(
        path.name
        for path in directory.iterdir()
        if path.is_file() and path.suffix == SCRIPT_SUFFIX and not path.name.startswith("_")
    )


def script_banner(name: str) -> str:
    return f"====== {name} ========================\n"


def result_banner(result: ScriptResult) -> str:
    return f"====== Result: {result.name}\n"


@dataclass(slots=True)
class RunEntry:
    name: str
    result: ScriptResult
    output: str


@dataclass(slots=True)
class RunReport:
    """Ordered script outcomes with running totals."""

    total: int
    entries: list[RunEntry] = field(default_factory=list)
    cancelled: bool = False

    @property
    def completed(self) -> int:
        return len(self.entries)

    def _count(self, result: ScriptResult) -> int:
        return sum(1 for entry in self.entries if entry.result is result)

    @property
    def passed(self) -> int:
        return self._count(ScriptResult.PASS)

    @property
    def failed(self) -> int:
        return self._count(ScriptResult.FAIL)

    @property
    def errored(self) -> int:
        return self._count(ScriptResult.ERROR)

    @property
    def succeeded(self) -> bool:
        return not self.cancelled and self.passed == self.total

    @property
    def output(self) -> str:
        return "".join(entry.output for entry in self.entries)

    def progress_text(self) -> str:
        return f"Progress: {self.completed} / {self.total}"

    def results_text(self) -> str:
        return f"Results: {self.passed} Pass / {self.failed} Fail / {self.errored} Error"

    def render(self) -> str:
        return f"{self.output}{self.progress_text()}\n{self.results_text()}\n"


class TestRunEngine:
    """Run selected scripts one at a time through a :class:`ScriptBridge`.

    Progress listeners are called with ``(completed, total)``: once with
    ``(0, N)`` when the batch starts and once after every script.
    """

    __test__ = False

    if TYPE_CHECKING:
        # FSM generated methods and attributes for static analysis
        fsm_state: str
        start_run: Callable[[], None]
        finish_run: Callable[[], None]

    # FSM States
    STATE_IDLE = "idle"
    STATE_RUNNING = "running"
    STATE_COMPLETED = "completed"

    def __init__(self, bridge: ScriptBridge, script_dir: str | Path = DEFAULT_SCRIPT_DIR) -> None:
        self._bridge = bridge
        self._script_dir = Path(script_dir)
        self._listeners: list[ProgressListener] = []
        self._lock = threading.Lock()
        self._pool: ThreadPoolExecutor | None = None
        self.last_report: RunReport | None = None

        self.state_machine = Machine(
            model=self,
            states=[self.STATE_IDLE, self.STATE_RUNNING, self.STATE_COMPLETED],
            initial=self.STATE_IDLE,
            ignore_invalid_triggers=True,
            model_attribute="fsm_state",
        )
        self.state_machine.add_transition(
            trigger="start_run",
            source=[self.STATE_IDLE, self.STATE_COMPLETED],
            dest=self.STATE_RUNNING,
        )
        self.state_machine.add_transition(trigger="finish_run", source=self.STATE_RUNNING, dest=self.STATE_COMPLETED)

    @property
    def script_dir(self) -> Path:
        return self._script_dir

    @property
    def running(self) -> bool:
        return self.fsm_state == self.STATE_RUNNING

    def add_progress_listener(self, listener: ProgressListener) -> None:
        self._listeners.append(listener)

    def remove_progress_listener(self, listener: ProgressListener) -> None:
        self._listeners.remove(listener)

    def discover(self) -> list[str]:
        return discover_scripts(self._script_dir)

    def _resolve(self, selection: str | Path) -> Path:
        candidate = Path(selection)
        if candidate.is_absolute() or candidate.exists():
            return candidate
        return self._script_dir / candidate

    def _notify(self, completed: int, total: int) -> None:
        for listener in list(self._listeners):
            listener(completed, total)

    def cancel(self) -> None:
        """Abort the current script and skip the rest of the batch."""
        self._bridge.cancel()

    def run(self, selection: Iterable[str | Path]) -> RunReport:
        scripts = [self._resolve(item) for item in selection]
        if not scripts:
            raise EmptySelectionError(NO_TESTS_SELECTED)

        with self._lock:
            if self.running:
                raise RuntimeError("A test run is already in progress")
            self.start_run()

        report = RunReport(total=len(scripts))
        self._bridge.reset_cancel()
        self._bridge.take_output()
        try:
            self._notify(0, report.total)
            for script in scripts:
                if self._bridge.cancelled:
                    report.cancelled = True
                    logger.info("Test run cancelled after %d of %d", report.completed, report.total)
                    break
                report.entries.append(self._run_one(script))
                self._notify(report.completed, report.total)
        finally:
            self.last_report = report
            self.finish_run()

        logger.info(
            "Test run finished",
            extra={"passed": report.passed, "failed": report.failed, "errored": report.errored},
        )
        return report

    def _run_one(self, script: Path) -> RunEntry:
        name = script.name
        result, message = self._bridge.execute_script(script)
        output = script_banner(name) + self._bridge.take_output()
        if result is ScriptResult.ERROR and message:
            output += f"{message}\n"
        output += result_banner(result)
        logger.info("%s: %s", name, result.name)
        return RunEntry(name=name, result=result, output=output)

    def run_in_background(self, selection: Iterable[str | Path]) -> Future[RunReport]:
        """Run the batch on a worker thread so the caller stays responsive."""
        scripts = list(selection)
        if not scripts:
            raise EmptySelectionError(NO_TESTS_SELECTED)
        if self._pool is None:
            self._pool = ThreadPoolExecutor(max_workers=1, thread_name_prefix="nesdbg-run")
        return self._pool.submit(self.run, scripts)

    def shutdown(self) -> None:
        if self._pool is not None:
            self._pool.shutdown(wait=True)
            self._pool = None


__all__ = [
    "NO_TESTS_SELECTED",
    "ProgressListener",
    "RunEntry",
    "RunReport",
    "TestRunEngine",
    "discover_scripts",
    "result_banner",
    "script_banner",
]
