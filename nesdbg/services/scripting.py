"""Script engines for hardware test scripts."""

from __future__ import annotations

import logging
import runpy
from collections.abc import Mapping
from enum import IntEnum
from pathlib import Path
from typing import Any, Protocol

from ..errors import ScriptLoadError

logger = logging.getLogger("nesdbg.scripting")

SCRIPT_ENTRY_POINT = "main"
SCRIPT_RUN_NAME = "__nesdbg_script__"


class ScriptResult(IntEnum):
    PASS = 0
    FAIL = 1
    # The script could not produce a verdict.
    ERROR = 2


class ScriptEngine(Protocol):
    """Executes one script file and returns its raw verdict."""

    def run(self, path: Path, namespace: Mapping[str, Any]) -> object: ...


class PythonScriptEngine:
    """Run ``.py`` test scripts in a fresh namespace.

    The script runs as a module with ``namespace`` as its initial
    globals, then its ``main()`` is called and the return value is
    handed back as the verdict. Exceptions raised by the script propagate.
    """

    def run(self, path: Path, namespace: Mapping[str, Any]) -> object:
        if not path.is_file():
            raise ScriptLoadError(f"Cannot read script {path.name}: no such file")

        try:
            script_globals = runpy.run_path(str(path), init_globals=dict(namespace), run_name=SCRIPT_RUN_NAME)
        except SyntaxError as e:
            raise ScriptLoadError(f"Syntax error in {path.name} line {e.lineno}: {e.msg}") from e

        entry = script_globals.get(SCRIPT_ENTRY_POINT)
        if not callable(entry):
            raise ScriptLoadError(f"{path.name} does not define {SCRIPT_ENTRY_POINT}()")
        logger.debug("Running %s", path.name)
        return entry()


__all__ = ["ScriptResult", "ScriptEngine", "PythonScriptEngine", "SCRIPT_ENTRY_POINT", "SCRIPT_RUN_NAME"]
