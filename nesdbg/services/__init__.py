"""Service layer for nesdbg console operations."""

from .bridge import ScriptBridge
from .executor import CommandExecutor
from .romload import RomImage, RomLoader, parse_ines_image
from .runner import RunReport, TestRunEngine
from .scripting import PythonScriptEngine, ScriptEngine, ScriptResult
from .session import DebugSession

__all__ = [
    "CommandExecutor",
    "DebugSession",
    "PythonScriptEngine",
    "RomImage",
    "RomLoader",
    "RunReport",
    "ScriptBridge",
    "ScriptEngine",
    "ScriptResult",
    "TestRunEngine",
    "parse_ines_image",
]
