"""Exception hierarchy for nesdbg.

Every rejected operation raises one of these with a human-readable reason.
"""

from __future__ import annotations


class NesDbgError(Exception):
    """Base class for all nesdbg errors."""


class DecodeError(NesDbgError, ValueError):
    """Operator-supplied packet text could not be turned into a packet."""


class MalformedHex(DecodeError):
    """Invalid character or odd number of hex digits."""


class UnknownOpcode(DecodeError):
    """Opcode byte is not in the catalogue or not accepted for this input."""


class TruncatedPayload(DecodeError):
    """Fewer bytes than the opcode's layout requires."""


class InvalidField(DecodeError):
    """A field inside a well-formed packet holds an unsupported value."""


class TransportError(NesDbgError, OSError):
    """Short read/write or I/O failure on the byte stream."""


class HandshakeError(NesDbgError):
    """The device did not echo the liveness token back."""


class ScriptUsageError(NesDbgError, TypeError):
    """A script called a command with the wrong argument shape."""


class ScriptLoadError(NesDbgError):
    """A script file could not be read, compiled or lacks ``main()``."""


class AsmLoadError(NesDbgError):
    """A .prg image could not be read or does not fit a single write."""


class HaltTimeoutError(NesDbgError, TimeoutError):
    """The CPU did not report halted within the allotted time."""


class ScriptCancelledError(NesDbgError):
    """A blocking script command was cancelled by the operator."""


class EmptySelectionError(NesDbgError, ValueError):
    """A test run was requested with no scripts selected."""


class ImageValidationError(NesDbgError, ValueError):
    """ROM header, mapper or size is not supported."""


__all__ = [
    "NesDbgError",
    "DecodeError",
    "MalformedHex",
    "UnknownOpcode",
    "TruncatedPayload",
    "InvalidField",
    "TransportError",
    "HandshakeError",
    "ScriptUsageError",
    "ScriptLoadError",
    "AsmLoadError",
    "HaltTimeoutError",
    "ScriptCancelledError",
    "EmptySelectionError",
    "ImageValidationError",
]
