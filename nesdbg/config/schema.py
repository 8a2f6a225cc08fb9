"""Marshmallow schema for RuntimeConfig validation."""

from __future__ import annotations

import os
from typing import Any, Dict

from marshmallow import Schema, ValidationError, fields, post_load, pre_load, validate, validates_schema

from ..const import (
    DEFAULT_ASM_DIR,
    DEFAULT_DEBUG_LOGGING,
    DEFAULT_HALT_POLL_INTERVAL,
    DEFAULT_HALT_WAIT_TIMEOUT,
    DEFAULT_METRICS_ENABLED,
    DEFAULT_METRICS_HOST,
    DEFAULT_METRICS_PORT,
    DEFAULT_ROM_CHUNK_SIZE,
    DEFAULT_SCRIPT_DIR,
    DEFAULT_SERIAL_BAUD,
    DEFAULT_SERIAL_BYTESIZE,
    DEFAULT_SERIAL_PARITY,
    DEFAULT_SERIAL_PORT,
    DEFAULT_SERIAL_SETTLE_DELAY,
    DEFAULT_SERIAL_STOPBITS,
    DEFAULT_SERIAL_TIMEOUT,
    SERIAL_BYTESIZES,
    SERIAL_PARITIES,
    SERIAL_STOPBITS,
)
from ..protocol.protocol import UINT16_MAX
from .model import RuntimeConfig


class RuntimeConfigSchema(Schema):
    """Declarative validation schema for nesdbg configuration."""

    # Serial
    serial_port = fields.Str(load_default=DEFAULT_SERIAL_PORT, validate=validate.Length(min=1))
    serial_baud = fields.Int(load_default=DEFAULT_SERIAL_BAUD, validate=validate.Range(min=300))
    serial_bytesize = fields.Int(load_default=DEFAULT_SERIAL_BYTESIZE, validate=validate.OneOf(sorted(SERIAL_BYTESIZES)))
    serial_parity = fields.Str(load_default=DEFAULT_SERIAL_PARITY, validate=validate.OneOf(sorted(SERIAL_PARITIES)))
    serial_stopbits = fields.Float(load_default=DEFAULT_SERIAL_STOPBITS, validate=validate.OneOf(sorted(SERIAL_STOPBITS)))
    serial_timeout = fields.Float(load_default=DEFAULT_SERIAL_TIMEOUT, validate=validate.Range(min=0.01))
    serial_settle_delay = fields.Float(load_default=DEFAULT_SERIAL_SETTLE_DELAY, validate=validate.Range(min=0.0))

    # Scripts and images
    script_dir = fields.Str(load_default=DEFAULT_SCRIPT_DIR, validate=validate.Length(min=1))
    asm_dir = fields.Str(load_default=DEFAULT_ASM_DIR, validate=validate.Length(min=1))
    rom_chunk_size = fields.Int(load_default=DEFAULT_ROM_CHUNK_SIZE, validate=validate.Range(min=1, max=UINT16_MAX))
    halt_poll_interval = fields.Float(load_default=DEFAULT_HALT_POLL_INTERVAL, validate=validate.Range(min=0.0))
    halt_wait_timeout = fields.Float(load_default=DEFAULT_HALT_WAIT_TIMEOUT, validate=validate.Range(min=0.0))

    # System
    debug_logging = fields.Bool(load_default=DEFAULT_DEBUG_LOGGING)
    log_file = fields.Str(load_default=None, allow_none=True)
    metrics_enabled = fields.Bool(load_default=DEFAULT_METRICS_ENABLED)
    metrics_host = fields.Str(load_default=DEFAULT_METRICS_HOST, validate=validate.Length(min=1))
    metrics_port = fields.Int(load_default=DEFAULT_METRICS_PORT, validate=validate.Range(min=0, max=65535))

    @pre_load
    def normalize_parity(self, data: Dict[str, Any], **kwargs: Any) -> Dict[str, Any]:
        parity = data.get("serial_parity")
        if isinstance(parity, str):
            data["serial_parity"] = parity.strip().upper()[:1]
        return data

    @validates_schema
    def validate_log_file(self, data: Dict[str, Any], **kwargs: Any) -> None:
        log_file = data.get("log_file")
        if log_file is not None and not log_file.strip():
            raise ValidationError("log_file may not be blank", field_name="log_file")

    @staticmethod
    def _normalize_path(value: str) -> str:
        return os.path.expanduser(value.strip())

    @post_load
    def make_config(self, data: Dict[str, Any], **kwargs: Any) -> RuntimeConfig:
        data["script_dir"] = self._normalize_path(data["script_dir"])
        data["asm_dir"] = self._normalize_path(data["asm_dir"])
        if data.get("log_file"):
            data["log_file"] = self._normalize_path(data["log_file"])
        stopbits = data["serial_stopbits"]
        if float(stopbits).is_integer():
            data["serial_stopbits"] = int(stopbits)
        return RuntimeConfig(**data)
