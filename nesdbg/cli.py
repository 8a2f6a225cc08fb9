"""Command line entry point for the NES FPGA debug console.

Stop any other program holding the serial port before connecting; the
debug port cannot be shared.
"""

from __future__ import annotations

import argparse
import logging
import sys
from collections.abc import Sequence
from concurrent.futures import TimeoutError as FutureTimeout
from typing import Any, TextIO

from .config.logging import configure_logging
from .config.model import RuntimeConfig
from .config.settings import load_runtime_config
from .errors import DecodeError, HandshakeError, ImageValidationError, NesDbgError, TransportError
from .metrics import DebugMetrics, PrometheusExporter
from .protocol.hextext import decode_from_hex_text, format_hex
from .services.bridge import ScriptBridge
from .services.romload import RomLoader
from .services.runner import NO_TESTS_SELECTED, RunReport, TestRunEngine, discover_scripts
from .services.session import DebugSession
from .tools.console import RawConsole

logger = logging.getLogger("nesdbg.cli")

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_USAGE = 2

# Poll interval for the foreground while a batch runs on the worker.
_RUN_JOIN_INTERVAL = 0.2


def _positive_int(value: str) -> int:
    candidate = int(value, 0)
    if candidate <= 0:
        raise argparse.ArgumentTypeError("value must be positive")
    return candidate


def _build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="nesdbg",
        description="Host-side debug console for the NES FPGA.",
    )
    parser.add_argument("--config", "-c", help="TOML configuration file (default: ./nesdbg.toml if present).")
    parser.add_argument("--port", "-p", help="Serial device of the debug port.")
    parser.add_argument("--baud", "-b", type=_positive_int, help="Serial baud rate.")
    parser.add_argument("--debug", action="store_true", help="Log packet hex dumps at DEBUG level.")

    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("console", help="Interactive raw packet console.")

    send = sub.add_parser("send", help="Send one raw packet given as hex pairs.")
    send.add_argument("packet", nargs="+", help='Packet bytes, e.g. "01 00 80 10 00".')

    run = sub.add_parser("run", help="Run test scripts and print the report.")
    run.add_argument("scripts", nargs="*", help="Script names in the script directory, or paths.")
    run.add_argument("--all", "-a", action="store_true", help="Run every script in the script directory.")
    run.add_argument("--script-dir", help="Override the script directory.")

    listing = sub.add_parser("list", help="List test scripts.")
    listing.add_argument("--script-dir", help="Override the script directory.")

    load = sub.add_parser("load-rom", help="Load an iNES (mapper 0) ROM image and run it.")
    load.add_argument("rom", help="Path to the .nes file.")

    return parser


def _config_overrides(args: argparse.Namespace) -> dict[str, Any]:
    overrides: dict[str, Any] = {
        "serial_port": args.port,
        "serial_baud": args.baud,
        "script_dir": getattr(args, "script_dir", None),
    }
    if args.debug:
        overrides["debug_logging"] = True
    return overrides


def _print_progress(completed: int, total: int) -> None:
    print(f"Progress: {completed} / {total}", file=sys.stderr, flush=True)


def _build_bridge(session: DebugSession, config: RuntimeConfig) -> ScriptBridge:
    return ScriptBridge(
        session.executor,
        asm_dir=config.asm_dir,
        halt_poll_interval=config.halt_poll_interval,
        halt_wait_timeout=config.halt_wait_timeout,
        metrics=session.metrics,
    )


def _wait_for_report(engine: TestRunEngine, scripts: Sequence[str]) -> RunReport:
    future = engine.run_in_background(scripts)
    try:
        while True:
            try:
                return future.result(timeout=_RUN_JOIN_INTERVAL)
            except FutureTimeout:
                continue
            except KeyboardInterrupt:
                print("Cancelling test run...", file=sys.stderr)
                engine.cancel()
    finally:
        engine.shutdown()


def _cmd_list(config: RuntimeConfig, out: TextIO) -> int:
    for name in discover_scripts(config.script_dir):
        out.write(f"{name}\n")
    return EXIT_OK


def _cmd_console(session: DebugSession, out: TextIO) -> int:
    RawConsole(session.executor).run(sys.stdin, out, prompt=sys.stdin.isatty())
    return EXIT_OK


def _cmd_send(session: DebugSession, text: str, out: TextIO) -> int:
    packet = decode_from_hex_text(text)
    response = session.executor.execute(packet)
    if response:
        out.write(format_hex(response) + "\n")
    return EXIT_OK


def _cmd_run(session: DebugSession, config: RuntimeConfig, args: argparse.Namespace, out: TextIO) -> int:
    engine = TestRunEngine(_build_bridge(session, config), config.script_dir)
    scripts = engine.discover() if args.all else list(args.scripts)
    if not scripts:
        print(NO_TESTS_SELECTED, file=sys.stderr)
        return EXIT_USAGE

    engine.add_progress_listener(_print_progress)
    report = _wait_for_report(engine, scripts)
    out.write(report.render())
    return EXIT_OK if report.succeeded else EXIT_FAILURE


def _cmd_load_rom(session: DebugSession, config: RuntimeConfig, path: str, out: TextIO) -> int:
    def _progress(transferred: int, total: int) -> None:
        print(f"Loaded {transferred} / {total} bytes", file=sys.stderr, flush=True)

    loader = RomLoader(session.executor, chunk_size=config.rom_chunk_size, progress=_progress)
    rom = loader.load_rom_file(path)
    pcl, pch = rom.reset_vector
    out.write(f"ROM loaded; running from ${pch:02X}{pcl:02X}\n")
    return EXIT_OK


def _dispatch(args: argparse.Namespace, config: RuntimeConfig, metrics: DebugMetrics, out: TextIO) -> int:
    if args.command == "list":
        return _cmd_list(config, out)

    if args.command == "send":
        # Reject bad input before touching the port.
        decode_from_hex_text(" ".join(args.packet))

    with DebugSession.from_config(config, metrics) as session:
        match args.command:
            case "console":
                return _cmd_console(session, out)
            case "send":
                return _cmd_send(session, " ".join(args.packet), out)
            case "run":
                return _cmd_run(session, config, args, out)
            case "load-rom":
                return _cmd_load_rom(session, config, args.rom, out)
            case _:
                raise ValueError(f"Unknown command {args.command}")


def main(argv: list[str] | None = None) -> int:
    parser = _build_arg_parser()
    args = parser.parse_args(argv)

    try:
        config = load_runtime_config(args.config, _config_overrides(args))
    except ValueError as exc:
        parser.error(str(exc))
        return EXIT_USAGE

    configure_logging(config)

    metrics = DebugMetrics()
    exporter: PrometheusExporter | None = None

    try:
        if config.metrics_enabled:
            exporter = PrometheusExporter(metrics, config.metrics_host, config.metrics_port)
            exporter.start()
        return _dispatch(args, config, metrics, sys.stdout)
    except DecodeError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return EXIT_USAGE
    except (HandshakeError, ImageValidationError, TransportError) as exc:
        print(str(exc), file=sys.stderr)
        return EXIT_FAILURE
    except NesDbgError as exc:
        logger.error("Command failed: %s", exc)
        return EXIT_FAILURE
    except OSError as exc:
        # Exporter bind failures and other host I/O.
        print(f"Error: {exc}", file=sys.stderr)
        return EXIT_FAILURE
    finally:
        if exporter is not None:
            exporter.stop()


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    sys.exit(main())
