"""CLI entrypoints for the projector control daemon and link tools."""

from __future__ import annotations

import argparse
import asyncio
import json
from dataclasses import asdict
from pathlib import Path

from pjcontrol_core import AppConfig, ProjectorService, load_config
from pjcontrol_core.logging_setup import configure_logging, install_crash_hooks
from pjcontrol_link import ItemNumber, LinkSession, ReplayRunner, encode_frame
from pjcontrol_link.frame import hex_bytes


def _print_json(data: object) -> None:
    print(json.dumps(data, indent=2, sort_keys=True, default=str))


def _load(args: argparse.Namespace) -> AppConfig:
    cfg = load_config(Path(args.config) if getattr(args, "config", None) else None)
    if getattr(args, "port", None):
        cfg.link.port = args.port
    if getattr(args, "debug", False):
        cfg.logging.debug = True
    return cfg


def _parse_word(value: str) -> int:
    word = int(value, 0)
    if not 0 <= word <= 0xFFFF:
        raise argparse.ArgumentTypeError(f"{value} does not fit in 16 bits")
    return word


async def _run_service(cfg: AppConfig) -> None:
    service = ProjectorService(cfg)
    service.start()
    try:
        await asyncio.Event().wait()
    finally:
        await service.stop()


def cmd_run(args: argparse.Namespace) -> int:
    cfg = _load(args)
    configure_logging(keep_files=cfg.logging.keep_files, console=True, debug=cfg.logging.debug)
    install_crash_hooks()
    try:
        asyncio.run(_run_service(cfg))
    except KeyboardInterrupt:
        pass
    return 0


async def _one_shot(cfg: AppConfig, action: str) -> dict:
    service = ProjectorService(cfg)
    try:
        if action == "status":
            result = await service.poll_now()
            payload = service.status_payload()
        else:
            future = service.power_on() if action == "on" else service.power_off()
            result = await future
            payload = {"action": action}
        payload["success"] = result.ok
        if result.error is not None:
            payload["error"] = str(result.error)
        return payload
    finally:
        await service.stop()


def cmd_power(args: argparse.Namespace) -> int:
    cfg = _load(args)
    configure_logging(keep_files=cfg.logging.keep_files, console=False, debug=cfg.logging.debug)
    payload = asyncio.run(_one_shot(cfg, args.state))
    _print_json(payload)
    return 0 if payload["success"] else 1


def cmd_status(args: argparse.Namespace) -> int:
    cfg = _load(args)
    configure_logging(keep_files=cfg.logging.keep_files, console=False, debug=cfg.logging.debug)
    payload = asyncio.run(_one_shot(cfg, "status"))
    _print_json(payload)
    return 0 if payload["success"] else 1


def cmd_list_ports(_args: argparse.Namespace) -> int:
    _print_json([asdict(d) for d in LinkSession.discover()])
    return 0


def cmd_replay(args: argparse.Namespace) -> int:
    report = ReplayRunner().run(Path(args.transcript))
    payload = asdict(report)
    payload["success"] = len(report.errors) == 0
    _print_json(payload)
    return 0 if not report.errors else 2


def cmd_encode(args: argparse.Namespace) -> int:
    is_get = args.set is None
    frame = encode_frame(args.item, is_get, 0 if is_get else args.set)
    print(hex_bytes(frame))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="pjcontrol", description="Projector serial control daemon and tools")
    parser.add_argument("--config", default=None, help="Optional path to config.json")
    sub = parser.add_subparsers(dest="command", required=True)

    run_cmd = sub.add_parser("run", help="Run the control service and poll power status")
    run_cmd.add_argument("--port", default=None, help="Optional serial device override")
    run_cmd.add_argument("--debug", action="store_true", help="Log frames and state changes")
    run_cmd.set_defaults(func=cmd_run)

    power_cmd = sub.add_parser("power", help="Switch the projector on or off")
    power_cmd.add_argument("state", choices=["on", "off"])
    power_cmd.add_argument("--port", default=None, help="Optional serial device override")
    power_cmd.add_argument("--debug", action="store_true")
    power_cmd.set_defaults(func=cmd_power)

    status_cmd = sub.add_parser("status", help="Poll power status once and print it")
    status_cmd.add_argument("--port", default=None, help="Optional serial device override")
    status_cmd.add_argument("--debug", action="store_true")
    status_cmd.set_defaults(func=cmd_status)

    list_cmd = sub.add_parser("list-ports", help="List serial devices")
    list_cmd.set_defaults(func=cmd_list_ports)

    replay_cmd = sub.add_parser("replay", help="Decode a captured serial transcript")
    replay_cmd.add_argument("--transcript", required=True, help="Path to JSONL transcript")
    replay_cmd.set_defaults(func=cmd_replay)

    encode_cmd = sub.add_parser("encode", help="Print the frame for an item number")
    encode_cmd.add_argument("item", type=_parse_word, help=f"Item number, e.g. 0x{ItemNumber.POWER_STATUS:04X}")
    encode_cmd.add_argument("--set", type=_parse_word, default=None, metavar="DATA", help="Build a set request")
    encode_cmd.set_defaults(func=cmd_encode)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    return int(args.func(args))


if __name__ == "__main__":
    raise SystemExit(main())
