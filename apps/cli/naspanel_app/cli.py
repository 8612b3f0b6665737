"""CLI entrypoints for the NAS panel: probing, writing, listening, diagnostics, replay."""

from __future__ import annotations

import argparse
import json
import time
from dataclasses import asdict
from pathlib import Path

from naspanel_core import (
    DiagnosticsExporter,
    PanelController,
    build_doctor_payload,
    load_config,
)
from naspanel_core.config import VARIANTS
from naspanel_core.logging_setup import configure_logging, install_crash_hooks, log_level
from naspanel_display import DisplayError, DisplayTransport, ReplayRunner, get_profile


def _print_json(data: object) -> None:
    print(json.dumps(data, indent=2, sort_keys=True, default=str))


def _controller(args: argparse.Namespace) -> PanelController:
    cfg = load_config()
    return PanelController.from_config(cfg, port=args.port, variant=args.variant)


def cmd_list_devices(_args: argparse.Namespace) -> int:
    cfg = load_config()
    _print_json(
        [
            {
                "device": d.device,
                "description": d.description,
                "hwid": d.hwid,
                "configured": d.device == cfg.device.port,
            }
            for d in DisplayTransport.discover()
        ]
    )
    return 0


def cmd_doctor(args: argparse.Namespace) -> int:
    cfg = load_config()
    payload = build_doctor_payload(cfg)

    if args.export:
        exporter = DiagnosticsExporter()
        out_dir = Path(args.out_dir).expanduser().resolve() if args.out_dir else None
        bundle = exporter.bundle(cfg=cfg, doctor_payload=payload, output_dir=out_dir)
        payload["diagnostics_bundle"] = str(bundle)

    _print_json(payload)
    return 0


def cmd_probe(args: argparse.Namespace) -> int:
    controller = _controller(args)
    variant = controller.connect()
    status = controller.status
    controller.disconnect()
    _print_json({"success": True, "variant": variant, "port": status.port})
    return 0


def cmd_write(args: argparse.Namespace) -> int:
    controller = _controller(args)
    try:
        controller.show(args.line, args.text)
    finally:
        controller.disconnect()
    _print_json({"success": True, "line": args.line, "text": args.text})
    return 0


def cmd_enable(args: argparse.Namespace) -> int:
    controller = _controller(args)
    try:
        controller.set_enabled(args.state == "on")
    finally:
        controller.disconnect()
    _print_json({"success": True, "enabled": args.state == "on"})
    return 0


def cmd_listen(args: argparse.Namespace) -> int:
    controller = _controller(args)
    controller.connect()
    remaining = [args.count]

    def on_button(btn: int, released: bool) -> bool:
        print(json.dumps({"button": btn, "released": released}), flush=True)
        if args.echo:
            controller.show(0, f"btn:{btn} released:{released}")
        if args.count:
            remaining[0] -= 1
            return remaining[0] > 0
        return True

    try:
        controller.listen(on_button)
    except KeyboardInterrupt:
        pass
    finally:
        controller.disconnect()
    return 0


def cmd_demo(args: argparse.Namespace) -> int:
    controller = _controller(args)
    try:
        controller.show(0, "First line...")
        for percent in range(0, 101, args.step):
            controller.show_progress(percent)
            time.sleep(args.delay_ms / 1000)
    finally:
        controller.disconnect()
    _print_json({"success": True, "events": len(controller.recent_events())})
    return 0


def cmd_replay(args: argparse.Namespace) -> int:
    runner = ReplayRunner(get_profile(args.variant))
    report = runner.run(Path(args.transcript), strict=not args.no_strict)
    payload = asdict(report)
    payload["success"] = len(report.errors) == 0
    _print_json(payload)
    return 0 if not report.errors else 2


def _add_device_args(cmd: argparse.ArgumentParser) -> None:
    cmd.add_argument("--port", default=None, help="Serial port override (default from config)")
    cmd.add_argument("--variant", default=None, choices=list(VARIANTS), help="Display family")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="naspanel", description="NAS front-panel LCD tools")
    parser.add_argument("--verbose", action="store_true", help="Log to the console as well")
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Log per-frame detail (retries, checksum mismatches); implies --verbose",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    doctor_cmd = sub.add_parser("doctor", help="Print diagnostics and detected serial ports")
    doctor_cmd.add_argument("--export", action="store_true", help="Export offline diagnostics bundle")
    doctor_cmd.add_argument("--out-dir", default=None, help="Optional output directory for diagnostics bundle")
    doctor_cmd.set_defaults(func=cmd_doctor)

    list_cmd = sub.add_parser("list-devices", help="List serial devices")
    list_cmd.set_defaults(func=cmd_list_devices)

    probe_cmd = sub.add_parser("probe", help="Handshake with the panel and report its family")
    _add_device_args(probe_cmd)
    probe_cmd.set_defaults(func=cmd_probe)

    write_cmd = sub.add_parser("write", help="Write text to one line")
    write_cmd.add_argument("--line", type=int, choices=[0, 1], default=0)
    write_cmd.add_argument("--text", required=True)
    _add_device_args(write_cmd)
    write_cmd.set_defaults(func=cmd_write)

    enable_cmd = sub.add_parser("enable", help="Switch the display on or off")
    enable_cmd.add_argument("state", choices=["on", "off"])
    _add_device_args(enable_cmd)
    enable_cmd.set_defaults(func=cmd_enable)

    listen_cmd = sub.add_parser("listen", help="Print button events as JSON lines")
    listen_cmd.add_argument("--count", type=int, default=0, help="Stop after N events (0 = until Ctrl-C)")
    listen_cmd.add_argument("--echo", action="store_true", help="Show each event on line 0")
    _add_device_args(listen_cmd)
    listen_cmd.set_defaults(func=cmd_listen)

    demo_cmd = sub.add_parser("demo", help="Show a line of text and a running progress bar")
    demo_cmd.add_argument("--step", type=int, default=5)
    demo_cmd.add_argument("--delay-ms", type=int, default=100)
    _add_device_args(demo_cmd)
    demo_cmd.set_defaults(func=cmd_demo)

    replay_cmd = sub.add_parser("replay", help="Analyze captured serial transcript")
    replay_cmd.add_argument("--transcript", required=True, help="Path to JSONL transcript")
    replay_cmd.add_argument("--variant", default="asustor", choices=list(VARIANTS[1:]))
    replay_cmd.add_argument("--no-strict", action="store_true", help="Skip mandatory probe/ready checks")
    replay_cmd.set_defaults(func=cmd_replay)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(
        keep_files=load_config().diagnostics.keep_log_files,
        console=args.verbose or args.debug,
        level=log_level(args.debug),
    )
    install_crash_hooks()
    try:
        return int(args.func(args))
    except DisplayError as exc:
        _print_json({"success": False, "error": type(exc).__name__, "detail": str(exc)})
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
