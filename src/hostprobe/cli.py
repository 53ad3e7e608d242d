"""Command line entry point: serve the HTTP API, run the dashboard, or print a report."""

from __future__ import annotations

import argparse
import json
import sys

from hostprobe.config import APP_NAME, MONITOR_POLL_SECONDS, load_settings
from hostprobe.log import setup_logging


def _parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog=APP_NAME)
    try:
        settings = load_settings()
    except ValueError as exc:
        parser.error(str(exc))
    parser.add_argument("--log-level", default=settings.log_level, help="Logging level.")
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Serve host telemetry over HTTP.")
    serve.add_argument("--host", default=settings.host, help="Address to bind.")
    serve.add_argument("--port", type=int, default=settings.port, help="Port to bind.")
    serve.add_argument(
        "--sample-interval",
        type=float,
        default=settings.sample_interval,
        help="Seconds between background sampler refreshes.",
    )

    top = sub.add_parser("top", help="Live dashboard in the terminal.")
    top.add_argument(
        "--interval", type=float, default=MONITOR_POLL_SECONDS, help="Seconds between updates."
    )

    report = sub.add_parser("report", help="Print a full system report as JSON.")
    report.add_argument("--indent", type=int, default=2, help="JSON indentation.")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(list(sys.argv[1:] if argv is None else argv))
    setup_logging(args.log_level)

    if args.command == "serve":
        import uvicorn

        from hostprobe.api import create_app

        if not 0 <= args.port <= 65535:
            raise SystemExit("--port must be in range 0..65535")
        uvicorn.run(
            create_app(sample_interval=args.sample_interval),
            host=args.host,
            port=args.port,
            log_level=args.log_level.lower(),
        )
        return 0

    if args.command == "top":
        from hostprobe.app import main as run_dashboard

        run_dashboard(poll_rate=args.interval)
        return 0

    from hostprobe.engine import TelemetryEngine

    envelope = TelemetryEngine().full_report()
    print(json.dumps(envelope.to_dict(), indent=args.indent, ensure_ascii=False))
    return 0 if envelope.success else 1


if __name__ == "__main__":
    raise SystemExit(main())
