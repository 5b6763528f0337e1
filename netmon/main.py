"""netmon: network request monitor dashboard server and offline tools."""

import json
import logging
import sys
from argparse import ArgumentParser

from netmon.aggregator import compute_metrics, format_metrics_text, metrics_to_dict
from netmon.app import build_monitor, build_storage, create_app
from netmon.config import Config
from netmon.exporter import write_export
from netmon.filters import apply_filter, empty_state_message

logger = logging.getLogger(__name__)


def build_parser() -> ArgumentParser:
    """Build the CLI argument parser."""
    parser = ArgumentParser(
        prog="netmon",
        description="Monitor outbound request latency and outcomes.",
    )
    parser.add_argument("--config", help="Path to a YAML config file")
    parser.add_argument("--log-level", help="Override the configured log level")
    sub = parser.add_subparsers(dest="command")

    serve = sub.add_parser("serve", help="Run the dashboard and signal feed server")
    serve.add_argument("--host", help="Bind address")
    serve.add_argument("--port", type=int, help="Bind port")

    stats = sub.add_parser("stats", help="Print health metrics for the stored history")
    stats.add_argument("--search", help="Only include domains containing this text")
    stats.add_argument("--output", choices=["text", "json"], default="text")

    export = sub.add_parser("export", help="Write the stored history to a file")
    export.add_argument("--search", help="Only include domains containing this text")
    export.add_argument("--format", choices=["json", "csv"], default="json")
    export.add_argument("--dir", help="Output directory (default: export.directory)")

    sub.add_parser("clear", help="Delete the stored history")
    return parser


def configure_logging(level_name: str):
    logging.basicConfig(
        level=getattr(logging, level_name.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s - %(message)s",
        stream=sys.stderr,
    )


def run_serve(config, args):
    server = config["server"]
    host = args.host or server["host"]
    port = args.port or server["port"]
    app = create_app(config)
    logger.info("Dashboard running on http://%s:%d", host, port)
    app.run(host=host, port=port, debug=server["debug"], use_reloader=False)


def run_stats(config, args):
    monitor = build_monitor(config, storage=build_storage(config, allow_async=False))
    all_logs = monitor.store.get_all()
    visible = apply_filter(all_logs, args.search)
    message = empty_state_message(len(all_logs), len(visible), args.search)
    metrics = compute_metrics(visible, config["dashboard"]["window_size"])

    if args.output == "json":
        print(json.dumps(metrics_to_dict(metrics), indent=2))
    elif message:
        print(message)
    else:
        print(format_metrics_text(metrics))


def run_export(config, args):
    monitor = build_monitor(config, storage=build_storage(config, allow_async=False))
    document = monitor.export(query=args.search, fmt=args.format)
    path = write_export(document, args.dir or config["export"]["directory"])
    print(path)


def run_clear(config, args):
    monitor = build_monitor(config, storage=build_storage(config, allow_async=False))
    monitor.clear()
    print("Cleared stored network logs")


COMMANDS = {
    "serve": run_serve,
    "stats": run_stats,
    "export": run_export,
    "clear": run_clear,
}


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)
    config = Config.from_env(args.config)
    configure_logging(args.log_level or config["logging"]["level"])

    command = args.command or "serve"
    if command == "serve" and args.command is None:
        args = parser.parse_args(list(argv if argv is not None else sys.argv[1:]) + ["serve"])
    COMMANDS[command](config, args)


if __name__ == "__main__":
    try:
        main()
    except KeyboardInterrupt:
        sys.exit(0)
