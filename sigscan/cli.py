"""CLI entrypoints for sigscan commands."""

from __future__ import annotations

import argparse
import sys
import threading
from pathlib import Path

from .config import ConfigError
from .exporter import ExportOptions
from .logging import configure_logging
from .session import SigScanSession
from .watcher import PollingWatcher, UpdateLoop


def _add_verbose_option(
    parser: argparse.ArgumentParser, *, suppress_default: bool = False
) -> None:
    kwargs: dict[str, object] = {
        "action": "store_true",
        "help": "Increase log verbosity for troubleshooting.",
    }
    if suppress_default:
        kwargs["default"] = argparse.SUPPRESS
    else:
        kwargs["default"] = False
    parser.add_argument(
        "-v",
        "--verbose",
        **kwargs,
    )


def _add_path_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "path",
        nargs="?",
        default=".",
        help="Path to the project root (defaults to current directory).",
    )


def _add_export_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "-o",
        "--output",
        default=None,
        help="Output directory (default from .sigscan.yml, else ./signatures).",
    )
    parser.add_argument(
        "-f",
        "--formats",
        default=None,
        help="Comma-separated export formats: txt,json,csv,md.",
    )
    parser.add_argument(
        "--include-internal",
        action="store_true",
        default=None,
        help="Include internal functions.",
    )
    parser.add_argument(
        "--include-private",
        action="store_true",
        default=None,
        help="Include private functions.",
    )
    parser.add_argument(
        "--no-events",
        dest="include_events",
        action="store_false",
        default=None,
        help="Leave events out of the export.",
    )
    parser.add_argument(
        "--no-errors",
        dest="include_errors",
        action="store_false",
        default=None,
        help="Leave custom errors out of the export.",
    )
    parser.add_argument(
        "--combined",
        dest="separate_by_category",
        action="store_false",
        default=None,
        help="Write one timestamped file per format instead of one per category.",
    )
    parser.add_argument(
        "--no-dedup",
        dest="deduplicate",
        action="store_false",
        default=None,
        help="Emit every contract in full, including duplicated signatures.",
    )
    parser.add_argument(
        "--no-update-marker",
        dest="update_existing",
        action="store_false",
        default=None,
        help="Do not stamp exported files with an update marker.",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sigscan",
        description="Extract function, event and error selectors from Solidity projects.",
    )
    _add_verbose_option(parser)
    parser.add_argument(
        "--log-file",
        type=Path,
        default=None,
        help="Also write debug-level logs to this file.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    scan_parser = subparsers.add_parser(
        "scan",
        help="Scan the project and export signatures.",
    )
    _add_verbose_option(scan_parser, suppress_default=True)
    _add_path_argument(scan_parser)
    _add_export_options(scan_parser)

    watch_parser = subparsers.add_parser(
        "watch",
        help="Scan, export, then re-export whenever source files change.",
    )
    _add_verbose_option(watch_parser, suppress_default=True)
    _add_path_argument(watch_parser)
    _add_export_options(watch_parser)
    watch_parser.add_argument(
        "--interval",
        type=float,
        default=None,
        help="Polling interval in seconds (default from .sigscan.yml, else 1.0).",
    )

    info_parser = subparsers.add_parser(
        "info",
        help="Show detected project layout and signature counts.",
    )
    _add_verbose_option(info_parser, suppress_default=True)
    _add_path_argument(info_parser)

    serve_parser = subparsers.add_parser(
        "serve",
        help="Run the HTTP service.",
    )
    _add_verbose_option(serve_parser, suppress_default=True)
    serve_parser.add_argument("--host", default="127.0.0.1", help="Interface to bind.")
    serve_parser.add_argument("--port", type=int, default=8000, help="Port to bind.")

    return parser


def _export_options(session: SigScanSession, args: argparse.Namespace) -> ExportOptions:
    formats = None
    if args.formats:
        formats = [item.strip() for item in args.formats.split(",") if item.strip()]
    return session.export_options(
        formats=formats,
        output_dir=args.output,
        include_internal=args.include_internal,
        include_private=args.include_private,
        include_events=args.include_events,
        include_errors=args.include_errors,
        separate_by_category=args.separate_by_category,
        deduplicate=args.deduplicate,
        update_existing=args.update_existing,
    )


def _print_summary(session: SigScanSession) -> None:
    snapshot = session.require_snapshot()
    print(f"Found {snapshot.total_contracts} contracts")
    print(f"Total functions: {snapshot.total_functions}")
    print(f"Total events: {snapshot.total_events}")
    print(f"Total errors: {snapshot.total_errors}")
    for diagnostic in snapshot.diagnostics:
        print(f"Skipped {diagnostic.path}: {diagnostic.message}", file=sys.stderr)


def _run_scan(session: SigScanSession, args: argparse.Namespace) -> int:
    options = _export_options(session, args)
    print(f"Scanning project: {session.root}")
    session.scan()
    _print_summary(session)
    report = session.export(options)
    print(f"Signatures exported to: {_relativize(Path(options.output_dir))}")
    for fmt, message in report.failures.items():
        print(f"Export failed for {fmt}: {message}", file=sys.stderr)
    return 0 if report.ok else 1


def _run_watch(session: SigScanSession, args: argparse.Namespace) -> int:
    options = _export_options(session, args)
    interval = args.interval or session.config.watch.poll_interval
    print(f"Initial scan of project: {session.root}")
    snapshot = session.scan()
    session.export(options)
    print(f"Initial export completed: {_relativize(Path(options.output_dir))}")

    watcher = PollingWatcher(session.scanner, snapshot)
    watcher.prime()
    loop = UpdateLoop(lambda event: session.process(event, options))
    loop.start()
    stop = threading.Event()
    print("Watching for changes... (Press Ctrl+C to stop)")
    try:
        watcher.run(loop.submit, stop, interval)
    except KeyboardInterrupt:
        print("\nStopping watcher...")
    finally:
        stop.set()
        loop.stop()
    return 0


def _run_info(session: SigScanSession) -> int:
    snapshot = session.scan()
    print("Project Information:")
    print(f"  Type: {snapshot.project_kind}")
    print(f"  Path: {snapshot.root_path}")
    print(f"  Source Directories: {', '.join(snapshot.source_dirs)}")
    print(f"  Script Directories: {', '.join(snapshot.script_dirs)}")
    for category, records in snapshot.contracts_by_category.items():
        print(f"  {category.title()}: {len(records)}")
    print(f"  Total Contracts: {snapshot.total_contracts}")
    print(f"  Total Functions: {snapshot.total_functions}")
    print(f"  Total Events: {snapshot.total_events}")
    print(f"  Total Errors: {snapshot.total_errors}")
    print(f"  Unique Signatures: {len(snapshot.unique_signatures)}")
    return 0


def main(argv: list[str] | None = None) -> None:
    """CLI entrypoint for sigscan commands."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    configure_logging(verbose=bool(args.verbose), log_file=args.log_file)

    if args.command == "serve":
        from .service import run_service

        run_service(host=args.host, port=args.port)
        return

    try:
        session = SigScanSession(args.path)
        if args.command == "scan":
            code = _run_scan(session, args)
        elif args.command == "watch":
            code = _run_watch(session, args)
        elif args.command == "info":
            code = _run_info(session)
        else:  # pragma: no cover - argparse enforces choices
            parser.exit(1, "Unknown command\n")
    except (FileNotFoundError, NotADirectoryError, ConfigError) as exc:
        parser.exit(1, f"{exc}\n")
    except Exception as exc:  # pragma: no cover - last-resort reporting
        parser.exit(1, f"sigscan {args.command} failed: {exc}\nRun with --verbose for more details.\n")
    if code:
        sys.exit(code)


def _relativize(path: Path) -> str:
    try:
        return str(path.resolve().relative_to(Path.cwd()))
    except ValueError:
        return str(path)


if __name__ == "__main__":
    main(sys.argv[1:])
