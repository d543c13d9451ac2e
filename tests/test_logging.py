"""Tests for sigscan.logging."""

from __future__ import annotations

import io
from pathlib import Path

from sigscan.cli import _build_parser
from sigscan.logging import configure_logging, get_logger, log_exception


def test_console_output_marks_problems_only() -> None:
    stream = io.StringIO()
    configure_logging(stream=stream)
    logger = get_logger("scanner")

    logger.info("Found %d contracts", 3)
    logger.warning("Skipping %s: %s", "src/Bad.sol", "not valid UTF-8")
    logger.debug("hidden")

    assert stream.getvalue().splitlines() == [
        "[sigscan] Found 3 contracts",
        "[sigscan] warning: Skipping src/Bad.sol: not valid UTF-8",
    ]


def test_verbose_output_names_the_component() -> None:
    stream = io.StringIO()
    configure_logging(verbose=True, stream=stream)

    get_logger("exporter").debug("Wrote %s", "signatures-contracts.txt")
    get_logger().info("done")

    assert stream.getvalue().splitlines() == [
        "[sigscan:exporter] debug: Wrote signatures-contracts.txt",
        "[sigscan] info: done",
    ]


def test_reconfiguring_replaces_handlers() -> None:
    first = io.StringIO()
    second = io.StringIO()
    configure_logging(stream=first)
    logger = configure_logging(stream=second)

    get_logger("session").info("once")

    assert len(logger.handlers) == 1
    assert first.getvalue() == ""
    assert second.getvalue() == "[sigscan] once\n"


def test_log_exception_adds_traceback_only_when_verbose() -> None:
    quiet = io.StringIO()
    configure_logging(stream=quiet)
    logger = get_logger("watcher")
    try:
        raise RuntimeError("boom")
    except RuntimeError as exc:
        log_exception(logger, "Failed to process event", exc)
    assert quiet.getvalue() == "[sigscan] error: Failed to process event: boom\n"

    loud = io.StringIO()
    configure_logging(verbose=True, stream=loud)
    try:
        raise RuntimeError("boom")
    except RuntimeError as exc:
        log_exception(logger, "Failed to process event", exc)
    output = loud.getvalue()
    assert output.startswith("[sigscan:watcher] error: Failed to process event: boom\n")
    assert "Traceback" in output


def test_log_file_receives_debug_detail(tmp_path: Path) -> None:
    stream = io.StringIO()
    log_file = tmp_path / "sigscan.log"
    logger = configure_logging(log_file=log_file, stream=stream)

    get_logger("scanner").debug("Retained %d of %d library contracts", 2, 3)
    for handler in logger.handlers:
        handler.flush()

    assert stream.getvalue() == ""
    assert "DEBUG sigscan.scanner: Retained 2 of 3 library contracts" in log_file.read_text(
        encoding="utf-8"
    )


def test_cli_accepts_log_file(tmp_path: Path) -> None:
    args = _build_parser().parse_args(["--log-file", str(tmp_path / "run.log"), "info"])
    assert args.log_file == tmp_path / "run.log"
