"""Keeps generated output out of version control."""

from __future__ import annotations

from pathlib import Path

from .logging import get_logger

_COMMENT = "# sigscan output"

logger = get_logger("bookkeeping")


def ensure_gitignored(root: Path, output_dir: Path) -> bool:
    """Append `output_dir` to `<root>/.gitignore`; True when the file was changed.

    Write failures are logged and reported as False, never raised.
    """
    try:
        rel_path = output_dir.resolve().relative_to(root.resolve()).as_posix()
    except ValueError:
        return False
    if rel_path in ("", "."):
        return False

    entry = f"{rel_path}/"
    gitignore = root / ".gitignore"
    try:
        existing = gitignore.read_text(encoding="utf-8") if gitignore.exists() else ""
        present = {line.strip().strip("/") for line in existing.splitlines()}
        if rel_path in present:
            return False
        separator = "" if not existing or existing.endswith("\n") else "\n"
        with gitignore.open("a", encoding="utf-8") as handle:
            handle.write(f"{separator}{_COMMENT}\n{entry}\n")
    except OSError as exc:
        logger.warning("Could not update %s: %s", gitignore, exc)
        return False

    logger.debug("Added %s to %s", entry, gitignore)
    return True


__all__ = ["ensure_gitignored"]
