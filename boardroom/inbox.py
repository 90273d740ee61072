"""Plan files: frontmatter parsing, inbox scanning, and archive logic."""

import shutil
from datetime import datetime
from pathlib import Path
from typing import Any

import frontmatter

from boardroom.errors import ValidationError

PLAN_KEYS = ("agents", "facilitator", "max_rounds", "consensus_threshold", "timeout_minutes")


def ensure_dirs(inbox_dir: Path, archive_dir: Path) -> None:
    """Create inbox and archive directories if they don't exist."""
    inbox_dir.mkdir(parents=True, exist_ok=True)
    archive_dir.mkdir(parents=True, exist_ok=True)


def scan_inbox(inbox_dir: Path) -> list[Path]:
    """Return all .md files in inbox_dir, sorted by mtime ascending (oldest first)."""
    files = list(inbox_dir.glob("*.md"))
    return sorted(files, key=lambda p: p.stat().st_mtime)


def parse_file(file_path: Path) -> tuple[str, dict]:
    """Parse a plan file: YAML frontmatter for plan fields, body for the topic.

    Returns:
        (topic, metadata). If no frontmatter, metadata is {}.
    """
    post = frontmatter.load(str(file_path))
    topic = post.content.strip()
    metadata = dict(post.metadata)
    return topic, metadata


def plan_overrides(metadata: dict[str, Any]) -> dict[str, Any]:
    """Extract typed plan fields from frontmatter, ignoring unrelated keys.

    ``agents`` may be a YAML list or a comma-separated string.

    Raises:
        ValidationError: If a plan field has the wrong type.
    """
    overrides: dict[str, Any] = {}
    try:
        if "agents" in metadata:
            agents = metadata["agents"]
            if isinstance(agents, str):
                agents = [a.strip() for a in agents.split(",") if a.strip()]
            overrides["agents"] = [str(a) for a in agents]
        if "facilitator" in metadata:
            overrides["facilitator"] = str(metadata["facilitator"])
        if "max_rounds" in metadata:
            overrides["max_rounds"] = int(metadata["max_rounds"])
        if "consensus_threshold" in metadata:
            overrides["consensus_threshold"] = float(metadata["consensus_threshold"])
        if "timeout_minutes" in metadata:
            overrides["timeout_minutes"] = float(metadata["timeout_minutes"])
    except (TypeError, ValueError) as exc:
        raise ValidationError(f"Invalid plan field in frontmatter: {exc}") from exc
    return overrides


def archive_file(file_path: Path, archive_dir: Path, *, failed: bool = False) -> Path:
    """Move file to archive_dir with a timestamp prefix.

    Args:
        file_path: Source file to archive.
        archive_dir: Destination directory.
        failed: If True, prefix filename with "FAILED_".

    Returns:
        Path to the archived file.
    """
    timestamp = datetime.now().strftime("%Y-%m-%dT%H%M")
    prefix = "FAILED_" if failed else ""
    dest_name = f"{prefix}{timestamp}_{file_path.name}"
    dest = archive_dir / dest_name
    shutil.move(str(file_path), str(dest))
    return dest
