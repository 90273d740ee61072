"""Unit tests for boardroom/inbox.py, no API calls."""

import os
import textwrap
from pathlib import Path

import pytest

from boardroom.errors import ValidationError
from boardroom.inbox import archive_file, ensure_dirs, parse_file, plan_overrides, scan_inbox


def test_parse_file_no_frontmatter(tmp_path: Path) -> None:
    """File without frontmatter returns full content and empty metadata."""
    f = tmp_path / "plan.md"
    f.write_text("Should we open a Berlin office?", encoding="utf-8")
    topic, metadata = parse_file(f)
    assert topic == "Should we open a Berlin office?"
    assert metadata == {}


def test_parse_file_with_frontmatter(tmp_path: Path) -> None:
    f = tmp_path / "plan.md"
    f.write_text(
        textwrap.dedent("""\
            ---
            agents: ceo,cfo
            max_rounds: 2
            consensus_threshold: 0.5
            ---
            Adopt a four-day work week?
        """),
        encoding="utf-8",
    )
    topic, metadata = parse_file(f)
    assert topic == "Adopt a four-day work week?"
    assert metadata["agents"] == "ceo,cfo"
    assert metadata["max_rounds"] == 2


def test_plan_overrides_comma_separated_agents() -> None:
    overrides = plan_overrides({"agents": "ceo, cfo ,hr", "max_rounds": "2"})
    assert overrides == {"agents": ["ceo", "cfo", "hr"], "max_rounds": 2}


def test_plan_overrides_list_agents_and_numbers() -> None:
    overrides = plan_overrides({
        "agents": ["ceo", "cto"],
        "facilitator": "cto",
        "consensus_threshold": 0.6,
        "timeout_minutes": 3,
        "owner": "someone",
    })
    assert overrides == {
        "agents": ["ceo", "cto"],
        "facilitator": "cto",
        "consensus_threshold": 0.6,
        "timeout_minutes": 3.0,
    }


def test_plan_overrides_rejects_bad_types() -> None:
    with pytest.raises(ValidationError):
        plan_overrides({"max_rounds": "many"})


def test_archive_file_success(tmp_path: Path) -> None:
    """archive_file() moves file to archive dir with timestamp prefix."""
    inbox = tmp_path / "inbox"
    archive = tmp_path / "archive"
    ensure_dirs(inbox, archive)

    src = inbox / "eu-expansion.md"
    src.write_text("A topic", encoding="utf-8")

    dest = archive_file(src, archive)

    assert not src.exists()
    assert dest.exists()
    assert dest.parent == archive
    assert dest.name.endswith("_eu-expansion.md")
    assert not dest.name.startswith("FAILED_")


def test_archive_file_failed(tmp_path: Path) -> None:
    """archive_file(failed=True) prefixes filename with FAILED_."""
    inbox = tmp_path / "inbox"
    archive = tmp_path / "archive"
    ensure_dirs(inbox, archive)

    src = inbox / "broken.md"
    src.write_text("Bad plan", encoding="utf-8")

    dest = archive_file(src, archive, failed=True)

    assert not src.exists()
    assert dest.name.startswith("FAILED_")
    assert "broken.md" in dest.name


def test_scan_inbox_empty(tmp_path: Path) -> None:
    inbox = tmp_path / "inbox"
    inbox.mkdir()
    assert scan_inbox(inbox) == []


def test_scan_inbox_oldest_first_and_md_only(tmp_path: Path) -> None:
    inbox = tmp_path / "inbox"
    inbox.mkdir()
    newer = inbox / "newer.md"
    older = inbox / "older.md"
    newer.write_text("b", encoding="utf-8")
    older.write_text("a", encoding="utf-8")
    (inbox / "notes.txt").write_text("ignored", encoding="utf-8")
    os.utime(older, (1_000_000, 1_000_000))
    os.utime(newer, (2_000_000, 2_000_000))
    assert scan_inbox(inbox) == [older, newer]
