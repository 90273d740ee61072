"""Rich console output and markdown transcripts for discussions."""

import logging
import re
from datetime import datetime
from pathlib import Path

from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel
from rich.rule import Rule
from rich.text import Text

from boardroom.controller import DiscussionRecorder
from boardroom.models import AgentEvent, Discussion, DiscussionStatus, EventType

logger = logging.getLogger(__name__)

console = Console(legacy_windows=False)

_EVENT_STYLES = {
    EventType.PROPOSAL: "cyan",
    EventType.QUESTION: "yellow",
    EventType.CHALLENGE: "red",
    EventType.AGREEMENT: "green",
    EventType.SYNTHESIS: "magenta",
}

_STATUS_LABELS = {
    DiscussionStatus.ACTIVE: "[yellow]active[/yellow]",
    DiscussionStatus.CONSENSUS_REACHED: "[green]consensus reached[/green]",
    DiscussionStatus.NEEDS_MORE_INPUT: "[orange3]needs more input[/orange3]",
}


def _slug(text: str, max_len: int = 40) -> str:
    """Convert text to a filename-safe slug."""
    slug = re.sub(r"[^\w\s-]", "", text.lower())
    slug = re.sub(r"[\s_-]+", "-", slug).strip("-")
    return slug[:max_len]


def _event_preview(event: AgentEvent, words: int = 50) -> str:
    """Return first N words of an event's content."""
    all_words = event.content.split()
    preview = " ".join(all_words[:words])
    if len(all_words) > words:
        preview += "..."
    return preview


def _confidence_label(confidence: float | None) -> str:
    return f"{confidence:.0%}" if confidence is not None else "n/a"


def dissenting_agents(discussion: Discussion) -> list[str]:
    """Participants outside the consensus' supporting set."""
    if discussion.consensus is None:
        return []
    supporting = set(discussion.consensus.supporting_agents)
    return [a for a in discussion.participants if a not in supporting]


def print_event(event: AgentEvent) -> None:
    """Print one event as a bordered preview panel."""
    console.print(
        Panel(
            _event_preview(event),
            title=f"[bold]{event.from_agent.upper()}[/bold] · {event.type.value}",
            subtitle=f"round {event.round_number + 1} · confidence {_confidence_label(event.confidence)}",
            border_style=_EVENT_STYLES.get(event.type, "dim"),
        )
    )


def print_discussion(discussion: Discussion) -> None:
    """Print every round's events followed by the outcome."""
    current_round: int | None = None
    for event in discussion.events:
        if event.type is EventType.SYNTHESIS:
            continue
        if event.round_number != current_round:
            current_round = event.round_number
            label = "Proposals" if current_round == 0 else "Debate"
            console.print(Rule(f"[bold cyan]Round {current_round + 1}: {label}[/bold cyan]"))
        print_event(event)
    print_outcome(discussion)


def print_outcome(discussion: Discussion) -> None:
    console.print(Rule("[bold green]Boardroom Outcome[/bold green]"))
    duration = ""
    if discussion.end_time is not None:
        duration = f" | Duration: {(discussion.end_time - discussion.start_time).total_seconds():.1f}s"
    console.print(
        Text.from_markup(
            f"Status: {_STATUS_LABELS[discussion.status]} | "
            f"Rounds: {discussion.rounds_completed} | "
            f"Events: {len(discussion.events)}{duration}",
        )
    )
    if discussion.consensus is None:
        return
    consensus = discussion.consensus
    console.print(
        Text(
            f"Supporting: {', '.join(consensus.supporting_agents) or '-'} | "
            f"Dissenting: {', '.join(dissenting_agents(discussion)) or '-'} | "
            f"Confidence: {consensus.confidence:.0%}",
            style="dim",
        )
    )
    console.print(Markdown(f"**Decision:** {consensus.decision}\n\n{consensus.reasoning}"))


def save_to_file(discussion: Discussion, output_dir: Path, slug_override: str | None = None) -> Path:
    """Save the full discussion transcript as a markdown file.

    Args:
        discussion: A terminal discussion snapshot.
        output_dir: Directory to save the file in.
        slug_override: If provided, use this as the filename stem instead of
            deriving one from the topic. Useful for inbox mode.

    Returns:
        Path to the saved file.
    """
    output_dir.mkdir(parents=True, exist_ok=True)

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    slug = slug_override if slug_override is not None else _slug(discussion.topic)
    filepath = output_dir / f"{timestamp}_{slug}.md"

    duration = "n/a"
    if discussion.end_time is not None:
        duration = f"{(discussion.end_time - discussion.start_time).total_seconds():.1f}s"

    lines: list[str] = [
        f"# Boardroom Discussion: {discussion.topic[:80]}",
        "",
        f"**Discussion:** {discussion.id}",
        f"**Session:** {discussion.session_id or '-'}",
        f"**Started:** {discussion.start_time.strftime('%Y-%m-%d %H:%M:%S')} UTC",
        f"**Participants:** {', '.join(a.upper() for a in discussion.participants)}",
        f"**Status:** {discussion.status.value}",
        f"**Rounds:** {discussion.rounds_completed}",
        f"**Duration:** {duration}",
        "",
        "---",
        "",
    ]

    current_round: int | None = None
    for event in discussion.events:
        if event.type is EventType.SYNTHESIS:
            continue
        if event.round_number != current_round:
            current_round = event.round_number
            label = "Proposals" if current_round == 0 else "Debate"
            lines += [f"## Round {current_round + 1}: {label}", ""]
        lines += [
            f"### {event.from_agent.upper()} ({event.type.value})",
            "",
            event.content,
            "",
            f"*Confidence: {_confidence_label(event.confidence)}*",
            "",
        ]

    synthesis = next((e for e in discussion.events if e.type is EventType.SYNTHESIS), None)
    if synthesis is not None:
        lines += [f"## Synthesis (by {synthesis.from_agent.upper()})", "", synthesis.content, ""]

    if discussion.consensus is not None:
        consensus = discussion.consensus
        lines += [
            "## Consensus",
            "",
            f"**Decision:** {consensus.decision}",
            f"**Confidence:** {consensus.confidence:.0%}",
            f"**Supporting:** {', '.join(consensus.supporting_agents)}",
            f"**Dissenting:** {', '.join(dissenting_agents(discussion)) or '-'}",
            "",
            consensus.reasoning,
            "",
        ]
    else:
        lines += ["## Outcome", "", "No consensus reached; the board needs more input.", ""]

    filepath.write_text("\n".join(lines), encoding="utf-8")
    logger.info("Discussion saved to: %s", filepath)
    return filepath


class TranscriptRecorder(DiscussionRecorder):
    """Writes one markdown transcript per terminal discussion."""

    def __init__(self, output_dir: Path, slug_override: str | None = None) -> None:
        self._output_dir = output_dir
        self._slug_override = slug_override
        self.saved_paths: dict[str, Path] = {}

    def record(self, discussion: Discussion) -> None:
        self.saved_paths[discussion.id] = save_to_file(discussion, self._output_dir, self._slug_override)
