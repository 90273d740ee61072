"""Click entry point for the boardroom commands."""

import asyncio
import logging
import sys
import uuid
from pathlib import Path
from typing import Any

import click
import uvicorn
from dotenv import load_dotenv
from rich.console import Console
from rich.logging import RichHandler
from rich.progress import Progress, SpinnerColumn, TextColumn, TimeElapsedColumn

from boardroom.agents import DemoResponder, ProviderAgentResponder
from boardroom.errors import ValidationError
from boardroom.healthcheck import run_health_checks
from boardroom.inbox import archive_file, ensure_dirs, parse_file, plan_overrides, scan_inbox
from boardroom.invoker import AgentResponder
from boardroom.models import Discussion, DiscussionStatus, Plan
from boardroom.output import TranscriptRecorder, print_discussion
from boardroom.polling import poll_discussion
from boardroom.providers import PROVIDER_CLASSES, AIProvider
from boardroom.server import create_app
from boardroom.service import CollaborationService, validate_plan
from config.config_loader import AppConfig, load_config

logger = logging.getLogger(__name__)

console = Console(legacy_windows=False)

_DEMO_DELAY_SEC = 0.5


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
    )


def _resolve_plan(
    topic: str,
    config: AppConfig,
    file_overrides: dict[str, Any] | None = None,
    cli_overrides: dict[str, Any] | None = None,
) -> Plan:
    """Merge plan fields. Precedence: CLI flag > frontmatter > config default."""
    defaults = config.defaults
    merged: dict[str, Any] = {
        "agents": list(defaults.agents),
        "max_rounds": defaults.max_rounds,
        "consensus_threshold": defaults.consensus_threshold,
        "timeout_minutes": defaults.timeout_minutes,
    }
    for source in (file_overrides or {}, cli_overrides or {}):
        merged.update({k: v for k, v in source.items() if v is not None})

    agents = merged["agents"]
    facilitator = merged.get("facilitator")
    if facilitator is None:
        # Fall back to the configured facilitator only if it still takes part
        facilitator = defaults.facilitator if defaults.facilitator in agents else (agents[0] if agents else "")

    return Plan(
        discussion_topic=topic,
        required_agents=tuple(agents),
        max_rounds=merged["max_rounds"],
        consensus_threshold=merged["consensus_threshold"],
        timeout_minutes=merged["timeout_minutes"],
        facilitator=facilitator,
    )


def _build_agent_providers(config: AppConfig, agent_ids: list[str]) -> dict[str, AIProvider]:
    """Instantiate one provider per model and map each agent to its model's provider."""
    providers: dict[str, AIProvider] = {}
    agent_providers: dict[str, AIProvider] = {}
    for agent_id in agent_ids:
        agent_cfg = config.agents.get(agent_id)
        if agent_cfg is None:
            logger.warning("Agent '%s' has no configuration, it will abstain", agent_id)
            continue
        model_name = agent_cfg.model
        if model_name not in config.available_providers:
            logger.warning("Model '%s' for agent '%s' is unavailable, it will abstain", model_name, agent_id)
            continue
        if model_name not in providers:
            model_cfg = config.models[model_name]
            provider_cls = PROVIDER_CLASSES.get(model_cfg.sdk)
            if provider_cls is None:
                logger.warning("Unknown sdk '%s' for model '%s', skipping", model_cfg.sdk, model_name)
                continue
            try:
                providers[model_name] = provider_cls(model_cfg)
            except Exception as exc:
                logger.warning("Failed to instantiate provider '%s': %s", model_name, exc)
                continue
        agent_providers[agent_id] = providers[model_name]
    return agent_providers


def _check_and_filter_agents(agent_providers: dict[str, AIProvider], interactive: bool = True) -> dict[str, AIProvider]:
    """Run health checks, print results, and ask the user what to do on failures.

    Returns the agents whose provider passed. Exits if the user declines to
    continue or no agent passes.
    """
    console.print("\n[bold]Checking providers...[/bold]")
    results = asyncio.run(run_health_checks(agent_providers))

    failed: list[str] = []
    for agent_id in sorted(results):
        ok, err = results[agent_id]
        model = agent_providers[agent_id].model_string()
        if ok:
            console.print(f"  [green]OK  [/green] {agent_id} ({model})")
        else:
            short_err = err.splitlines()[0][:120] if err else "unknown error"
            console.print(f"  [red]FAIL[/red] {agent_id} ({model}): {short_err}")
            failed.append(agent_id)

    if not failed:
        console.print()
        return agent_providers

    working = {a: p for a, p in agent_providers.items() if a not in failed}
    if not working:
        console.print("\n[bold red]Error:[/bold red] No agent's provider passed the health check.")
        sys.exit(1)

    console.print(f"\n[yellow]{len(failed)} agent(s) will abstain:[/yellow] {', '.join(failed)}")
    if interactive and not click.confirm("Continue with the remaining agents?", default=True):
        sys.exit(0)
    console.print()
    return working


def _build_responder(
    config: AppConfig,
    agent_ids: list[str],
    demo: bool,
    skip_health_check: bool,
    interactive: bool = True,
) -> AgentResponder:
    if demo:
        return DemoResponder(delay_sec=_DEMO_DELAY_SEC)

    agent_providers = _build_agent_providers(config, agent_ids)
    if not agent_providers:
        console.print("[bold red]Error:[/bold red] No agents have an available provider. Check API keys in .env or use --demo.")
        sys.exit(1)
    if not skip_health_check:
        agent_providers = _check_and_filter_agents(agent_providers, interactive=interactive)
    return ProviderAgentResponder(
        agent_providers,
        config.agents,
        config.prompts,
        history_window=config.orchestrator.history_window,
    )


def _build_service(config: AppConfig, responder: AgentResponder, recorder: TranscriptRecorder) -> CollaborationService:
    return CollaborationService(
        responder,
        min_call_timeout_sec=config.orchestrator.min_call_timeout_sec,
        max_concurrency=config.orchestrator.max_concurrency,
        recorders=[recorder],
    )


async def _run_single(
    plan: Plan,
    config: AppConfig,
    responder: AgentResponder,
    output_dir: Path,
    context: str,
    slug_override: str | None = None,
) -> tuple[Discussion, Path | None]:
    """Run one discussion in-process, polling it like a client. Returns (final, transcript)."""
    recorder = TranscriptRecorder(output_dir, slug_override)
    service = _build_service(config, responder, recorder)

    console.print(
        f"\n[bold cyan]Boardroom[/bold cyan] — {len(plan.required_agents)} agents, "
        f"up to {plan.max_rounds} rounds, threshold {plan.consensus_threshold:.0%}"
    )
    console.print(f"Agents: {', '.join(a.upper() for a in plan.required_agents)} (facilitator: {plan.facilitator.upper()})")
    topic = plan.discussion_topic
    console.print(f"Topic: [italic]{topic[:80]}{'...' if len(topic) > 80 else ''}[/italic]\n")

    discussion = await service.start_collaboration(
        plan,
        session_id=f"cli-{uuid.uuid4().hex[:8]}",
        context=context,
        user_message=topic,
    )

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        TimeElapsedColumn(),
        console=console,
        transient=True,
    ) as progress:
        seen = 0
        task = progress.add_task("Round 1: gathering proposals...", total=None)

        def on_update(snapshot: Discussion) -> None:
            nonlocal seen
            for event in snapshot.events[seen:]:
                progress.print(f"[green]OK[/green] {event.from_agent.upper()} · {event.type.value}")
            seen = len(snapshot.events)
            progress.update(task, description=f"Round {snapshot.rounds_completed + 1}: debating...")

        final = await poll_discussion(service.get_discussion, discussion.id, config.polling, on_update)

    if final.status is DiscussionStatus.ACTIVE:
        console.print("[yellow]Polling window elapsed; stopping after the current round.[/yellow]")
        service.cancel_discussion(final.id)
        final = await service.wait_for_discussion(final.id)

    print_discussion(final)
    saved = recorder.saved_paths.get(final.id)
    if saved is not None:
        console.print(f"\n[dim]Saved to: {saved}[/dim]")
    return final, saved


async def _run_inbox(
    files: list[Path],
    config: AppConfig,
    responder: AgentResponder,
    archive_dir: Path,
    output_dir: Path,
) -> None:
    """Run each plan file in turn. Frontmatter fields override config defaults."""
    for file_path in files:
        try:
            topic, metadata = parse_file(file_path)
            if not topic:
                raise ValidationError("Plan file has no topic")
            plan = _resolve_plan(topic, config, plan_overrides(metadata))
            final, saved = await _run_single(
                plan, config, responder, output_dir, context=topic, slug_override=file_path.stem,
            )
            archived = archive_file(file_path, archive_dir)
            click.echo(f"Processed: {file_path.name} -> {final.status.value} {saved or ''} (archived: {archived.name})")
        except Exception as e:
            logger.error("Failed: %s -- %s", file_path.name, e)
            archive_file(file_path, archive_dir, failed=True)


@click.group()
@click.option("--settings", "settings_path", default=None, type=click.Path(exists=True, dir_okay=False),
              help="Path to settings.yaml (default: bundled config)")
@click.option("--verbose", is_flag=True, help="Enable DEBUG-level logging")
@click.pass_context
def main(ctx: click.Context, settings_path: str | None, verbose: bool) -> None:
    """Boardroom -- multi-agent executive discussions driven to consensus.

    \b
    Examples:
      boardroom run "Should we expand into the EU market?"
      boardroom run "Adopt a 4-day work week?" --agents ceo,hr --rounds 2
      boardroom run --file plan.md
      boardroom run "Migrate to Kubernetes?" --demo
      boardroom inbox
      boardroom serve --port 8080
    """
    load_dotenv()
    _setup_logging(verbose)

    try:
        config = load_config(Path(settings_path)) if settings_path else load_config()
    except FileNotFoundError as exc:
        console.print(f"[bold red]Config error:[/bold red] {exc}")
        sys.exit(1)
    ctx.obj = config


@main.command()
@click.argument("topic", required=False)
@click.option("--file", "plan_file", type=click.Path(exists=True), help="Read topic and plan from a .md plan file")
@click.option("--agents", default=None, help="Comma-separated agent ids (default: from config)")
@click.option("--facilitator", default=None, help="Agent that synthesizes the consensus")
@click.option("--rounds", "max_rounds", default=None, type=int, help="Maximum number of rounds")
@click.option("--threshold", default=None, type=float, help="Consensus threshold in (0, 1]")
@click.option("--timeout", "timeout_minutes", default=None, type=float, help="Discussion timeout in minutes")
@click.option("--context", default=None, help="Background context passed to every agent")
@click.option("--output", "output_path", default=None, help="Transcript directory (default: from config)")
@click.option("--demo", is_flag=True, help="Use scripted offline agents instead of LLM providers")
@click.option("--skip-health-check", is_flag=True, default=False,
              help="Skip the API connectivity check at startup")
@click.pass_obj
def run(
    config: AppConfig,
    topic: str | None,
    plan_file: str | None,
    agents: str | None,
    facilitator: str | None,
    max_rounds: int | None,
    threshold: float | None,
    timeout_minutes: float | None,
    context: str | None,
    output_path: str | None,
    demo: bool,
    skip_health_check: bool,
) -> None:
    """Run one discussion and print its outcome."""
    file_overrides: dict[str, Any] = {}
    if plan_file:
        topic, metadata = parse_file(Path(plan_file))
        try:
            file_overrides = plan_overrides(metadata)
        except ValidationError as exc:
            console.print(f"[bold red]Plan error:[/bold red] {exc}")
            sys.exit(1)
    if not topic:
        console.print("[bold red]Error:[/bold red] Provide a TOPIC argument or --file.")
        sys.exit(1)

    cli_overrides = {
        "agents": [a.strip() for a in agents.split(",") if a.strip()] if agents else None,
        "facilitator": facilitator,
        "max_rounds": max_rounds,
        "consensus_threshold": threshold,
        "timeout_minutes": timeout_minutes,
    }
    plan = _resolve_plan(topic, config, file_overrides, cli_overrides)
    try:
        validate_plan(plan)
    except ValidationError as exc:
        console.print(f"[bold red]Plan error:[/bold red] {exc}")
        sys.exit(1)

    output_dir = Path(output_path) if output_path else config.defaults.output_dir
    responder = _build_responder(config, list(plan.required_agents), demo, skip_health_check)
    asyncio.run(_run_single(plan, config, responder, output_dir, context=context or topic))


@main.command()
@click.option("--inbox-dir", "inbox_dir_override", default=None,
              help="Override inbox folder path (default: from config)")
@click.option("--output", "output_path", default=None, help="Transcript directory (default: from config)")
@click.option("--demo", is_flag=True, help="Use scripted offline agents instead of LLM providers")
@click.option("--skip-health-check", is_flag=True, default=False,
              help="Skip the API connectivity check at startup")
@click.pass_obj
def inbox(
    config: AppConfig,
    inbox_dir_override: str | None,
    output_path: str | None,
    demo: bool,
    skip_health_check: bool,
) -> None:
    """Process every .md plan file in the inbox folder, oldest first."""
    inbox_dir = Path(inbox_dir_override) if inbox_dir_override else config.inbox.dir
    archive_dir = config.inbox.archive_dir
    output_dir = Path(output_path) if output_path else config.defaults.output_dir
    ensure_dirs(inbox_dir, archive_dir)
    files = scan_inbox(inbox_dir)

    if not files:
        click.echo("No files in inbox.")
        return

    responder = _build_responder(config, list(config.agents), demo, skip_health_check)
    asyncio.run(_run_inbox(files, config, responder, archive_dir, output_dir))


@main.command()
@click.option("--host", default=None, help="Bind address (default: from config)")
@click.option("--port", default=None, type=int, help="Port (default: from config)")
@click.option("--output", "output_path", default=None, help="Transcript directory (default: from config)")
@click.option("--demo", is_flag=True, help="Use scripted offline agents instead of LLM providers")
@click.option("--skip-health-check", is_flag=True, default=False,
              help="Skip the API connectivity check at startup")
@click.pass_obj
def serve(
    config: AppConfig,
    host: str | None,
    port: int | None,
    output_path: str | None,
    demo: bool,
    skip_health_check: bool,
) -> None:
    """Serve the collaboration API over HTTP."""
    output_dir = Path(output_path) if output_path else config.defaults.output_dir
    responder = _build_responder(config, list(config.agents), demo, skip_health_check, interactive=False)
    service = _build_service(config, responder, TranscriptRecorder(output_dir))
    uvicorn.run(
        create_app(service),
        host=host or config.server.host,
        port=port or config.server.port,
        log_config=None,
    )


if __name__ == "__main__":
    main()
