"""Load settings.yaml into typed dataclasses. Reports provider API keys at startup."""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml

logger = logging.getLogger(__name__)

_SETTINGS_PATH = Path(__file__).parent / "settings.yaml"


@dataclass
class ModelConfig:
    name: str
    sdk: str
    model: str
    api_key_env: str
    timeout_sec: int
    max_tokens: int
    base_url: str | None = None


@dataclass
class AgentConfig:
    name: str
    model: str             # key into AppConfig.models
    role: str
    persona: str = ""


@dataclass
class PromptsConfig:
    proposal: str
    debate: str
    synthesis: str


@dataclass
class DefaultsConfig:
    agents: list[str]
    facilitator: str
    max_rounds: int
    consensus_threshold: float
    timeout_minutes: float
    output_dir: Path


@dataclass
class OrchestratorConfig:
    min_call_timeout_sec: float = 30.0
    max_concurrency: int | None = None
    history_window: int = 10


@dataclass
class PollingConfig:
    interval_ms: int = 1000
    max_attempts: int = 60


@dataclass
class InboxConfig:
    dir: Path = Path("./inbox")
    archive_dir: Path = Path("./inbox/archive")


@dataclass
class ServerConfig:
    host: str = "127.0.0.1"
    port: int = 8000


@dataclass
class AppConfig:
    defaults: DefaultsConfig
    models: dict[str, ModelConfig]
    agents: dict[str, AgentConfig]
    prompts: PromptsConfig
    orchestrator: OrchestratorConfig = field(default_factory=OrchestratorConfig)
    polling: PollingConfig = field(default_factory=PollingConfig)
    inbox: InboxConfig = field(default_factory=InboxConfig)
    server: ServerConfig = field(default_factory=ServerConfig)
    available_providers: set[str] = field(default_factory=set)


def load_config(settings_path: Path = _SETTINGS_PATH) -> AppConfig:
    """Load and validate configuration from settings.yaml.

    Raises FileNotFoundError if settings file missing.
    Logs missing API keys but does not raise; callers check
    available_providers (demo mode needs none).
    """
    if not settings_path.exists():
        raise FileNotFoundError(f"Settings file not found: {settings_path}")

    with settings_path.open("r", encoding="utf-8") as f:
        raw = yaml.safe_load(f)

    defaults_raw = raw["defaults"]
    defaults = DefaultsConfig(
        agents=[str(a) for a in defaults_raw["agents"]],
        facilitator=str(defaults_raw["facilitator"]),
        max_rounds=int(defaults_raw["max_rounds"]),
        consensus_threshold=float(defaults_raw["consensus_threshold"]),
        timeout_minutes=float(defaults_raw["timeout_minutes"]),
        output_dir=Path(defaults_raw["output_dir"]),
    )

    prompts_raw = raw["prompts"]
    prompts = PromptsConfig(
        proposal=prompts_raw["proposal"],
        debate=prompts_raw["debate"],
        synthesis=prompts_raw["synthesis"],
    )

    orchestrator_raw = raw.get("orchestrator") or {}
    max_concurrency = orchestrator_raw.get("max_concurrency")
    orchestrator = OrchestratorConfig(
        min_call_timeout_sec=float(orchestrator_raw.get("min_call_timeout_sec", 30.0)),
        max_concurrency=int(max_concurrency) if max_concurrency is not None else None,
        history_window=int(orchestrator_raw.get("history_window", 10)),
    )

    polling_raw = raw.get("polling") or {}
    polling = PollingConfig(
        interval_ms=int(polling_raw.get("interval_ms", 1000)),
        max_attempts=int(polling_raw.get("max_attempts", 60)),
    )

    inbox_raw = raw.get("inbox") or {}
    inbox = InboxConfig(
        dir=Path(inbox_raw.get("dir", "./inbox")),
        archive_dir=Path(inbox_raw.get("archive_dir", "./inbox/archive")),
    )

    server_raw = raw.get("server") or {}
    server = ServerConfig(
        host=str(server_raw.get("host", "127.0.0.1")),
        port=int(server_raw.get("port", 8000)),
    )

    agents = {
        agent_name: AgentConfig(
            name=agent_name,
            model=str(agent_raw["model"]),
            role=str(agent_raw.get("role", agent_name.upper())),
            persona=str(agent_raw.get("persona", "")),
        )
        for agent_name, agent_raw in (raw.get("agents") or {}).items()
    }

    models: dict[str, ModelConfig] = {}
    available_providers: set[str] = set()

    for provider_name, model_raw in raw["models"].items():
        model_cfg = ModelConfig(
            name=provider_name,
            sdk=model_raw["sdk"],
            model=model_raw["model"],
            api_key_env=model_raw["api_key_env"],
            timeout_sec=int(model_raw["timeout_sec"]),
            max_tokens=int(model_raw["max_tokens"]),
            base_url=model_raw.get("base_url"),
        )
        models[provider_name] = model_cfg

        api_key = os.environ.get(model_raw["api_key_env"], "").strip()
        if api_key:
            available_providers.add(provider_name)
            logger.info("Provider available: %s", provider_name)
        else:
            logger.info(
                "Provider skipped (no API key): %s — set %s in .env",
                provider_name,
                model_raw["api_key_env"],
            )

    for agent in agents.values():
        if agent.model not in models:
            logger.warning("Agent %s references unknown model '%s'", agent.name, agent.model)

    return AppConfig(
        defaults=defaults,
        models=models,
        agents=agents,
        prompts=prompts,
        orchestrator=orchestrator,
        polling=polling,
        inbox=inbox,
        server=server,
        available_providers=available_providers,
    )
