"""Load settings.yaml into typed dataclasses. Reports which providers have API keys."""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml

from roundtable.models import AgentId
from roundtable.resilience import RetryPolicy

logger = logging.getLogger(__name__)

_SETTINGS_PATH = Path(__file__).parent / "settings.yaml"


@dataclass
class ModelConfig:
    name: str
    model: str
    api_key_env: str
    max_tokens: int
    display_name: str
    temperature: float | None = None
    base_url: str | None = None
    fallback_env: str | None = None
    reasoning_effort: str | None = None

    @property
    def key_envs(self) -> list[str]:
        return [e for e in (self.api_key_env, self.fallback_env) if e]


@dataclass
class PromptsConfig:
    seed: str
    debate: str
    personas: dict[str, str] = field(default_factory=dict)


@dataclass
class DefaultsConfig:
    rounds: int
    max_rounds: int
    agents: list[str]
    language: str
    marker: str
    store_path: Path
    output_dir: Path


@dataclass
class AppConfig:
    defaults: DefaultsConfig
    models: dict[str, ModelConfig]
    prompts: PromptsConfig
    resilience: RetryPolicy
    available_providers: set[str] = field(default_factory=set)

    def display_names(self) -> dict[AgentId, str]:
        names: dict[AgentId, str] = {}
        for name, model_cfg in self.models.items():
            try:
                names[AgentId(name)] = model_cfg.display_name
            except ValueError:
                continue
        return names


def _load_resilience(raw: dict | None) -> RetryPolicy:
    if not raw:
        return RetryPolicy()
    cap = raw.get("max_retry_delay_sec", 60.0)
    return RetryPolicy(
        max_attempts=int(raw.get("max_attempts", 3)),
        base_delay_sec=float(raw.get("base_delay_sec", 2.0)),
        timeout_sec=float(raw.get("timeout_sec", 90.0)),
        max_retry_delay_sec=float(cap) if cap is not None else None,
    )


def load_config(settings_path: Path = _SETTINGS_PATH) -> AppConfig:
    """Load and validate configuration from settings.yaml.

    Raises FileNotFoundError if settings file missing, ValueError for an
    invalid resilience policy. Missing API keys are logged, not raised;
    callers check available_providers.
    """
    if not settings_path.exists():
        raise FileNotFoundError(f"Settings file not found: {settings_path}")

    with settings_path.open("r", encoding="utf-8") as f:
        raw = yaml.safe_load(f)

    defaults_raw = raw["defaults"]
    defaults = DefaultsConfig(
        rounds=int(defaults_raw["rounds"]),
        max_rounds=int(defaults_raw["max_rounds"]),
        agents=[str(a) for a in defaults_raw.get("agents", [])],
        language=str(defaults_raw.get("language", "English")),
        marker=str(defaults_raw.get("marker", "Answer:")),
        store_path=Path(defaults_raw.get("store_path", ".roundtable/transcript.json")),
        output_dir=Path(defaults_raw.get("output_dir", "./output")),
    )

    prompts_raw = raw["prompts"]
    personas_raw = raw.get("personas") or {}
    prompts = PromptsConfig(
        seed=prompts_raw["seed"],
        debate=prompts_raw["debate"],
        personas={k: str(v) for k, v in personas_raw.items()},
    )

    resilience = _load_resilience(raw.get("resilience"))

    models: dict[str, ModelConfig] = {}
    available_providers: set[str] = set()

    for provider_name, model_raw in raw["models"].items():
        model_cfg = ModelConfig(
            name=provider_name,
            model=model_raw["model"],
            api_key_env=model_raw["api_key_env"],
            max_tokens=int(model_raw["max_tokens"]),
            display_name=str(model_raw.get("display_name", provider_name)),
            temperature=model_raw.get("temperature"),
            base_url=model_raw.get("base_url"),
            fallback_env=model_raw.get("fallback_env"),
            reasoning_effort=model_raw.get("reasoning_effort"),
        )
        models[provider_name] = model_cfg

        if any(os.environ.get(env, "").strip() for env in model_cfg.key_envs):
            available_providers.add(provider_name)
            logger.info("Provider available: %s", provider_name)
        else:
            logger.info(
                "Provider has no API key: %s (set %s in .env)",
                provider_name,
                model_cfg.api_key_env,
            )

    return AppConfig(
        defaults=defaults,
        models=models,
        prompts=prompts,
        resilience=resilience,
        available_providers=available_providers,
    )
