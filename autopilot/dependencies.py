"""Service wiring and FastAPI dependency functions.

:func:`build_services` assembles the object graph once during the app
lifespan and the result is stored on ``app.state``.  The ``get_*``
functions below simply look the services up for endpoint handlers.
"""

from __future__ import annotations

from dataclasses import dataclass

from fastapi import Request

from autopilot.config import Settings, settings
from autopilot.core.agent.actions import ActionExecutor
from autopilot.core.intent.classifier import (
    IntentMatcher,
    KeywordIntentStrategy,
    LLMIntentStrategy,
)
from autopilot.core.intent.engine import SkillManager
from autopilot.core.task.runner import TaskRunner
from autopilot.core.task.store import TaskStore
from autopilot.skills.app_scanner import AppScanner
from autopilot.skills.loader import load_catalog
from autopilot.skills.models import SkillConfig
from autopilot.skills.registry import SkillRegistry
from autopilot.utils.logging import get_logger

logger = get_logger(__name__)

# Providers that run locally and accept any (or no) API key.
LOCAL_PROVIDERS = {"ollama"}


# ---------------------------------------------------------------------------
# Model gateway (optional -- None when no API key is configured)
# ---------------------------------------------------------------------------

def _resolve_api_key(config: Settings | None = None) -> str:
    """Pick the API key for the configured provider.

    Resolution order:
      1. Provider-specific key (``ANTHROPIC_API_KEY``, ``OPENAI_API_KEY``)
      2. Generic ``LLM_API_KEY``
      3. Fall back to any non-empty provider-specific key
    """
    config = config or settings
    provider = config.llm_provider
    provider_keys: dict[str, str] = {
        "anthropic": config.anthropic_api_key,
        "openai": config.openai_api_key,
    }

    if provider in provider_keys and provider_keys[provider]:
        return provider_keys[provider]

    if config.llm_api_key:
        return config.llm_api_key

    for key in provider_keys.values():
        if key:
            return key

    return ""


def build_gateway(config: Settings | None = None):
    """Build a model gateway if an API key is available.

    Returns ``None`` when no usable key is found **and** the provider
    requires one.  Intent matching then falls back to keywords and tasks
    that need the agent loop fail at the first model call.
    """
    config = config or settings
    api_key = _resolve_api_key(config)
    if not api_key and config.llm_provider not in LOCAL_PROVIDERS:
        logger.warning("model_gateway_disabled", provider=config.llm_provider, reason="no api key")
        return None

    from autopilot.core.llm.client import ModelGateway

    return ModelGateway.from_settings(config, api_key)


# ---------------------------------------------------------------------------
# Service graph
# ---------------------------------------------------------------------------

@dataclass
class Services:
    registry: SkillRegistry
    scanner: AppScanner
    skill_manager: SkillManager
    runner: TaskRunner
    store: TaskStore
    bridge: object | None = None


def build_services(
    config: Settings | None = None,
    gateway=None,
    executor: ActionExecutor | None = None,
    configs: list[SkillConfig] | None = None,
    scanner: AppScanner | None = None,
) -> Services:
    """Assemble registry, matcher, skill manager, runner and task store.

    Parameters
    ----------
    config:
        Settings; defaults to the module-level ``settings``.
    gateway:
        Model gateway shared by intent matching and every agent role.
    executor:
        Device executor.  When omitted an :class:`HTTPDeviceBridge` is
        created from ``device_bridge_url`` and also used as the scanner's
        package source.
    configs:
        Skill catalog; loaded from ``skills_catalog_path`` when omitted.
    scanner:
        Installed-app scanner; built from the bridge when omitted.
    """
    config = config or settings

    bridge = None
    if executor is None:
        from autopilot.device.bridge import HTTPDeviceBridge

        bridge = HTTPDeviceBridge(config.device_bridge_url, timeout=config.device_timeout_seconds)
        executor = bridge

    if scanner is None:
        source = bridge.list_packages if bridge is not None else None
        scanner = AppScanner(source=source, interval=config.app_scan_interval_seconds)

    if configs is None:
        configs = load_catalog(config.skills_catalog_path)

    registry = SkillRegistry(app_scanner=scanner)
    registry.load(configs)

    matcher = IntentMatcher([
        LLMIntentStrategy(registry, gateway, min_confidence=config.llm_intent_min_confidence),
        KeywordIntentStrategy(registry, min_confidence=config.skill_min_score),
    ])
    skill_manager = SkillManager(
        registry,
        matcher,
        executor=executor,
        min_score=config.skill_min_score,
        list_min_score=config.skill_list_min_score,
        fast_path_min_confidence=config.fast_path_min_confidence,
    )
    runner = TaskRunner(
        skill_manager,
        gateway,
        executor,
        max_steps=config.max_steps,
        max_consecutive_errors=config.max_consecutive_errors,
    )
    store = TaskStore(runner, max_finished=config.max_finished_tasks)
    logger.info(
        "services_built",
        skills=len(registry),
        gateway=gateway is not None,
        bridge=bridge is not None,
    )
    return Services(
        registry=registry,
        scanner=scanner,
        skill_manager=skill_manager,
        runner=runner,
        store=store,
        bridge=bridge,
    )


# ---------------------------------------------------------------------------
# Endpoint dependencies (services stored on app.state during lifespan)
# ---------------------------------------------------------------------------

def get_skill_registry(request: Request) -> SkillRegistry:
    return request.app.state.services.registry


def get_skill_manager(request: Request) -> SkillManager:
    return request.app.state.services.skill_manager


def get_task_store(request: Request) -> TaskStore:
    return request.app.state.services.store
