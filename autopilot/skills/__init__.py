"""Skills subsystem -- catalog models, loader, registry and installed-app scanning."""

from autopilot.skills.app_scanner import AppScanner
from autopilot.skills.loader import load_catalog, parse_catalog
from autopilot.skills.models import (
    AvailableAppMatch,
    ExecutionPlan,
    ExecutionType,
    RelatedApp,
    SkillConfig,
    SkillMatch,
    SkillResult,
)
from autopilot.skills.registry import SkillRegistry
from autopilot.skills.skill import Skill

__all__ = [
    "AppScanner",
    "AvailableAppMatch",
    "ExecutionPlan",
    "ExecutionType",
    "RelatedApp",
    "Skill",
    "SkillConfig",
    "SkillMatch",
    "SkillRegistry",
    "SkillResult",
    "load_catalog",
    "parse_catalog",
]
