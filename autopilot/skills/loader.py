"""Skill catalog loader -- reads the declarative JSON catalog."""

from __future__ import annotations

import json
from pathlib import Path

from pydantic import ValidationError

from autopilot.skills.models import SkillConfig
from autopilot.utils.exceptions import CatalogError
from autopilot.utils.logging import get_logger

logger = get_logger(__name__)


def load_catalog(path: str | Path) -> list[SkillConfig]:
    """Read the catalog file at *path*.

    A missing file is logged and yields an empty catalog; a malformed one
    raises :class:`CatalogError`.
    """
    path = Path(path)

    if not path.exists():
        logger.warning("skills_catalog_missing", path=str(path))
        return []

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise CatalogError(f"{path}: invalid JSON: {exc}") from exc

    configs = parse_catalog(data)
    logger.info("skills_catalog_loaded", path=str(path), count=len(configs))
    return configs


def parse_catalog(data: dict | list) -> list[SkillConfig]:
    """Validate catalog data: ``{"skills": [...]}`` or a bare list of skills."""
    entries = data.get("skills") if isinstance(data, dict) else data
    if not isinstance(entries, list):
        raise CatalogError("catalog must be a list of skills or an object with a 'skills' list")

    configs: list[SkillConfig] = []
    seen: set[str] = set()
    for index, entry in enumerate(entries):
        try:
            config = SkillConfig.model_validate(entry)
        except ValidationError as exc:
            raise CatalogError(f"skill #{index}: {exc}") from exc
        if config.id in seen:
            raise CatalogError(f"duplicate skill id: {config.id}")
        seen.add(config.id)
        configs.append(config)
    return configs
