"""Central registry of catalog skills and installed-app selection."""

from __future__ import annotations

from autopilot.skills.app_scanner import AppScanner
from autopilot.skills.models import AvailableAppMatch, RelatedApp, SkillConfig, SkillMatch
from autopilot.skills.skill import Skill
from autopilot.utils.exceptions import SkillNotFoundError
from autopilot.utils.logging import get_logger

logger = get_logger(__name__)


class SkillRegistry:
    """Registry of all catalog skills.

    Typical lifecycle::

        registry = SkillRegistry(app_scanner)
        registry.load(load_catalog("skills.json"))
        match = registry.get_best_available_app("order a burger", min_score=0.3)

    Skills keep catalog order, which breaks score ties.
    """

    def __init__(self, app_scanner: AppScanner | None = None) -> None:
        self._skills: dict[str, Skill] = {}
        self.app_scanner = app_scanner or AppScanner()

    # ------------------------------------------------------------------
    # Registration & lookup
    # ------------------------------------------------------------------

    def load(self, configs: list[SkillConfig]) -> int:
        """Register every config; returns the number registered."""
        for config in configs:
            self.register(Skill(config))
        logger.info("skills_registered", count=len(configs))
        return len(configs)

    def register(self, skill: Skill) -> None:
        """Add *skill*, replacing any skill with the same id in place."""
        if skill.id in self._skills:
            logger.warning("skill_overwritten", skill_id=skill.id)
        self._skills[skill.id] = skill
        logger.debug("skill_registered", skill_id=skill.id)

    def get(self, skill_id: str) -> Skill:
        """Return the skill registered under *skill_id*.

        Raises :class:`SkillNotFoundError` if no such skill exists.
        """
        skill = self._skills.get(skill_id)
        if skill is None:
            raise SkillNotFoundError(skill_id)
        return skill

    def find(self, skill_id: str) -> Skill | None:
        return self._skills.get(skill_id)

    def get_all(self) -> list[Skill]:
        return list(self._skills.values())

    def get_by_category(self, category: str) -> list[Skill]:
        return [s for s in self._skills.values() if s.config.category == category]

    def __len__(self) -> int:
        return len(self._skills)

    def __contains__(self, skill_id: str) -> bool:
        return skill_id in self._skills

    # ------------------------------------------------------------------
    # Installed apps
    # ------------------------------------------------------------------

    def is_app_installed(self, package_name: str) -> bool:
        return self.app_scanner.is_installed(package_name)

    def installed_apps(self, skill: Skill) -> list[RelatedApp]:
        """Installed related apps of *skill*, highest priority first."""
        installed = [a for a in skill.config.related_apps if self.is_app_installed(a.package_name)]
        # sorted() is stable, so equal priorities keep catalog order.
        return sorted(installed, key=lambda a: a.priority, reverse=True)

    def select_app(self, skill: Skill) -> RelatedApp | None:
        """The installed app with the highest priority (ties: first listed)."""
        installed = self.installed_apps(skill)
        return installed[0] if installed else None

    # ------------------------------------------------------------------
    # Matching
    # ------------------------------------------------------------------

    def match(self, query: str, min_score: float = 0.3) -> list[SkillMatch]:
        """Skills scoring at least *min_score*, best first (ties: catalog order)."""
        matches = []
        for skill in self._skills.values():
            score = skill.match_score(query)
            if score >= min_score:
                matches.append(SkillMatch(skill=skill, score=score))
        matches.sort(key=lambda m: m.score, reverse=True)
        return matches

    def match_best(self, query: str, min_score: float = 0.3) -> SkillMatch | None:
        matches = self.match(query, min_score)
        return matches[0] if matches else None

    def match_available_apps(self, query: str, min_score: float = 0.2) -> list[AvailableAppMatch]:
        """Every installed app of every matching skill, grouped by skill."""
        results: list[AvailableAppMatch] = []
        for skill_match in self.match(query, min_score):
            skill = skill_match.skill
            apps = self.installed_apps(skill)
            if not apps:
                continue
            params = skill.extract_params(query)
            results.extend(
                AvailableAppMatch(skill=skill, app=app, params=params, score=skill_match.score)
                for app in apps
            )
        return results

    def get_best_available_app(self, query: str, min_score: float = 0.3) -> AvailableAppMatch | None:
        """The best-scoring skill that has an installed app, bound to that app."""
        for skill_match in self.match(query, min_score):
            app = self.select_app(skill_match.skill)
            if app is not None:
                return AvailableAppMatch(
                    skill=skill_match.skill,
                    app=app,
                    params=skill_match.skill.extract_params(query),
                    score=skill_match.score,
                )
        return None

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    def get_skills_description(self, installed_only: bool = False) -> str:
        """Catalog summary for model prompts."""
        lines = []
        for skill in self._skills.values():
            config = skill.config
            apps = self.installed_apps(skill) if installed_only else list(config.related_apps)
            if installed_only and not apps:
                continue
            lines.append(f"- ID: {config.id}")
            lines.append(f"  Name: {config.name}")
            lines.append(f"  Description: {config.description}")
            lines.append(f"  Keywords: {', '.join(config.keywords)}")
            label = "Available apps" if installed_only else "Apps"
            lines.append(f"  {label}: {', '.join(a.name for a in apps)}")
            lines.append("")
        return "\n".join(lines).rstrip()
