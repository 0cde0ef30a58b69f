"""Skill manager: the entry-point of the skill layer.

The :class:`SkillManager` ties together the registry, the intent matcher and
the action executor.  It answers three questions for a task:

1. Which skill and installed app fit the request?
2. Can the request be delegated straight to that app (the fast path)?
3. If not, what guidance should the agent loop get?
"""

from __future__ import annotations

from autopilot.core.agent.actions import Action, ActionExecutor, ActionKind
from autopilot.core.intent.classifier import IntentMatcher
from autopilot.skills.models import (
    AvailableAppMatch,
    ExecutionPlan,
    ExecutionType,
    RelatedApp,
    SkillConfig,
    SkillResult,
)
from autopilot.skills.registry import SkillRegistry
from autopilot.utils.exceptions import ActionError
from autopilot.utils.logging import get_logger

logger = get_logger("intent.engine")

NO_MATCH_CONTEXT = (
    "No matching skill or available app found. "
    "Please use general GUI automation to complete the task."
)


def _type_label(app: RelatedApp) -> str:
    if app.type is ExecutionType.DELEGATION:
        return "[delegation, fast]"
    return "[GUI automation]"


class SkillManager:
    """Skill matching, fast-path decisions and skill execution.

    Parameters
    ----------
    registry:
        The populated :class:`SkillRegistry`.
    matcher:
        Ordered intent strategies used by :meth:`match_available_app_with_llm`.
    executor:
        Dispatches delegation deep links.  Optional when only matching.
    min_score, list_min_score:
        Keyword thresholds for the best match and for listing all matches.
    fast_path_min_confidence:
        Minimum score for a delegation match to bypass the agent loop.
    """

    def __init__(
        self,
        registry: SkillRegistry,
        matcher: IntentMatcher,
        executor: ActionExecutor | None = None,
        min_score: float = 0.3,
        list_min_score: float = 0.2,
        fast_path_min_confidence: float = 0.8,
    ):
        self.registry = registry
        self.matcher = matcher
        self.executor = executor
        self.min_score = min_score
        self.list_min_score = list_min_score
        self.fast_path_min_confidence = fast_path_min_confidence

    # ------------------------------------------------------------------
    # Matching
    # ------------------------------------------------------------------

    def match_available_app(self, query: str) -> AvailableAppMatch | None:
        """Keyword-only best match with an installed app."""
        return self.registry.get_best_available_app(query, min_score=self.min_score)

    def match_all_available_apps(self, query: str) -> list[AvailableAppMatch]:
        return self.registry.match_available_apps(query, min_score=self.list_min_score)

    async def match_available_app_with_llm(self, query: str) -> AvailableAppMatch | None:
        """Run the strategy list (model first, then keywords)."""
        return await self.matcher.match(query)

    def is_fast_path(self, match: AvailableAppMatch | None) -> bool:
        """A delegation app matched with high enough confidence."""
        return (
            match is not None
            and match.app.type is ExecutionType.DELEGATION
            and match.score >= self.fast_path_min_confidence
        )

    async def should_use_fast_path(self, query: str) -> AvailableAppMatch | None:
        match = await self.match_available_app_with_llm(query)
        return match if self.is_fast_path(match) else None

    def has_available_app(self, query: str) -> bool:
        return self.match_available_app(query) is not None

    def get_all_related_apps(self, query: str) -> list[RelatedApp]:
        """Every related app of the best skill, installed or not."""
        skill_match = self.registry.match_best(query, min_score=self.min_score)
        if skill_match is None:
            return []
        return list(skill_match.skill.config.related_apps)

    def get_missing_app_suggestions(self, query: str) -> list[RelatedApp]:
        """Apps the best skill could use that are not installed, best first."""
        skill_match = self.registry.match_best(query, min_score=self.min_score)
        if skill_match is None:
            return []
        missing = [
            app for app in skill_match.skill.config.related_apps
            if not self.registry.is_app_installed(app.package_name)
        ]
        return sorted(missing, key=lambda a: a.priority, reverse=True)

    def get_skill_info(self, skill_id: str) -> SkillConfig | None:
        skill = self.registry.find(skill_id)
        return skill.config if skill else None

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    async def execute(self, match: AvailableAppMatch) -> SkillResult:
        """Delegate through a deep link or hand back an automation plan."""
        logger.info(
            "skill_execute",
            skill_id=match.skill.id,
            app=match.app.package_name,
            type=match.app.type.value,
        )
        if match.app.type is ExecutionType.DELEGATION:
            return await self._execute_delegation(match)
        return self._execute_automation(match)

    async def _execute_delegation(self, match: AvailableAppMatch) -> SkillResult:
        app = match.app
        deep_link = match.skill.generate_deep_link(app, match.params)
        if not deep_link:
            return SkillResult(
                status="failed",
                app=app,
                error="Unable to generate deep link",
                suggestion="Try using GUI automation instead",
            )
        if self.executor is None:
            return SkillResult(
                status="failed",
                app=app,
                deep_link=deep_link,
                error="No action executor configured",
                suggestion="Try using GUI automation instead",
            )

        action = Action(
            kind=ActionKind.DEEP_LINK,
            uri=deep_link,
            app=app.package_name,
            description=f"Open {app.name} for {match.skill.config.name}",
        )
        try:
            await self.executor.execute(action)
        except ActionError as exc:
            logger.warning("delegation_failed", app=app.package_name, error=str(exc))
            return SkillResult(
                status="failed",
                app=app,
                deep_link=deep_link,
                error=f"Failed to open {app.name}: {exc}",
                suggestion="Please confirm the app is installed and supports deep links",
            )

        logger.info("delegation_dispatched", app=app.package_name, deep_link=deep_link)
        return SkillResult(
            status="delegated",
            app=app,
            deep_link=deep_link,
            message=f"Opened {app.name}",
        )

    def _execute_automation(self, match: AvailableAppMatch) -> SkillResult:
        config = match.skill.config
        plan = ExecutionPlan(
            skill_id=config.id,
            skill_name=config.name,
            app=match.app,
            params=match.params,
            is_installed=self.registry.is_app_installed(match.app.package_name),
            prompt_hint=config.prompt_hint,
        )
        return SkillResult(
            status="need_automation",
            app=match.app,
            plan=plan,
            message=f"GUI automation needed to operate {match.app.name}",
        )

    # ------------------------------------------------------------------
    # Agent guidance
    # ------------------------------------------------------------------

    def generate_agent_context(self, match: AvailableAppMatch | None) -> str:
        """Guidance text for the agent loop from a single match."""
        if match is None:
            return NO_MATCH_CONTEXT

        config = match.skill.config
        app = match.app
        lines = [
            "Based on user intent, matched skill:",
            "",
            f"[{config.name}] (confidence: {round(match.score * 100)}%)",
            f"Description: {config.description}",
            "",
        ]
        if config.prompt_hint:
            lines += [f"Important: {config.prompt_hint}", ""]
        lines.append(f"Recommended app: {app.name} ({app.package_name}) {_type_label(app)}")
        if app.type is ExecutionType.DELEGATION and app.deep_link:
            lines.append(f"Deep link: {app.deep_link}")
        if app.steps:
            lines.append(f"Steps: {' -> '.join(app.steps)}")
        if app.description:
            lines.append(f"Note: {app.description}")
        lines.append("")
        if app.type is ExecutionType.DELEGATION:
            lines.append(f"Suggestion: Use the deep link to open {app.name} directly for faster task completion.")
        else:
            lines.append(f"Suggestion: Complete the task through GUI automation with {app.name}.")
        return "\n".join(lines)

    def generate_agent_context_for(self, query: str) -> str:
        """Guidance text listing every installed option for *query*."""
        matches = self.match_all_available_apps(query)
        if not matches:
            return NO_MATCH_CONTEXT

        lines = ["Based on user intent, matched the following options:", ""]
        grouped: dict[str, list[AvailableAppMatch]] = {}
        for match in matches:
            grouped.setdefault(match.skill.id, []).append(match)

        for skill_matches in grouped.values():
            first = skill_matches[0]
            lines.append(f"[{first.skill.config.name}] (confidence: {round(first.score * 100)}%)")
            for index, match in enumerate(skill_matches, 1):
                app = match.app
                lines.append(f"  {index}. {app.name} {_type_label(app)} (priority: {app.priority})")
                if app.type is ExecutionType.DELEGATION and app.deep_link:
                    lines.append(f"     Deep link: {app.deep_link}")
                if app.steps:
                    lines.append(f"     Steps: {' -> '.join(app.steps)}")
                if app.description:
                    lines.append(f"     Note: {app.description}")
            lines.append("")

        lines.append(
            "Suggestion: Prefer delegation for faster execution. "
            "Use GUI automation if delegation fails."
        )
        return "\n".join(lines)
