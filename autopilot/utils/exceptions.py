class AutopilotError(Exception):
    """Base exception for the device autopilot."""


class LLMError(AutopilotError):
    """Model gateway construction or configuration problem."""

    def __init__(self, provider: str, detail: str):
        self.provider = provider
        super().__init__(f"LLM error ({provider}): {detail}")


class ModelCallError(AutopilotError):
    """A single provider call failed.  Converted to a ``ModelResult`` by the gateway."""

    def __init__(self, provider: str, detail: str):
        self.provider = provider
        self.detail = detail
        super().__init__(f"{provider}: {detail}")


class ModelTransportError(ModelCallError):
    pass


class ModelTimeoutError(ModelCallError):
    pass


class ModelRejectedError(ModelCallError):
    """The provider answered with a well-formed error (bad request, auth, ...)."""


class MalformedResponseError(AutopilotError):
    def __init__(self, detail: str, raw: str = ""):
        self.raw = raw
        super().__init__(f"Malformed model response: {detail}")


class RoleError(AutopilotError):
    """A role could not turn the model output into its typed result."""

    role = "role"

    def __init__(self, kind: str, detail: str):
        self.kind = kind
        self.detail = detail
        super().__init__(f"{self.role} error ({kind}): {detail}")


class PlannerError(RoleError):
    role = "planner"


class ActorError(RoleError):
    role = "actor"


class EvaluatorError(RoleError):
    role = "evaluator"


class ActionError(AutopilotError):
    """The device could not perform an action."""

    TARGET_NOT_FOUND = "target_not_found"
    PERMISSION_DENIED = "permission_denied"
    TIMEOUT = "timeout"

    def __init__(self, kind: str, detail: str = ""):
        self.kind = kind
        self.detail = detail
        super().__init__(f"Action failed ({kind}): {detail}" if detail else f"Action failed ({kind})")


class InvalidTransitionError(AutopilotError):
    def __init__(self, current: str, target: str):
        self.current = current
        self.target = target
        super().__init__(f"Invalid run state transition: {current} -> {target}")


class SkillNotFoundError(AutopilotError):
    def __init__(self, skill_id: str):
        self.skill_id = skill_id
        super().__init__(f"Skill not found: {skill_id}")


class CatalogError(AutopilotError):
    pass


class TaskNotFoundError(AutopilotError):
    def __init__(self, task_id: str):
        self.task_id = task_id
        super().__init__(f"Task not found: {task_id}")


class TaskConflictError(AutopilotError):
    pass
