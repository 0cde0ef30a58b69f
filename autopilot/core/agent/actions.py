"""Device actions, screen observations and the executor contract.

An :class:`Action` is produced by the Actor and consumed by an
:class:`ActionExecutor`.  Every action is fully resolved on construction: a
tap without coordinates or a swipe without an end point cannot exist.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Protocol

from pydantic import BaseModel, ConfigDict, Field, model_validator

from autopilot.core.llm.models import ImageInput


class ActionKind(str, Enum):
    TAP = "tap"
    LONG_PRESS = "long_press"
    SWIPE = "swipe"
    TYPE = "type"
    PRESS_KEY = "press_key"
    OPEN_APP = "open_app"
    DEEP_LINK = "deep_link"
    WAIT = "wait"


SYSTEM_KEYS: frozenset[str] = frozenset({"back", "home", "enter", "recent"})

# Parameters each kind must carry.
_REQUIRED_PARAMS: dict[ActionKind, tuple[str, ...]] = {
    ActionKind.TAP: ("x", "y"),
    ActionKind.LONG_PRESS: ("x", "y"),
    ActionKind.SWIPE: ("x", "y", "end_x", "end_y"),
    ActionKind.TYPE: ("text",),
    ActionKind.PRESS_KEY: ("key",),
    ActionKind.OPEN_APP: ("app",),
    ActionKind.DEEP_LINK: ("uri",),
    ActionKind.WAIT: ("seconds",),
}


class Action(BaseModel):
    """A single device command.

    Attributes:
        kind: What to do.
        x, y: Target point (tap, long press) or swipe start, in screen pixels.
        end_x, end_y: Swipe end point.
        text: Text to type.
        key: System key to press, one of ``SYSTEM_KEYS``.
        app: Target app package.  Required for ``open_app``; scopes a
            ``deep_link`` to one package when set.
        uri: Deep-link URI.
        seconds: Wait duration.
        description: What the action is meant to achieve, for the audit log.
    """

    model_config = ConfigDict(frozen=True)

    kind: ActionKind
    x: int | None = Field(default=None, ge=0)
    y: int | None = Field(default=None, ge=0)
    end_x: int | None = Field(default=None, ge=0)
    end_y: int | None = Field(default=None, ge=0)
    text: str | None = None
    key: str | None = None
    app: str | None = None
    uri: str | None = None
    seconds: float | None = Field(default=None, gt=0, le=60)
    description: str = ""

    @model_validator(mode="after")
    def _check_resolved(self) -> Action:
        missing = [
            name for name in _REQUIRED_PARAMS[self.kind]
            if getattr(self, name) in (None, "")
        ]
        if missing:
            raise ValueError(
                f"{self.kind.value} requires {', '.join(missing)}",
            )
        if self.kind is ActionKind.PRESS_KEY and self.key not in SYSTEM_KEYS:
            raise ValueError(
                f"unknown key {self.key!r}; expected one of {sorted(SYSTEM_KEYS)}",
            )
        return self

    @property
    def target(self) -> str | None:
        """The app the action is aimed at, if any."""
        return self.app

    @property
    def parameters(self) -> dict:
        """The kind-specific parameters, without the bookkeeping fields."""
        return self.model_dump(
            exclude={"kind", "description", "app"}, exclude_none=True,
        )


class Observation(BaseModel):
    """An opaque capture of the device screen.

    ``handle`` identifies the capture; ``image`` holds the screenshot bytes
    when the executor provides them.
    """

    model_config = ConfigDict(frozen=True)

    handle: str = Field(default_factory=lambda: uuid.uuid4().hex[:12])
    image: bytes | None = None
    mime_type: str = "image/png"
    width: int | None = None
    height: int | None = None
    description: str = ""
    captured_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    def to_image_input(self) -> ImageInput | None:
        if not self.image:
            return None
        return ImageInput(data=self.image, mime_type=self.mime_type)


class ActionExecutor(Protocol):
    """Performs actions on the device.

    ``execute`` returns the screen after the action or raises
    :class:`~autopilot.utils.exceptions.ActionError`.
    """

    async def observe(self) -> Observation: ...

    async def execute(self, action: Action) -> Observation: ...
