"""Value types exchanged with the model gateway."""

from __future__ import annotations

import base64
from enum import Enum

from pydantic import BaseModel, ConfigDict


class ModelFailure(str, Enum):
    """Why a model call produced no usable completion."""

    TIMEOUT = "timeout"
    TRANSPORT_ERROR = "transport_error"
    MALFORMED_RESPONSE = "malformed_response"
    REJECTED = "rejected"


class Prompt(BaseModel):
    """A system + user message pair."""

    model_config = ConfigDict(frozen=True)

    system: str
    user: str


class ImageInput(BaseModel):
    """An image attached to a prompt (typically a screenshot)."""

    model_config = ConfigDict(frozen=True)

    data: bytes
    mime_type: str = "image/png"

    def to_base64(self) -> str:
        return base64.b64encode(self.data).decode("ascii")

    def to_data_url(self) -> str:
        return f"data:{self.mime_type};base64,{self.to_base64()}"


class ModelResult(BaseModel):
    """Outcome of :meth:`ModelGateway.predict`.

    Either ``text`` is set (success) or ``failure`` is set; a result is never
    both.  ``data`` is only populated by ``predict_json``.
    """

    model_config = ConfigDict(frozen=True)

    text: str | None = None
    data: dict | None = None
    failure: ModelFailure | None = None
    detail: str = ""
    attempts: int = 1

    @property
    def ok(self) -> bool:
        return self.failure is None

    @classmethod
    def success(cls, text: str, attempts: int = 1) -> ModelResult:
        return cls(text=text, attempts=attempts)

    @classmethod
    def fail(cls, failure: ModelFailure, detail: str = "", attempts: int = 1) -> ModelResult:
        return cls(failure=failure, detail=detail, attempts=attempts)
