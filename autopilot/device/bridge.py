"""HTTP client for the on-device bridge that performs actions.

The bridge is a small service running next to the accessibility/input
backend.  This module only speaks its wire contract:

* ``GET  /screen``   -> ``{"handle", "image" (base64), "mime_type", "width", "height", "description"}``
* ``POST /actions``  -> ``{"ok": true, "observation": {...}}`` or
  ``{"ok": false, "error": {"kind": ..., "message": ...}}``
* ``GET  /packages`` -> ``{"packages": [...]}``

Deep links are dispatched in two tiers: first scoped to the target package,
then, if that fails, unscoped so any handler of the URI can open it.
"""

from __future__ import annotations

import base64

import httpx

from autopilot.core.agent.actions import Action, ActionKind, Observation
from autopilot.utils.exceptions import ActionError
from autopilot.utils.logging import get_logger

logger = get_logger("device.bridge")

_ERROR_KINDS = {
    ActionError.TARGET_NOT_FOUND,
    ActionError.PERMISSION_DENIED,
    ActionError.TIMEOUT,
}


class HTTPDeviceBridge:
    """:class:`~autopilot.core.agent.actions.ActionExecutor` over HTTP.

    Parameters
    ----------
    base_url:
        Root URL of the bridge.
    timeout:
        Per-request timeout in seconds.
    transport:
        Optional httpx transport (tests use ``httpx.MockTransport``).
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout,
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    # ------------------------------------------------------------------
    # ActionExecutor
    # ------------------------------------------------------------------

    async def observe(self) -> Observation:
        data = await self._request("GET", "/screen")
        return self._parse_observation(data)

    async def execute(self, action: Action) -> Observation:
        if action.kind is ActionKind.DEEP_LINK and action.app:
            try:
                data = await self._dispatch(action)
            except ActionError as exc:
                logger.info(
                    "deep_link_scoped_failed_retrying_unscoped",
                    app=action.app,
                    error=str(exc),
                )
                data = await self._dispatch(action.model_copy(update={"app": None}))
        else:
            data = await self._dispatch(action)
        return self._parse_observation(data)

    async def list_packages(self) -> list[str]:
        data = await self._request("GET", "/packages")
        return [p for p in data.get("packages", []) if isinstance(p, str)]

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _dispatch(self, action: Action) -> dict:
        payload = action.model_dump(mode="json", exclude_none=True)
        logger.info("action_dispatch", kind=action.kind.value, app=action.app)
        data = await self._request("POST", "/actions", json=payload)
        if not data.get("ok"):
            error = data.get("error") or {}
            kind = error.get("kind", ActionError.TARGET_NOT_FOUND)
            if kind not in _ERROR_KINDS:
                kind = ActionError.TARGET_NOT_FOUND
            raise ActionError(kind, error.get("message", ""))
        return data.get("observation") or {}

    async def _request(self, method: str, path: str, **kwargs) -> dict:
        try:
            response = await self._client.request(method, path, **kwargs)
            response.raise_for_status()
        except httpx.TimeoutException as exc:
            raise ActionError(ActionError.TIMEOUT, f"{method} {path} timed out") from exc
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            kind = ActionError.PERMISSION_DENIED if status in (401, 403) else ActionError.TARGET_NOT_FOUND
            raise ActionError(kind, f"{method} {path}: HTTP {status}") from exc
        except httpx.HTTPError as exc:
            raise ActionError(ActionError.TIMEOUT, f"{method} {path}: bridge unreachable ({exc})") from exc

        try:
            data = response.json()
        except ValueError as exc:
            raise ActionError(ActionError.TARGET_NOT_FOUND, f"{method} {path}: invalid JSON") from exc
        return data if isinstance(data, dict) else {}

    @staticmethod
    def _parse_observation(data) -> Observation:
        if not isinstance(data, dict):
            raise ActionError(ActionError.TARGET_NOT_FOUND, "malformed observation: not an object")
        fields = {
            k: data[k]
            for k in ("handle", "mime_type", "width", "height", "description")
            if data.get(k) is not None
        }
        image = data.get("image")
        # binascii.Error and pydantic's ValidationError are both ValueErrors.
        try:
            if image:
                fields["image"] = base64.b64decode(image, validate=True)
            return Observation(**fields)
        except (TypeError, ValueError) as exc:
            raise ActionError(ActionError.TARGET_NOT_FOUND, f"malformed observation: {exc}") from exc
