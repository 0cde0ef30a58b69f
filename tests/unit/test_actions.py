"""Tests for device action validation."""
import pytest
from pydantic import ValidationError

from autopilot.core.agent.actions import Action, ActionKind, Observation


class TestAction:
    def test_tap(self):
        action = Action(kind=ActionKind.TAP, x=10, y=20, description="tap search")
        assert action.parameters == {"x": 10, "y": 20}
        assert action.target is None

    def test_tap_without_coordinates(self):
        with pytest.raises(ValidationError, match="tap requires x, y"):
            Action(kind=ActionKind.TAP)

    def test_swipe_requires_end_point(self):
        with pytest.raises(ValidationError, match="end_x, end_y"):
            Action(kind="swipe", x=0, y=500)

    def test_negative_coordinates(self):
        with pytest.raises(ValidationError):
            Action(kind=ActionKind.TAP, x=-1, y=5)

    def test_type_requires_text(self):
        with pytest.raises(ValidationError):
            Action(kind=ActionKind.TYPE, text="")

    @pytest.mark.parametrize("key", ["back", "home", "enter", "recent"])
    def test_system_keys(self, key):
        assert Action(kind=ActionKind.PRESS_KEY, key=key).key == key

    def test_unknown_key(self):
        with pytest.raises(ValidationError, match="unknown key"):
            Action(kind=ActionKind.PRESS_KEY, key="volume_up")

    def test_open_app_target(self):
        action = Action(kind=ActionKind.OPEN_APP, app="com.maps")
        assert action.target == "com.maps"
        assert action.parameters == {}

    def test_deep_link_scoped(self):
        action = Action(kind=ActionKind.DEEP_LINK, uri="geo:0,0?q=cafe", app="com.maps")
        assert action.parameters == {"uri": "geo:0,0?q=cafe"}
        assert action.target == "com.maps"

    def test_wait_bounds(self):
        assert Action(kind=ActionKind.WAIT, seconds=1.5).seconds == 1.5
        with pytest.raises(ValidationError):
            Action(kind=ActionKind.WAIT, seconds=0)
        with pytest.raises(ValidationError):
            Action(kind=ActionKind.WAIT, seconds=120)

    def test_unknown_kind(self):
        with pytest.raises(ValidationError):
            Action(kind="shake")

    def test_actions_are_immutable(self):
        action = Action(kind=ActionKind.TAP, x=1, y=1)
        with pytest.raises(ValidationError):
            action.x = 5


class TestObservation:
    def test_without_image(self):
        assert Observation().to_image_input() is None

    def test_with_image(self):
        image = Observation(image=b"\x89PNG", mime_type="image/png").to_image_input()
        assert image.data == b"\x89PNG"
        assert image.to_data_url().startswith("data:image/png;base64,")
