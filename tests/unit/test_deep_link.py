"""Tests for deep-link template filling."""
from autopilot.skills.models import RelatedApp, SkillConfig
from autopilot.skills.skill import Skill

SKILL = Skill(SkillConfig(id="navigate", name="Navigation", keywords=["navigate"]))


def app(deep_link):
    return RelatedApp(package_name="com.maps", name="Maps", type="delegation", deep_link=deep_link)


class TestGenerateDeepLink:
    def test_fills_and_quotes(self):
        uri = SKILL.generate_deep_link(app("geo:0,0?q={keyword}"), {"keyword": "central park"})
        assert uri == "geo:0,0?q=central%20park"

    def test_multiple_placeholders(self):
        uri = SKILL.generate_deep_link(
            app("maps://route?from={origin}&to={keyword}"),
            {"origin": "home", "keyword": "work"},
        )
        assert uri == "maps://route?from=home&to=work"

    def test_missing_parameter(self):
        assert SKILL.generate_deep_link(app("geo:0,0?q={keyword}"), {"query": "x"}) == ""

    def test_blank_parameter(self):
        assert SKILL.generate_deep_link(app("geo:0,0?q={keyword}"), {"keyword": "  "}) == ""

    def test_no_template(self):
        assert SKILL.generate_deep_link(app(None), {"keyword": "x"}) == ""

    def test_malformed_template(self):
        assert SKILL.generate_deep_link(app("geo:0,0?q={key word}"), {"keyword": "x"}) == ""

    def test_static_link(self):
        assert SKILL.generate_deep_link(app("maps://home"), {}) == "maps://home"
