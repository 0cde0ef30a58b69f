"""Tests for the Planner's finish-signal detection."""
import pytest

from autopilot.core.agent.finish import FinishMatch, detect_finish, is_finished


class TestDetectFinish:
    @pytest.mark.parametrize(
        "text, expected",
        [
            ("Finished", FinishMatch.EXACT),
            ("  finished \n", FinishMatch.EXACT),
            ('"Finished"', FinishMatch.EXACT),
            ("**Finished**", FinishMatch.EXACT),
            ("finished.", FinishMatch.PUNCTUATED),
            ("Finished!", FinishMatch.PUNCTUATED),
            ("FINISHED!!", FinishMatch.PUNCTUATED),
            ("finished - the order was placed", FinishMatch.DASHED),
            ("Finished: all subgoals done", FinishMatch.DASHED),
            ("The task is finished now", FinishMatch.SHORT),
            ("Task finished.", FinishMatch.SHORT),
        ],
    )
    def test_accepted_phrasings(self, text, expected):
        assert detect_finish(text) is expected

    @pytest.mark.parametrize(
        "text",
        [
            "",
            None,
            '{"thought": "keep going", "plan": ["Open the app"]}',
            "unfinished",
            "The search results page is not finished loading yet, so we should wait",
            "Continue with the next subgoal",
        ],
    )
    def test_continuations(self, text):
        assert detect_finish(text) is None
        assert not is_finished(text)

    def test_long_text_mentioning_finished_is_not_a_signal(self):
        text = "I have finished typing the address but still need to press the search button"
        assert len(text) > 50
        assert detect_finish(text) is None

    def test_short_rule_length_boundary(self):
        at_cap = "Everything on the list is finished, nothing left."
        assert len(at_cap) == 49
        assert detect_finish(at_cap) is FinishMatch.SHORT
        padded = at_cap + " ok"
        assert len(padded) > 50
        assert detect_finish(padded) is None
