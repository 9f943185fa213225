"""
Tests for ConfidenceArbiter, LLMArbiter and the post-verdict policy.
"""

import pytest
from unittest.mock import AsyncMock, Mock

from askbase.resolver.arbiter import (
    Assessment,
    ConfidenceArbiter,
    LLMArbiter,
    MeaningVerdict,
    decide_after_verdict,
)
from askbase.resolver.collaborators import AnswerStatus, GeneralAnswer
from askbase.resolver.fallback import Via

from conftest import make_candidate


class TestConfidenceArbiter:
    """Score-only checks"""

    @pytest.fixture
    def arbiter(self):
        return ConfidenceArbiter()

    def test_min_score_boundary_is_not_low(self, arbiter):
        assert arbiter.assess(make_candidate("A", 0.11)).low is False

    def test_just_below_min_score_is_low(self, arbiter):
        assert arbiter.assess(make_candidate("A", 0.1099)).low is True

    def test_no_second_is_never_ambiguous(self, arbiter):
        assessment = arbiter.assess(make_candidate("A", 0.5), None)
        assert assessment.ambiguous is False
        assert assessment.escalate is False

    def test_exact_gap_is_not_ambiguous(self):
        # Binary-exact values so the difference is exactly the gap
        arbiter = ConfidenceArbiter(min_score=0.11, gap=0.25)
        assessment = arbiter.assess(make_candidate("A", 0.75), make_candidate("B", 0.5))
        assert assessment.ambiguous is False

    def test_default_gap_boundary_is_not_ambiguous(self, arbiter):
        assessment = arbiter.assess(make_candidate("A", 0.56), make_candidate("B", 0.50))
        assert assessment.ambiguous is False

    def test_float_gap_of_exactly_default_is_not_ambiguous(self, arbiter):
        # 0.70 - 0.64 evaluates to 0.05999... in binary floating point
        assessment = arbiter.assess(make_candidate("A", 0.70), make_candidate("B", 0.64))
        assert assessment.ambiguous is False

    def test_narrow_gap_is_ambiguous(self, arbiter):
        assessment = arbiter.assess(make_candidate("A", 0.56), make_candidate("B", 0.51))
        assert assessment.ambiguous is True
        assert assessment.escalate is True

    def test_low_alone_escalates(self, arbiter):
        assessment = arbiter.assess(make_candidate("A", 0.09), make_candidate("B", 0.01))
        assert assessment.low is True
        assert assessment.ambiguous is False
        assert assessment.escalate is True


class TestLLMArbiter:
    """Tri-state parsing of the meaning check"""

    def _arbiter(self, answer: GeneralAnswer):
        services = Mock()
        services.answer_general_question = AsyncMock(return_value=answer)
        return LLMArbiter(services), services

    @pytest.mark.asyncio
    @pytest.mark.parametrize("text", ["yes", "YES", "  Yes  ", "yes\n"])
    async def test_yes_variants_match(self, text):
        arbiter, _ = self._arbiter(GeneralAnswer(status=AnswerStatus.OK, text=text))
        assert await arbiter.meaning_match("q", "r") == MeaningVerdict.MATCH

    @pytest.mark.asyncio
    async def test_no_is_no_match(self):
        arbiter, _ = self._arbiter(GeneralAnswer(status=AnswerStatus.OK, text="No"))
        assert await arbiter.meaning_match("q", "r") == MeaningVerdict.NO_MATCH

    @pytest.mark.asyncio
    @pytest.mark.parametrize("text", [
        "maybe", "yes, they match", "", "no idea",
        "yes.", '"yes"', "```\nyes\n```", "no.",
    ])
    async def test_other_replies_are_unknown(self, text):
        arbiter, _ = self._arbiter(GeneralAnswer(status=AnswerStatus.OK, text=text))
        assert await arbiter.meaning_match("q", "r") == MeaningVerdict.UNKNOWN

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [AnswerStatus.FAILED, AnswerStatus.UNAVAILABLE, AnswerStatus.DEGRADED])
    async def test_non_ok_status_is_unknown_even_if_text_says_no(self, status):
        arbiter, _ = self._arbiter(GeneralAnswer(status=status, text="no"))
        assert await arbiter.meaning_match("q", "r") == MeaningVerdict.UNKNOWN

    @pytest.mark.asyncio
    async def test_exception_is_unknown(self):
        services = Mock()
        services.answer_general_question = AsyncMock(side_effect=RuntimeError("down"))
        arbiter = LLMArbiter(services)

        assert await arbiter.meaning_match("q", "r") == MeaningVerdict.UNKNOWN

    @pytest.mark.asyncio
    async def test_prompt_contains_both_questions(self):
        arbiter, services = self._arbiter(GeneralAnswer(status=AnswerStatus.OK, text="yes"))

        await arbiter.meaning_match("hostel food menu", "What is served in the mess?")

        prompt = services.answer_general_question.call_args[0][0]
        assert 'User: "hostel food menu"' in prompt
        assert 'Reference: "What is served in the mess?"' in prompt
        assert "hostel food = mess food" in prompt


class TestDecideAfterVerdict:
    """Accept / reject / trust policy"""

    def test_match_accepts_regardless_of_score(self):
        best = make_candidate("A", 0.01)
        result = decide_after_verdict(MeaningVerdict.MATCH, Assessment(low=True, ambiguous=False), best)
        assert result.via == Via.LLM_VALIDATED
        assert result.answer == "A"

    def test_no_match_rejects_even_strong_score(self):
        best = make_candidate("A", 0.95)
        result = decide_after_verdict(MeaningVerdict.NO_MATCH, Assessment(low=False, ambiguous=True), best)
        assert result.via == Via.LLM_REJECT
        assert result.is_fallback

    def test_unknown_trusts_at_threshold(self):
        best = make_candidate("A", 0.55)
        result = decide_after_verdict(MeaningVerdict.UNKNOWN, Assessment(low=False, ambiguous=True), best)
        assert result.via == Via.SEMANTIC_LLM_UNAVAILABLE
        assert result.answer == "A"

    def test_unknown_below_threshold_falls_back(self):
        best = make_candidate("A", 0.549)
        result = decide_after_verdict(MeaningVerdict.UNKNOWN, Assessment(low=False, ambiguous=True), best)
        assert result.via == Via.LLM_UNAVAILABLE

    def test_unknown_never_trusts_low_score(self):
        # Cannot happen with default thresholds, but a low flag always blocks trust
        best = make_candidate("A", 0.9)
        result = decide_after_verdict(
            MeaningVerdict.UNKNOWN, Assessment(low=True, ambiguous=False), best, trust_score=0.5
        )
        assert result.via == Via.LLM_UNAVAILABLE

    def test_fallback_message_override(self):
        best = make_candidate("A", 0.2)
        result = decide_after_verdict(
            MeaningVerdict.NO_MATCH,
            Assessment(low=False, ambiguous=True),
            best,
            fallback_message="Ask the office.",
        )
        assert result.answer == "Ask the office."
