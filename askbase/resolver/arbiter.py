"""
Confidence and LLM Arbitration

ConfidenceArbiter decides from the score distribution alone whether the best
candidate can be accepted directly. When it is too weak or too close to the
runner-up, LLMArbiter asks a language model whether the two questions mean
the same thing, and decide_after_verdict applies the accept/reject/trust
policy to the tri-state answer.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from ..common.llm_utils import parse_yes_no
from .collaborators import AnswerStatus
from .fallback import Resolution, Via, accept, fallback
from .matcher import MatchCandidate

logger = logging.getLogger("askbase.resolver.arbiter")

MIN_SCORE = 0.11
GAP = 0.06
TRUST_SCORE = 0.55


MEANING_PROMPT = """Do these questions have EXACTLY the same meaning?

Rules:
- Grammar changes DO NOT matter
- Word order DOES NOT matter
- Spelling mistakes DO NOT matter
- Synonyms count as same meaning:
  (school = campus)
  (class start time = school timing)
  (hostel food = mess food)
  (canteen = snack shop)

Reply ONLY:
"yes" or "no"

User: "{user}"
Reference: "{reference}"
"""


class MeaningVerdict(str, Enum):
    """Tri-state outcome of LLM arbitration"""
    MATCH = "match"
    NO_MATCH = "no_match"
    UNKNOWN = "unknown"  # model unavailable, failed, or gave an unusable reply


@dataclass(frozen=True)
class Assessment:
    """Score-only judgment of the best candidate"""
    low: bool
    ambiguous: bool

    @property
    def escalate(self) -> bool:
        return self.low or self.ambiguous


class ConfidenceArbiter:
    """Flags a best candidate that is weak or too close to the runner-up."""

    def __init__(self, min_score: float = MIN_SCORE, gap: float = GAP):
        self.min_score = min_score
        self.gap = gap

    def assess(self, best: MatchCandidate, second: Optional[MatchCandidate] = None) -> Assessment:
        low = best.score < self.min_score
        # Rounded so a gap of exactly ``gap`` (0.70 - 0.64) is not ambiguous
        ambiguous = second is not None and round(abs(best.score - second.score), 9) < self.gap
        return Assessment(low=low, ambiguous=ambiguous)


class LLMArbiter:
    """Asks the language model whether a query and a stored question share meaning."""

    def __init__(self, services):
        """
        Args:
            services: Object exposing async ``answer_general_question``
                returning a GeneralAnswer (see LanguageServices)
        """
        self._services = services

    async def meaning_match(self, query_text: str, candidate_question: str) -> MeaningVerdict:
        prompt = MEANING_PROMPT.format(user=query_text, reference=candidate_question)
        try:
            result = await self._services.answer_general_question(prompt)
        except Exception as e:
            logger.warning("Meaning check failed: %s", e)
            return MeaningVerdict.UNKNOWN

        if result.status != AnswerStatus.OK:
            logger.info("Meaning check unusable (status=%s)", result.status.value)
            return MeaningVerdict.UNKNOWN

        answer = parse_yes_no(result.text)
        if answer == "yes":
            return MeaningVerdict.MATCH
        if answer == "no":
            return MeaningVerdict.NO_MATCH

        logger.info("Meaning check gave an unrecognized reply: %r", result.text[:80])
        return MeaningVerdict.UNKNOWN


def decide_after_verdict(
    verdict: MeaningVerdict,
    assessment: Assessment,
    best: MatchCandidate,
    *,
    trust_score: float = TRUST_SCORE,
    fallback_message: Optional[str] = None,
) -> Resolution:
    """
    Turn an arbitration verdict into a Resolution.

    MATCH accepts the best answer whatever its score. NO_MATCH falls back.
    UNKNOWN accepts only a candidate that was escalated for ambiguity, not for
    a low score, and still reaches ``trust_score``.
    """
    kwargs = {"message": fallback_message} if fallback_message else {}

    if verdict == MeaningVerdict.MATCH:
        return accept(best.answer, Via.LLM_VALIDATED, score=best.score)

    if verdict == MeaningVerdict.NO_MATCH:
        return fallback(Via.LLM_REJECT, score=best.score, **kwargs)

    if not assessment.low and best.score >= trust_score:
        return accept(best.answer, Via.SEMANTIC_LLM_UNAVAILABLE, score=best.score)

    return fallback(Via.LLM_UNAVAILABLE, score=best.score, **kwargs)
