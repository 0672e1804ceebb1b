"""Triage classifiers — derive an ESI level from a completed answer set.

Two scoring policies exist, each written for its own questionnaire.  They
are separate strategies and are never combined:

  - **vitals** (:class:`VitalsClassifier`): five tiers of predicate groups,
    evaluated top-down; the first tier with a matching group wins.
  - **progression** (:class:`ProgressionClassifier`): starts at ESI 5 and
    walks pain, onset, progression and history rules in order.  Most rules
    only tighten the score (``min``); two stable/improving cases loosen it
    (``max(score, 4)`` or a reset to 5); three override rules run last.

Both are total.  Numeric answers that are absent or not numeric count as 0,
string comparisons are exact and case-sensitive, and values no rule knows
about leave the score unchanged.

``get_classifier(policy)`` returns the strategy a catalog names.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Mapping
from typing import Any

from triage_engine.constants import ESI_MAX, ESI_MIN, GERIATRIC_AGE_THRESHOLD, NO, YES
from triage_engine.interfaces import TriageClassifier

logger = logging.getLogger(__name__)


# ------------------------------------------------------------------
# Answer coercion
# ------------------------------------------------------------------

def _raw_answers(answers: Any) -> Mapping[str, Any]:
    """Accept an ``AnswerSet`` or a plain mapping; anything else is treated as empty."""
    to_raw = getattr(answers, "to_raw", None)
    if callable(to_raw):
        return to_raw()
    if isinstance(answers, Mapping):
        return answers
    logger.warning("classify() got %s instead of a mapping; treating as empty",
                   type(answers).__name__)
    return {}


def _number(value: Any) -> float:
    """Coerce a numeric answer; absent or malformed values count as 0."""
    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return 0.0
    else:
        return 0.0
    return number if math.isfinite(number) else 0.0


def _text(value: Any) -> str | None:
    """Normalise a choice answer for exact comparison; booleans map to yes/no."""
    if isinstance(value, bool):
        return YES if value else NO
    if isinstance(value, str):
        return value
    return None


def _clamp(score: int) -> int:
    return max(ESI_MIN, min(ESI_MAX, score))


# ------------------------------------------------------------------
# Policy A: vitals-driven tiers
# ------------------------------------------------------------------

# A condition is (qid, op, value); a group is AND-ed conditions; a tier
# fires when ANY of its groups holds.
Condition = tuple[str, str, Any]

_VITALS_TIERS: list[tuple[int, list[list[Condition]]]] = [
    # ESI 1: immediate life-threatening
    (1, [
        [("vitalsStable", "eq", NO)],
        [("consciousness", "eq", "unresponsive")],
        [("chestPain", "eq", YES), ("onset", "eq", "sudden")],
    ]),
    # ESI 2: high risk, shouldn't wait
    (2, [
        [("painLevel", "ge", 8)],
        [("breathingDifficulty", "eq", "severe")],
        [("bleeding", "eq", YES), ("onset", "eq", "sudden")],
    ]),
    # ESI 3: moderate risk
    (3, [
        [("painLevel", "ge", 5)],
        [("breathingDifficulty", "eq", "moderate")],
        [("chestPain", "eq", YES)],
        [("age", "ge", GERIATRIC_AGE_THRESHOLD)],
    ]),
    # ESI 4: lower risk
    (4, [
        [("painLevel", "ge", 3)],
        [("bleeding", "eq", YES)],
    ]),
]


def _fields_of(tiers: list[tuple[int, list[list[Condition]]]]) -> dict[str, tuple[str, ...]]:
    """Collect {qid: compared string values} from a tier table."""
    fields: dict[str, list[str]] = {}
    for _, groups in tiers:
        for group in groups:
            for qid, op, value in group:
                values = fields.setdefault(qid, [])
                if op == "eq" and value not in values:
                    values.append(value)
    return {qid: tuple(values) for qid, values in fields.items()}


class VitalsClassifier(TriageClassifier):
    """Policy A: first matching tier wins, ESI 5 if none match."""

    policy = "vitals"
    fields = _fields_of(_VITALS_TIERS)

    def classify(self, answers: Mapping[str, Any] | Any) -> int:
        raw = _raw_answers(answers)
        for esi, groups in _VITALS_TIERS:
            for group in groups:
                if all(self._compare(op, raw.get(qid), value) for qid, op, value in group):
                    logger.debug("vitals: ESI %d via %s", esi, group)
                    return esi
        return ESI_MAX

    @staticmethod
    def _compare(op: str, answer: Any, value: Any) -> bool:
        if op == "eq":
            return _text(answer) == value
        if op == "ge":
            return _number(answer) >= value
        logger.warning("Unknown condition operator: %s", op)
        return False


# ------------------------------------------------------------------
# Policy B: pain / onset / progression / history
# ------------------------------------------------------------------

ONSET_0_4H = "0-4 hours"
ONSET_5_12H = "5-12 hours"
ONSET_24H = "24 hours"
ONSET_DAYS = "1+ days"

WORSENED = "Worsened"
IMPROVING = "Getting better"
NO_CHANGE = "No change"

NEW_CONDITION = "New condition"
KNOWN_CONDITION = "Known condition"


class ProgressionClassifier(TriageClassifier):
    """Policy B: start at ESI 5 and apply rules in order.

    Rule order matters because later rules combine with the running score
    through ``min``/``max`` rather than returning early.
    """

    policy = "progression"
    fields = {
        "pain_level": (),
        "symptom_onset": (ONSET_0_4H, ONSET_5_12H, ONSET_24H, ONSET_DAYS),
        "symptom_progression": (WORSENED, IMPROVING, NO_CHANGE),
        "condition_history": (NEW_CONDITION, KNOWN_CONDITION),
    }

    def classify(self, answers: Mapping[str, Any] | Any) -> int:
        raw = _raw_answers(answers)
        pain = _number(raw.get("pain_level"))
        onset = _text(raw.get("symptom_onset"))
        progression = _text(raw.get("symptom_progression"))
        history = _text(raw.get("condition_history"))

        score = ESI_MAX

        # 1. Pain level base tier
        if pain >= 9:
            score = min(score, 1)
        elif pain >= 7:
            score = min(score, 2)
        elif pain >= 5:
            score = min(score, 3)
        elif pain >= 3:
            score = min(score, 4)

        # 2. Onset, conditioned on pain
        if onset == ONSET_0_4H:
            score = min(score, 1 if pain >= 6 else 2 if pain >= 4 else 3)
        elif onset == ONSET_5_12H:
            if pain >= 7:
                score = min(score, 2)
            elif pain >= 5:
                score = min(score, 3)
        elif onset == ONSET_24H:
            if pain >= 8:
                score = min(score, 2)
        elif onset == ONSET_DAYS:
            if pain >= 9:
                score = min(score, 2)
            elif pain < 5:
                score = ESI_MAX

        # 3. Progression
        if progression == WORSENED:
            score = min(score, 1 if pain >= 6 else 2 if pain >= 4 else 3)
        elif progression == IMPROVING:
            if pain < 6 and onset != ONSET_0_4H:
                score = max(score, 4)

        # 4. Condition history
        if history == NEW_CONDITION:
            if pain >= 5:
                score = min(score, 2)
            elif pain >= 3:
                score = min(score, 3)
        elif history == KNOWN_CONDITION:
            if progression == NO_CHANGE and pain < 7:
                score = max(score, 4)

        # 5. Overrides
        if onset == ONSET_0_4H and progression == WORSENED and pain >= 7:
            score = 1
        if history == NEW_CONDITION and onset == ONSET_0_4H and progression == WORSENED:
            score = min(score, 2)
        if (
            onset == ONSET_DAYS
            and progression == IMPROVING
            and history == KNOWN_CONDITION
            and pain < 5
        ):
            score = ESI_MAX

        esi = _clamp(score)
        logger.debug(
            "progression: ESI %d (pain=%s onset=%s progression=%s history=%s)",
            esi, pain, onset, progression, history,
        )
        return esi


# ------------------------------------------------------------------
# Registry
# ------------------------------------------------------------------

CLASSIFIERS: dict[str, type[TriageClassifier]] = {
    VitalsClassifier.policy: VitalsClassifier,
    ProgressionClassifier.policy: ProgressionClassifier,
}


def get_classifier(policy: str) -> TriageClassifier:
    """Return a classifier instance for a policy name.

    Raises:
        ValueError: if the policy is unknown.
    """
    try:
        return CLASSIFIERS[policy]()
    except KeyError:
        raise ValueError(
            f"Unknown triage policy '{policy}'; expected one of {sorted(CLASSIFIERS)}"
        ) from None


def classify(answers: Mapping[str, Any] | Any, policy: str = VitalsClassifier.policy) -> int:
    """Convenience wrapper: classify ``answers`` under ``policy``."""
    return get_classifier(policy).classify(answers)
