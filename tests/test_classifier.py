"""ESI classifier tests — both scoring policies and the catalog fit check.

The vitals policy walks five tiers top-down (first match wins); the
progression policy starts at ESI 5 and tightens or loosens the score rule by
rule.  Both must be total: any answer mapping yields an ESI in [1, 5].
"""

import math

import pytest

from triage_engine.catalog import QuestionCatalog
from triage_engine.classifier import (
    ProgressionClassifier,
    VitalsClassifier,
    classify,
    get_classifier,
)
from triage_engine.models.answer import AnswerSet, ChoiceAnswer, ScaleAnswer
from triage_engine.models.question import MultipleChoiceQuestion, ScaleQuestion


@pytest.fixture
def vitals():
    return VitalsClassifier()


@pytest.fixture
def progression():
    return ProgressionClassifier()


# =====================================================================
# Vitals policy
# =====================================================================


class TestVitalsTiers:
    """Each tier fires on its own predicates; the most urgent tier wins."""

    @pytest.mark.parametrize(
        "answers, expected",
        [
            ({"vitalsStable": "no"}, 1),
            ({"consciousness": "unresponsive"}, 1),
            ({"chestPain": "yes", "onset": "sudden"}, 1),
            ({"painLevel": 9}, 2),
            ({"painLevel": 8}, 2),
            ({"breathingDifficulty": "severe"}, 2),
            ({"bleeding": "yes", "onset": "sudden"}, 2),
            ({"painLevel": 5}, 3),
            ({"breathingDifficulty": "moderate"}, 3),
            ({"chestPain": "yes", "onset": "gradual"}, 3),
            ({"age": 65}, 3),
            ({"painLevel": 3}, 4),
            ({"bleeding": "yes"}, 4),
            ({"painLevel": 2, "age": 64, "breathingDifficulty": "mild"}, 5),
            ({}, 5),
        ],
    )
    def test_tier(self, vitals, answers, expected):
        """Single-predicate answer sets land in the documented tier."""
        assert vitals.classify(answers) == expected, (
            f"{answers} should classify as ESI {expected}"
        )

    def test_first_matching_tier_wins(self, vitals):
        """Stable=no overrides everything that would only reach tier 2-4."""
        answers = {"vitalsStable": "no", "painLevel": 3, "bleeding": "yes"}
        assert vitals.classify(answers) == 1

    def test_boolean_yes_no(self, vitals):
        """Booleans are read as yes/no."""
        assert vitals.classify({"vitalsStable": False}) == 1
        assert vitals.classify({"chestPain": True, "onset": "sudden"}) == 1

    def test_numeric_strings(self, vitals):
        """Numeric strings compare as numbers; junk counts as 0."""
        assert vitals.classify({"painLevel": "8"}) == 2
        assert vitals.classify({"painLevel": "severe"}) == 5
        assert vitals.classify({"age": "70"}) == 3

    def test_case_sensitive_choices(self, vitals):
        """Option comparisons are exact; 'Severe' is not 'severe'."""
        assert vitals.classify({"breathingDifficulty": "Severe"}) == 5

    def test_monotonic_in_pain(self, vitals):
        """Raising pain with all else fixed never makes the ESI less urgent."""
        for base in ({}, {"bleeding": "yes"}, {"age": 80}, {"breathingDifficulty": "moderate"}):
            levels = [vitals.classify({**base, "painLevel": p}) for p in range(11)]
            assert levels == sorted(levels, reverse=True), (
                f"ESI not monotone in pain for base {base}: {levels}"
            )

    def test_module_level_classify_defaults_to_vitals(self):
        assert classify({"vitalsStable": "no"}) == 1
        assert classify({"pain_level": 9}) == 5


# =====================================================================
# Progression policy
# =====================================================================


class TestProgressionRules:
    """Rules apply in order through min/max; overrides run last."""

    @pytest.mark.parametrize(
        "answers, expected",
        [
            ({}, 5),
            ({"pain_level": "9"}, 1),
            ({"pain_level": 7}, 2),
            ({"pain_level": 5}, 3),
            ({"pain_level": 3}, 4),
            ({"pain_level": 2}, 5),
            # Onset conditioned on pain
            ({"pain_level": 3, "symptom_onset": "0-4 hours"}, 3),
            ({"pain_level": 6, "symptom_onset": "0-4 hours"}, 1),
            ({"pain_level": 4, "symptom_onset": "1+ days"}, 5),
            ({"pain_level": 9, "symptom_onset": "1+ days"}, 1),
            # Loosening cases
            ({"pain_level": 5, "symptom_onset": "24 hours",
              "symptom_progression": "Getting better"}, 4),
            ({"pain_level": 6, "condition_history": "Known condition",
              "symptom_progression": "No change"}, 4),
            # New condition tightens
            ({"pain_level": 5, "condition_history": "New condition"}, 2),
            ({"pain_level": 3, "condition_history": "New condition"}, 3),
        ],
    )
    def test_rule(self, progression, answers, expected):
        assert progression.classify(answers) == expected, (
            f"{answers} should classify as ESI {expected}"
        )

    def test_acute_worsening_override(self, progression):
        """0-4h onset + worsening + pain >= 7 forces ESI 1."""
        answers = {
            "pain_level": 7,
            "symptom_onset": "0-4 hours",
            "symptom_progression": "Worsened",
            "condition_history": "Known condition",
        }
        assert progression.classify(answers) == 1

    def test_new_acute_worsening_caps_at_two(self, progression):
        """A new, acute, worsening problem is at least ESI 2 even with low pain."""
        answers = {
            "pain_level": 2,
            "symptom_onset": "0-4 hours",
            "symptom_progression": "Worsened",
            "condition_history": "New condition",
        }
        assert progression.classify(answers) == 2

    def test_chronic_improving_known_is_non_urgent(self, progression):
        answers = {
            "pain_level": 4,
            "symptom_onset": "1+ days",
            "symptom_progression": "Getting better",
            "condition_history": "Known condition",
        }
        assert progression.classify(answers) == 5

    def test_case_sensitive_values(self, progression):
        """Unknown spellings leave the score unchanged."""
        assert progression.classify({"pain_level": 4, "symptom_progression": "worsened"}) == 4
        assert progression.classify({"pain_level": 4, "symptom_progression": "Worsened"}) == 2

    def test_reads_answer_set(self, progression):
        """Typed AnswerSets are flattened before scoring."""
        answers = AnswerSet()
        answers.set("pain_level", ScaleAnswer(value=8))
        answers.set("symptom_onset", ChoiceAnswer(value="5-12 hours"))
        assert progression.classify(answers) == 2


# =====================================================================
# Totality and determinism
# =====================================================================


class TestTotality:

    @pytest.mark.parametrize("policy", ["vitals", "progression"])
    @pytest.mark.parametrize(
        "answers",
        [
            None,
            [],
            "not a mapping",
            {"painLevel": None, "pain_level": None},
            {"painLevel": math.nan, "pain_level": math.inf},
            {"painLevel": [1, 2], "pain_level": {"x": 1}},
            {"age": -5, "pain_level": -3},
            {"unknown": "value"},
        ],
    )
    def test_never_raises(self, policy, answers):
        """Any input yields an ESI in [1, 5]."""
        esi = get_classifier(policy).classify(answers)
        assert 1 <= esi <= 5, f"{policy} returned {esi} for {answers!r}"

    @pytest.mark.parametrize("policy", ["vitals", "progression"])
    def test_deterministic(self, policy):
        answers = {"painLevel": 6, "pain_level": 6, "symptom_onset": "5-12 hours"}
        classifier = get_classifier(policy)
        assert classifier.classify(answers) == classifier.classify(dict(answers))

    def test_unknown_policy(self):
        with pytest.raises(ValueError, match="Unknown triage policy"):
            get_classifier("combined")


# =====================================================================
# Catalog fit check
# =====================================================================


def _progression_catalog(progression_qid="symptom_progression",
                         history_qid="condition_history",
                         onset_options=("0-4 hours", "5-12 hours", "24 hours", "1+ days")):
    return QuestionCatalog(
        name="variant",
        title="Variant",
        policy="progression",
        questions=[
            ScaleQuestion(qid="pain_level", question="Pain?"),
            MultipleChoiceQuestion(qid="symptom_onset", question="Onset?",
                                   options=list(onset_options)),
            MultipleChoiceQuestion(qid=progression_qid, question="Progression?",
                                   options=["Worsened", "Getting better", "No change"]),
            MultipleChoiceQuestion(qid=history_qid, question="History?",
                                   options=["New condition", "Known condition"]),
        ],
    )


class TestCheckCatalog:

    def test_shipped_catalogs_fit(self, store):
        """Each shipped catalog fits the classifier it names."""
        for catalog in store.catalogs.values():
            get_classifier(catalog.policy).check_catalog(catalog)

    def test_matching_variant_fits(self, progression):
        progression.check_catalog(_progression_catalog())

    def test_misspelled_field_ids_rejected(self, progression):
        """A catalog with misspelled ids would silently never match; reject it."""
        catalog = _progression_catalog(
            progression_qid="systom_progression", history_qid="Condition_knowity",
        )
        with pytest.raises(ValueError) as excinfo:
            progression.check_catalog(catalog)
        message = str(excinfo.value)
        assert "symptom_progression" in message
        assert "condition_history" in message

    def test_unknown_option_values_rejected(self, progression):
        catalog = _progression_catalog(onset_options=("0-4h", "5-12h", "24h", "days"))
        with pytest.raises(ValueError, match="has no option"):
            progression.check_catalog(catalog)

    def test_vitals_catalog_does_not_fit_progression(self, store, progression):
        with pytest.raises(ValueError):
            progression.check_catalog(store.get_catalog("vitals"))
