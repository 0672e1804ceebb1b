"""CatalogStore loading and lookup smoke tests.

Validates that CatalogStore loads every YAML file under v1/ and that the
lookup helpers return what the catalogs declare.

Expected contents (from v1/const/ and v1/catalogs/):
    5 ESI levels, catalogs "vitals" (8 questions) and "progression" (10 questions)
"""

import pytest
import yaml

from triage_engine.catalog import CatalogStore, QuestionCatalog
from triage_engine.models.question import (
    MultipleChoiceQuestion,
    ScaleQuestion,
    YesNoQuestion,
)


# =====================================================================
# Loading tests: verify all reference data loads with correct counts
# =====================================================================


def test_store_loads_all_esi_levels(store):
    """Levels 1-5 load with labels and patient messages."""
    assert sorted(store.esi_levels) == [1, 2, 3, 4, 5], (
        f"Expected ESI levels 1-5, got {sorted(store.esi_levels)}"
    )
    for level, esi in store.esi_levels.items():
        assert esi.level == level, f"ESI key mismatch: {level} vs {esi.level}"
        assert esi.label, f"ESI {level} missing label"
        assert esi.patient_message, f"ESI {level} missing patient_message"


def test_store_loads_both_catalogs(store):
    """Both questionnaires load, each naming its own policy."""
    assert set(store.catalogs) == {"vitals", "progression"}
    assert store.get_catalog("vitals").policy == "vitals"
    assert store.get_catalog("progression").policy == "progression"


def test_vitals_catalog_order(store):
    """The vitals catalog presents its eight questions in a fixed order."""
    catalog = store.get_catalog("vitals")
    assert catalog.qids == [
        "vitalsStable", "painLevel", "chestPain", "breathingDifficulty",
        "consciousness", "bleeding", "onset", "age",
    ]


def test_vitals_question_types(store):
    """Question ids map to the expected typed models."""
    catalog = store.get_catalog("vitals")
    assert isinstance(catalog.get("vitalsStable"), YesNoQuestion)
    assert isinstance(catalog.get("painLevel"), ScaleQuestion)
    breathing = catalog.get("breathingDifficulty")
    assert isinstance(breathing, MultipleChoiceQuestion)
    assert breathing.options == ["none", "mild", "moderate", "severe"]


def test_progression_sections(store):
    """Progression questions are grouped into the three display sections."""
    sections = store.get_catalog("progression").sections()
    assert list(sections) == ["patient_info", "clinical", "accessibility"], (
        f"Unexpected section order: {list(sections)}"
    )
    assert "pain_level" in sections["clinical"]


# =====================================================================
# Lookup helpers
# =====================================================================


def test_resolve_esi_returns_api_dict(store):
    """resolve_esi returns a plain dict with the display fields."""
    level = store.resolve_esi(1)
    assert level["label"] == "Immediate"
    assert set(level) >= {"level", "label", "description", "patient_message", "color"}


def test_esi_label_unknown_level(store):
    """Labels for out-of-range levels fall back to 'Unknown'."""
    assert store.esi_label(2) == "Emergent"
    assert store.esi_label(9) == "Unknown"


def test_get_catalog_unknown_name(store):
    with pytest.raises(KeyError):
        store.get_catalog("does-not-exist")


def test_index_of_and_contains(store):
    catalog = store.get_catalog("vitals")
    assert "age" in catalog
    assert "pain_level" not in catalog
    assert catalog.index_of("age") == len(catalog) - 1
    assert catalog[catalog.index_of("chestPain")].qid == "chestPain"


# =====================================================================
# Malformed ruleset directories
# =====================================================================


def _write_ruleset(base, esi_levels, catalogs):
    (base / "const").mkdir(parents=True)
    (base / "catalogs").mkdir()
    (base / "const" / "esi_levels.yaml").write_text(yaml.safe_dump(esi_levels))
    for name, doc in catalogs.items():
        (base / "catalogs" / f"{name}.yaml").write_text(yaml.safe_dump(doc))


def _levels(*levels):
    return [
        {"level": lv, "label": f"L{lv}", "description": "d", "patient_message": "m", "color": "#000"}
        for lv in levels
    ]


_TINY_CATALOG = {
    "name": "tiny",
    "title": "Tiny",
    "policy": "vitals",
    "questions": [{"qid": "q1", "question": "Q?", "question_type": "yes_no"}],
}


def test_missing_esi_level_rejected(tmp_path):
    """A ruleset that does not define all five ESI levels fails to load."""
    _write_ruleset(tmp_path, _levels(1, 2, 3, 4), {"tiny": _TINY_CATALOG})
    with pytest.raises(ValueError, match="missing levels"):
        CatalogStore(tmp_path).load()


def test_unknown_question_type_rejected(tmp_path):
    """An unknown question_type is reported with the file name."""
    bad = dict(_TINY_CATALOG, questions=[{"qid": "q1", "question": "Q?", "question_type": "slider"}])
    _write_ruleset(tmp_path, _levels(1, 2, 3, 4, 5), {"bad": bad})
    with pytest.raises(ValueError, match="bad.yaml"):
        CatalogStore(tmp_path).load()


def test_duplicate_qid_rejected():
    """Question ids must be unique within a catalog."""
    q = YesNoQuestion(qid="q1", question="Q?")
    with pytest.raises(ValueError, match="Duplicate qid"):
        QuestionCatalog(name="dup", title="Dup", policy="vitals", questions=[q, q])


def test_unknown_section_rejected():
    with pytest.raises(ValueError):
        YesNoQuestion(qid="q1", question="Q?", section="billing")
