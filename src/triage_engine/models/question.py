"""Question type models for triage questionnaires.

Each question type maps to one answer widget and one answer kind:

    - yes_no:   two-button yes/no prompt           → YesNoAnswer
    - scale:    bounded integer scale (pain 0-10)  → ScaleAnswer
    - multiple: pick one of an ordered option list → ChoiceAnswer
    - number:   free integer input (e.g. age)      → NumberAnswer
    - string:   free text input                    → TextAnswer
    - date:     ISO calendar date                  → DateAnswer

The discriminated ``Question`` union uses ``question_type`` as its discriminator.
The ``question_mapper`` dict maps type strings to their Pydantic classes.
"""

from __future__ import annotations

from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator

from triage_engine.constants import SECTION_NAMES


# --- Base question type ---

class BaseQuestion(BaseModel):
    """Fields shared by all question types."""

    model_config = ConfigDict(frozen=True)

    qid: str
    question: str
    # Cosmetic grouping only (patient_info, clinical, accessibility)
    section: Optional[str] = None
    required: bool = True

    @model_validator(mode="after")
    def _chk_section(self):
        if self.section is not None and self.section not in SECTION_NAMES:
            raise ValueError(
                f"Unknown section '{self.section}' for question '{self.qid}'"
            )
        return self

    @property
    def section_title(self) -> Optional[str]:
        """Human-readable section heading, or None for unsectioned questions."""
        if self.section is None:
            return None
        return SECTION_NAMES[self.section]


# --- Concrete question types ---

class YesNoQuestion(BaseQuestion):
    """Two-way yes/no prompt."""

    question_type: Literal["yes_no"] = "yes_no"


class ScaleQuestion(BaseQuestion):
    """Bounded integer scale; every integer in [min_value, max_value] is a valid answer."""

    question_type: Literal["scale"] = "scale"
    min_value: int = 0
    max_value: int = 10
    min_label: Optional[str] = None
    max_label: Optional[str] = None

    @model_validator(mode="after")
    def _chk(self):
        if self.min_value >= self.max_value:
            raise ValueError("min_value must be < max_value")
        return self

    @property
    def options(self) -> list[int]:
        """The allowed scale values in ascending order."""
        return list(range(self.min_value, self.max_value + 1))


class MultipleChoiceQuestion(BaseQuestion):
    """Pick exactly one value from an ordered option list."""

    question_type: Literal["multiple"] = "multiple"
    options: List[str]

    @model_validator(mode="after")
    def _chk(self):
        if not self.options:
            raise ValueError(f"Question '{self.qid}' must define at least one option")
        if len(set(self.options)) != len(self.options):
            raise ValueError(f"Question '{self.qid}' has duplicate options")
        return self


class NumberQuestion(BaseQuestion):
    """Free integer input with optional inclusive bounds."""

    question_type: Literal["number"] = "number"
    min_value: Optional[int] = None
    max_value: Optional[int] = None
    placeholder: Optional[str] = None

    @model_validator(mode="after")
    def _chk(self):
        if (
            self.min_value is not None
            and self.max_value is not None
            and self.min_value > self.max_value
        ):
            raise ValueError("min_value must be <= max_value")
        return self


class StringQuestion(BaseQuestion):
    """Free text input."""

    question_type: Literal["string"] = "string"
    max_length: int = 500


class DateQuestion(BaseQuestion):
    """ISO calendar date (YYYY-MM-DD); future dates are rejected."""

    question_type: Literal["date"] = "date"


# --- Discriminated union of all question types ---

Question = Annotated[
    Union[
        YesNoQuestion,
        ScaleQuestion,
        MultipleChoiceQuestion,
        NumberQuestion,
        StringQuestion,
        DateQuestion,
    ],
    Field(discriminator="question_type"),
]

# Maps question_type string → Pydantic class for dynamic deserialization from YAML.
question_mapper = {
    "yes_no": YesNoQuestion,
    "scale": ScaleQuestion,
    "multiple": MultipleChoiceQuestion,
    "number": NumberQuestion,
    "string": StringQuestion,
    "date": DateQuestion,
}
