"""Typed answer models and the per-session AnswerSet.

Raw answer values arrive loosely typed (strings, numbers, booleans, nulls).
They are validated against their question exactly once, in
:func:`parse_answer`, and stored as a tagged union discriminated by ``kind``:

    YesNoAnswer(bool) | ScaleAnswer(int) | ChoiceAnswer(str)
    | NumberAnswer(int) | TextAnswer(str) | DateAnswer(date)

:meth:`AnswerSet.to_raw` flattens the typed answers back into primitive
values (``"yes"``/``"no"``, ints, option strings, ISO dates).  That flat
mapping is what classifiers read and what patient records persist.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, RootModel

from triage_engine.constants import NO, YES
from triage_engine.errors import ValidationError
from triage_engine.models.question import (
    BaseQuestion,
    DateQuestion,
    MultipleChoiceQuestion,
    NumberQuestion,
    ScaleQuestion,
    StringQuestion,
    YesNoQuestion,
)


# --- Answer kinds ---

class _BaseAnswer(BaseModel):
    model_config = ConfigDict(frozen=True)


class YesNoAnswer(_BaseAnswer):
    kind: Literal["yes_no"] = "yes_no"
    value: bool

    def raw(self) -> str:
        return YES if self.value else NO


class ScaleAnswer(_BaseAnswer):
    kind: Literal["scale"] = "scale"
    value: int

    def raw(self) -> int:
        return self.value


class ChoiceAnswer(_BaseAnswer):
    kind: Literal["choice"] = "choice"
    value: str

    def raw(self) -> str:
        return self.value


class NumberAnswer(_BaseAnswer):
    kind: Literal["number"] = "number"
    value: int

    def raw(self) -> int:
        return self.value


class TextAnswer(_BaseAnswer):
    kind: Literal["text"] = "text"
    value: str

    def raw(self) -> str:
        return self.value


class DateAnswer(_BaseAnswer):
    kind: Literal["date"] = "date"
    value: date

    def raw(self) -> str:
        return self.value.isoformat()


Answer = Annotated[
    Union[YesNoAnswer, ScaleAnswer, ChoiceAnswer, NumberAnswer, TextAnswer, DateAnswer],
    Field(discriminator="kind"),
]


class AnswerSet(RootModel[dict[str, Answer]]):
    """In-progress answers for one assessment, keyed by question id.

    Only :func:`parse_answer` output should be stored here, so every value
    is already known to fit its question.
    """

    root: dict[str, Answer] = Field(default_factory=dict)

    def __contains__(self, qid: object) -> bool:
        return qid in self.root

    def __len__(self) -> int:
        return len(self.root)

    def get(self, qid: str) -> Answer | None:
        return self.root.get(qid)

    def set(self, qid: str, answer: Answer) -> None:
        self.root[qid] = answer

    def discard(self, qid: str) -> None:
        self.root.pop(qid, None)

    def clear(self) -> None:
        self.root.clear()

    def to_raw(self) -> dict[str, Any]:
        """Flatten to ``{qid: primitive}`` for classification and persistence."""
        return {qid: answer.raw() for qid, answer in self.root.items()}


# ------------------------------------------------------------------
# Validation
# ------------------------------------------------------------------

def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _coerce_int(question: BaseQuestion, value: Any) -> int:
    """Accept ints, integral floats, and integer strings; reject everything else."""
    # bool is a subclass of int in Python, so reject it explicitly
    if isinstance(value, bool):
        raise ValidationError(
            f"Question '{question.qid}' expects a whole number, got bool",
            field=question.qid,
        )
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            pass
    raise ValidationError(
        f"Question '{question.qid}' expects a whole number, got {value!r}",
        field=question.qid,
    )


def _check_bounds(question: BaseQuestion, number: int, lo: int | None, hi: int | None) -> None:
    if (lo is not None and number < lo) or (hi is not None and number > hi):
        raise ValidationError(
            f"Question '{question.qid}' answer {number} is out of range "
            f"[{'' if lo is None else lo}, {'' if hi is None else hi}]",
            field=question.qid,
        )


def parse_answer(question: BaseQuestion, value: Any) -> Answer | None:
    """Validate a raw value against ``question`` and wrap it in its answer kind.

    Returns ``None`` for a blank answer to an optional question (the caller
    clears any previous answer).

    Raises:
        ValidationError: if the value is missing for a required question,
            has the wrong type, is out of range, or is not an allowed option.
    """
    qid = question.qid

    if _is_blank(value):
        if question.required:
            raise ValidationError(f"Question '{qid}' requires an answer", field=qid)
        return None

    if isinstance(question, YesNoQuestion):
        if isinstance(value, bool):
            return YesNoAnswer(value=value)
        if value in (YES, NO):
            return YesNoAnswer(value=value == YES)
        raise ValidationError(
            f"Question '{qid}' must be answered '{YES}' or '{NO}', got {value!r}",
            field=qid,
        )

    if isinstance(question, ScaleQuestion):
        number = _coerce_int(question, value)
        _check_bounds(question, number, question.min_value, question.max_value)
        return ScaleAnswer(value=number)

    if isinstance(question, MultipleChoiceQuestion):
        if not isinstance(value, str) or value not in question.options:
            raise ValidationError(
                f"Question '{qid}' must be one of {question.options}, got {value!r}",
                field=qid,
            )
        return ChoiceAnswer(value=value)

    if isinstance(question, NumberQuestion):
        number = _coerce_int(question, value)
        _check_bounds(question, number, question.min_value, question.max_value)
        return NumberAnswer(value=number)

    if isinstance(question, StringQuestion):
        if not isinstance(value, str):
            raise ValidationError(
                f"Question '{qid}' expects text, got {type(value).__name__}",
                field=qid,
            )
        text = value.strip()
        if len(text) > question.max_length:
            raise ValidationError(
                f"Question '{qid}' answer exceeds {question.max_length} characters",
                field=qid,
            )
        return TextAnswer(value=text)

    if isinstance(question, DateQuestion):
        if isinstance(value, datetime):
            parsed = value.date()
        elif isinstance(value, date):
            parsed = value
        elif isinstance(value, str):
            try:
                parsed = date.fromisoformat(value.strip())
            except ValueError:
                raise ValidationError(
                    f"Question '{qid}' has invalid date format: '{value}'. "
                    "Expected YYYY-MM-DD",
                    field=qid,
                )
        else:
            raise ValidationError(
                f"Question '{qid}' must be a date string (YYYY-MM-DD), "
                f"got {type(value).__name__}",
                field=qid,
            )
        if parsed > date.today():
            raise ValidationError(
                f"Question '{qid}' must not be in the future: '{parsed.isoformat()}'",
                field=qid,
            )
        return DateAnswer(value=parsed)

    raise ValidationError(
        f"Question '{qid}' has unsupported type {type(question).__name__}",
        field=qid,
    )
