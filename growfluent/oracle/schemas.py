"""
Validated oracle response types.

Generative models answer in JSON. Each answer is parsed into a strict
Pydantic model before business logic sees it; anything that does not
validate becomes OracleFailed.
"""

from __future__ import annotations

import json
from typing import Any, Literal, TypeVar

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError
from pydantic.alias_generators import to_camel

from growfluent.errors import OracleFailed
from growfluent.srs.models import ErrorType


class OracleModel(BaseModel):
    """Base: camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


# =============================================================================
# Enrichment
# =============================================================================


class LexicalEntry(OracleModel):
    term: str
    translation: str
    nuance: str = ""
    formality: str = Field(default="", alias="register")
    frequency: str = ""


class TermTranslation(OracleModel):
    term: str
    translation: str


class Variant(OracleModel):
    type: str
    term: str
    note: str = ""


class Derivative(OracleModel):
    term: str
    type: str = ""
    translation: str = ""


class MasteryPrompt(OracleModel):
    target: str
    translation: str


class TranslationResponse(OracleModel):
    """Linguistic enrichment for a newly added phrase."""

    translation: str
    explanation: str
    example: str = ""
    example_translation: str = ""
    synonyms: list[LexicalEntry]
    antonyms: list[TermTranslation] = Field(default_factory=list)
    variants: list[Variant] = Field(default_factory=list)
    derivatives: list[Derivative] = Field(default_factory=list)
    mastery_prompts: list[MasteryPrompt]
    mnemonic_image_url: str | None = None

    def enrichment(self) -> dict[str, Any]:
        """Card enrichment document, without the translation itself."""
        data = self.model_dump(by_alias=True, exclude_none=True)
        data.pop("translation", None)
        return data


# =============================================================================
# Grading
# =============================================================================


class PronunciationEvaluation(OracleModel):
    score: float
    feedback: str
    is_success: bool
    clarity: float | None = None
    intonation: float | None = None
    syllabic_breakdown: list[str] = Field(default_factory=list)
    phonetic_mistakes: list[str] = Field(default_factory=list)


class GradingResponse(OracleModel):
    is_correct: bool
    feedback: str
    error_type: ErrorType | None = None
    explanation: str | None = None
    example: str | None = None
    example_translation: str | None = None
    pronunciation: PronunciationEvaluation | None = None


class ExamExercise(OracleModel):
    card_id: str
    type: Literal["translation", "reverse", "voice", "choice", "context"]
    question: str
    correct_answer: str
    options: list[str] | None = None
    context_sentence: str | None = None


class SentenceEvaluation(OracleModel):
    is_correct: bool
    contains_target_word: bool
    feedback: str
    improved_version: str
    grammar_notes: list[str] = Field(default_factory=list)


# =============================================================================
# Parsing
# =============================================================================

T = TypeVar("T")


def parse_response(model: type[T] | Any, raw: str | bytes | dict | list) -> T:
    """
    Parse raw oracle output into ``model``.

    Args:
        model: A Pydantic model class or a type such as ``list[ExamExercise]``
        raw: JSON text or an already-decoded object

    Raises:
        OracleFailed: On empty, malformed or invalid output
    """
    if isinstance(raw, (str, bytes)):
        text = raw.decode() if isinstance(raw, bytes) else raw
        if not text.strip():
            raise OracleFailed("The oracle returned an empty response")
        try:
            raw = json.loads(text)
        except json.JSONDecodeError as e:
            raise OracleFailed(f"Oracle response is not valid JSON: {e}") from e

    try:
        return TypeAdapter(model).validate_python(raw)
    except ValidationError as e:
        raise OracleFailed(f"Oracle response failed validation: {e}") from e


def parse_exercises(raw: str | bytes | list) -> list[ExamExercise]:
    return parse_response(list[ExamExercise], raw)
