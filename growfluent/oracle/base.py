"""
Oracle port.

The generative-AI collaborator: enrichment, grading, exam generation,
sentence and pronunciation evaluation, speech synthesis. Concrete
adapters live outside the scheduler; it only depends on this contract.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Callable, Sequence

from growfluent.srs.models import Card, Language

from .retry import DEFAULT_INITIAL_DELAY, DEFAULT_RETRIES, call_with_retry
from .schemas import (
    ExamExercise,
    GradingResponse,
    PronunciationEvaluation,
    SentenceEvaluation,
    TranslationResponse,
)


class Oracle(ABC):
    """
    Port for the generative-AI service.

    Implementations raise OracleTransient for quota/rate-limit errors and
    OracleFailed for anything permanent.
    """

    @abstractmethod
    def translate(self, phrase: str, language: Language) -> TranslationResponse:
        """Enrich a phrase the learner wants to add."""

    @abstractmethod
    def grade(
        self,
        question: str,
        user_answer: str,
        correct_answer: str,
        language: Language,
        audio: bytes | None = None,
    ) -> GradingResponse:
        """Grade one answer, optionally from recorded audio."""

    @abstractmethod
    def generate_exam(self, cards: Sequence[Card], language: Language) -> list[ExamExercise]:
        """Build exam exercises that only use the given cards."""

    @abstractmethod
    def evaluate_sentence(
        self,
        sentence: str,
        target_word: str,
        language: Language,
    ) -> SentenceEvaluation:
        """Judge a learner-written sentence that should use ``target_word``."""

    @abstractmethod
    def evaluate_pronunciation(
        self,
        audio: bytes,
        target_text: str,
        language: Language,
        mime_type: str = "audio/webm",
    ) -> PronunciationEvaluation:
        """Score a recording of ``target_text``."""

    @abstractmethod
    def synthesize_audio(self, text: str, language: Language) -> bytes | None:
        """Speak ``text``; None when no audio was produced."""


class RetryingOracle(Oracle):
    """Wraps another oracle with the quota retry policy."""

    def __init__(
        self,
        inner: Oracle,
        retries: int = DEFAULT_RETRIES,
        initial_delay: float = DEFAULT_INITIAL_DELAY,
        sleep: Callable[[float], None] | None = None,
    ):
        self.inner = inner
        self.retries = retries
        self.initial_delay = initial_delay
        self._sleep = sleep

    def _call(self, fn):
        kwargs = {"retries": self.retries, "initial_delay": self.initial_delay}
        if self._sleep is not None:
            kwargs["sleep"] = self._sleep
        return call_with_retry(fn, **kwargs)

    def translate(self, phrase, language):
        return self._call(lambda: self.inner.translate(phrase, language))

    def grade(self, question, user_answer, correct_answer, language, audio=None):
        return self._call(
            lambda: self.inner.grade(question, user_answer, correct_answer, language, audio)
        )

    def generate_exam(self, cards, language):
        return self._call(lambda: self.inner.generate_exam(cards, language))

    def evaluate_sentence(self, sentence, target_word, language):
        return self._call(lambda: self.inner.evaluate_sentence(sentence, target_word, language))

    def evaluate_pronunciation(self, audio, target_text, language, mime_type="audio/webm"):
        return self._call(
            lambda: self.inner.evaluate_pronunciation(audio, target_text, language, mime_type)
        )

    def synthesize_audio(self, text, language):
        return self._call(lambda: self.inner.synthesize_audio(text, language))
