"""
Remote document store client.

Talks to a REST document store laid out per learner:

    {base_url}/users/{user_id}/flashcards/{card_id}
    {base_url}/users/{user_id}/examHistory/{report_id}

Every failure is raised as PersistenceFailed; a 404 on the collection
marks the store as missing (``not_found=True``).
"""

from __future__ import annotations

import httpx
from loguru import logger

from growfluent.errors import PersistenceFailed
from growfluent.srs.models import Card, ExamReport, Language

from .base import CardStore


class RemoteDocumentStore(CardStore):
    """HTTP client for the learner's remote card collection."""

    def __init__(
        self,
        base_url: str,
        user_id: str,
        api_key: str | None = None,
        timeout_seconds: float = 10.0,
        client: httpx.Client | None = None,
    ):
        """
        Initialize the client.

        Args:
            base_url: Root URL of the document store
            user_id: Learner id used in document paths
            api_key: Optional bearer token
            timeout_seconds: Request timeout
            client: Pre-built httpx client (tests inject a MockTransport)
        """
        self.base_url = base_url.rstrip("/")
        self.user_id = user_id
        headers = {"Authorization": f"Bearer {api_key}"} if api_key else {}
        self.client = client or httpx.Client(
            timeout=httpx.Timeout(timeout_seconds),
            headers=headers,
            follow_redirects=True,
        )

    @property
    def _cards_url(self) -> str:
        return f"{self.base_url}/users/{self.user_id}/flashcards"

    @property
    def _history_url(self) -> str:
        return f"{self.base_url}/users/{self.user_id}/examHistory"

    def _request(self, method: str, url: str, **kwargs) -> httpx.Response:
        try:
            response = self.client.request(method, url, **kwargs)
            response.raise_for_status()
            return response
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            raise PersistenceFailed(
                f"Remote store {method} {url} failed with {status}",
                not_found=status == 404,
            ) from e
        except httpx.HTTPError as e:
            raise PersistenceFailed(f"Remote store {method} {url} failed: {e}") from e

    def _get_documents(self, url: str) -> list[dict]:
        response = self._request("GET", url)
        try:
            documents = response.json()
        except ValueError as e:
            raise PersistenceFailed(f"Remote store returned invalid JSON for {url}") from e
        if not isinstance(documents, list):
            raise PersistenceFailed(f"Remote store returned {type(documents).__name__} for {url}")
        return documents

    # =========================================================================
    # Cards
    # =========================================================================

    def load_cards(self, language: Language | None = None) -> list[Card]:
        documents = self._get_documents(self._cards_url)
        try:
            cards = [Card.from_dict(doc) for doc in documents]
        except (KeyError, ValueError, TypeError) as e:
            raise PersistenceFailed(f"Malformed card document in remote store: {e}") from e
        if language is not None:
            cards = [c for c in cards if c.language == language]
        cards.sort(key=lambda c: c.created_at, reverse=True)
        logger.debug(f"Fetched {len(cards)} cards from remote store")
        return cards

    def upsert_card(self, card: Card) -> None:
        self._request("PUT", f"{self._cards_url}/{card.id}", json=card.to_dict())

    def delete_card(self, card_id: str) -> None:
        try:
            self._request("DELETE", f"{self._cards_url}/{card_id}")
        except PersistenceFailed as e:
            if not e.not_found:
                raise
            logger.debug(f"Card {card_id} already absent from remote store")

    # =========================================================================
    # Exam History
    # =========================================================================

    def load_exam_history(self) -> list[ExamReport]:
        documents = self._get_documents(self._history_url)
        try:
            reports = [ExamReport.from_dict(doc) for doc in documents]
        except (KeyError, ValueError, TypeError) as e:
            raise PersistenceFailed(f"Malformed exam report in remote store: {e}") from e
        reports.sort(key=lambda r: r.date, reverse=True)
        return reports

    def append_exam_report(self, report: ExamReport) -> None:
        self._request("PUT", f"{self._history_url}/{report.id}", json=report.to_dict())

    def close(self) -> None:
        self.client.close()
