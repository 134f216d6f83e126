"""Review text moderation through an external text-generation API."""

import logging
from typing import Any

import requests

from carrental.config import MODERATION_MODEL, OPENROUTER_API_KEY, OPENROUTER_URL
from carrental.errors import ModerationError

logger = logging.getLogger(__name__)

APPROVED = "APPROVED"
REJECTED = "REJECTED"

MODERATION_PROMPT = (
    "You are a content moderator. Evaluate the following review text "
    "for inappropriate, offensive, or harmful content. "
    "Start your reply with exactly one word: APPROVED or REJECTED. "
    "If the review is REJECTED, follow up by the exact reason after the word REJECTED, "
    "separated by '|' without space between them. Do not add any other text."
    "\n\nAlso, you are very picky. Even a little bit of offensiveness, such as "
    "not using polite language, writing unrelated comments, using wrong grammar, "
    "or expressing controversial opinion will result in a REJECTION."
    "\n\nHere is the text: "
)


class ModerationService:
    def __init__(self, api_url: str = OPENROUTER_URL, api_key: str = OPENROUTER_API_KEY, model: str = MODERATION_MODEL):
        self.api_url = api_url
        self.api_key = api_key
        self.model = model

    def _build_payload(self, text: str) -> dict[str, Any]:
        return {
            "model": self.model,
            "messages": [{"role": "user", "content": MODERATION_PROMPT + text}],
            "provider": {"sort": "latency"},
        }

    @staticmethod
    def parse_verdict(content: str) -> dict[str, str]:
        """
        Parse a reply of the form `VERDICT` or `VERDICT|reason`.

        Raises:
            ModerationError: if the verdict token is neither APPROVED nor REJECTED
        """
        verdict, _, reason = content.partition("|")
        verdict = verdict.strip().upper()
        if verdict not in (APPROVED, REJECTED):
            raise ModerationError(f"Unexpected moderation verdict: {content!r}")
        return {"verdict": verdict, "reason": reason.strip()}

    def moderate(self, text: str) -> dict[str, str]:
        """
        Ask the moderation model whether a review text may be published.

        Args:
            text: Review comment

        Returns:
            Dict with verdict (APPROVED or REJECTED) and reason ("" when absent)

        Raises:
            ModerationError: on network failure or a reply that cannot be parsed
        """
        try:
            response = requests.post(
                self.api_url,
                headers={
                    "Authorization": f"Bearer {self.api_key}",
                    "Content-Type": "application/json",
                },
                json=self._build_payload(text),
            )
            response.raise_for_status()
            data = response.json()
        except (requests.RequestException, ValueError) as e:
            raise ModerationError(f"Moderation request failed: {e}") from e

        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            raise ModerationError(f"Malformed moderation response: {data!r}") from e
        if not isinstance(content, str):
            raise ModerationError(f"Malformed moderation response: {data!r}")

        result = self.parse_verdict(content)
        logger.info(f"Moderation verdict: {result['verdict']}")
        return result


# Singleton instance
moderation_service = ModerationService()
