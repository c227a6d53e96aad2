import asyncio
from abc import ABC, abstractmethod
from typing import Any, Literal, TypeVar

from google import genai
from loguru import logger

from spacematch.core.config import Settings
from spacematch.core.exceptions import ExternalServiceError
from spacematch.models.scoring import Recommendation, ScoreResult

ResultKind = Literal["match", "recommendation", "search"]
R = TypeVar("R", bound=ScoreResult)


class TextEnhancer(ABC):
    """Produces natural-language copy for an already scored result."""

    @abstractmethod
    async def enhance(self, kind: ResultKind, result: ScoreResult, context: dict[str, Any]) -> str:
        """Return enhanced copy, or an empty string to leave the result untouched."""


class GeminiTextEnhancer(TextEnhancer):
    def __init__(self, settings: Settings, client: Any = None):
        self.model = settings.DEFAULT_GEMINI_MODEL
        self.client = client
        if self.client is None:
            if api_key := settings.GEMINI_API_KEY:
                try:
                    self.client = genai.Client(api_key=api_key)
                except Exception as e:
                    logger.warning(f"Failed to initialize Gemini client: {e}")
            else:
                logger.warning("GEMINI_API_KEY not set. AI copy enhancement will be disabled.")

    @staticmethod
    def get_prompt(kind: ResultKind) -> str:
        audience = {
            "match": "why this rental space fits the renter",
            "recommendation": "a friendly one-line nudge to book this rental space",
            "search": "why this rental space ranks well for the search",
        }[kind]
        return f"""
        You write short copy for a rental-space marketplace (garages, storage, parking, studios).
        Given the listing facts and the scoring reasons, write {audience}.

        Keep it:
        - One sentence, under 25 words
        - Grounded only in the facts given; never invent amenities or prices
        - Free of emojis and marketing superlatives
        - Only return the sentence and nothing else.
        """

    def generate_content(self, kind: ResultKind, prompt: str) -> str:
        if not self.client:
            return ""
        try:
            response = self.client.models.generate_content(
                model=self.model,
                contents=self.get_prompt(kind) + "\n\n" + prompt,
            )
            return (response.text or "").strip()
        except Exception as e:
            raise ExternalServiceError(f"Gemini generation failed: {e}") from e

    async def enhance(self, kind: ResultKind, result: ScoreResult, context: dict[str, Any]) -> str:
        prompt = "\n".join(
            [
                f"Listing: {context.get('listing_summary', result.listing_id)}",
                f"Score: {result.score:.2f}",
                "Reasons: " + "; ".join(result.reasons),
            ]
        )
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, lambda: self.generate_content(kind, prompt))


class ResultEnhancer:
    """
    Optional copy decorator applied after ranking.

    It only touches copy: matches and search results get the enhanced sentence
    appended to their reasons, recommendations get a new personalised message.
    Order, score and confidence never change. Any failure or timeout returns the
    undecorated result.
    """

    def __init__(self, enhancer: TextEnhancer | None, timeout: float):
        self.enhancer = enhancer
        self.timeout = timeout

    @property
    def enabled(self) -> bool:
        return self.enhancer is not None

    async def decorate(
        self, kind: ResultKind, results: list[R], contexts: dict[str, dict[str, Any]] | None = None
    ) -> list[R]:
        if not self.enhancer or not results:
            return results
        contexts = contexts or {}
        tasks = [self._decorate_one(kind, result, contexts.get(result.listing_id, {})) for result in results]
        return list(await asyncio.gather(*tasks))

    async def _decorate_one(self, kind: ResultKind, result: R, context: dict[str, Any]) -> R:
        try:
            text = await asyncio.wait_for(self.enhancer.enhance(kind, result, context), timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.debug(f"Copy enhancement timed out for {result.listing_id}")
            return result
        except Exception as e:
            logger.debug(f"Copy enhancement failed for {result.listing_id}: {e}")
            return result

        if not text:
            return result
        if isinstance(result, Recommendation):
            return result.model_copy(update={"personalized_message": text})
        return result.model_copy(update={"reasons": [*result.reasons, text]})


def listing_contexts(listings: list[Any]) -> dict[str, dict[str, Any]]:
    """Facts the enhancer may mention, keyed by listing id."""
    return {
        listing.id: {
            "listing_summary": f"{listing.title} ({listing.space_type}) at {listing.address}, "
            f"${listing.price_per_hour:g}/hour"
        }
        for listing in listings
    }
