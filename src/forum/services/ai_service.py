# forum/services/ai_service.py

import json
import logging
from dataclasses import dataclass, field
from typing import Any

import requests
from django.conf import settings

from forum.models.choices import Recommendation
from forum.pipeline.errors import ScoringError

logger = logging.getLogger(__name__)

FLAG_THRESHOLD = 0.3
REJECT_THRESHOLD = 0.7

SPAM_KEYWORDS = ["buy now", "click here", "limited offer", "free money"]
TOXIC_KEYWORDS = ["hate", "stupid", "idiot", "kill"]
INAPPROPRIATE_KEYWORDS = ["adult", "explicit"]

MODERATION_PROMPT = """Analyze the following content for moderation purposes. Rate it on three dimensions:
1. Spam (promotional content, repetitive, off-topic)
2. Toxicity (offensive language, hate speech, harassment)
3. Inappropriate (adult content, violence, illegal activities)

For each dimension, provide a score from 0 (clean) to 1 (severe violation).
Then provide a recommendation: "approve" (all scores < 0.3), "review" (any score 0.3-0.7), or "reject" (any score > 0.7).
Finally, explain your reasoning in 1-2 sentences.

Content to analyze:
\"\"\"
{content}
\"\"\"

Respond in JSON format:
{{"spam_score": 0.0, "toxicity_score": 0.0, "inappropriate_score": 0.0, "recommendation": "approve", "reasoning": "explanation here"}}"""

SUMMARY_PROMPT = """Summarize the following discussion thread. Provide:
1. A concise summary (2-3 sentences)
2. Key points discussed (3-5 bullet points)
3. Overall sentiment score from -1 (very negative) to 1 (very positive)

Discussion thread:
\"\"\"
{posts}
\"\"\"

Respond in JSON format:
{{"summary": "summary here", "key_points": ["point 1", "point 2"], "sentiment_score": 0.0}}"""


def _clamp(value: Any, low: float = 0.0, high: float = 1.0) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return low
    return min(max(number, low), high)


def recommendation_for(scores: list[float]) -> str:
    """approve when every score is below 0.3, reject above 0.7, else review."""
    highest = max(scores)
    if highest > REJECT_THRESHOLD:
        return Recommendation.REJECT.value
    if highest > FLAG_THRESHOLD:
        return Recommendation.REVIEW.value
    return Recommendation.APPROVE.value


@dataclass(frozen=True)
class ModerationResult:
    spam_score: float
    toxicity_score: float
    inappropriate_score: float
    recommendation: str
    reasoning: str = ""

    @property
    def is_spam(self) -> bool:
        return self.spam_score > FLAG_THRESHOLD

    @property
    def is_toxic(self) -> bool:
        return self.toxicity_score > FLAG_THRESHOLD

    @property
    def is_inappropriate(self) -> bool:
        return self.inappropriate_score > FLAG_THRESHOLD


@dataclass(frozen=True)
class SummaryResult:
    summary: str
    key_points: list[str] = field(default_factory=list)
    word_count: int = 0
    sentiment_score: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "summary": self.summary,
            "key_points": list(self.key_points),
            "word_count": self.word_count,
            "sentiment_score": self.sentiment_score,
        }


class AIService:
    """
    Content scoring and thread summarization.

    Calls an OpenAI compatible chat completion endpoint when an API key
    is configured and falls back to keyword heuristics otherwise. A failed
    remote call raises ScoringError so the queue retries the job.
    """

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        base_url: str | None = None,
        timeout: int = 30,
        session: requests.Session | None = None,
    ):
        self.api_key = api_key if api_key is not None else getattr(settings, "OPENAI_API_KEY", "")
        self.model = model or getattr(settings, "AI_MODEL", "gpt-3.5-turbo")
        self.base_url = (
            base_url or getattr(settings, "AI_API_BASE_URL", "https://api.openai.com/v1")
        ).rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    # -------------------------------------------------------------------------
    # Moderation
    # -------------------------------------------------------------------------

    def moderate_content(self, content: str) -> ModerationResult:
        """
        Score a post body for spam, toxicity and inappropriate content.

        Raises:
            ScoringError: The remote scorer failed or answered garbage
        """
        if not self.is_configured:
            logger.debug("OpenAI API key not configured, using keyword moderation")
            return self.keyword_moderation(content)

        answer = self._complete(
            system="You are a content moderation AI. Analyze text and provide moderation scores in JSON format.",
            prompt=MODERATION_PROMPT.format(content=content),
            temperature=0.3,
            max_tokens=300,
        )
        scores = [
            _clamp(answer.get("spam_score")),
            _clamp(answer.get("toxicity_score")),
            _clamp(answer.get("inappropriate_score")),
        ]
        recommendation = answer.get("recommendation")
        if recommendation not in Recommendation.values():
            recommendation = recommendation_for(scores)

        return ModerationResult(
            spam_score=scores[0],
            toxicity_score=scores[1],
            inappropriate_score=scores[2],
            recommendation=recommendation,
            reasoning=str(answer.get("reasoning") or ""),
        )

    def keyword_moderation(self, content: str) -> ModerationResult:
        """
        Keyword heuristics used without an API key.

        A keyword hit scores 0.8 but is only ever sent to human review.
        """
        lower = (content or "").lower()
        spam = 0.8 if any(kw in lower for kw in SPAM_KEYWORDS) else 0.1
        toxic = 0.8 if any(kw in lower for kw in TOXIC_KEYWORDS) else 0.1
        inappropriate = 0.8 if any(kw in lower for kw in INAPPROPRIATE_KEYWORDS) else 0.1

        recommendation = recommendation_for([spam, toxic, inappropriate])
        if recommendation == Recommendation.REJECT.value:
            recommendation = Recommendation.REVIEW.value

        return ModerationResult(
            spam_score=spam,
            toxicity_score=toxic,
            inappropriate_score=inappropriate,
            recommendation=recommendation,
            reasoning="Keyword based moderation",
        )

    # -------------------------------------------------------------------------
    # Summaries
    # -------------------------------------------------------------------------

    def generate_thread_summary(self, posts: list[dict[str, Any]]) -> SummaryResult:
        """
        Summarize posts given as dicts with content, author and created_at.

        Raises:
            ScoringError: The remote summarizer failed or answered garbage
        """
        if not self.is_configured:
            return self.basic_summary(posts)

        formatted = "\n\n---\n\n".join(
            f"Post {index} (by {post['author']} at {post['created_at']}):\n{post['content']}"
            for index, post in enumerate(posts, start=1)
        )
        answer = self._complete(
            system="You are a helpful assistant that summarizes discussion threads. Provide clear, concise summaries in JSON format.",
            prompt=SUMMARY_PROMPT.format(posts=formatted),
            temperature=0.5,
            max_tokens=500,
        )
        summary = answer.get("summary")
        if not isinstance(summary, str) or not summary:
            raise ScoringError("summary answer has no summary text")

        key_points = answer.get("key_points") or []
        return SummaryResult(
            summary=summary,
            key_points=[str(point) for point in key_points],
            word_count=len(summary.split()),
            sentiment_score=_clamp(answer.get("sentiment_score"), -1.0, 1.0),
        )

    def basic_summary(self, posts: list[dict[str, Any]]) -> SummaryResult:
        word_count = sum(len(post["content"].split()) for post in posts)
        summary = (
            f"This thread contains {len(posts)} posts discussing various topics. "
            "Summary generated without a language model."
        )
        return SummaryResult(
            summary=summary,
            key_points=[
                f"Total posts: {len(posts)}",
                f"Total words: {word_count}",
            ],
            word_count=len(summary.split()),
            sentiment_score=0.0,
        )

    # -------------------------------------------------------------------------
    # Transport
    # -------------------------------------------------------------------------

    def _complete(
        self, system: str, prompt: str, temperature: float, max_tokens: int
    ) -> dict[str, Any]:
        try:
            response = self.session.post(
                f"{self.base_url}/chat/completions",
                headers={
                    "Authorization": f"Bearer {self.api_key}",
                    "Content-Type": "application/json",
                },
                json={
                    "model": self.model,
                    "messages": [
                        {"role": "system", "content": system},
                        {"role": "user", "content": prompt},
                    ],
                    "temperature": temperature,
                    "max_tokens": max_tokens,
                },
                timeout=self.timeout,
            )
            response.raise_for_status()
            content = response.json()["choices"][0]["message"]["content"]
            answer = json.loads(content)
        except requests.RequestException as e:
            logger.warning(f"AI request failed: {e}")
            raise ScoringError(f"AI request failed: {e}") from e
        except (KeyError, IndexError, TypeError, ValueError) as e:
            logger.warning(f"AI response could not be parsed: {e}")
            raise ScoringError(f"AI response could not be parsed: {e}") from e

        if not isinstance(answer, dict):
            raise ScoringError("AI response is not a JSON object")
        return answer
