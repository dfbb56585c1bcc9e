"""
Tests for the summary worker and the AI service it calls.
"""

import json
from unittest.mock import MagicMock

import pytest

from forum.models import ModerationStatus, Post
from forum.pipeline.consumer import Outcome
from forum.pipeline.errors import ScoringError
from forum.pipeline.jobs import SummaryJob
from forum.pipeline.queues import SUMMARY
from forum.services.ai_service import AIService


def completion(answer):
    """requests response stand-in for a chat completion returning ``answer``."""
    response = MagicMock()
    response.json.return_value = {"choices": [{"message": {"content": json.dumps(answer)}}]}
    return response


@pytest.mark.unit
class TestSummaryWorker:
    """Test thread summaries."""

    def test_summary_is_cached(self, runtime, drain, test_thread, test_post, other_user):
        Post.objects.create(thread=test_thread, author=other_user, content="I agree with this")
        runtime.broker.publish_job(SummaryJob(thread_id=test_thread.pk))

        assert drain(SUMMARY) == [Outcome.ACK]

        summary = runtime.cache.get_summary(test_thread.pk)
        assert summary["key_points"] == ["Total posts: 2", "Total words: 10"]
        assert summary["sentiment_score"] == 0.0
        assert summary["summary"].startswith("This thread contains 2 posts")

    def test_rejected_posts_are_left_out(self, runtime, test_thread, test_post, other_user):
        Post.objects.create(
            thread=test_thread,
            author=other_user,
            content="spam spam spam",
            moderation_status=ModerationStatus.REJECTED.value,
        )
        from forum.workers import SummaryWorker

        SummaryWorker(runtime)(SummaryJob(thread_id=test_thread.pk).to_payload())

        assert runtime.cache.get_summary(test_thread.pk)["key_points"][0] == "Total posts: 1"

    def test_missing_thread_is_acked(self, runtime):
        from forum.workers import SummaryWorker

        assert SummaryWorker(runtime)({"thread_id": 404}) is Outcome.ACK
        assert runtime.cache.get_summary(404) is None

    def test_empty_thread_is_acked(self, runtime, test_thread):
        from forum.workers import SummaryWorker

        assert SummaryWorker(runtime)({"thread_id": test_thread.pk}) is Outcome.ACK
        assert runtime.cache.get_summary(test_thread.pk) is None


@pytest.mark.unit
class TestAIService:
    """Test the scorer and summarizer."""

    def test_keyword_moderation_never_rejects(self):
        result = AIService(api_key="").moderate_content("You idiot, buy now!")

        assert result.spam_score == 0.8
        assert result.toxicity_score == 0.8
        assert result.recommendation == "review"
        assert result.reasoning == "Keyword based moderation"

    def test_remote_moderation(self):
        session = MagicMock()
        session.post.return_value = completion(
            {
                "spam_score": 0.05,
                "toxicity_score": 1.7,
                "inappropriate_score": "n/a",
                "recommendation": "reject",
                "reasoning": "Threatening language",
            }
        )
        service = AIService(api_key="sk-test", base_url="https://ai.example.com/v1/", session=session)

        result = service.moderate_content("...")

        assert result.toxicity_score == 1.0
        assert result.inappropriate_score == 0.0
        assert result.recommendation == "reject"
        assert session.post.call_args.args[0] == "https://ai.example.com/v1/chat/completions"
        assert session.post.call_args.kwargs["headers"]["Authorization"] == "Bearer sk-test"

    def test_unknown_recommendation_is_derived_from_scores(self):
        session = MagicMock()
        session.post.return_value = completion(
            {"spam_score": 0.5, "toxicity_score": 0.1, "inappropriate_score": 0.0, "recommendation": "maybe"}
        )

        result = AIService(api_key="sk-test", session=session).moderate_content("...")

        assert result.recommendation == "review"

    def test_garbage_answer_raises_scoring_error(self):
        session = MagicMock()
        response = MagicMock()
        response.json.return_value = {"choices": [{"message": {"content": "not json"}}]}
        session.post.return_value = response

        with pytest.raises(ScoringError):
            AIService(api_key="sk-test", session=session).moderate_content("...")

    def test_remote_summary(self):
        session = MagicMock()
        session.post.return_value = completion(
            {"summary": "People agree.", "key_points": ["agreement"], "sentiment_score": 3}
        )
        posts = [{"content": "yes", "author": "alice", "created_at": "2024-01-01T00:00:00"}]

        result = AIService(api_key="sk-test", session=session).generate_thread_summary(posts)

        assert result.to_dict() == {
            "summary": "People agree.",
            "key_points": ["agreement"],
            "word_count": 2,
            "sentiment_score": 1.0,
        }

    def test_summary_without_text_raises(self):
        session = MagicMock()
        session.post.return_value = completion({"key_points": []})
        posts = [{"content": "yes", "author": "alice", "created_at": "2024-01-01T00:00:00"}]

        with pytest.raises(ScoringError):
            AIService(api_key="sk-test", session=session).generate_thread_summary(posts)
