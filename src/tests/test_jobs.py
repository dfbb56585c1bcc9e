"""
Tests for job payload parsing.
"""

import pytest

from forum.pipeline.errors import MalformedJobError
from forum.pipeline.jobs import (
    ContentCreatedJob,
    FollowJob,
    MentionJob,
    ModerationJob,
    SystemJob,
    WebhookJob,
    parse_notification_job,
)


@pytest.mark.unit
class TestJobPayloads:
    """Test job construction from queue payloads."""

    def test_moderation_job_from_payload(self):
        job = ModerationJob.from_payload({"content_id": "12", "text_body": "hello", "author_id": 3})

        assert job == ModerationJob(content_id=12, text_body="hello", author_id=3)
        assert job.queue == "moderation"

    @pytest.mark.parametrize(
        "payload",
        [
            None,
            [],
            {"text_body": "hello", "author_id": 3},
            {"content_id": "abc", "text_body": "hello", "author_id": 3},
            {"content_id": True, "text_body": "hello", "author_id": 3},
            {"content_id": 1, "text_body": 42, "author_id": 3},
        ],
    )
    def test_malformed_moderation_payloads(self, payload):
        with pytest.raises(MalformedJobError):
            ModerationJob.from_payload(payload)

    def test_webhook_job_optional_target(self):
        job = WebhookJob.from_payload(
            {"event_name": "thread.created", "payload": {"id": 1}, "timestamp": "2024-01-01T00:00:00Z"}
        )

        assert job.url is None
        assert job.secret is None
        assert job.headers is None

    def test_webhook_job_rejects_non_object_payload(self):
        with pytest.raises(MalformedJobError):
            WebhookJob.from_payload({"event_name": "x", "payload": "text", "timestamp": "t"})


@pytest.mark.unit
class TestNotificationJobs:
    """Test the notification job variants."""

    def test_to_payload_carries_type(self):
        job = MentionJob(target_user_id=1, actor_id=2, post_id=3, thread_id=4)

        assert job.to_payload() == {
            "type": "mention",
            "target_user_id": 1,
            "actor_id": 2,
            "post_id": 3,
            "thread_id": 4,
        }
        assert job.queue == "notifications"

    def test_parse_selects_variant(self):
        job = parse_notification_job({"type": "follow", "target_user_id": 1, "actor_id": 9})

        assert isinstance(job, FollowJob)
        assert job.actor_id == 9

    def test_parse_round_trips_every_variant(self):
        jobs = [
            ContentCreatedJob(target_user_id=1, thread_id=2),
            SystemJob(target_user_id=1, title="Maintenance", message="Tonight"),
        ]
        for job in jobs:
            assert parse_notification_job(job.to_payload()) == job

    def test_variant_fields_are_required(self):
        """A mention without its actor is malformed."""
        with pytest.raises(MalformedJobError, match="actor_id"):
            parse_notification_job(
                {"type": "mention", "target_user_id": 1, "post_id": 3, "thread_id": 4}
            )

    @pytest.mark.parametrize("payload", [None, {}, {"type": "poke", "target_user_id": 1}])
    def test_unknown_type_is_malformed(self, payload):
        with pytest.raises(MalformedJobError):
            parse_notification_job(payload)
