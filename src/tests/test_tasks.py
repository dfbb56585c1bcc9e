"""
Unit tests for Celery tasks.
"""

from datetime import timedelta

import pytest
from django.utils import timezone

from forum.models import Notification


@pytest.mark.unit
class TestPurgeExpiredNotificationsTask:
    """Tests for purge_expired_notifications_task."""

    def test_deletes_expired(self, test_user):
        from forum.tasks import purge_expired_notifications_task

        expired = Notification.objects.create(user=test_user, type="system", title="old", message="m")
        Notification.objects.filter(pk=expired.pk).update(expires_at=timezone.now() - timedelta(hours=1))
        Notification.objects.create(user=test_user, type="system", title="fresh", message="m")

        result = purge_expired_notifications_task()

        assert result == {"deleted": 1}
        assert Notification.objects.filter(title="fresh").exists()

    def test_nothing_to_purge(self):
        from forum.tasks import purge_expired_notifications_task

        assert purge_expired_notifications_task() == {"deleted": 0}

    def test_scheduled_daily(self):
        from configuration.settings.components import get_celery_settings

        schedule = get_celery_settings("redis://localhost:6379/0")["CELERY_BEAT_SCHEDULE"]

        assert (
            schedule["purge-expired-notifications"]["task"]
            == "forum.tasks.tasks.purge_expired_notifications_task"
        )
