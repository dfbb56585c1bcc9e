"""
pytest configuration and shared fixtures for the forum pipeline tests.

The pipeline runs over kombu's memory transport. Its queues live in
process-wide state, so the ``runtime`` fixture purges every pipeline and
dead-letter queue after each test.
"""

import os
import sys
from pathlib import Path
from unittest.mock import MagicMock

import pytest

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent))
os.environ.setdefault("DJANGO_SETTINGS_MODULE", "configuration.settings.test")


@pytest.fixture(autouse=True)
def enable_db_access(db):
    """Enable database access for all tests."""
    pass


@pytest.fixture(autouse=True)
def clear_cache():
    """Every test starts and ends with an empty cache."""
    from django.core.cache import cache

    cache.clear()
    yield
    cache.clear()


# =============================================================================
# USERS & CONTENT
# =============================================================================


@pytest.fixture
def test_user():
    """Create a test user."""
    from forum.models import User

    return User.objects.create_user(
        email="testuser@example.com",
        username="tester",
        password="testpass123",
        display_name="Test User",
    )


@pytest.fixture
def other_user():
    """A second member who mentions, replies and gets notified."""
    from forum.models import User

    return User.objects.create_user(
        email="alice@example.com",
        username="alice",
        password="testpass123",
        display_name="Alice",
    )


@pytest.fixture
def admin_user():
    """Create an admin user."""
    from forum.models import User

    return User.objects.create_superuser(
        email="admin@example.com",
        username="admin",
        password="adminpass123",
        display_name="Admin User",
    )


@pytest.fixture
def test_thread(test_user):
    """Create a thread with no posts yet."""
    from forum.models import Thread

    return Thread.objects.create(
        title="Test Thread",
        slug="test-thread",
        author=test_user,
        post_count=1,
    )


@pytest.fixture
def test_post(test_thread, test_user):
    """Create the opening post of ``test_thread``."""
    from forum.models import Post

    return Post.objects.create(
        thread=test_thread,
        author=test_user,
        content="This is a test post content.",
    )


# =============================================================================
# PIPELINE
# =============================================================================


@pytest.fixture
def webhook_session():
    """requests Session stand-in answering every webhook call with 200."""
    session = MagicMock()
    session.request.return_value = MagicMock(status_code=200)
    return session


@pytest.fixture
def realtime():
    """Real-time channel stand-in recording pushes."""
    return MagicMock()


@pytest.fixture
def runtime(realtime, webhook_session):
    """
    Started pipeline runtime over the memory broker.

    Real-time pushes and outbound HTTP are mocked; the cache is the local
    memory cache and the scorer runs its keyword fallback.
    """
    from forum.pipeline.runtime import PipelineRuntime
    from forum.services.webhook_service import WebhookService

    runtime = PipelineRuntime.from_settings(
        realtime=realtime,
        webhooks=WebhookService(session=webhook_session, sleep=lambda seconds: None),
    )
    runtime.start()
    yield runtime

    if not runtime.started:
        runtime.start()
    for queue in runtime.broker.topology.all_queues():
        runtime.broker.purge(queue.name)
    runtime.stop()


@pytest.fixture
def drain(runtime):
    """Process every ready message of a queue with its worker."""
    from forum.workers import build_consumer

    def _drain(queue_name, **options):
        return build_consumer(runtime, queue_name, **options).drain()

    return _drain


@pytest.fixture
def web_runtime(runtime, monkeypatch):
    """Make ``runtime`` the runtime used by the API views."""
    from django.apps import apps

    monkeypatch.setattr(apps.get_app_config("forum"), "_runtime", runtime)
    return runtime


# =============================================================================
# API CLIENTS
# =============================================================================


def _authenticate(client, user):
    from rest_framework_simplejwt.tokens import RefreshToken

    refresh = RefreshToken.for_user(user)
    # Add custom claims
    refresh["user_id"] = user.user_id
    refresh["role"] = user.role

    access = str(refresh.access_token)
    client.credentials(HTTP_AUTHORIZATION=f"Bearer {access}")
    return {"client": client, "user": user, "token": access}


@pytest.fixture
def api_client():
    """API client for testing endpoints."""
    from rest_framework.test import APIClient

    return APIClient()


@pytest.fixture
def auth_client(api_client, test_user):
    """Authenticated API client with the test_user."""
    return _authenticate(api_client, test_user)


@pytest.fixture
def admin_client(admin_user):
    """Authenticated API client with admin privileges."""
    from rest_framework.test import APIClient

    return _authenticate(APIClient(), admin_user)
