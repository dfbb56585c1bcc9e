"""
Tests for the real-time channel and the WebSocket consumer.
"""

import datetime

import pytest
from asgiref.sync import async_to_sync
from channels.layers import InMemoryChannelLayer, get_channel_layer
from channels.testing import WebsocketCommunicator

from forum.consumers import ForumConsumer
from forum.services.notification import RealtimeChannel, group_for_topic, thread_topic, user_topic


@pytest.mark.unit
class TestTopics:
    def test_topic_names(self):
        assert user_topic(5) == "user:5"
        assert thread_topic(9) == "thread:9"
        assert group_for_topic("user:5") == "user.5"


@pytest.mark.unit
class TestRealtimeChannel:
    """Test publishing to channel-layer groups."""

    @pytest.fixture
    def layer(self):
        return InMemoryChannelLayer()

    def subscribe(self, layer, group):
        channel = async_to_sync(layer.new_channel)()
        async_to_sync(layer.group_add)(group, channel)
        return channel

    def test_to_user_reaches_user_group(self, layer):
        channel = self.subscribe(layer, "user.5")
        sent_at = datetime.datetime(2024, 5, 1, 12, 0, tzinfo=datetime.timezone.utc)

        RealtimeChannel(layer).to_user(5, "notification:new", {"id": 1, "timestamp": sent_at})

        message = async_to_sync(layer.receive)(channel)
        assert message == {
            "type": "forum.event",
            "event": "notification:new",
            "data": {"id": 1, "timestamp": "2024-05-01T12:00:00Z"},
        }

    def test_broadcast_and_thread_groups(self, layer):
        broadcast = self.subscribe(layer, "broadcast")
        room = self.subscribe(layer, "thread.3")
        channel = RealtimeChannel(layer)

        channel.broadcast("thread:created", {"thread_id": 3})
        channel.to_thread(3, "post:created", {"post_id": 10})

        assert async_to_sync(layer.receive)(broadcast)["event"] == "thread:created"
        assert async_to_sync(layer.receive)(room)["data"] == {"post_id": 10}


@pytest.mark.unit
class TestForumConsumer:
    """Test the WebSocket consumer."""

    def test_anonymous_connection_is_refused(self):
        async def scenario():
            communicator = WebsocketCommunicator(ForumConsumer.as_asgi(), "/ws/forum/")
            communicator.scope["user"] = None
            connected, code = await communicator.connect()
            await communicator.disconnect()
            return connected, code

        connected, code = async_to_sync(scenario)()

        assert connected is False
        assert code == 4401

    def test_user_receives_events_and_errors(self, test_user):
        async def scenario():
            communicator = WebsocketCommunicator(ForumConsumer.as_asgi(), "/ws/forum/")
            communicator.scope["user"] = test_user
            connected, _ = await communicator.connect()

            layer = get_channel_layer()
            await layer.group_send(
                group_for_topic(user_topic(test_user.pk)),
                {"type": "forum.event", "event": "notification:new", "data": {"id": 1}},
            )
            pushed = await communicator.receive_json_from()

            await communicator.send_json_to({"event": "thread:join", "data": {}})
            error = await communicator.receive_json_from()

            await communicator.disconnect()
            return connected, pushed, error

        connected, pushed, error = async_to_sync(scenario)()

        assert connected is True
        assert pushed == {"event": "notification:new", "data": {"id": 1}}
        assert error == {"event": "error", "data": {"message": "thread_id is required"}}

    def test_typing_is_relayed_only_to_joined_rooms(self, test_user):
        async def scenario():
            layer = get_channel_layer()
            observer = await layer.new_channel()
            await layer.group_add(group_for_topic(thread_topic(12)), observer)

            communicator = WebsocketCommunicator(ForumConsumer.as_asgi(), "/ws/forum/")
            communicator.scope["user"] = test_user
            await communicator.connect()

            await communicator.send_json_to(
                {"event": "thread:typing", "data": {"thread_id": 12, "is_typing": True}}
            )
            error = await communicator.receive_json_from()

            await communicator.send_json_to({"event": "thread:join", "data": {"thread_id": 12}})
            await communicator.send_json_to(
                {"event": "thread:typing", "data": {"thread_id": 12, "is_typing": True}}
            )
            first = await layer.receive(observer)
            second = await layer.receive(observer)

            await communicator.disconnect()
            return error, first, second

        error, first, second = async_to_sync(scenario)()

        assert error == {"event": "error", "data": {"message": "Join thread 12 first"}}
        assert first["event"] == "user:joined"
        assert second["event"] == "user:typing"
        assert second["data"]["is_typing"] is True
        assert second["data"]["user_id"] == test_user.pk
