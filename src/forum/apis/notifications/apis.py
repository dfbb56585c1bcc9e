import logging

from drf_yasg import openapi
from drf_yasg.utils import swagger_auto_schema
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import APIView

from forum.apps import get_runtime
from forum.models import Notification
from forum.permissions import IsForumUser
from forum.serializers.forum_serializers import NotificationSerializer

logger = logging.getLogger(__name__)


class ListNotificationsAPI(APIView):
    """List the authenticated user's notifications, newest first."""

    permission_classes = [IsForumUser]

    @swagger_auto_schema(
        manual_parameters=[
            openapi.Parameter("unread", openapi.IN_QUERY, type=openapi.TYPE_BOOLEAN),
        ],
        responses={200: NotificationSerializer(many=True)},
    )
    def get(self, request):
        queryset = Notification.objects.filter(user=request.user)
        if request.query_params.get("unread") in ("1", "true", "True"):
            queryset = queryset.filter(is_read=False)
        notifications = NotificationSerializer(queryset[:100], many=True).data
        unread = get_runtime().notifications.get_unread_count(request.user)
        return Response(
            {"data": notifications, "unread_count": unread}, status=status.HTTP_200_OK
        )


class MarkNotificationAsReadAPI(APIView):
    permission_classes = [IsForumUser]

    def post(self, request, notification_id: int):
        try:
            notification = get_runtime().notifications.mark_as_read(request.user, notification_id)
        except Notification.DoesNotExist:
            return Response({"error": "Notification not found"}, status=status.HTTP_404_NOT_FOUND)
        return Response(
            {"data": NotificationSerializer(notification).data}, status=status.HTTP_200_OK
        )


class MarkAllNotificationsReadAPI(APIView):
    """Mark every unread notification of the authenticated user as read."""

    permission_classes = [IsForumUser]

    @swagger_auto_schema(
        operation_description="Mark all notifications as read.",
        responses={
            200: openapi.Response(
                description="Number of notifications updated",
                schema=openapi.Schema(
                    type=openapi.TYPE_OBJECT,
                    properties={"updated": openapi.Schema(type=openapi.TYPE_INTEGER)},
                ),
            )
        },
    )
    def post(self, request):
        updated = get_runtime().notifications.mark_all_as_read(request.user)
        return Response({"updated": updated}, status=status.HTTP_200_OK)


class ClearReadNotificationsAPI(APIView):
    """Delete the authenticated user's read notifications."""

    permission_classes = [IsForumUser]

    def delete(self, request):
        deleted = get_runtime().notifications.delete_all_read(request.user)
        return Response({"deleted": deleted}, status=status.HTTP_200_OK)
