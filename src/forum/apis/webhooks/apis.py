import json

from django.conf import settings
from drf_yasg import openapi
from drf_yasg.utils import swagger_auto_schema
from rest_framework import status
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView

from forum.apps import get_runtime
from forum.permissions import IsAdminRole
from forum.serializers.forum_serializers import (
    EmailStatusSerializer,
    WebhookDeliveryLogSerializer,
    WebhookLogQuerySerializer,
)
from forum.services.webhook_service import (
    SIGNATURE_HEADER,
    TIMESTAMP_HEADER,
    WebhookService,
    WebhookSignatureError,
    verify_inbound_request,
)
from forumutils.log_helpers import log_api_view
from forumutils.logging import get_logger

logger = get_logger(__name__)

ERROR_SCHEMA = openapi.Schema(
    type=openapi.TYPE_OBJECT,
    properties={"error": openapi.Schema(type=openapi.TYPE_STRING)},
)


class EmailStatusWebhookAPI(APIView):
    """
    Receive email delivery status callbacks.

    The body must be signed with WEBHOOK_SECRET; unsigned or tampered
    requests are rejected before anything is queued.
    """

    permission_classes = [AllowAny]
    authentication_classes = []

    @swagger_auto_schema(
        operation_description="Email provider status callback (HMAC signed).",
        request_body=EmailStatusSerializer,
        manual_parameters=[
            openapi.Parameter(SIGNATURE_HEADER, openapi.IN_HEADER, type=openapi.TYPE_STRING, required=True),
            openapi.Parameter(TIMESTAMP_HEADER, openapi.IN_HEADER, type=openapi.TYPE_STRING, required=True),
        ],
        responses={
            200: openapi.Response(description="Callback accepted"),
            400: openapi.Response(description="Invalid payload", schema=ERROR_SCHEMA),
            401: openapi.Response(description="Missing or invalid signature", schema=ERROR_SCHEMA),
        },
    )
    @log_api_view
    def post(self, request):
        raw_body = request.body
        try:
            verify_inbound_request(
                request.headers, raw_body, getattr(settings, "WEBHOOK_SECRET", "")
            )
        except WebhookSignatureError as e:
            logger.warning("inbound_webhook_rejected", failure_reason=str(e))
            return Response({"error": str(e)}, status=status.HTTP_401_UNAUTHORIZED)

        try:
            data = json.loads(raw_body)
        except ValueError:
            return Response({"error": "Body is not valid JSON"}, status=status.HTTP_400_BAD_REQUEST)

        serializer = EmailStatusSerializer(data=data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        runtime = get_runtime()
        runtime.webhooks.process_email_status(dict(serializer.validated_data), runtime.broker)
        return Response(
            {
                "success": True,
                "message": "Email status webhook processed",
                "data": {"messageId": serializer.validated_data["messageId"]},
            },
            status=status.HTTP_200_OK,
        )


class WebhookLogsAPI(APIView):
    """List webhook delivery logs (admin only)."""

    permission_classes = [IsAdminRole]

    @swagger_auto_schema(
        operation_description="List webhook delivery logs, newest first.",
        query_serializer=WebhookLogQuerySerializer,
        responses={200: WebhookDeliveryLogSerializer(many=True)},
    )
    def get(self, request):
        query = WebhookLogQuerySerializer(data=request.query_params)
        if not query.is_valid():
            return Response(query.errors, status=status.HTTP_400_BAD_REQUEST)

        logs = WebhookService.get_logs(**query.validated_data)
        return Response(
            {"data": WebhookDeliveryLogSerializer(logs, many=True).data},
            status=status.HTTP_200_OK,
        )
