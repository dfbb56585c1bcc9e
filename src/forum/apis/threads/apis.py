import logging

from drf_yasg import openapi
from drf_yasg.utils import swagger_auto_schema
from rest_framework import serializers, status
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView

from forum.apps import get_runtime
from forum.exceptions import ForumError
from forum.permissions import IsForumUser
from forum.serializers.forum_serializers import PostSerializer, ThreadSerializer
from forum.services.post_service import PostService
from forum.services.thread_service import ThreadService
from forumutils.log_helpers import log_api_view

logger = logging.getLogger(__name__)


class ThreadCreateSerializer(serializers.Serializer):
    title = serializers.CharField(max_length=200)
    content = serializers.CharField()


class ThreadUpdateSerializer(serializers.Serializer):
    title = serializers.CharField(max_length=200, required=False)
    is_locked = serializers.BooleanField(required=False)
    is_pinned = serializers.BooleanField(required=False)


class PostWriteSerializer(serializers.Serializer):
    content = serializers.CharField()
    parent_id = serializers.IntegerField(required=False, allow_null=True)


def error_response(error: ForumError) -> Response:
    return Response(error.to_dict(), status=error.status_code)


class ThreadListCreateAPI(APIView):
    """List threads (cached) or start a new thread."""

    def get_permissions(self):
        if self.request.method == "GET":
            return [AllowAny()]
        return [IsForumUser()]

    @swagger_auto_schema(
        operation_description="List active threads, pinned first.",
        manual_parameters=[
            openapi.Parameter("page", openapi.IN_QUERY, type=openapi.TYPE_INTEGER),
            openapi.Parameter("limit", openapi.IN_QUERY, type=openapi.TYPE_INTEGER),
            openapi.Parameter("search", openapi.IN_QUERY, type=openapi.TYPE_STRING),
        ],
    )
    def get(self, request):
        try:
            page = int(request.query_params.get("page", 1))
            limit = int(request.query_params.get("limit", 10))
        except ValueError:
            return Response({"error": "page and limit must be integers"}, status=400)

        data = ThreadService(get_runtime()).list_threads(
            page=page, limit=limit, search=request.query_params.get("search")
        )
        return Response(data, status=status.HTTP_200_OK)

    @swagger_auto_schema(
        operation_description="Create a thread with its first post.",
        request_body=ThreadCreateSerializer,
        responses={201: ThreadSerializer},
    )
    @log_api_view
    def post(self, request):
        serializer = ThreadCreateSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        thread = ThreadService(get_runtime()).create_thread(request.user, **serializer.validated_data)
        return Response(ThreadSerializer(thread).data, status=status.HTTP_201_CREATED)


class ThreadDetailAPI(APIView):
    """Read, update or delete one thread."""

    def get_permissions(self):
        if self.request.method == "GET":
            return [AllowAny()]
        return [IsForumUser()]

    def get(self, request, thread_id: int):
        try:
            data = ThreadService(get_runtime()).get_thread(thread_id)
        except ForumError as e:
            return error_response(e)
        return Response(data, status=status.HTTP_200_OK)

    @swagger_auto_schema(request_body=ThreadUpdateSerializer, responses={200: ThreadSerializer})
    def patch(self, request, thread_id: int):
        serializer = ThreadUpdateSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        try:
            thread = ThreadService(get_runtime()).update_thread(
                thread_id, request.user, **serializer.validated_data
            )
        except ForumError as e:
            return error_response(e)
        return Response(ThreadSerializer(thread).data, status=status.HTTP_200_OK)

    def delete(self, request, thread_id: int):
        try:
            ThreadService(get_runtime()).delete_thread(thread_id, request.user)
        except ForumError as e:
            return error_response(e)
        return Response(status=status.HTTP_204_NO_CONTENT)


class ThreadSummaryAPI(APIView):
    """
    Return the cached AI summary of a thread.

    When no summary is cached, a summary job is queued and 202 is returned;
    the client polls until the summary is available.
    """

    permission_classes = [AllowAny]

    @swagger_auto_schema(
        operation_description="Get or request a thread summary.",
        responses={
            200: openapi.Response(description="Cached summary"),
            202: openapi.Response(description="Summary generation queued"),
            404: openapi.Response(description="Thread not found"),
        },
    )
    @log_api_view
    def get(self, request, thread_id: int):
        try:
            summary = ThreadService(get_runtime()).request_summary(thread_id)
        except ForumError as e:
            return error_response(e)

        if summary is None:
            return Response(
                {"message": "Summary generation queued", "thread_id": thread_id},
                status=status.HTTP_202_ACCEPTED,
            )
        return Response({"data": summary}, status=status.HTTP_200_OK)


class PostCreateAPI(APIView):
    """Reply in a thread."""

    permission_classes = [IsForumUser]

    @swagger_auto_schema(request_body=PostWriteSerializer, responses={201: PostSerializer})
    @log_api_view
    def post(self, request, thread_id: int):
        serializer = PostWriteSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        try:
            post = PostService(get_runtime()).create_post(
                request.user,
                thread_id,
                serializer.validated_data["content"],
                parent_id=serializer.validated_data.get("parent_id"),
            )
        except ForumError as e:
            return error_response(e)
        return Response(PostSerializer(post).data, status=status.HTTP_201_CREATED)


class PostDetailAPI(APIView):
    """Edit or delete one of your posts."""

    permission_classes = [IsForumUser]

    @swagger_auto_schema(request_body=PostWriteSerializer, responses={200: PostSerializer})
    def patch(self, request, post_id: int):
        serializer = PostWriteSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        try:
            post = PostService(get_runtime()).edit_post(
                post_id, request.user, serializer.validated_data["content"]
            )
        except ForumError as e:
            return error_response(e)
        return Response(PostSerializer(post).data, status=status.HTTP_200_OK)

    def delete(self, request, post_id: int):
        try:
            removed = PostService(get_runtime()).delete_post(post_id, request.user)
        except ForumError as e:
            return error_response(e)
        return Response({"removed": removed}, status=status.HTTP_200_OK)
