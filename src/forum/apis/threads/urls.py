from django.urls import path

from .apis import (
    PostCreateAPI,
    PostDetailAPI,
    ThreadDetailAPI,
    ThreadListCreateAPI,
    ThreadSummaryAPI,
)

urlpatterns = [
    path("", ThreadListCreateAPI.as_view(), name="threads"),
    path("<int:thread_id>/", ThreadDetailAPI.as_view(), name="thread_detail"),
    path("<int:thread_id>/summary/", ThreadSummaryAPI.as_view(), name="thread_summary"),
    path("<int:thread_id>/posts/", PostCreateAPI.as_view(), name="thread_posts"),
    path("posts/<int:post_id>/", PostDetailAPI.as_view(), name="post_detail"),
]
