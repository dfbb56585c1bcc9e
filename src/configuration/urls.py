"""
URL configuration for the forum API.

/api/threads/        threads, posts and summaries
/api/notifications/  the caller's notifications
/api/webhooks/       inbound email-status events and delivery logs
"""

from django.contrib import admin
from django.urls import include, path, re_path
from django.views.generic import RedirectView
from drf_yasg import openapi
from drf_yasg.views import get_schema_view
from rest_framework import permissions
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView

api_urlpatterns = [
    path("api/auth/token/", TokenObtainPairView.as_view(), name="token_obtain_pair"),
    path("api/auth/token/refresh/", TokenRefreshView.as_view(), name="token_refresh"),
    path("api/threads/", include("forum.apis.threads.urls")),
    path("api/notifications/", include("forum.apis.notifications.urls")),
    path("api/webhooks/", include("forum.apis.webhooks.urls")),
]

schema_view = get_schema_view(
    openapi.Info(
        title="Forum API",
        default_version="v1",
        description="Threads, posts, notifications and webhooks.",
    ),
    public=True,
    permission_classes=(permissions.AllowAny,),
    patterns=api_urlpatterns,
)

urlpatterns = [
    *api_urlpatterns,
    path("admin/", admin.site.urls),
    re_path(
        r"^swagger(?P<format>\.json|\.yaml)$",
        schema_view.without_ui(cache_timeout=0),
        name="schema-json",
    ),
    path(
        "swagger/",
        schema_view.with_ui("swagger", cache_timeout=0),
        name="schema-swagger-ui",
    ),
    path("redoc/", schema_view.with_ui("redoc", cache_timeout=0), name="schema-redoc"),
    path("", RedirectView.as_view(url="/swagger/", permanent=False)),
]
