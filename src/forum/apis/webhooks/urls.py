from django.urls import path

from .apis import EmailStatusWebhookAPI, WebhookLogsAPI

urlpatterns = [
    path("email-status/", EmailStatusWebhookAPI.as_view(), name="email_status_webhook"),
    path("logs/", WebhookLogsAPI.as_view(), name="webhook_logs"),
]
