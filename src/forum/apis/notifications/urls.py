from django.urls import path

from .apis import (
    ClearReadNotificationsAPI,
    ListNotificationsAPI,
    MarkAllNotificationsReadAPI,
    MarkNotificationAsReadAPI,
)

urlpatterns = [
    path("", ListNotificationsAPI.as_view(), name="list_notifications"),
    path(
        "<int:notification_id>/mark-as-read/",
        MarkNotificationAsReadAPI.as_view(),
        name="mark_notification_read",
    ),
    path("mark-all-read/", MarkAllNotificationsReadAPI.as_view(), name="mark_all_notifications_read"),
    path("clear-read/", ClearReadNotificationsAPI.as_view(), name="clear_read_notifications"),
]
