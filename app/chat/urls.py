"""
URL configuration for chat API.

URL Structure:
    Conversations:
        /conversations/                              GET, POST
        /conversations/{id}/                         GET, PUT, PATCH
        /conversations/{id}/read/                    POST
        /conversations/{id}/presence/                GET

    Participants:
        /conversations/{id}/participants/            POST
        /conversations/{id}/participants/{user_id}/  DELETE

    Messages:
        /conversations/{id}/messages/                GET, POST
        /messages/{id}/                              PATCH, DELETE
        /messages/{id}/reactions/                    POST, DELETE

    Statistics:
        /statistics/                                 GET

    Presence:
        /presence/heartbeat/                         POST, DELETE

All URLs are prefixed with /api/v1/chat/ in the main URL configuration.
"""

from django.urls import include, path
from rest_framework.routers import DefaultRouter

from chat.views import (
    ConversationViewSet,
    HeartbeatView,
    MessageViewSet,
    StatisticsView,
)

router = DefaultRouter()
router.register(r"conversations", ConversationViewSet, basename="conversation")
router.register(r"messages", MessageViewSet, basename="message")

app_name = "chat"

urlpatterns = [
    path("", include(router.urls)),
    path("statistics/", StatisticsView.as_view(), name="statistics"),
    path("presence/heartbeat/", HeartbeatView.as_view(), name="presence-heartbeat"),
]
