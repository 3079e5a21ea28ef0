"""
URL configuration for the chat service.

The `urlpatterns` list routes URLs to views. This is the root URL configuration
that includes all app-specific routes.

URL Structure:
    /admin/                        - Django admin interface
    /health/                       - Health check endpoint (for load balancers, Docker)
    /api/schema/                   - OpenAPI schema (YAML)
    /api/docs/                     - ReDoc API documentation
    /api/v1/chat/                  - Chat endpoints (see chat.urls)
        conversations/             - Conversation list/create
        conversations/{id}/        - Conversation detail/update
        conversations/{id}/participants/ - Add participant
        conversations/{id}/participants/{user_id}/ - Remove participant
        conversations/{id}/messages/ - Message list/send
        conversations/{id}/read/   - Mark conversation as read
        conversations/{id}/presence/ - Online participants
        messages/{id}/             - Message edit/delete
        messages/{id}/reactions/   - Reaction add/remove
        statistics/                - Aggregate counts
        presence/heartbeat/        - Presence heartbeat

For more information, see:
https://docs.djangoproject.com/en/5.2/topics/http/urls/
"""

from django.contrib import admin
from django.urls import include, path
from drf_spectacular.views import SpectacularAPIView, SpectacularRedocView

from core.views import health_check

# =============================================================================
# API v1 Routes
# =============================================================================
# All routes here are prefixed with /api/v1/ automatically
api_v1_patterns = [
    path("chat/", include("chat.urls")),
]

urlpatterns = [
    # Documentation
    path("api/schema/", SpectacularAPIView.as_view(), name="schema"),
    path("api/docs/", SpectacularRedocView.as_view(url_name="schema"), name="redoc"),
    # Admin
    path("admin/", admin.site.urls),
    # Health check (Docker, Kubernetes, load balancers)
    path("health/", health_check, name="health_check"),
    # API v1
    path("api/v1/", include(api_v1_patterns)),
]

# =============================================================================
# Admin Site Customization
# =============================================================================
admin.site.site_header = "Chat Admin"
admin.site.site_title = "Chat Admin Portal"
admin.site.index_title = "Welcome to the Chat Admin Portal"
