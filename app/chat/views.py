"""
ViewSets for chat API.

This module provides REST API endpoints for the chat system:
- ConversationViewSet: Conversations and their nested participants,
  messages, read cursor and presence
- MessageViewSet: Edit/delete of single messages and reactions
- StatisticsView: Aggregate counts
- HeartbeatView: Presence heartbeat

URL Structure:
    /api/v1/chat/conversations/                              GET, POST
    /api/v1/chat/conversations/{id}/                         GET, PUT, PATCH
    /api/v1/chat/conversations/{id}/participants/            POST
    /api/v1/chat/conversations/{id}/participants/{user_id}/  DELETE
    /api/v1/chat/conversations/{id}/messages/                GET, POST
    /api/v1/chat/conversations/{id}/read/                    POST
    /api/v1/chat/conversations/{id}/presence/                GET
    /api/v1/chat/messages/{id}/                              PATCH, DELETE
    /api/v1/chat/messages/{id}/reactions/                    POST, DELETE
    /api/v1/chat/statistics/                                 GET
    /api/v1/chat/presence/heartbeat/                         POST, DELETE

Design Decisions:
    - Views only parse input and render output; every rule is checked by
      the service layer
    - Failed ServiceResults are rendered by core.exception_handlers.error_response,
      which maps ErrorKind to the HTTP status
"""

from __future__ import annotations

from drf_spectacular.utils import (
    OpenApiResponse,
    extend_schema,
    extend_schema_view,
)
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from chat.constants import PRESENCE_CONFIG
from chat.pagination import paginated_response
from chat.presence import PresenceService
from chat.serializers import (
    ConversationCreateSerializer,
    ConversationPresenceSerializer,
    ConversationQuerySerializer,
    ConversationSerializer,
    ConversationUpdateSerializer,
    HeartbeatSerializer,
    MarkReadSerializer,
    MessageCreateSerializer,
    MessageEditSerializer,
    MessageQuerySerializer,
    MessageSerializer,
    ParticipantAddSerializer,
    ReactionCreateSerializer,
    StatisticsSerializer,
)
from chat.services import (
    ChatStatisticsService,
    ConversationService,
    MessageService,
    ParticipantService,
    ReactionService,
    ReadStateService,
)
from core.exception_handlers import error_response

NOT_FOUND_RESPONSE = OpenApiResponse(description="Conversation not found or not accessible")


@extend_schema_view(
    list=extend_schema(
        operation_id="list_conversations",
        summary="List conversations",
        parameters=[ConversationQuerySerializer],
        responses={200: ConversationSerializer(many=True)},
        tags=["Chat - Conversations"],
    ),
    create=extend_schema(
        operation_id="create_conversation",
        summary="Create conversation",
        description=(
            "Create a private or group conversation. Creating a private "
            "conversation that already exists returns it with status 200."
        ),
        request=ConversationCreateSerializer,
        responses={200: ConversationSerializer, 201: ConversationSerializer},
        tags=["Chat - Conversations"],
    ),
    retrieve=extend_schema(
        operation_id="get_conversation",
        summary="Get conversation",
        responses={200: ConversationSerializer, 404: NOT_FOUND_RESPONSE},
        tags=["Chat - Conversations"],
    ),
    update=extend_schema(
        operation_id="replace_conversation",
        summary="Replace conversation",
        request=ConversationUpdateSerializer,
        responses={200: ConversationSerializer},
        tags=["Chat - Conversations"],
    ),
    partial_update=extend_schema(
        operation_id="update_conversation",
        summary="Update conversation",
        request=ConversationUpdateSerializer,
        responses={200: ConversationSerializer},
        tags=["Chat - Conversations"],
    ),
)
class ConversationViewSet(viewsets.GenericViewSet):
    """
    ViewSet for conversation operations.

    list:
        Conversations the current user participates in, with unread counts
        and the last message preview.

    create:
        Create a private or group conversation.
        For private: returns the existing one if found.

    retrieve:
        Conversation details including all participants.

    update / partial_update:
        Change name, description and config. Group conversations require
        an admin.
    """

    permission_classes = [IsAuthenticated]
    serializer_class = ConversationSerializer
    pagination_class = None
    lookup_value_regex = r"\d+"

    def list(self, request):
        query = ConversationQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)

        result = ConversationService.list_conversations(request.user, **query.validated_data)
        if not result.success:
            return error_response(result)

        page = result.data
        serializer = ConversationSerializer(
            page.items, many=True, context=self.get_serializer_context()
        )
        return paginated_response(page, serializer.data)

    def create(self, request):
        serializer = ConversationCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        result = ConversationService.create_conversation(
            creator=request.user,
            kind=data["kind"],
            participant_ids=data["participants"],
            name=data.get("name"),
            description=data.get("description"),
            config=data.get("config"),
        )
        if not result.success:
            return error_response(result)

        conversation, created = result.data
        output = ConversationSerializer(conversation, context=self.get_serializer_context())
        return Response(
            output.data,
            status=status.HTTP_201_CREATED if created else status.HTTP_200_OK,
        )

    def retrieve(self, request, pk=None):
        result = ConversationService.get_conversation(pk, request.user)
        if not result.success:
            return error_response(result)
        return Response(self.get_serializer(result.data).data)

    def update(self, request, pk=None):
        serializer = ConversationUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = ConversationService.update_conversation(
            pk, request.user, dict(serializer.validated_data)
        )
        if not result.success:
            return error_response(result)
        return Response(self.get_serializer(result.data).data)

    def partial_update(self, request, pk=None):
        return self.update(request, pk=pk)

    @extend_schema(
        operation_id="add_participant",
        summary="Add participant",
        description="Add a user to a group conversation. Requires a group admin.",
        request=ParticipantAddSerializer,
        responses={200: ConversationSerializer},
        tags=["Chat - Participants"],
    )
    @action(detail=True, methods=["post"])
    def participants(self, request, pk=None):
        serializer = ParticipantAddSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = ParticipantService.add_participant(
            pk, request.user, serializer.validated_data["user_id"]
        )
        if not result.success:
            return error_response(result)
        return Response(self.get_serializer(result.data).data)

    @extend_schema(
        operation_id="remove_participant",
        summary="Remove participant",
        description=(
            "Remove a user from a group conversation. Admins may remove anyone "
            "but the creator; any participant may remove themselves."
        ),
        request=None,
        responses={200: ConversationSerializer},
        tags=["Chat - Participants"],
    )
    @action(
        detail=True,
        methods=["delete"],
        url_path=r"participants/(?P<user_id>[^/.]+)",
        url_name="participant-detail",
    )
    def remove_participant(self, request, pk=None, user_id=None):
        result = ParticipantService.remove_participant(pk, request.user, user_id)
        if not result.success:
            return error_response(result)
        return Response(self.get_serializer(result.data).data)

    @extend_schema(
        methods=["GET"],
        operation_id="list_messages",
        summary="List messages",
        parameters=[MessageQuerySerializer],
        responses={200: MessageSerializer(many=True), 404: NOT_FOUND_RESPONSE},
        tags=["Chat - Messages"],
    )
    @extend_schema(
        methods=["POST"],
        operation_id="send_message",
        summary="Send message",
        request=MessageCreateSerializer,
        responses={201: MessageSerializer, 404: NOT_FOUND_RESPONSE},
        tags=["Chat - Messages"],
    )
    @action(detail=True, methods=["get", "post"])
    def messages(self, request, pk=None):
        if request.method == "POST":
            return self._send_message(request, pk)

        query = MessageQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)

        result = MessageService.list_messages(pk, request.user, **query.validated_data)
        if not result.success:
            return error_response(result)

        page = result.data
        serializer = MessageSerializer(page.items, many=True, context=self.get_serializer_context())
        return paginated_response(page, serializer.data)

    def _send_message(self, request, pk):
        serializer = MessageCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        result = MessageService.send_message(
            pk,
            request.user,
            content=data["content"],
            kind=data.get("kind"),
            attachments=[dict(item) for item in data.get("attachments", [])],
            reply_to=data.get("reply_to"),
        )
        if not result.success:
            return error_response(result)

        output = MessageSerializer(result.data, context=self.get_serializer_context())
        return Response(output.data, status=status.HTTP_201_CREATED)

    @extend_schema(
        operation_id="mark_conversation_read",
        summary="Mark conversation as read",
        description="Move the current user's read cursor to the given message.",
        request=MarkReadSerializer,
        responses={204: None, 404: NOT_FOUND_RESPONSE},
        tags=["Chat - Conversations"],
    )
    @action(detail=True, methods=["post"])
    def read(self, request, pk=None):
        serializer = MarkReadSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = ReadStateService.mark_read(
            pk, serializer.validated_data["message_id"], request.user
        )
        if not result.success:
            return error_response(result)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @extend_schema(
        operation_id="get_conversation_presence",
        summary="Get conversation presence",
        description="Ids of the conversation's participants that are currently online.",
        responses={200: ConversationPresenceSerializer, 404: NOT_FOUND_RESPONSE},
        tags=["Chat - Presence"],
    )
    @action(detail=True, methods=["get"])
    def presence(self, request, pk=None):
        result = PresenceService.conversation_presence(pk, request.user)
        if not result.success:
            return error_response(result)
        return Response(
            ConversationPresenceSerializer(
                {"conversation_id": int(pk), "online_user_ids": result.data}
            ).data
        )


@extend_schema_view(
    partial_update=extend_schema(
        operation_id="edit_message",
        summary="Edit message",
        description="Replace the content of one of your own messages.",
        request=MessageEditSerializer,
        responses={200: MessageSerializer},
        tags=["Chat - Messages"],
    ),
    destroy=extend_schema(
        operation_id="delete_message",
        summary="Delete message",
        description="Permanently delete one of your own messages.",
        responses={204: None},
        tags=["Chat - Messages"],
    ),
)
class MessageViewSet(viewsets.GenericViewSet):
    """
    ViewSet for single-message operations.

    partial_update:
        Edit content. Only the author can edit.

    destroy:
        Hard delete. Only the author can delete.

    reactions:
        POST sets the caller's reaction, DELETE removes it.
    """

    permission_classes = [IsAuthenticated]
    serializer_class = MessageSerializer
    pagination_class = None
    lookup_value_regex = r"\d+"

    def partial_update(self, request, pk=None):
        serializer = MessageEditSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = MessageService.edit_message(pk, request.user, serializer.validated_data["content"])
        if not result.success:
            return error_response(result)
        return Response(self.get_serializer(result.data).data)

    def destroy(self, request, pk=None):
        result = MessageService.delete_message(pk, request.user)
        if not result.success:
            return error_response(result)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @extend_schema(
        methods=["POST"],
        operation_id="add_reaction",
        summary="React to message",
        description="Set the current user's reaction, replacing any previous one.",
        request=ReactionCreateSerializer,
        responses={200: MessageSerializer},
        tags=["Chat - Reactions"],
    )
    @extend_schema(
        methods=["DELETE"],
        operation_id="remove_reaction",
        summary="Remove reaction",
        request=None,
        responses={200: MessageSerializer},
        tags=["Chat - Reactions"],
    )
    @action(detail=True, methods=["post", "delete"])
    def reactions(self, request, pk=None):
        if request.method == "DELETE":
            result = ReactionService.remove_reaction(pk, request.user)
        else:
            serializer = ReactionCreateSerializer(data=request.data)
            serializer.is_valid(raise_exception=True)
            result = ReactionService.add_reaction(
                pk, request.user, serializer.validated_data["emoji"]
            )

        if not result.success:
            return error_response(result)
        return Response(self.get_serializer(result.data).data)


class StatisticsView(APIView):
    """
    Aggregate chat counts.

    GET /api/v1/chat/statistics/
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="get_chat_statistics",
        summary="Get chat statistics",
        responses={200: StatisticsSerializer},
        tags=["Chat - Statistics"],
    )
    def get(self, request):
        result = ChatStatisticsService.get_statistics()
        if not result.success:
            return error_response(result)
        return Response(StatisticsSerializer(result.data).data)


class HeartbeatView(APIView):
    """
    Keep the current user's presence alive.

    POST /api/v1/chat/presence/heartbeat/
        Mark online for PRESENCE_TTL_SECONDS.

    DELETE /api/v1/chat/presence/heartbeat/
        Mark offline immediately.
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="send_heartbeat",
        summary="Send presence heartbeat",
        description=(
            f"Should be called periodically (every "
            f"{PRESENCE_CONFIG.HEARTBEAT_INTERVAL_SECONDS} seconds) while the "
            "user has the app open."
        ),
        request=None,
        responses={200: HeartbeatSerializer},
        tags=["Chat - Presence"],
    )
    def post(self, request):
        return Response(HeartbeatSerializer(PresenceService.heartbeat(request.user)).data)

    @extend_schema(
        operation_id="go_offline",
        summary="Go offline",
        request=None,
        responses={204: None},
        tags=["Chat - Presence"],
    )
    def delete(self, request):
        PresenceService.go_offline(request.user)
        return Response(status=status.HTTP_204_NO_CONTENT)
