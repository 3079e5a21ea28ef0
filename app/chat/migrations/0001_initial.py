import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


def _created_at():
    return models.DateTimeField(
        auto_now_add=True,
        db_index=True,
        help_text="Timestamp when this record was created",
    )


def _updated_at():
    return models.DateTimeField(
        auto_now=True,
        help_text="Timestamp when this record was last modified",
    )


def _weak_user(related_name, **kwargs):
    return models.ForeignKey(
        db_constraint=False,
        on_delete=django.db.models.deletion.DO_NOTHING,
        related_name=related_name,
        to=settings.AUTH_USER_MODEL,
        **kwargs,
    )


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Conversation",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", _created_at()),
                ("updated_at", _updated_at()),
                (
                    "is_deleted",
                    models.BooleanField(
                        db_index=True,
                        default=False,
                        help_text="Whether this record has been soft deleted",
                    ),
                ),
                (
                    "deleted_at",
                    models.DateTimeField(
                        blank=True,
                        null=True,
                        help_text="Timestamp when this record was soft deleted",
                    ),
                ),
                (
                    "kind",
                    models.CharField(
                        choices=[("private", "Private"), ("group", "Group")],
                        help_text="Private (two users) or group",
                        max_length=10,
                    ),
                ),
                ("name", models.CharField(blank=True, default="", help_text="Group name", max_length=100)),
                (
                    "description",
                    models.CharField(blank=True, default="", help_text="Group description", max_length=500),
                ),
                ("notifications_enabled", models.BooleanField(default=True)),
                ("only_admins_can_post", models.BooleanField(default=False)),
                ("last_message_content", models.TextField(blank=True, default="")),
                (
                    "last_message_at",
                    models.DateTimeField(
                        blank=True,
                        db_index=True,
                        help_text="Timestamp of the most recent message",
                        null=True,
                    ),
                ),
                (
                    "private_key",
                    models.CharField(
                        blank=True,
                        help_text="Canonical user pair of a private conversation",
                        max_length=80,
                        null=True,
                    ),
                ),
                (
                    "creator",
                    _weak_user("created_conversations", help_text="User who created the conversation"),
                ),
                ("last_message_author", _weak_user("+", blank=True, null=True)),
            ],
            options={
                "db_table": "chat_conversations",
                "ordering": ["-created_at", "id"],
            },
        ),
        migrations.CreateModel(
            name="ConversationMember",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", _created_at()),
                ("updated_at", _updated_at()),
                (
                    "is_admin",
                    models.BooleanField(
                        default=False,
                        help_text="Group admin (always False in private conversations)",
                    ),
                ),
                (
                    "conversation",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="members",
                        to="chat.conversation",
                    ),
                ),
                ("user", _weak_user("chat_memberships")),
            ],
            options={
                "db_table": "chat_conversation_members",
                "ordering": ["created_at", "id"],
            },
        ),
        migrations.CreateModel(
            name="Message",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", _created_at()),
                ("updated_at", _updated_at()),
                ("content", models.TextField(help_text="Message text")),
                (
                    "kind",
                    models.CharField(
                        choices=[
                            ("text", "Text"),
                            ("image", "Image"),
                            ("video", "Video"),
                            ("file", "File"),
                            ("system", "System"),
                        ],
                        default="text",
                        max_length=10,
                    ),
                ),
                (
                    "attachments",
                    models.JSONField(
                        blank=True,
                        default=list,
                        help_text="Ordered list of hosted attachment descriptors",
                    ),
                ),
                (
                    "status",
                    models.CharField(
                        choices=[("sent", "Sent"), ("delivered", "Delivered"), ("read", "Read")],
                        default="sent",
                        max_length=10,
                    ),
                ),
                ("edited", models.BooleanField(default=False)),
                ("edited_at", models.DateTimeField(blank=True, null=True)),
                (
                    "reply_to_id",
                    models.BigIntegerField(
                        blank=True,
                        help_text="Id of the message this one replies to (may dangle)",
                        null=True,
                    ),
                ),
                (
                    "conversation",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="messages",
                        to="chat.conversation",
                    ),
                ),
                ("author", _weak_user("chat_messages")),
            ],
            options={
                "db_table": "chat_messages",
                "ordering": ["created_at", "id"],
            },
        ),
        migrations.CreateModel(
            name="MessageReaction",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", _created_at()),
                ("updated_at", _updated_at()),
                ("emoji", models.CharField(max_length=32)),
                (
                    "message",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="reactions",
                        to="chat.message",
                    ),
                ),
                ("user", _weak_user("chat_reactions")),
            ],
            options={
                "db_table": "chat_message_reactions",
                "ordering": ["created_at", "id"],
            },
        ),
        migrations.CreateModel(
            name="ReadState",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", _created_at()),
                ("updated_at", _updated_at()),
                (
                    "last_read_message_id",
                    models.BigIntegerField(
                        blank=True,
                        help_text="Id of the last message read (may dangle)",
                        null=True,
                    ),
                ),
                ("last_read_at", models.DateTimeField()),
                (
                    "conversation",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="read_states",
                        to="chat.conversation",
                    ),
                ),
                ("user", _weak_user("chat_read_states")),
            ],
            options={
                "db_table": "chat_read_states",
            },
        ),
        migrations.AddIndex(
            model_name="conversation",
            index=models.Index(fields=["kind", "is_deleted"], name="chat_conv_kind_deleted_idx"),
        ),
        migrations.AddConstraint(
            model_name="conversation",
            constraint=models.UniqueConstraint(
                condition=models.Q(("is_deleted", False), ("kind", "private")),
                fields=("private_key",),
                name="chat_unique_active_private_pair",
            ),
        ),
        migrations.AddIndex(
            model_name="conversationmember",
            index=models.Index(fields=["user", "conversation"], name="chat_member_user_conv_idx"),
        ),
        migrations.AddConstraint(
            model_name="conversationmember",
            constraint=models.UniqueConstraint(
                fields=("conversation", "user"),
                name="chat_unique_conversation_member",
            ),
        ),
        migrations.AddIndex(
            model_name="message",
            index=models.Index(
                fields=["conversation", "created_at", "id"],
                name="chat_msg_conv_created_idx",
            ),
        ),
        migrations.AddIndex(
            model_name="message",
            index=models.Index(fields=["author", "-created_at"], name="chat_msg_author_idx"),
        ),
        migrations.AddConstraint(
            model_name="messagereaction",
            constraint=models.UniqueConstraint(
                fields=("message", "user"),
                name="chat_unique_reaction_per_user",
            ),
        ),
        migrations.AddConstraint(
            model_name="readstate",
            constraint=models.UniqueConstraint(
                fields=("conversation", "user"),
                name="chat_unique_read_state",
            ),
        ),
    ]
