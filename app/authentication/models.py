"""
Authentication models.

This module defines the platform user, which doubles as the User Directory
consulted by other domains (chat participants, message authors).

- User: Email-login account with display name, avatar and platform role

Related files:
    - managers.py: Custom user manager for email-based creation
    - directory.py: Batched lookup of display info for other apps
"""

from django.contrib.auth.models import AbstractBaseUser, PermissionsMixin
from django.db import models

from authentication.managers import UserManager
from core.model_mixins import UUIDPrimaryKeyMixin


class UserRole(models.TextChoices):
    """Platform roles of the job/internship marketplace."""

    STUDENT = "student", "Student"
    COMPANY = "company", "Company"
    INSTITUTION = "institution", "Institution"
    ADMIN = "admin", "Admin"


class User(UUIDPrimaryKeyMixin, AbstractBaseUser, PermissionsMixin):
    """
    Custom User model using email as the primary identifier.

    Fields:
        email: Login identifier, unique
        first_name / last_name: Display name parts
        avatar: URL of an already-hosted avatar image (optional)
        role: Platform role (student, company, institution, admin)
        is_active: Deactivated users no longer resolve in the directory
        is_staff: Whether the user can access Django admin
        date_joined / updated_at: Timestamps

    Usage:
        user = User.objects.create_user(email="a@example.com", password="pw")
    """

    email = models.EmailField(
        unique=True,
        max_length=254,
        help_text="User's email address (primary identifier)",
    )
    first_name = models.CharField(
        max_length=100,
        blank=True,
        default="",
        help_text="Given name shown to other users",
    )
    last_name = models.CharField(
        max_length=100,
        blank=True,
        default="",
        help_text="Family name shown to other users",
    )
    avatar = models.URLField(
        max_length=500,
        blank=True,
        default="",
        help_text="URL of the user's avatar image",
    )
    role = models.CharField(
        max_length=20,
        choices=UserRole.choices,
        default=UserRole.STUDENT,
        db_index=True,
        help_text="Platform role",
    )

    is_active = models.BooleanField(
        default=True,
        help_text="Whether this user account is active. Deselect instead of deleting.",
    )
    is_staff = models.BooleanField(
        default=False,
        help_text="Whether the user can access the admin site.",
    )

    date_joined = models.DateTimeField(
        auto_now_add=True,
        help_text="When the user account was created",
    )
    updated_at = models.DateTimeField(
        auto_now=True,
        help_text="When the user record was last modified",
    )

    USERNAME_FIELD = "email"
    REQUIRED_FIELDS = []

    objects = UserManager()

    class Meta:
        verbose_name = "user"
        verbose_name_plural = "users"
        ordering = ["-date_joined"]

    def __str__(self):
        return self.email

    def get_full_name(self):
        """Return "first last", or the email when no name is set."""
        full_name = f"{self.first_name} {self.last_name}".strip()
        return full_name or self.email

    def get_short_name(self):
        return self.first_name or self.email.split("@")[0]
