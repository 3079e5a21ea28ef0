"""
Authentication application.

This app owns platform accounts and exposes them to other domains as a
User Directory.

Key components:
    - User model: Email-login account with display data (name, avatar, role)
    - DjangoUserDirectory: Batched lookup of display data by user id

Usage:
    from authentication.models import User
    from authentication.directory import DjangoUserDirectory
"""
