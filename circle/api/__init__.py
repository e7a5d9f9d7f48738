"""API router package for the Circle backend."""

from circle.api import auth, notifications, posts, uploads, users

__all__ = ["auth", "notifications", "posts", "uploads", "users"]
