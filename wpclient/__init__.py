"""Typed client for the WordPress REST API.

Maps posts, categories, tags and media onto immutable entities and keeps a
post's terms and metadata in sync with the state a caller asks for.
"""

__all__ = [
    "WordPressClient",
    "WordPressSite",
    "SiteRegistry",
    "DesiredState",
    "Connection",
    "Post",
    "Category",
    "Tag",
    "Media",
    "WordPressError",
    "NotFoundError",
    "ValidationError",
    "UnauthorizedError",
    "ServerError",
    "RequestTimeoutError",
    "ConfigurationError",
]

from .errors import (
    ConfigurationError,
    NotFoundError,
    RequestTimeoutError,
    ServerError,
    UnauthorizedError,
    ValidationError,
    WordPressError,
)
from .models import Category, Media, Post, Tag
from .connection import Connection
from .client import DesiredState, WordPressClient
from .config import SiteRegistry, WordPressSite
