"""Client for interacting with a single WordPress installation.

The implementation uses the WordPress REST API and basic authentication.
Posts, categories, tags and media map onto the immutable entities in
:mod:`wpclient.models`.
"""
from __future__ import annotations

import datetime as dt
import logging
import mimetypes
from dataclasses import dataclass
from pathlib import Path
from typing import IO, TYPE_CHECKING, Any, Dict, Iterable, List, Mapping, Optional, Tuple

from . import reconcile
from .connection import Connection
from .errors import NotFoundError
from .models import Category, Media, Post, Tag

if TYPE_CHECKING:
    from .config import WordPressSite

logger = logging.getLogger(__name__)

DELTA_KEYS = ("category_ids", "tag_ids", "meta")


@dataclass(frozen=True)
class DesiredState:
    """Target terms and metadata for a post.

    ``None`` leaves a field untouched on the server; an empty collection
    clears it.
    """

    category_ids: Optional[Tuple[int, ...]] = None
    tag_ids: Optional[Tuple[int, ...]] = None
    meta: Optional[Dict[str, Any]] = None

    @classmethod
    def split(cls, attributes: Mapping[str, Any]) -> Tuple[Dict[str, Any], "DesiredState"]:
        """Separate the base payload from the reconciled fields."""
        base = {k: v for k, v in attributes.items() if k not in DELTA_KEYS}
        category_ids = attributes.get("category_ids")
        tag_ids = attributes.get("tag_ids")
        meta = attributes.get("meta")
        return base, cls(
            category_ids=None if category_ids is None else tuple(category_ids),
            tag_ids=None if tag_ids is None else tuple(tag_ids),
            meta=None if meta is None else dict(meta),
        )


class WordPressClient:
    """Simple client for the WordPress REST API."""

    def __init__(self, site: "WordPressSite", connection: Optional[Connection] = None):
        self.site = site
        self.connection = connection or Connection(
            site.url, site.username, site.password, timeout=site.timeout
        )

    def __repr__(self) -> str:
        return f"<WordPressClient {self.site.username} @ {self.site.url}>"

    def close(self) -> None:
        self.connection.close()

    # Posts -----------------------------------------------------------------
    def posts(
        self,
        per_page: int = 10,
        page: int = 1,
        category_slug: Optional[str] = None,
        tag_slug: Optional[str] = None,
    ) -> List[Post]:
        """List posts, newest first, with linked resources embedded.

        ``category_slug`` and ``tag_slug`` narrow the listing and can be
        combined.
        """
        params: Dict[str, Any] = {"page": page, "per_page": per_page, "_embed": True}
        filters = {"category_name": category_slug, "tag": tag_slug}
        filters = {k: v for k, v in filters.items() if v is not None}
        if filters:
            params["filter"] = filters
        return self.connection.get_multiple(Post, "posts", **params)

    def find_post(self, post_id: int) -> Post:
        return self.connection.get(Post, f"posts/{int(post_id)}", _embed=True, context="edit")

    def find_post_by_slug(self, slug: str) -> Post:
        posts = self.connection.get_multiple(
            Post, "posts", filter={"name": slug}, per_page=1, _embed=True
        )
        if not posts:
            raise NotFoundError(f"Could not find post with slug {slug!r}")
        return posts[0]

    def create_post(self, attributes: Mapping[str, Any]) -> Post:
        """Create a post and bring its terms and metadata in line.

        ``attributes`` is the post payload. The optional ``category_ids``,
        ``tag_ids`` and ``meta`` keys are not sent with it; they are applied
        afterwards one item at a time, and the post is fetched again if
        anything changed.

        If one of those follow-up calls fails, the post itself already
        exists on the server with only part of the terms or metadata
        applied. The error propagates and the caller decides what to do.
        """
        base, desired = DesiredState.split(attributes)
        post = self.connection.create(Post, "posts", base, redirect_params={"_embed": True})
        logger.debug("Created post %s", post.id)
        return self._reconcile(post, desired)

    def update_post(self, post_id: int, attributes: Mapping[str, Any]) -> Post:
        """Update a post; same semantics (and failure window) as :meth:`create_post`."""
        base, desired = DesiredState.split(attributes)
        post = self.connection.patch(Post, f"posts/{int(post_id)}", base, _embed=True)
        return self._reconcile(post, desired)

    def schedule_post(
        self,
        title: str,
        content: str,
        publish_at: dt.datetime,
        category_ids: Optional[Iterable[int]] = None,
        tag_ids: Optional[Iterable[int]] = None,
        meta: Optional[Mapping[str, Any]] = None,
    ) -> Post:
        """Schedule a post for future publication.

        Parameters
        ----------
        title: str
            Title of the post.
        content: str
            Body of the post as HTML.
        publish_at: datetime.datetime
            When the post should be published.
        category_ids, tag_ids, meta:
            Optional terms and metadata, applied as in :meth:`create_post`.
        """
        attributes: Dict[str, Any] = {
            'title': title,
            'content': content,
            'status': 'future',
            'date': publish_at.isoformat(),
            'category_ids': category_ids,
            'tag_ids': tag_ids,
            'meta': meta,
        }
        return self.create_post(attributes)

    def delete_post(self, post_id: int, force: bool = False) -> bool:
        return self.connection.delete(f"posts/{int(post_id)}", {"force": force})

    def _reconcile(self, post: Post, desired: DesiredState) -> Post:
        changes = reconcile.apply_categories(self.connection, post, desired.category_ids)
        changes += reconcile.apply_tags(self.connection, post, desired.tag_ids)
        changes += reconcile.apply_metadata(self.connection, post, desired.meta)
        if changes == 0:
            return post
        logger.info("Refetching post %s after %d term/meta changes", post.id, changes)
        return self.find_post(post.id)

    # Categories ------------------------------------------------------------
    def categories(self, per_page: int = 10, page: int = 1) -> List[Category]:
        return self.connection.get_multiple(Category, "terms/category", page=page, per_page=per_page)

    def find_category(self, category_id: int) -> Category:
        return self.connection.get(Category, f"terms/category/{int(category_id)}")

    def create_category(self, attributes: Mapping[str, Any]) -> Category:
        return self.connection.create(Category, "terms/category", dict(attributes))

    def update_category(self, category_id: int, attributes: Mapping[str, Any]) -> Category:
        return self.connection.patch(Category, f"terms/category/{int(category_id)}", dict(attributes))

    # Tags ------------------------------------------------------------------
    def tags(self, per_page: int = 10, page: int = 1) -> List[Tag]:
        return self.connection.get_multiple(Tag, "terms/tag", page=page, per_page=per_page)

    def find_tag(self, tag_id: int) -> Tag:
        return self.connection.get(Tag, f"terms/tag/{int(tag_id)}")

    def create_tag(self, attributes: Mapping[str, Any]) -> Tag:
        return self.connection.create(Tag, "terms/tag", dict(attributes))

    def update_tag(self, tag_id: int, attributes: Mapping[str, Any]) -> Tag:
        return self.connection.patch(Tag, f"terms/tag/{int(tag_id)}", dict(attributes))

    # Media -----------------------------------------------------------------
    def media(self, per_page: int = 10, page: int = 1) -> List[Media]:
        return self.connection.get_multiple(Media, "media", per_page=per_page, page=page)

    def find_media(self, media_id: int) -> Media:
        return self.connection.get(Media, f"media/{int(media_id)}")

    def upload(self, io: IO[bytes], mime_type: str, filename: str) -> Media:
        return self.connection.upload(Media, "media", io, mime_type=mime_type, filename=filename)

    def upload_file(self, path: str | Path, mime_type: Optional[str] = None) -> Media:
        """Upload a local file; the mime type is guessed from its name if not given."""
        path = Path(path)
        if mime_type is None:
            mime_type, _ = mimetypes.guess_type(path.name)
            if mime_type is None:
                raise ValueError(f"Cannot guess mime type of {path.name!r}; pass mime_type")
        with path.open("rb") as io:
            return self.upload(io, mime_type=mime_type, filename=path.name)

    def update_media(self, media_id: int, attributes: Mapping[str, Any]) -> Media:
        return self.connection.patch(Media, f"media/{int(media_id)}", dict(attributes))
