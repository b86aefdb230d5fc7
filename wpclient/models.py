"""Typed entities parsed from WordPress REST API responses.

Entities are immutable: every change on the server yields a fresh instance
produced by :meth:`parse`.
"""
from __future__ import annotations

import datetime as dt
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Tuple

from .errors import ServerError, UnauthorizedError

META_REL = "https://api.w.org/meta"
TERM_RELS = ("https://api.w.org/term", "wp:term")
FEATURED_MEDIA_RELS = ("https://api.w.org/featuredmedia", "wp:featuredmedia")


def _require(data: Dict[str, Any], key: str, kind: str) -> Any:
    if not isinstance(data, dict) or data.get(key) is None:
        raise ServerError(f"{kind} response is missing required field {key!r}")
    return data[key]


def _rendered(data: Dict[str, Any], key: str) -> Optional[str]:
    value = data.get(key)
    if isinstance(value, dict):
        return value.get("rendered")
    return value


def parse_date(data: Dict[str, Any], key: str) -> Optional[dt.datetime]:
    """Return the instant stored under ``key``.

    The ``<key>_gmt`` variant is read as UTC and wins whenever it is set.
    Otherwise ``<key>`` is read as local time of the running process.
    """
    gmt = data.get(f"{key}_gmt")
    local = data.get(key)
    try:
        if gmt:
            return dt.datetime.fromisoformat(gmt).replace(tzinfo=dt.timezone.utc)
        if local:
            return dt.datetime.fromisoformat(local).astimezone()
    except (TypeError, ValueError) as exc:
        raise ServerError(f"Could not parse {key!r} date: {exc}") from exc
    return None


def _embedded(data: Dict[str, Any], *rels: str) -> List[Any]:
    embedded = data.get("_embedded") or {}
    for rel in rels:
        if embedded.get(rel) is not None:
            return embedded[rel]
    return []


def _flatten(items: List[Any]) -> List[Any]:
    flat: List[Any] = []
    for item in items:
        if isinstance(item, list):
            flat.extend(_flatten(item))
        else:
            flat.append(item)
    return flat


@dataclass(frozen=True)
class _Term:
    id: int
    name_html: Optional[str] = None
    slug: Optional[str] = None
    description: Optional[str] = None

    @classmethod
    def parse(cls, data: Dict[str, Any]):
        return cls(
            id=_require(data, "id", cls.__name__),
            name_html=data.get("name"),
            slug=data.get("slug"),
            description=data.get("description"),
        )


@dataclass(frozen=True)
class Category(_Term):
    pass


@dataclass(frozen=True)
class Tag(_Term):
    pass


@dataclass(frozen=True)
class Media:
    id: int
    slug: Optional[str] = None
    title_html: Optional[str] = None
    url: Optional[str] = None
    guid: Optional[str] = None
    source_url: Optional[str] = None
    media_type: Optional[str] = None
    mime_type: Optional[str] = None
    date: Optional[dt.datetime] = None
    updated_at: Optional[dt.datetime] = None

    @classmethod
    def parse(cls, data: Dict[str, Any]) -> "Media":
        return cls(
            id=_require(data, "id", "Media"),
            slug=data.get("slug"),
            title_html=_rendered(data, "title"),
            url=data.get("link"),
            guid=_rendered(data, "guid"),
            source_url=data.get("source_url"),
            media_type=data.get("media_type"),
            mime_type=data.get("mime_type"),
            date=parse_date(data, "date"),
            updated_at=parse_date(data, "modified"),
        )


@dataclass(frozen=True)
class Post:
    """A post together with its terms, featured image and metadata."""

    id: int
    slug: Optional[str] = None
    url: Optional[str] = None
    guid: Optional[str] = None
    status: Optional[str] = None
    title_html: Optional[str] = None
    excerpt_html: Optional[str] = None
    content_html: Optional[str] = None
    date: Optional[dt.datetime] = None
    updated_at: Optional[dt.datetime] = None
    category_ids: Tuple[int, ...] = ()
    tag_ids: Tuple[int, ...] = ()
    categories: Tuple[Category, ...] = ()
    tags: Tuple[Tag, ...] = ()
    featured_image: Optional[Media] = None
    featured_image_id: Optional[int] = None
    meta: Mapping[str, Any] = field(default_factory=dict, hash=False)
    meta_ids: Mapping[str, int] = field(default_factory=dict, hash=False, repr=False)

    def __post_init__(self):
        object.__setattr__(self, "meta", MappingProxyType(dict(self.meta)))
        object.__setattr__(self, "meta_ids", MappingProxyType(dict(self.meta_ids)))

    @classmethod
    def parse(cls, data: Dict[str, Any]) -> "Post":
        post_id = _require(data, "id", "Post")
        _require(data, "title", "Post")

        terms = [term for term in _flatten(_embedded(data, *TERM_RELS)) if isinstance(term, dict)]
        categories = tuple(Category.parse(t) for t in terms if t.get("taxonomy") == "category")
        tags = tuple(Tag.parse(t) for t in terms if t.get("taxonomy") in ("post_tag", "tag"))

        featured = [m for m in _flatten(_embedded(data, *FEATURED_MEDIA_RELS)) if isinstance(m, dict)]
        featured_image = Media.parse(featured[0]) if featured and "id" in featured[0] else None
        featured_image_id = data.get("featured_media") or data.get("featured_image")
        if featured_image is not None and not featured_image_id:
            featured_image_id = featured_image.id

        meta, meta_ids = _parse_metadata(post_id, _flatten(_embedded(data, META_REL)))

        return cls(
            id=post_id,
            slug=data.get("slug"),
            url=data.get("link"),
            guid=_rendered(data, "guid"),
            status=data.get("status"),
            title_html=_rendered(data, "title"),
            excerpt_html=_rendered(data, "excerpt"),
            content_html=_rendered(data, "content"),
            date=parse_date(data, "date"),
            updated_at=parse_date(data, "modified"),
            category_ids=tuple(data.get("categories") or (c.id for c in categories)),
            tag_ids=tuple(data.get("tags") or (t.id for t in tags)),
            categories=categories,
            tags=tags,
            featured_image=featured_image,
            featured_image_id=featured_image_id or None,
            meta=meta,
            meta_ids=meta_ids,
        )

    def meta_id_for(self, key: str) -> int:
        """Return the server-side ID of the metadata entry ``key``."""
        try:
            return self.meta_ids[key]
        except KeyError:
            raise ValueError(f"Post {self.id} has no metadata key {key!r}") from None

    def meta_entries(self) -> Dict[str, Tuple[Any, int]]:
        """Return metadata as ``key -> (value, entry id)``."""
        return {key: (value, self.meta_ids[key]) for key, value in self.meta.items()}


def _parse_metadata(post_id: int, entries: List[Any]) -> Tuple[Dict[str, Any], Dict[str, int]]:
    if len(entries) == 1 and isinstance(entries[0], dict) and entries[0].get("code") == "rest_forbidden":
        raise UnauthorizedError(
            f"Cannot embed metadata for post {post_id}; server reports: {entries[0].get('message')}"
        )
    meta: Dict[str, Any] = {}
    ids: Dict[str, int] = {}
    for entry in entries:
        key = _require(entry, "key", "Metadata")
        if key in ids:
            raise ServerError(f"Post {post_id} has several metadata entries for key {key!r}")
        meta[key] = entry.get("value")
        ids[key] = _require(entry, "id", "Metadata")
    return meta, ids
