"""
Render-ready contexts.

Content contexts are derived from a ContentSource plus the site-wide indices;
list and site contexts wrap them for the templates. Nothing here touches the
filesystem.
"""

import logging
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from .content import ContentKind
from .utils import normalize_term, slugify

logger = logging.getLogger('Inkpost.context')


@dataclass(frozen=True)
class NavLink:
    title: str
    url: str


@dataclass(frozen=True)
class ContentContext:
    """Fields shared by every rendered content item."""
    kind: ContentKind
    identifier: str
    title: str
    url: str
    date: datetime
    content_html: str
    description: Optional[str] = None
    language: Optional[str] = None
    updated: Optional[datetime] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_post(self):
        return self.kind is ContentKind.POST


@dataclass(frozen=True)
class PostContext(ContentContext):
    """A post: adds taxonomy links, summary, thumbnail and prev/next navigation."""
    taxonomies: Dict[str, list] = field(default_factory=dict)
    summary: Optional[str] = None
    thumbnail: Optional[str] = None
    prev: Optional[NavLink] = None
    next: Optional[NavLink] = None


@dataclass(frozen=True)
class PostListItem:
    title: str
    url: str
    date: datetime
    taxonomies: Dict[str, list]
    summary: Optional[str] = None
    thumbnail: Optional[str] = None


@dataclass(frozen=True)
class ListKind:
    """Which list a ListContext renders: ``home``, ``taxonomy`` or ``archive``."""
    type: str
    name: Optional[str] = None
    slug: Optional[str] = None
    year: Optional[int] = None
    month: Optional[int] = None
    day: Optional[int] = None

    @classmethod
    def home(cls):
        return cls('home')

    @classmethod
    def taxonomy(cls, name, slug):
        return cls('taxonomy', name=name, slug=slug)

    @classmethod
    def archive(cls, key):
        return cls('archive', year=key.year, month=key.month, day=key.day)


@dataclass(frozen=True)
class ListContext:
    title: str
    url: str
    list_kind: ListKind
    posts: List[PostListItem]
    pagination: Any
    description: Optional[str] = None


@dataclass(frozen=True)
class SiteContext:
    title: str
    base_url: str
    path: str
    description: str
    language: str
    author: Optional[str]
    email: Optional[str]
    taxonomies: Dict[str, list]
    archives: list
    recent_posts: List[PostListItem]
    theme: Dict[str, Any]


def build_permalink(pattern, date_value, slug):
    return (pattern.replace(':year', f"{date_value.year:04d}")
                   .replace(':month', f"{date_value.month:02d}")
                   .replace(':day', f"{date_value.day:02d}")
                   .replace(':slug', slug))


def content_slug(front_matter):
    return front_matter.slug or slugify(front_matter.title)


def resolve_thumbnail(thumbnail, url):
    """``./x`` and ``x`` are relative to the content's URL, ``/x`` is kept as is."""
    if thumbnail.startswith('./'):
        return url + thumbnail[2:]
    if thumbnail.startswith('/'):
        return thumbnail
    return url + thumbnail


def resolve_taxonomies(source, taxonomy_index):
    """
    Match a post's front matter terms against the site-wide index.

    The result only ever holds entries taken from ``taxonomy_index``; terms
    without a site entry are dropped.
    """
    resolved = {}
    for taxonomy_name, terms in (source.front_matter.taxonomies or {}).items():
        site_entries = taxonomy_index.get(taxonomy_name)
        if site_entries is None:
            logger.warning(f"{source.identifier}: taxonomy '{taxonomy_name}' is not configured, ignoring its terms")
            continue

        by_key = {entry.key: entry for entry in site_entries}
        matched = []
        for term in terms:
            entry = by_key.get(normalize_term(term))
            if entry is None:
                logger.warning(f"{source.identifier}: term '{term}' not found in taxonomy '{taxonomy_name}'")
                continue
            if entry not in matched:
                matched.append(entry)

        if matched:
            resolved[taxonomy_name] = matched
    return resolved


def assemble_context(source, taxonomy_index, permalinks, render_markdown):
    fm = source.front_matter
    url = build_permalink(permalinks[source.kind], fm.date, content_slug(fm))
    shared = dict(
        kind=source.kind,
        identifier=source.identifier,
        title=fm.title,
        url=url,
        date=fm.date,
        content_html=render_markdown(source.body),
        description=fm.description,
        language=fm.language,
        updated=fm.updated,
        extra=fm.extra,
    )

    if source.kind is ContentKind.PAGE:
        if fm.taxonomies:
            logger.debug(f"{source.identifier}: pages do not take taxonomies, ignoring them")
        return ContentContext(**shared)

    return PostContext(
        taxonomies=resolve_taxonomies(source, taxonomy_index),
        summary=fm.summary,
        thumbnail=resolve_thumbnail(fm.thumbnail, url) if fm.thumbnail else None,
        **shared
    )


def assemble_contexts(sources, taxonomy_index, permalinks, render_markdown: Callable[[str], str]):
    """
    Turn loaded sources into render-ready contexts, one per source, in order.

    Args:
        sources: ContentSource items, already filtered and sorted
        taxonomy_index: Result of ``build_taxonomy_index`` over all posts
        permalinks: Mapping of ContentKind to permalink pattern
        render_markdown: Markdown-to-HTML converter

    Returns:
        List of ContentContext (PostContext for posts)
    """
    return [assemble_context(source, taxonomy_index, permalinks, render_markdown) for source in sources]


def link_prev_next(contexts):
    """
    Chain posts sorted newest first: ``prev`` is the next older post and
    ``next`` the next newer one. Returns new contexts; the input is untouched.
    """
    linked = []
    last = len(contexts) - 1
    for i, post in enumerate(contexts):
        prev_link = None
        next_link = None
        if i < last:
            prev_link = NavLink(title=contexts[i + 1].title, url=contexts[i + 1].url)
        if i > 0:
            next_link = NavLink(title=contexts[i - 1].title, url=contexts[i - 1].url)
        linked.append(replace(post, prev=prev_link, next=next_link))
    return linked


def build_post_list_item(post):
    return PostListItem(
        title=post.title,
        url=post.url,
        date=post.date,
        taxonomies=post.taxonomies,
        summary=post.summary,
        thumbnail=post.thumbnail,
    )


def build_site_context(config, manifest, taxonomy_index, archive_index, post_contexts):
    recent = [build_post_list_item(post) for post in post_contexts[:manifest.recent_posts]]
    return SiteContext(
        title=config.name,
        base_url=config.base_url,
        path=config.path,
        description=config.description,
        language=config.language,
        author=config.author_name or None,
        email=config.author_email or None,
        taxonomies=taxonomy_index,
        archives=archive_index,
        recent_posts=recent,
        theme=manifest.values,
    )


def build_list_context(title, url, list_kind, posts, pagination):
    return ListContext(
        title=title,
        url=url,
        list_kind=list_kind,
        posts=posts,
        pagination=pagination,
    )
