"""Pagination of list pages and grouping of posts into taxonomy / archive lists."""

from dataclasses import dataclass
from typing import List, Optional

from .context import NavLink
from .indexing import archive_key
from .utils import normalize_term

# Page ranges longer than this are compacted with ellipsis markers.
MAX_FULL_RANGE = 7
EDGE_PAGES = 3


@dataclass(frozen=True)
class PageLink:
    number: Optional[int]
    url: Optional[str]
    is_current: bool = False

    @classmethod
    def ellipsis(cls):
        return cls(number=None, url=None)

    @property
    def is_ellipsis(self):
        return self.number is None


@dataclass(frozen=True)
class Pagination:
    page_number: int
    per_page: int
    total_items: int
    total_pages: int
    has_prev: bool
    has_next: bool
    page_range: List[PageLink]
    prev_link: Optional[NavLink] = None
    next_link: Optional[NavLink] = None
    first_link: Optional[NavLink] = None
    last_link: Optional[NavLink] = None


def page_url(base_url, page_number):
    """Page 1 lives at the base URL, page N at ``<base>/page/N/``."""
    if page_number == 1:
        return base_url
    return f"{base_url.rstrip('/')}/page/{page_number}/"


def paginate(items, per_page):
    """
    Split items into 1-indexed pages.

    Returns a list of ``(page_number, items_on_page)``. ``per_page == 0``
    puts everything on one page; no items means no pages.
    """
    items = list(items)
    if not items:
        return []
    if per_page == 0:
        return [(1, items)]
    return [
        (index + 1, items[start:start + per_page])
        for index, start in enumerate(range(0, len(items), per_page))
    ]


def count_pages(per_page, total_items):
    if per_page == 0 or total_items == 0:
        return 1
    return (total_items + per_page - 1) // per_page


def build_page_range(base_url, current_page, total_pages):
    """
    Page numbers to show, always keeping the first and last three pages and a
    window of one page either side of the current one. Each gap becomes a
    single ellipsis marker.
    """
    if total_pages <= MAX_FULL_RANGE:
        numbers = list(range(1, total_pages + 1))
    else:
        shown = set(range(1, EDGE_PAGES + 1))
        shown.update(range(total_pages - EDGE_PAGES + 1, total_pages + 1))
        if EDGE_PAGES < current_page <= total_pages - EDGE_PAGES:
            shown.update(range(current_page - 1, current_page + 2))
        numbers = sorted(shown)

    page_range = []
    previous = None
    for number in numbers:
        if previous is not None and number - previous > 1:
            page_range.append(PageLink.ellipsis())
        page_range.append(PageLink(number, page_url(base_url, number), number == current_page))
        previous = number
    return page_range


def build_pagination(base_url, current_page, per_page, total_items):
    total_pages = count_pages(per_page, total_items)
    has_prev = current_page > 1
    has_next = current_page < total_pages

    prev_link = None
    if has_prev:
        prev_link = NavLink(title=f"Page {current_page - 1}", url=page_url(base_url, current_page - 1))

    next_link = None
    if has_next:
        next_link = NavLink(title=f"Page {current_page + 1}", url=page_url(base_url, current_page + 1))

    first_link = NavLink(title='First', url=base_url) if current_page > 1 else None
    last_link = None
    if current_page < total_pages:
        last_link = NavLink(title='Last', url=page_url(base_url, total_pages))

    if per_page == 0:
        page_range = [PageLink(1, base_url, True)]
    else:
        page_range = build_page_range(base_url, current_page, total_pages)

    return Pagination(
        page_number=current_page,
        per_page=total_items if per_page == 0 else per_page,
        total_items=total_items,
        total_pages=total_pages,
        has_prev=has_prev,
        has_next=has_next,
        page_range=page_range,
        prev_link=prev_link,
        next_link=next_link,
        first_link=first_link,
        last_link=last_link,
    )


def group_by_taxonomy(contexts, taxonomy_name):
    """
    Group post contexts by their matched terms in one taxonomy.

    Returns a dict of normalized term key to contexts, keys sorted, each list
    keeping the input order.
    """
    groups = {}
    for post in contexts:
        for entry in post.taxonomies.get(taxonomy_name, []):
            groups.setdefault(normalize_term(entry.key), []).append(post)
    return {key: groups[key] for key in sorted(groups)}


def group_by_archive(contexts, granularity):
    groups = {}
    for post in contexts:
        groups.setdefault(archive_key(post.date, granularity), []).append(post)
    return {key: groups[key] for key in sorted(groups, key=lambda k: (k.year, k.month or 0, k.day or 0))}
