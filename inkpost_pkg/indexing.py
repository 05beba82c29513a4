"""
Site-wide indices built from the complete post set.

Both indices must be built once, from every post, before any per-content
context is assembled: per-post taxonomy links and archive listings are views
onto these indices.
"""

import logging
from collections import namedtuple
from dataclasses import dataclass
from typing import Optional

from .settings import Granularity
from .utils import normalize_term, slugify

logger = logging.getLogger('Inkpost.indexing')

ArchiveKey = namedtuple('ArchiveKey', ['year', 'month', 'day'])


@dataclass(frozen=True)
class TaxonomyEntry:
    key: str
    label: str
    permalink: str
    post_count: int

    @property
    def slug(self):
        return slugify(self.key)


@dataclass(frozen=True)
class ArchiveEntry:
    label: str
    granularity: Granularity
    year: int
    month: Optional[int]
    day: Optional[int]
    permalink: str
    post_count: int


def build_taxonomy_index(posts, taxonomy_configs):
    """
    Count every enabled taxonomy's terms across all posts.

    Returns a dict of taxonomy name to TaxonomyEntry list, most used first.
    A term listed twice by one post (in any casing) counts once for that post.
    """
    index = {}
    for config in taxonomy_configs:
        if not config.enabled:
            continue
        index[config.name] = _build_single_taxonomy(posts, config.name, config.permalink)
        logger.debug(f"Taxonomy '{config.name}': {len(index[config.name])} term(s)")
    return index


def _build_single_taxonomy(posts, taxonomy_name, permalink):
    labels = {}
    counts = {}

    for post in posts:
        terms = (post.front_matter.taxonomies or {}).get(taxonomy_name, [])
        seen = set()
        for term in terms:
            key = normalize_term(term)
            if not key or key in seen:
                continue
            seen.add(key)
            labels.setdefault(key, term.strip())
            counts[key] = counts.get(key, 0) + 1

    entries = [
        TaxonomyEntry(
            key=key,
            label=labels[key],
            permalink=permalink.replace(':slug', slugify(key)),
            post_count=count,
        )
        for key, count in counts.items()
    ]
    entries.sort(key=lambda entry: (-entry.post_count, entry.key))

    claimed = {}
    for entry in entries:
        other = claimed.setdefault(entry.permalink, entry)
        if other is not entry:
            logger.warning(
                f"Terms '{other.label}' and '{entry.label}' of taxonomy '{taxonomy_name}' "
                f"share the permalink {entry.permalink}; only one list page will be kept"
            )
    return entries


def archive_key(date_value, granularity):
    """Truncate a date to the bucket it falls in for ``granularity``."""
    if granularity is Granularity.YEARLY:
        return ArchiveKey(date_value.year, None, None)
    if granularity is Granularity.MONTHLY:
        return ArchiveKey(date_value.year, date_value.month, None)
    return ArchiveKey(date_value.year, date_value.month, date_value.day)


def archive_permalink(pattern, key):
    url = pattern.replace(':year', f"{key.year:04d}")
    if key.month is not None:
        url = url.replace(':month', f"{key.month:02d}")
    if key.day is not None:
        url = url.replace(':day', f"{key.day:02d}")
    return url


def archive_label(key):
    label = f"{key.year:04d}"
    if key.month is not None:
        label += f"-{key.month:02d}"
    if key.day is not None:
        label += f"-{key.day:02d}"
    return label


def _newest_first(key):
    return (key.year, key.month or 0, key.day or 0)


def build_archive_index(posts, archive_configs):
    """
    Bucket posts by date for every configured archive granularity.

    One list across all granularities, in config order; each granularity's
    block is sorted newest first.
    """
    archives = []
    for config in archive_configs:
        counts = {}
        for post in posts:
            key = archive_key(post.front_matter.date, config.granularity)
            counts[key] = counts.get(key, 0) + 1

        for key in sorted(counts, key=_newest_first, reverse=True):
            archives.append(ArchiveEntry(
                label=archive_label(key),
                granularity=config.granularity,
                year=key.year,
                month=key.month,
                day=key.day,
                permalink=archive_permalink(config.permalink, key),
                post_count=counts[key],
            ))
    return archives
