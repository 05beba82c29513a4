"""
Content repository: scans ``posts/`` and ``pages/`` under the content root and
turns every markdown file into an immutable ContentSource.
"""

import os
import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

import yaml

from .errors import ContentIOError, MalformedFenceError, FrontMatterParseError, MissingFieldError
from .utils import EPOCH, parse_date, to_opaque, strip_date_prefix

logger = logging.getLogger('Inkpost.content')

IMAGE_EXTENSIONS = {
    '.png', '.jpg', '.jpeg', '.gif', '.webp', '.svg', '.avif', '.bmp', '.ico', '.tiff', '.tif'
}


class ContentKind(Enum):
    POST = 'post'
    PAGE = 'page'


CONTENT_SUBTREES = [('posts', ContentKind.POST), ('pages', ContentKind.PAGE)]


@dataclass(frozen=True)
class FrontMatter:
    title: str
    date: datetime = EPOCH
    slug: Optional[str] = None
    updated: Optional[datetime] = None
    draft: bool = False
    description: Optional[str] = None
    language: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)
    taxonomies: Optional[Dict[str, List[str]]] = None
    summary: Optional[str] = None
    thumbnail: Optional[str] = None

    @classmethod
    def from_mapping(cls, data, path):
        """Validate a parsed YAML mapping and build a FrontMatter from it."""
        title = data.get('title')
        if title is None or not str(title).strip():
            raise MissingFieldError(path, 'title')

        if 'date' in data and data['date'] is not None:
            date_value = _date_field(data['date'], path, 'date')
        else:
            logger.debug(f"No date in {path}, defaulting to {EPOCH.isoformat()}")
            date_value = EPOCH

        updated = data.get('updated')
        draft = data.get('draft', False)
        if not isinstance(draft, bool):
            raise FrontMatterParseError(path, f"expected true or false, got {draft!r}", field='draft')

        extra = data.get('extra') or {}
        if not isinstance(extra, dict):
            raise FrontMatterParseError(path, "expected a mapping", field='extra')
        try:
            extra = to_opaque(extra, 'extra')
        except ValueError as e:
            raise FrontMatterParseError(path, str(e), field='extra')

        return cls(
            title=str(title),
            date=date_value,
            slug=_slug_field(data.get('slug'), path),
            updated=_date_field(updated, path, 'updated') if updated is not None else None,
            draft=draft,
            description=_optional_str(data.get('description')),
            language=_optional_str(data.get('language')),
            extra=extra,
            taxonomies=_taxonomies_field(data.get('taxonomies'), path),
            summary=_optional_str(data.get('summary')),
            thumbnail=_optional_str(data.get('thumbnail')),
        )


@dataclass(frozen=True)
class ContentSource:
    kind: ContentKind
    identifier: str
    source_path: str
    front_matter: FrontMatter
    body: str
    source_mtime: Optional[float] = None
    images: Tuple[str, ...] = ()


def _optional_str(value):
    if value is None:
        return None
    return str(value)


def _slug_field(value, path):
    slug = _optional_str(value)
    if slug is not None and ('/' in slug or '\\' in slug or slug in ('.', '..')):
        raise FrontMatterParseError(path, f"slug must be a single path segment, got {slug!r}", field='slug')
    return slug


def _date_field(value, path, field_name):
    try:
        return parse_date(value)
    except ValueError as e:
        raise FrontMatterParseError(path, str(e), field=field_name)


def _taxonomies_field(value, path):
    if value is None:
        return None
    if not isinstance(value, dict):
        raise FrontMatterParseError(path, "expected a mapping of taxonomy name to terms", field='taxonomies')

    taxonomies = {}
    for name, terms in value.items():
        if terms is None:
            terms = []
        elif isinstance(terms, (str, int, float)):
            terms = [terms]
        elif not isinstance(terms, list):
            raise FrontMatterParseError(path, f"expected a list of terms for '{name}'", field='taxonomies')
        taxonomies[str(name)] = [str(term) for term in terms if term is not None]
    return taxonomies


def split_front_matter(text, path):
    """
    Split a content file into its YAML block and markdown body.

    The first line must be ``---`` and a later line must close the block.
    Everything after the closing fence is the body.
    """
    lines = text.lstrip('\ufeff').split('\n')
    if lines[-1] == '':
        lines.pop()
    lines = [line[:-1] if line.endswith('\r') else line for line in lines]
    if not lines or lines[0].strip() != '---':
        raise MalformedFenceError(path)

    for index in range(1, len(lines)):
        if lines[index].strip() == '---':
            yaml_text = '\n'.join(lines[1:index])
            body = '\n'.join(lines[index + 1:])
            return yaml_text, body

    raise MalformedFenceError(path)


def parse_front_matter(yaml_text, path):
    try:
        data = yaml.safe_load(yaml_text)
    except yaml.YAMLError as e:
        raise FrontMatterParseError(path, str(e))
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise FrontMatterParseError(path, "front matter must be a YAML mapping")
    return FrontMatter.from_mapping(data, path)


def make_identifier(content_root, file_path):
    """Stable id: path relative to the content root, '/'-separated, no .md."""
    rel_path = os.path.relpath(file_path, content_root).replace(os.sep, '/')
    if rel_path.endswith('.md'):
        rel_path = rel_path[:-3]
    return rel_path


def is_image(file_path):
    return os.path.splitext(file_path)[1].lower() in IMAGE_EXTENSIONS


def list_content_files(directory):
    """
    Collect markdown files and image files under one content subtree.

    Returns two lists sorted by path. Folders only count when they hold an
    ``index.md``; their images are listed alongside the loose ones.
    """
    md_files = []
    image_files = []
    if not os.path.isdir(directory):
        return md_files, image_files

    try:
        entries = sorted(os.listdir(directory))
    except OSError as e:
        raise ContentIOError(directory, e)

    for name in entries:
        path = os.path.join(directory, name)
        if os.path.isdir(path):
            index_md = os.path.join(path, 'index.md')
            if not os.path.isfile(index_md):
                continue
            md_files.append(index_md)
            try:
                sub_entries = sorted(os.listdir(path))
            except OSError as e:
                raise ContentIOError(path, e)
            for sub_name in sub_entries:
                sub_path = os.path.join(path, sub_name)
                if os.path.isfile(sub_path) and is_image(sub_path):
                    image_files.append(sub_path)
        elif os.path.isfile(path):
            if name.endswith('.md'):
                md_files.append(path)
            elif is_image(path):
                image_files.append(path)

    md_files.sort()
    image_files.sort()
    return md_files, image_files


def associate_images(md_path, front_matter, all_images):
    """
    Pick the images that belong to one content file.

    ``<name>/index.md`` owns every image in its folder. A flattened
    ``<date>-<slug>.md`` owns images in the same directory named
    ``<slug>-*`` or ``<date>-<slug>-*`` (case-insensitive).
    """
    parent_dir = os.path.dirname(md_path)
    siblings = [img for img in all_images if os.path.dirname(img) == parent_dir]

    if os.path.basename(md_path) == 'index.md':
        return siblings

    date_prefix = front_matter.date.strftime('%Y-%m-%d')
    if front_matter.slug:
        slug = front_matter.slug.lower()
    else:
        stem = os.path.splitext(os.path.basename(md_path))[0].lower()
        if stem.startswith(date_prefix):
            stem = stem[len(date_prefix):].lstrip('-')
        slug = strip_date_prefix(stem)

    prefixes = (f"{slug}-", f"{date_prefix}-{slug}-")
    return [img for img in siblings if os.path.basename(img).lower().startswith(prefixes)]


def read_file(path):
    try:
        with open(path, 'r', encoding='utf-8') as f:
            return f.read()
    except (IOError, OSError, UnicodeDecodeError) as e:
        raise ContentIOError(path, e)


def load_content_file(path, content_root, kind, all_images):
    raw = read_file(path)
    yaml_text, body = split_front_matter(raw, path)
    front_matter = parse_front_matter(yaml_text, path)

    try:
        mtime = os.path.getmtime(path)
    except OSError:
        mtime = None

    return ContentSource(
        kind=kind,
        identifier=make_identifier(content_root, path),
        source_path=path,
        front_matter=front_matter,
        body=body,
        source_mtime=mtime,
        images=tuple(associate_images(path, front_matter, all_images)),
    )


def load_all_contents(content_root):
    """
    Load every post and page under ``content_root``.

    Posts come first, then pages, each in path order. The first file that
    fails to load aborts the whole pass.
    """
    contents = []
    for subdir, kind in CONTENT_SUBTREES:
        md_files, image_files = list_content_files(os.path.join(content_root, subdir))
        for md_file in md_files:
            source = load_content_file(md_file, content_root, kind, image_files)
            logger.debug(f"Loaded {source.identifier} ({len(source.images)} image(s))")
            contents.append(source)
    return contents
