"""Test configuration and fixtures for Inkpost tests."""

import pytest
import tempfile
import shutil
import os
from pathlib import Path
from datetime import datetime, timezone
import yaml

import sys
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from inkpost_pkg.content import ContentKind, ContentSource, FrontMatter


SITE_CONFIG = {
    'site': {
        'name': 'Test Blog',
        'base_url': 'https://example.com',
        'description': 'A blog for tests',
        'language': 'en',
    },
    'author': {
        'name': 'Jane Doe',
        'email': 'jane@example.com',
    },
    'theme': {
        'name': 'test-theme',
    },
    'permalinks': {
        'post': '/:year/:month/:slug/',
        'page': '/:slug/',
    },
    'build': {
        'output_dir': 'public',
    },
}

THEME_MANIFEST = {
    'meta': {
        'name': 'test-theme',
        'version': '1.0.0',
        'author': 'Tester',
    },
    'template_default': {
        'home': 'home.html',
        'list': 'list.html',
        'post': 'post.html',
        'page': 'page.html',
    },
    'template_extra': [
        {'file': '404.html', 'url': '/', 'output': '404.html'},
    ],
    'pagination': {'default': 2},
    'taxonomies': [
        {'name': 'tags', 'label': 'Tag', 'permalink': '/tags/:slug/'},
        {'name': 'categories', 'label': 'Category', 'permalink': '/categories/:slug/', 'per_page': 10},
    ],
    'archives': [
        {'kind': 'Monthly', 'permalink': '/archives/:year/:month/'},
        {'kind': 'Yearly', 'permalink': '/archives/:year/'},
    ],
    'recent_posts': {'count': 2},
    'tagline': 'Just testing',
}

TEMPLATES = {
    'home.html': (
        "<title>{{ site.title }}</title>"
        "{% if home %}<h1>{{ home.title }}</h1>{% endif %}"
        "<p class=\"tagline\">{{ site.theme.tagline }}</p>"
        "{% for p in list.posts %}<li><a href=\"{{ p.url }}\">{{ p.title }}</a></li>{% endfor %}"
        "<span class=\"page\">{{ list.pagination.page_number }}/{{ list.pagination.total_pages }}</span>"
    ),
    'list.html': (
        "<h1>{{ list.title }}</h1>"
        "{% for p in list.posts %}<li><a href=\"{{ p.url }}\">{{ p.title }}</a></li>{% endfor %}"
        "<span class=\"page\">{{ list.pagination.page_number }}/{{ list.pagination.total_pages }}</span>"
    ),
    'post.html': (
        "<h1>{{ post.title }}</h1>"
        "<time>{{ post.date | date }}</time>"
        "{% for name, terms in post.taxonomies.items() %}{% for t in terms %}"
        "<a class=\"term\" href=\"{{ t.permalink }}\">{{ t.label }}</a>"
        "{% endfor %}{% endfor %}"
        "{% if post.prev %}<a class=\"prev\" href=\"{{ post.prev.url }}\">{{ post.prev.title }}</a>{% endif %}"
        "{% if post.next %}<a class=\"next\" href=\"{{ post.next.url }}\">{{ post.next.title }}</a>{% endif %}"
        "{% if post.thumbnail %}<img src=\"{{ post.thumbnail }}\">{% endif %}"
        "{{ post.content_html | safe }}"
    ),
    'page.html': "<h1>{{ page.title }}</h1>{{ page.content_html | safe }}",
    '404.html': "<h1>Not found - {{ site.title }}</h1>",
}

POSTS = {
    '2024-01-15-first-post.md': """---
title: First Post
date: 2024-01-15
taxonomies:
  tags: [Rust, Web]
  categories: [Programming]
summary: The very first post.
---

# Hello

This is the **first** post.
""",
    '2024-02-10-second-post.md': """---
title: Second Post
date: 2024-02-10
taxonomies:
  tags: [Rust]
summary: Second summary
---

Second body.
""",
    '2024-04-01-draft-post.md': """---
title: Draft Post
date: 2024-04-01
draft: true
---

Not ready yet.
""",
}

THIRD_POST = """---
title: Third Post
date: 2024-03-05
thumbnail: ./cover.png
taxonomies:
  tags: [Python]
---

Third body with a picture.
"""

ABOUT_PAGE = """---
title: About
---

About this blog.
"""


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests."""
    temp_dir = tempfile.mkdtemp()
    yield temp_dir
    shutil.rmtree(temp_dir, ignore_errors=True)


@pytest.fixture
def write_content():
    """Return a helper that writes a markdown file with the given front matter and body."""
    def _write(path, front_matter, body=''):
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        header = yaml.safe_dump(front_matter, sort_keys=False, allow_unicode=True)
        path.write_text(f"---\n{header}---\n{body}", encoding='utf-8')
        return str(path)
    return _write


@pytest.fixture
def mock_theme_dir(temp_dir):
    """Create a theme with a manifest, templates and assets."""
    theme_dir = Path(temp_dir) / 'themes' / 'test-theme'
    templates_dir = theme_dir / 'templates'
    templates_dir.mkdir(parents=True)
    (theme_dir / 'theme.yaml').write_text(yaml.safe_dump(THEME_MANIFEST, sort_keys=False))

    for name, source in TEMPLATES.items():
        (templates_dir / name).write_text(source)

    css_dir = theme_dir / 'assets' / 'css'
    js_dir = theme_dir / 'assets' / 'js'
    css_dir.mkdir(parents=True)
    js_dir.mkdir(parents=True)
    (css_dir / 'style.css').write_text("body {\n    color: red;\n}\n")
    (js_dir / 'app.js').write_text("function hello() {\n    return 1;\n}\n")

    return str(theme_dir)


@pytest.fixture
def mock_content_dir(temp_dir):
    """Create a content tree with three published posts, a draft and a page."""
    content_dir = Path(temp_dir) / 'content'
    posts_dir = content_dir / 'posts'
    pages_dir = content_dir / 'pages'
    posts_dir.mkdir(parents=True)
    pages_dir.mkdir(parents=True)

    for name, text in POSTS.items():
        (posts_dir / name).write_text(text)

    third_dir = posts_dir / 'third-post'
    third_dir.mkdir()
    (third_dir / 'index.md').write_text(THIRD_POST)
    (third_dir / 'cover.png').write_bytes(b'\x89PNG fake')

    (pages_dir / 'about.md').write_text(ABOUT_PAGE)

    (content_dir / 'images').mkdir()
    (content_dir / 'images' / 'logo.png').write_bytes(b'\x89PNG logo')
    (content_dir / 'data').mkdir()
    (content_dir / 'data' / 'info.json').write_text('{"ok": true}')

    return str(content_dir)


@pytest.fixture
def mock_project(temp_dir, mock_theme_dir, mock_content_dir):
    """Create a complete project: inkpost.yml, a theme and content."""
    config_path = Path(temp_dir) / 'inkpost.yml'
    config_path.write_text(yaml.safe_dump(SITE_CONFIG, sort_keys=False))
    return temp_dir


@pytest.fixture
def make_source():
    """Return a factory for in-memory post sources."""
    def _make(title, date=None, taxonomies=None, kind=ContentKind.POST, identifier=None, **fields):
        front_matter = FrontMatter(
            title=title,
            date=date or datetime(2024, 1, 1, tzinfo=timezone.utc),
            taxonomies=taxonomies,
            **fields
        )
        return ContentSource(
            kind=kind,
            identifier=identifier or f"posts/{title.lower().replace(' ', '-')}",
            source_path=f"/tmp/{title}.md",
            front_matter=front_matter,
            body=f"Body of {title}",
        )
    return _make
