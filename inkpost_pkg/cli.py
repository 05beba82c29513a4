#!/usr/bin/env python3
"""
Command-line interface for Inkpost - static blog generator.
"""

import os
import sys
import argparse
from datetime import datetime
from typing import Any, Dict, Optional

import yaml

from . import __version__
from .core import Inkpost
from .errors import InkpostError, OutputError, ProjectNotFoundError
from .settings import InkpostSettings
from .utils import slugify


def _require_project(project_root: str) -> None:
    if not InkpostSettings(project_root)._find_config_file():
        raise ProjectNotFoundError(project_root)


def _write_new_content(path: str, front_matter: Dict[str, Any], body: str) -> str:
    if os.path.exists(path):
        raise OutputError(path, "File already exists")

    header = yaml.safe_dump(front_matter, sort_keys=False, allow_unicode=True)
    try:
        os.makedirs(os.path.dirname(path), exist_ok=True)
        with open(path, 'w', encoding='utf-8') as f:
            f.write(f"---\n{header}---\n\n{body}\n")
    except OSError as e:
        raise OutputError(path, e)
    return path


def create_new_post(project_root: str, title: str, now: Optional[datetime] = None) -> str:
    """Create ``content/posts/YYYY-MM-DD-<title>.md`` with a front matter skeleton."""
    _require_project(project_root)
    now = now or datetime.now().astimezone()

    filename = f"{now.strftime('%Y-%m-%d')}-{title.replace(' ', '-')}.md"
    path = os.path.join(project_root, 'content', 'posts', filename)
    front_matter = {
        'title': title,
        'slug': slugify(title),
        'date': now.isoformat(timespec='seconds'),
        'taxonomies': {
            'categories': ['Uncategorized'],
            'tags': ['tag1', 'tag2'],
        },
        'summary': 'Write a brief summary of your post here.',
        'thumbnail': '',
        'draft': False,
    }
    return _write_new_content(path, front_matter, "Write your post content here.")


def create_new_page(project_root: str, title: str, now: Optional[datetime] = None) -> str:
    """Create ``content/pages/<title>.md`` with a front matter skeleton."""
    _require_project(project_root)
    now = now or datetime.now().astimezone()

    path = os.path.join(project_root, 'content', 'pages', f"{title.replace(' ', '-')}.md")
    front_matter = {
        'title': title,
        'slug': slugify(title),
        'date': now.isoformat(timespec='seconds'),
        'draft': False,
    }
    return _write_new_content(path, front_matter, "Write your page content here.")


def build_overrides(args: argparse.Namespace) -> Dict[str, Any]:
    """Map command line flags onto ``section.key`` settings; unset flags stay None."""
    return {
        'build.output_dir': args.output,
        'build.include_drafts': True if args.include_drafts else None,
        'build.rss': False if args.no_rss else None,
        'build.sitemap': False if args.no_sitemap else None,
        'build.robots_txt': False if args.no_robots else None,
        'build.minify': True if args.minify else None,
    }


def create_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='Build a static blog from markdown content.')
    parser.add_argument('--root', type=str, default='.',
                        help='Project directory containing inkpost.yml (default: current directory)')
    parser.add_argument('--output', type=str,
                        help='Output directory, relative to the project root')
    parser.add_argument('--include-drafts', action='store_true',
                        help='Render content marked as draft')
    parser.add_argument('--no-rss', action='store_true',
                        help='Skip rss.xml')
    parser.add_argument('--no-sitemap', action='store_true',
                        help='Skip sitemap.xml')
    parser.add_argument('--no-robots', action='store_true',
                        help='Skip robots.txt')
    parser.add_argument('--minify', action='store_true',
                        help='Minify CSS and JS assets')
    parser.add_argument('--verbose', action='store_true',
                        help='Show every log message on the console')
    parser.add_argument('--new-post', type=str, metavar='TITLE',
                        help='Create a new post and exit')
    parser.add_argument('--new-page', type=str, metavar='TITLE',
                        help='Create a new page and exit')
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')
    return parser


def main(argv=None) -> None:
    """Main CLI entry point."""
    args = create_parser().parse_args(argv)

    try:
        if args.new_post:
            path = create_new_post(args.root, args.new_post)
            print(f"Created post: {path}")
            return
        if args.new_page:
            path = create_new_page(args.root, args.new_page)
            print(f"Created page: {path}")
            return

        generator = Inkpost(args.root, overrides=build_overrides(args), verbose=args.verbose)
        generator.build()

    except InkpostError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == '__main__':
    main()
