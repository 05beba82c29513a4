"""
Inkpost - A static blog generator.

Inkpost reads markdown posts and pages with YAML front matter, indexes them by
taxonomy term and by date, and renders a paginated, cross-linked site through
Jinja2 theme templates, along with an RSS feed, a sitemap and robots.txt.
"""

__version__ = "1.0.0"
__author__ = "Inkpost Contributors"

from .core import Inkpost
from .errors import InkpostError

__all__ = ['Inkpost', 'InkpostError']
