"""Markdown conversion (mistune) and template rendering (Jinja2)."""

import logging

import mistune
from jinja2 import Environment, FileSystemLoader, TemplateNotFound, TemplateSyntaxError, TemplateError
from pygments import highlight
from pygments.formatters import HtmlFormatter
from pygments.lexers import get_lexer_by_name
from pygments.util import ClassNotFound

from .errors import TemplateRenderError
from .utils import slugify, format_date

logger = logging.getLogger('Inkpost.rendering')


class HighlightRenderer(mistune.HTMLRenderer):
    """HTML renderer that passes raw HTML through and highlights fenced code."""

    def __init__(self):
        super().__init__(escape=False)

    def block_code(self, code, info=None):
        lang = info.split(None, 1)[0] if info and info.strip() else None
        if lang:
            try:
                lexer = get_lexer_by_name(lang, stripall=False)
                return highlight(code, lexer, HtmlFormatter(cssclass='highlight'))
            except ClassNotFound:
                logger.debug(f"No lexer for '{lang}', rendering code block as plain text")
            css_class = f' class="language-{mistune.escape(lang)}"'
        else:
            css_class = ''
        return f'<pre><code{css_class}>{mistune.escape(code)}</code></pre>\n'


def create_markdown_parser():
    """Create a mistune markdown parser with the highlighting renderer."""
    return mistune.create_markdown(
        renderer=HighlightRenderer(),
        plugins=['table', 'task_lists', 'strikethrough', 'footnotes', 'url']
    )


class TemplateRenderer:
    """Jinja2 environment over a theme's templates directory."""

    def __init__(self, templates_dir):
        self.templates_dir = templates_dir
        self.env = Environment(loader=FileSystemLoader(templates_dir))
        self.env.filters['slugify'] = slugify
        self.env.filters['date'] = date_filter

    def render(self, template_name, **context):
        """Render a template; any Jinja2 failure aborts the build."""
        try:
            template = self.env.get_template(template_name)
        except TemplateNotFound:
            raise TemplateRenderError(template_name, f"not found in {self.templates_dir}")
        except TemplateSyntaxError as e:
            raise TemplateRenderError(template_name, f"syntax error on line {e.lineno}: {e.message}")

        try:
            return template.render(**context)
        except TemplateError as e:
            raise TemplateRenderError(template_name, str(e))


def date_filter(value, fmt='%Y-%m-%d'):
    """``{{ post.date | date }}`` or ``{{ post.date | date(fmt='%B %d, %Y') }}``"""
    if value is None:
        return ''
    return format_date(value, fmt)
