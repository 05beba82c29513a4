import os
import time
import shutil
import logging
from datetime import datetime

import csscompressor
import rjsmin

from .content import ContentKind, load_all_contents
from .context import (
    ListKind, assemble_contexts, link_prev_next, build_post_list_item,
    build_site_context, build_list_context,
)
from .errors import ConfigError, OutputError
from .feeds import generate_rss, generate_sitemap, generate_robots
from .indexing import build_taxonomy_index, build_archive_index, archive_permalink, archive_label
from .pagination import paginate, build_pagination, page_url, group_by_taxonomy, group_by_archive
from .rendering import TemplateRenderer, create_markdown_parser
from .settings import InkpostSettings, SiteConfig, ThemePackage

REDIRECT_TEMPLATE = """<!DOCTYPE html>
<html>
<head>
    <meta charset="utf-8">
    <meta http-equiv="refresh" content="0;url={url}">
    <link rel="canonical" href="{url}">
    <title>Redirecting...</title>
</head>
<body>
    <p>Redirecting to <a href="{url}">{url}</a>...</p>
</body>
</html>"""


class InfoFilter(logging.Filter):
    """Filter to allow only selected INFO messages (and every warning) to be shown in the console."""
    def filter(self, record):
        if record.levelno >= logging.WARNING:
            return True
        allowed_messages = [
            "Building '",
            "Cleaning output directory",
            "content(s) loaded",
            "Copied ",
            "Minified ",
            "Generating RSS feed",
            "Generating XML sitemap",
            "Generating robots.txt",
            "Site build completed in",
            "Total posts generated:",
            "Total pages generated:",
            "Total list pages generated:",
        ]
        return any(msg in record.getMessage() for msg in allowed_messages)


class Inkpost:
    """
    Builds one site: loads the configuration and theme of ``project_root``
    and renders everything under ``content/`` into the output directory.
    """

    def __init__(self, project_root='.', overrides=None, verbose=False):
        self.project_root = os.path.abspath(project_root)
        self.verbose = verbose
        self.posts_generated = 0
        self.pages_generated = 0
        self.lists_generated = 0

        settings_loader = InkpostSettings(self.project_root)
        settings_loader.load_settings()
        settings = settings_loader.merge_with_args(overrides or {})
        try:
            self.config = SiteConfig.from_settings(settings)
        except KeyError as e:
            raise ConfigError(settings_loader.config_file_path, f"Missing setting {e}")
        except (TypeError, ValueError) as e:
            raise ConfigError(settings_loader.config_file_path, str(e))

        self.setup_logging()

        self.content_dir = os.path.join(self.project_root, 'content')
        self.output_dir = os.path.join(self.project_root, os.path.expanduser(self.config.output_dir))
        self.theme = ThemePackage.load(os.path.join(self.project_root, 'themes', self.config.theme_name))
        self.renderer = TemplateRenderer(self.theme.templates_dir)
        self.markdown_parser = self.create_markdown_parser()

    def create_markdown_parser(self):
        return create_markdown_parser()

    def markdown_filter(self, text):
        """Convert markdown text to HTML."""
        return self.markdown_parser(text)

    def setup_logging(self):
        """Set up logging configuration."""
        self.logger = logging.getLogger('Inkpost')
        self.logger.setLevel(logging.DEBUG)

        for handler in list(self.logger.handlers):
            self.logger.removeHandler(handler)
            handler.close()

        # Console handler with filter
        console_handler = logging.StreamHandler()
        if self.verbose:
            console_handler.setLevel(logging.DEBUG)
        else:
            console_handler.setLevel(logging.INFO)
            console_handler.addFilter(InfoFilter())
        console_handler.setFormatter(logging.Formatter('%(message)s'))
        self.logger.addHandler(console_handler)

        # File handler for all logs
        if self.config.log_dir:
            logs_dir = os.path.join(self.project_root, self.config.log_dir)
            os.makedirs(logs_dir, exist_ok=True)
            log_filename = datetime.now().strftime('inkpost_%Y-%m-%d_%H-%M-%S.log')

            file_handler = logging.FileHandler(os.path.join(logs_dir, log_filename), encoding='utf-8')
            file_handler.setLevel(logging.DEBUG)
            file_handler.setFormatter(logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s'))
            self.logger.addHandler(file_handler)

    def build(self):
        """
        Run the whole pipeline. Every stage finishes before the next starts and
        the first error aborts the build; output already written stays in place.
        """
        start_time = time.time()
        manifest = self.theme.manifest
        self.logger.info(f"Building '{self.config.name}' with theme '{self.theme.name}'")

        self.prepare_output_dir()

        sources = load_all_contents(self.content_dir)
        self.logger.info(f"{len(sources)} content(s) loaded")

        selected = [s for s in sources if self.config.include_drafts or not s.front_matter.draft]
        posts = sorted(
            (s for s in selected if s.kind is ContentKind.POST),
            key=lambda s: s.front_matter.date,
            reverse=True,
        )
        pages = sorted(
            (s for s in selected if s.kind is ContentKind.PAGE),
            key=lambda s: s.front_matter.title,
        )
        self.logger.debug(f"{len(posts)} post(s) and {len(pages)} page(s) to render")

        taxonomy_index = build_taxonomy_index(posts, manifest.taxonomies)
        archive_index = build_archive_index(posts, manifest.archives)

        permalinks = {
            ContentKind.POST: self.config.post_permalink,
            ContentKind.PAGE: self.config.page_permalink,
        }
        post_contexts = link_prev_next(
            assemble_contexts(posts, taxonomy_index, permalinks, self.markdown_filter)
        )
        page_contexts = assemble_contexts(pages, taxonomy_index, permalinks, self.markdown_filter)

        site = build_site_context(self.config, manifest, taxonomy_index, archive_index, post_contexts)

        self.posts_generated = self.render_contents(manifest.post_template, 'post', post_contexts, posts, site)
        self.pages_generated = self.render_contents(manifest.page_template, 'page', page_contexts, pages, site)

        self.render_taxonomy_lists(post_contexts, taxonomy_index, site)
        self.render_archive_lists(post_contexts, site)
        self.lists_generated += self.render_list(
            manifest.home_template, post_contexts, '/', manifest.per_page, 'Home', site, ListKind.home()
        )

        self.render_extra_templates(site)
        self.copy_static_files()
        if self.config.minify:
            self.minify_assets()

        if self.config.rss:
            self.logger.info("Generating RSS feed")
            self.write_file('/', 'rss.xml', generate_rss(self.config, site, post_contexts))
        if self.config.sitemap:
            self.logger.info("Generating XML sitemap")
            self.write_file('/', 'sitemap.xml', generate_sitemap(site, post_contexts, page_contexts))
        if self.config.robots_txt:
            self.logger.info("Generating robots.txt")
            self.write_file('/', 'robots.txt', generate_robots(site.base_url))

        total_time = time.time() - start_time
        self.logger.info(f"Site build completed in {total_time:.6f} seconds.")
        self.logger.info(f"Total posts generated: {self.posts_generated}")
        self.logger.info(f"Total pages generated: {self.pages_generated}")
        self.logger.info(f"Total list pages generated: {self.lists_generated}")

    def prepare_output_dir(self):
        """Remove a previous build (recognised by its index.html) when cleaning is on."""
        if (self.config.clean and os.path.isdir(self.output_dir)
                and os.path.isfile(os.path.join(self.output_dir, 'index.html'))):
            self.logger.info(f"Cleaning output directory {self.output_dir}")
            try:
                shutil.rmtree(self.output_dir)
            except OSError as e:
                raise OutputError(self.output_dir, e)

        try:
            os.makedirs(self.output_dir, exist_ok=True)
        except OSError as e:
            raise OutputError(self.output_dir, e)

    def write_file(self, url_path, filename, data):
        """Write ``data`` to ``<output>/<url_path>/<filename>``."""
        target_dir = os.path.join(self.output_dir, url_path.strip('/'))
        target = os.path.join(target_dir, filename)
        try:
            os.makedirs(target_dir, exist_ok=True)
            with open(target, 'w', encoding='utf-8') as f:
                f.write(data)
        except OSError as e:
            raise OutputError(target, e)
        self.logger.debug(f"Wrote {target}")
        return target

    def render_contents(self, template_name, variable, contexts, sources, site):
        """Render one page per context and copy the source's images beside it."""
        for context, source in zip(contexts, sources):
            html = self.renderer.render(template_name, site=site, **{variable: context})
            target = self.write_file(context.url, 'index.html', html)

            for image_path in source.images:
                destination = os.path.join(os.path.dirname(target), os.path.basename(image_path))
                try:
                    shutil.copy2(image_path, destination)
                except OSError as e:
                    raise OutputError(image_path, e)
        return len(contexts)

    def render_taxonomy_lists(self, post_contexts, taxonomy_index, site):
        for taxonomy in self.theme.manifest.taxonomies:
            if not taxonomy.enabled:
                continue
            entries = {entry.key: entry for entry in taxonomy_index.get(taxonomy.name, [])}
            groups = group_by_taxonomy(post_contexts, taxonomy.name)
            for key, contexts in groups.items():
                entry = entries[key]
                self.lists_generated += self.render_list(
                    self.theme.manifest.list_template,
                    contexts,
                    entry.permalink,
                    taxonomy.per_page,
                    f"{taxonomy.label}: {entry.label}",
                    site,
                    ListKind.taxonomy(taxonomy.name, entry.slug),
                )
            self.logger.debug(f"{len(groups)} term list(s) rendered for taxonomy '{taxonomy.name}'")

    def render_archive_lists(self, post_contexts, site):
        for archive in self.theme.manifest.archives:
            groups = group_by_archive(post_contexts, archive.granularity)
            for key, contexts in groups.items():
                self.lists_generated += self.render_list(
                    self.theme.manifest.list_template,
                    contexts,
                    archive_permalink(archive.permalink, key),
                    archive.per_page,
                    f"Archive: {archive_label(key)}",
                    site,
                    ListKind.archive(key),
                )
            self.logger.debug(f"{len(groups)} {archive.granularity.value} archive list(s) rendered")

    def render_list(self, template_name, contexts, base_url, per_page, title, site, list_kind):
        """
        Render a paginated post list: page 1 at ``base_url``, page N at
        ``base_url/page/N/``. A list with no posts still gets one empty page.

        Returns the number of pages written.
        """
        items = [build_post_list_item(post) for post in contexts]
        pages = paginate(items, per_page) or [(1, [])]

        for page_number, page_items in pages:
            url = page_url(base_url, page_number)
            pagination = build_pagination(base_url, page_number, per_page, len(items))
            list_context = build_list_context(title, url, list_kind, page_items, pagination)

            variables = {'site': site, 'list': list_context}
            if list_kind.type == 'home':
                variables['home'] = list_context
            self.write_file(url, 'index.html', self.renderer.render(template_name, **variables))

        if len(pages) > 1:
            redirect_url = f"{base_url.rstrip('/')}/page/1/"
            self.write_file(redirect_url, 'index.html', REDIRECT_TEMPLATE.format(url=base_url))

        return len(pages)

    def render_extra_templates(self, site):
        for extra in self.theme.manifest.extra_templates:
            html = self.renderer.render(extra.file, site=site)
            self.write_file(extra.url, extra.output, html)
            self.logger.debug(f"Extra template rendered: {extra.file} -> {extra.url}{extra.output}")

    def copy_static_files(self):
        copy_tasks = [
            (self.theme.assets_dir, 'assets', 'assets'),
            (os.path.join(self.content_dir, 'images'), 'images', 'images'),
            (os.path.join(self.content_dir, 'data'), 'data', 'data'),
        ]
        for source_dir, target_name, label in copy_tasks:
            if not os.path.isdir(source_dir):
                self.logger.debug(f"No {label} directory found, skipping copy")
                continue
            self.copy_dir_recursive(source_dir, os.path.join(self.output_dir, target_name))
            self.logger.info(f"Copied {label} from {source_dir}")

    def copy_dir_recursive(self, source_dir, target_dir):
        """Copy a directory tree into the output, skipping symlinks."""
        try:
            shutil.copytree(source_dir, target_dir, ignore=self._skip_symlinks, dirs_exist_ok=True)
        except (shutil.Error, OSError) as e:
            raise OutputError(target_dir, e)

    def _skip_symlinks(self, directory, names):
        skipped = []
        for name in names:
            path = os.path.join(directory, name)
            if os.path.islink(path):
                self.logger.warning(f"Skipping symlink at {path}")
                skipped.append(name)
        return skipped

    def minify_assets(self):
        """Write .min.css / .min.js siblings for every copied CSS and JS asset."""
        assets_output_dir = os.path.join(self.output_dir, 'assets')
        if not os.path.isdir(assets_output_dir):
            return

        minified = 0
        for dirpath, _, filenames in os.walk(assets_output_dir):
            for filename in sorted(filenames):
                if filename.endswith('.css') and not filename.endswith('.min.css'):
                    minifier, suffix = csscompressor.compress, '.min.css'
                elif filename.endswith('.js') and not filename.endswith('.min.js'):
                    minifier, suffix = rjsmin.jsmin, '.min.js'
                else:
                    continue

                source_path = os.path.join(dirpath, filename)
                minified_path = os.path.join(dirpath, os.path.splitext(filename)[0] + suffix)
                try:
                    with open(source_path, 'r', encoding='utf-8') as f:
                        content = f.read()
                    with open(minified_path, 'w', encoding='utf-8') as f:
                        f.write(minifier(content))
                except (OSError, UnicodeDecodeError) as e:
                    raise OutputError(source_path, e)
                self.logger.debug(f"Minified {filename}")
                minified += 1

        self.logger.info(f"Minified {minified} asset(s)")
