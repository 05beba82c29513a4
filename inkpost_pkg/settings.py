#!/usr/bin/env python3
"""
Settings loader for Inkpost.
Reads the site configuration from inkpost.yml, inkpost.yaml, or inkpost.json
and the theme manifest from themes/<name>/theme.yaml.
"""

import os
import copy
import json
import yaml
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Any, List, Optional

from .errors import ConfigError, ProjectNotFoundError, ThemeError
from .utils import to_opaque


class InkpostSettings:
    """Load and manage Inkpost site configuration."""

    # Default configuration
    DEFAULT_SETTINGS = {
        'site': {
            'name': 'My Blog',
            'base_url': 'http://localhost:8000',
            'path': '',
            'description': '',
            'language': 'en',
        },
        'author': {
            'name': 'Author Name',
            'email': '',
        },
        'theme': {
            'name': 'default',
        },
        'permalinks': {
            'post': '/posts/:slug/',
            'page': '/pages/:slug/',
        },
        'build': {
            'output_dir': 'public',
            'clean': True,
            'include_drafts': False,
            'rss': True,
            'rss_max_items': 20,
            'sitemap': True,
            'robots_txt': True,
            'minify': False,
            'log_dir': None,
        },
    }

    # Config file names to look for (in order of preference)
    CONFIG_FILES = ['inkpost.yml', 'inkpost.yaml', 'inkpost.json']

    def __init__(self, config_dir: str = None):
        """
        Initialize settings loader.

        Args:
            config_dir: Project root to look for config files. Defaults to current directory.
        """
        self.config_dir = config_dir or os.getcwd()
        self.settings = copy.deepcopy(self.DEFAULT_SETTINGS)
        self.config_file_path = None

    def load_settings(self) -> Dict[str, Any]:
        """
        Load settings from the project's configuration file.

        Returns:
            Dictionary of configuration settings, defaults filled in

        Raises:
            ProjectNotFoundError: No configuration file in the project root
            ConfigError: The configuration file could not be read or parsed
        """
        config_file = self._find_config_file()
        if not config_file:
            raise ProjectNotFoundError(self.config_dir)

        self.config_file_path = config_file
        loaded_settings = self._load_config_file(config_file)
        if not isinstance(loaded_settings, dict):
            raise ConfigError(config_file, "Configuration must be a mapping")

        self.settings = deep_merge(self.settings, loaded_settings)
        return copy.deepcopy(self.settings)

    def _find_config_file(self) -> Optional[str]:
        """
        Find the first available configuration file.

        Returns:
            Path to config file or None if not found
        """
        for filename in self.CONFIG_FILES:
            config_path = os.path.join(self.config_dir, filename)
            if os.path.exists(config_path):
                return config_path
        return None

    def _load_config_file(self, config_path: str) -> Dict[str, Any]:
        """
        Load configuration from a file.

        Args:
            config_path: Path to the configuration file

        Returns:
            Dictionary of configuration settings
        """
        file_ext = os.path.splitext(config_path)[1].lower()
        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                if file_ext in ['.yml', '.yaml']:
                    return yaml.safe_load(f) or {}
                elif file_ext == '.json':
                    return json.load(f) or {}
                else:
                    raise ConfigError(config_path, f"Unsupported config file format: {file_ext}")
        except yaml.YAMLError as e:
            raise ConfigError(config_path, f"Invalid YAML: {e}")
        except json.JSONDecodeError as e:
            raise ConfigError(config_path, f"Invalid JSON: {e}")
        except (IOError, OSError) as e:
            raise ConfigError(config_path, f"Error reading configuration file: {e}")

    def merge_with_args(self, args_dict: Dict[str, Any]) -> Dict[str, Any]:
        """
        Merge configuration settings with command-line arguments.
        Command-line arguments take precedence over config file settings.

        Args:
            args_dict: Mapping of ``section.key`` (e.g. ``build.rss``) to value

        Returns:
            Merged configuration dictionary
        """
        merged = copy.deepcopy(self.settings)

        # Override with non-None command line arguments
        for dotted_key, value in args_dict.items():
            if value is None:
                continue
            section, _, key = dotted_key.partition('.')
            if not key:
                raise ConfigError(self.config_dir, f"Override key must look like 'section.key': {dotted_key}")
            target = merged.setdefault(section, {})
            if not isinstance(target, dict):
                raise ConfigError(
                    self.config_file_path or self.config_dir,
                    f"'{section}' must be a mapping, got {type(target).__name__}",
                )
            target[key] = value

        return merged


def deep_merge(base, overrides):
    """Return ``base`` updated with ``overrides``; nested mappings merge key by key."""
    merged = copy.deepcopy(base)
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


@dataclass(frozen=True)
class SiteConfig:
    name: str
    base_url: str
    path: str
    description: str
    language: str
    author_name: str
    author_email: str
    theme_name: str
    post_permalink: str
    page_permalink: str
    output_dir: str
    clean: bool
    include_drafts: bool
    rss: bool
    rss_max_items: int
    sitemap: bool
    robots_txt: bool
    minify: bool
    log_dir: Optional[str] = None

    @classmethod
    def from_settings(cls, settings):
        site = _section(settings, 'site')
        author = _section(settings, 'author')
        build = _section(settings, 'build')
        return cls(
            name=str(site['name']),
            base_url=str(site['base_url']),
            path=str(site.get('path') or ''),
            description=str(site.get('description') or ''),
            language=str(site.get('language') or 'en'),
            author_name=str(author.get('name') or ''),
            author_email=str(author.get('email') or ''),
            theme_name=str(_section(settings, 'theme')['name']),
            post_permalink=str(_section(settings, 'permalinks')['post']),
            page_permalink=str(_section(settings, 'permalinks')['page']),
            output_dir=str(build['output_dir']),
            clean=bool(build['clean']),
            include_drafts=bool(build['include_drafts']),
            rss=bool(build['rss']),
            rss_max_items=int(build['rss_max_items']),
            sitemap=bool(build['sitemap']),
            robots_txt=bool(build['robots_txt']),
            minify=bool(build['minify']),
            log_dir=build.get('log_dir'),
        )


def _section(data, name):
    """Return the mapping stored under ``name``; an absent or empty value is an empty mapping."""
    value = data.get(name)
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise TypeError(f"'{name}' must be a mapping, got {type(value).__name__}")
    return value


class Granularity(Enum):
    YEARLY = 'Yearly'
    MONTHLY = 'Monthly'
    DAILY = 'Daily'


DEFAULT_PER_PAGE = 10


@dataclass(frozen=True)
class TaxonomyConfig:
    name: str
    label: str
    permalink: str
    per_page: int = DEFAULT_PER_PAGE
    enabled: bool = True


@dataclass(frozen=True)
class ArchiveConfig:
    granularity: Granularity
    permalink: str
    per_page: int = DEFAULT_PER_PAGE


@dataclass(frozen=True)
class ExtraTemplate:
    file: str
    url: str
    output: str = 'index.html'
    name: Optional[str] = None


@dataclass(frozen=True)
class ThemeManifest:
    name: str
    version: str = '0.1.0'
    author: str = ''
    description: str = ''
    home_template: str = 'home.html'
    list_template: str = 'list.html'
    post_template: str = 'post.html'
    page_template: str = 'page.html'
    extra_templates: List[ExtraTemplate] = field(default_factory=list)
    per_page: int = DEFAULT_PER_PAGE
    taxonomies: List[TaxonomyConfig] = field(default_factory=list)
    archives: List[ArchiveConfig] = field(default_factory=lambda: [
        ArchiveConfig(Granularity.MONTHLY, '/archives/:year/:month/')
    ])
    recent_posts: int = 10
    values: Dict[str, Any] = field(default_factory=dict)


MANIFEST_KEYS = {'meta', 'template_default', 'template_extra', 'pagination', 'taxonomies', 'archives', 'recent_posts'}


@dataclass(frozen=True)
class ThemePackage:
    name: str
    templates_dir: str
    assets_dir: str
    manifest: ThemeManifest

    @classmethod
    def load(cls, theme_dir):
        """Read ``theme.yaml`` from a theme directory."""
        manifest_path = os.path.join(theme_dir, 'theme.yaml')
        if not os.path.isfile(manifest_path):
            raise ThemeError(theme_dir, "Theme manifest not found (expected theme.yaml)")

        try:
            with open(manifest_path, 'r', encoding='utf-8') as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ThemeError(manifest_path, f"Invalid YAML: {e}")
        except (IOError, OSError) as e:
            raise ThemeError(manifest_path, f"Error reading theme manifest: {e}")

        if not isinstance(data, dict):
            raise ThemeError(manifest_path, "Theme manifest must be a mapping")

        manifest = parse_manifest(data, manifest_path)
        return cls(
            name=manifest.name,
            templates_dir=os.path.join(theme_dir, 'templates'),
            assets_dir=os.path.join(theme_dir, 'assets'),
            manifest=manifest,
        )


def parse_manifest(data, manifest_path):
    try:
        meta = _section(data, 'meta')
        defaults = _section(data, 'template_default')
        pagination = _section(data, 'pagination')
        recent_posts = _section(data, 'recent_posts')
    except TypeError as e:
        raise ThemeError(manifest_path, str(e))
    if not meta.get('name'):
        raise ThemeError(manifest_path, "meta.name is required")

    try:
        extra_templates = [
            ExtraTemplate(
                file=item['file'],
                url=item['url'],
                output=item.get('output', 'index.html'),
                name=item.get('name'),
            )
            for item in data.get('template_extra') or []
        ]
        taxonomies = [
            TaxonomyConfig(
                name=str(item['name']),
                label=str(item['label']),
                permalink=str(item['permalink']),
                per_page=int(item.get('per_page', DEFAULT_PER_PAGE)),
                enabled=bool(item.get('enabled', True)),
            )
            for item in data.get('taxonomies') or []
        ]
        archives = None
        if 'archives' in data:
            archives = [
                ArchiveConfig(
                    granularity=Granularity(item['kind']),
                    permalink=str(item['permalink']),
                    per_page=int(item.get('per_page', DEFAULT_PER_PAGE)),
                )
                for item in data.get('archives') or []
            ]
        values = to_opaque(
            {key: value for key, value in data.items() if key not in MANIFEST_KEYS},
            'theme',
        )
        kwargs = dict(
            name=str(meta['name']),
            version=str(meta.get('version', '0.1.0')),
            author=str(meta.get('author', '')),
            description=str(meta.get('description', '')),
            home_template=defaults.get('home', 'home.html'),
            list_template=defaults.get('list', 'list.html'),
            post_template=defaults.get('post', 'post.html'),
            page_template=defaults.get('page', 'page.html'),
            extra_templates=extra_templates,
            per_page=int(pagination.get('default', DEFAULT_PER_PAGE)),
            taxonomies=taxonomies,
            recent_posts=int(recent_posts.get('count', 10)),
            values=values,
        )
    except KeyError as e:
        raise ThemeError(manifest_path, f"Missing key {e}")
    except (TypeError, ValueError) as e:
        raise ThemeError(manifest_path, str(e))

    if archives is not None:
        kwargs['archives'] = archives
    return ThemeManifest(**kwargs)
