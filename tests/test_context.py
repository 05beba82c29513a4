"""Tests for context assembly."""

import logging
import pytest
from datetime import datetime, timezone

from inkpost_pkg.content import ContentKind
from inkpost_pkg.context import (
    ContentContext, PostContext, NavLink, ListKind, build_permalink, resolve_thumbnail,
    assemble_contexts, link_prev_next, build_post_list_item, build_site_context,
)
from inkpost_pkg.indexing import ArchiveKey, build_taxonomy_index, build_archive_index
from inkpost_pkg.settings import TaxonomyConfig, SiteConfig, InkpostSettings, ThemeManifest


TAGS = TaxonomyConfig(name='tags', label='Tag', permalink='/tags/:slug/')
PERMALINKS = {ContentKind.POST: '/:year/:month/:day/:slug/', ContentKind.PAGE: '/:slug/'}


def utc(*args):
    return datetime(*args, tzinfo=timezone.utc)


def fake_markdown(text):
    return f"<p>{text}</p>"


class TestPermalinks:
    def test_date_and_slug_tokens(self):
        assert build_permalink('/:year/:month/:day/:slug/', utc(2024, 3, 7), 'hello') == '/2024/03/07/hello/'

    def test_pattern_without_tokens(self):
        assert build_permalink('/about/', utc(2024, 3, 7), 'x') == '/about/'


class TestResolveThumbnail:
    @pytest.mark.parametrize('thumbnail,expected', [
        ('./cover.png', '/posts/hello/cover.png'),
        ('cover.png', '/posts/hello/cover.png'),
        ('/static/cover.png', '/static/cover.png'),
    ])
    def test_thumbnail_rules(self, thumbnail, expected):
        assert resolve_thumbnail(thumbnail, '/posts/hello/') == expected


class TestAssembleContexts:
    """Test cases for assemble_contexts."""

    def test_post_context_fields(self, make_source):
        source = make_source(
            'Hello World', date=utc(2024, 1, 15), taxonomies={'tags': ['Rust']},
            summary='Short', thumbnail='./cover.png', description='Desc', extra={'mood': 'good'},
        )
        index = build_taxonomy_index([source], [TAGS])
        (post,) = assemble_contexts([source], index, PERMALINKS, fake_markdown)

        assert isinstance(post, PostContext)
        assert post.is_post
        assert post.url == '/2024/01/15/hello-world/'
        assert post.content_html == '<p>Body of Hello World</p>'
        assert post.thumbnail == '/2024/01/15/hello-world/cover.png'
        assert post.summary == 'Short'
        assert post.description == 'Desc'
        assert post.extra == {'mood': 'good'}
        assert post.identifier == 'posts/hello-world'
        assert post.taxonomies == {'tags': index['tags']}

    def test_explicit_slug(self, make_source):
        source = make_source('Hello World', date=utc(2024, 1, 15), slug='custom')
        (post,) = assemble_contexts([source], {}, PERMALINKS, fake_markdown)
        assert post.url == '/2024/01/15/custom/'

    def test_page_variant_has_only_shared_fields(self, make_source):
        source = make_source('About Us', kind=ContentKind.PAGE, identifier='pages/about',
                             taxonomies={'tags': ['Rust']})
        (page,) = assemble_contexts([source], {}, PERMALINKS, fake_markdown)
        assert type(page) is ContentContext
        assert not page.is_post
        assert page.url == '/about-us/'
        assert not hasattr(page, 'taxonomies')

    def test_taxonomy_entries_come_from_site_index(self, make_source):
        a = make_source('A', taxonomies={'tags': ['Rust', 'RUST', 'web']})
        b = make_source('B', taxonomies={'tags': ['rust']})
        index = build_taxonomy_index([a, b], [TAGS])
        contexts = assemble_contexts([a, b], index, PERMALINKS, fake_markdown)

        site_entries = index['tags']
        for context in contexts:
            for entry in context.taxonomies['tags']:
                assert entry in site_entries
        assert [e.key for e in contexts[0].taxonomies['tags']] == ['rust', 'web']
        assert contexts[0].taxonomies['tags'][0].post_count == 2

    def test_unmatched_terms_are_dropped_with_warning(self, make_source, caplog):
        indexed = make_source('A', taxonomies={'tags': ['Rust']})
        stray = make_source('B', taxonomies={'tags': ['Rust', 'Haskell'], 'moods': ['calm']})
        index = build_taxonomy_index([indexed], [TAGS])

        with caplog.at_level(logging.WARNING, logger='Inkpost'):
            contexts = assemble_contexts([indexed, stray], index, PERMALINKS, fake_markdown)

        assert [e.key for e in contexts[1].taxonomies['tags']] == ['rust']
        assert 'moods' not in contexts[1].taxonomies
        assert "Haskell" in caplog.text
        assert "moods" in caplog.text

    def test_taxonomy_without_matches_is_omitted(self, make_source):
        source = make_source('A', taxonomies={'tags': ['nowhere']})
        (post,) = assemble_contexts([source], {'tags': []}, PERMALINKS, fake_markdown)
        assert post.taxonomies == {}

    def test_sources_are_untouched(self, make_source):
        source = make_source('A')
        assemble_contexts([source], {}, PERMALINKS, fake_markdown)
        assert source.body == 'Body of A'


class TestLinkPrevNext:
    """Test cases for the prev/next chain over posts sorted newest first."""

    def _posts(self, make_source, count):
        sources = [make_source(f"Post {i}", date=utc(2024, 1, count - i)) for i in range(count)]
        return assemble_contexts(sources, {}, PERMALINKS, fake_markdown)

    def test_chain(self, make_source):
        linked = link_prev_next(self._posts(make_source, 3))
        newest, middle, oldest = linked

        assert newest.next is None
        assert newest.prev == NavLink(title=middle.title, url=middle.url)
        assert middle.prev == NavLink(title=oldest.title, url=oldest.url)
        assert middle.next == NavLink(title=newest.title, url=newest.url)
        assert oldest.prev is None

    def test_symmetry(self, make_source):
        linked = link_prev_next(self._posts(make_source, 5))
        by_url = {post.url: post for post in linked}
        for post in linked:
            if post.prev:
                assert by_url[post.prev.url].next.url == post.url
            if post.next:
                assert by_url[post.next.url].prev.url == post.url

    def test_input_is_not_mutated(self, make_source):
        posts = self._posts(make_source, 2)
        link_prev_next(posts)
        assert all(post.prev is None and post.next is None for post in posts)

    def test_single_post(self, make_source):
        (only,) = link_prev_next(self._posts(make_source, 1))
        assert only.prev is None and only.next is None

    def test_empty(self):
        assert link_prev_next([]) == []


class TestSiteContext:
    """Test cases for the site-wide template context."""

    def test_recent_posts_and_theme_values(self, make_source):
        sources = [make_source(f"Post {i}", date=utc(2024, 1, 10 - i)) for i in range(4)]
        posts = link_prev_next(assemble_contexts(sources, {}, PERMALINKS, fake_markdown))
        settings = InkpostSettings()
        config = SiteConfig.from_settings(settings.settings)
        manifest = ThemeManifest(name='t', recent_posts=2, values={'tagline': 'hi'})
        archives = build_archive_index(sources, manifest.archives)

        site = build_site_context(config, manifest, {}, archives, posts)

        assert [item.title for item in site.recent_posts] == ['Post 0', 'Post 1']
        assert site.recent_posts[0] == build_post_list_item(posts[0])
        assert site.theme == {'tagline': 'hi'}
        assert site.title == 'My Blog'
        assert site.archives == archives
        assert site.email is None


class TestListKind:
    def test_constructors(self):
        assert ListKind.home().type == 'home'
        assert ListKind.taxonomy('tags', 'rust') == ListKind('taxonomy', name='tags', slug='rust')
        archive = ListKind.archive(ArchiveKey(2024, 3, None))
        assert (archive.type, archive.year, archive.month, archive.day) == ('archive', 2024, 3, None)
