"""RSS feed, XML sitemap and robots.txt generation."""

from datetime import datetime, timezone
from email.utils import format_datetime
from xml.sax.saxutils import escape

XML_ENTITIES = {'"': '&quot;', "'": '&apos;'}

# (changefreq, priority) per sitemap entry kind
SITEMAP_HOME = ('daily', '1.0')
SITEMAP_POST = ('weekly', '0.8')
SITEMAP_PAGE = ('monthly', '0.7')
SITEMAP_TAXONOMY = ('weekly', '0.6')
SITEMAP_ARCHIVE = ('monthly', '0.5')


def xml_escape(text):
    return escape(str(text), XML_ENTITIES)


def absolute_url(base_url, path):
    return f"{base_url.rstrip('/')}{path}"


def generate_rss(config, site_context, post_contexts, build_date=None):
    """
    Render an RSS 2.0 feed of the newest posts.

    ``post_contexts`` must already be sorted newest first; at most
    ``config.rss_max_items`` of them are included.
    """
    base_url = site_context.base_url.rstrip('/')
    build_date = build_date or datetime.now(timezone.utc)

    items = []
    for post in post_contexts[:config.rss_max_items]:
        link = absolute_url(base_url, post.url)
        categories = ''.join(
            f"\n      <category>{xml_escape(entry.label)}</category>"
            for entries in post.taxonomies.values()
            for entry in entries
        )
        items.append(f'''
    <item>
      <title>{xml_escape(post.title)}</title>
      <link>{xml_escape(link)}</link>
      <guid isPermaLink="true">{xml_escape(link)}</guid>
      <pubDate>{format_datetime(post.date)}</pubDate>
      <description>{xml_escape(post.summary or '')}</description>{categories}
    </item>''')

    return f'''<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0" xmlns:atom="http://www.w3.org/2005/Atom">
  <channel>
    <title>{xml_escape(site_context.title)}</title>
    <link>{xml_escape(base_url)}</link>
    <description>{xml_escape(site_context.description)}</description>
    <language>{xml_escape(site_context.language)}</language>
    <lastBuildDate>{format_datetime(build_date)}</lastBuildDate>
    <atom:link href="{xml_escape(base_url)}/rss.xml" rel="self" type="application/rss+xml" />{''.join(items)}
  </channel>
</rss>
'''


def format_sitemap_entry(base_url, path, frequency, lastmod=None):
    changefreq, priority = frequency
    lastmod_tag = f"\n    <lastmod>{lastmod.isoformat()}</lastmod>" if lastmod else ''
    return f'''  <url>
    <loc>{xml_escape(absolute_url(base_url, path))}</loc>{lastmod_tag}
    <changefreq>{changefreq}</changefreq>
    <priority>{priority}</priority>
  </url>'''


def generate_sitemap(site_context, post_contexts, page_contexts):
    """List the home page, every post and page, and every taxonomy and archive list."""
    base_url = site_context.base_url
    entries = [format_sitemap_entry(base_url, '/', SITEMAP_HOME)]

    for post in post_contexts:
        entries.append(format_sitemap_entry(base_url, post.url, SITEMAP_POST, post.updated or post.date))
    for page in page_contexts:
        entries.append(format_sitemap_entry(base_url, page.url, SITEMAP_PAGE, page.updated or page.date))
    for taxonomy_entries in site_context.taxonomies.values():
        for entry in taxonomy_entries:
            entries.append(format_sitemap_entry(base_url, entry.permalink, SITEMAP_TAXONOMY))
    for archive in site_context.archives:
        entries.append(format_sitemap_entry(base_url, archive.permalink, SITEMAP_ARCHIVE))

    body = '\n'.join(entries)
    return f'''<?xml version="1.0" encoding="UTF-8"?>
<urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">
{body}
</urlset>
'''


def generate_robots(base_url):
    return f"User-agent: *\nDisallow: /data\nAllow: /\nSitemap: {base_url.rstrip('/')}/sitemap.xml\n"
