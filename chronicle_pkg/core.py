import os
import re
import html
import shutil
import logging
import calendar
from datetime import datetime
from email.utils import formatdate
from xml.sax.saxutils import escape

import mistune
import csscompressor
import rjsmin
import smartypants
from jinja2 import ChoiceLoader, Environment, FileSystemLoader, TemplateNotFound, TemplateSyntaxError
from pygments import highlight
from pygments.formatters import HtmlFormatter
from pygments.lexers import get_lexer_by_name
from pygments.util import ClassNotFound

from .aggregation import build_calendar_index, build_tag_index, sort_newest_first
from .content import load_content, split_excerpt
from .errors import BuildError, PermalinkCollisionError
from .routes import (
    CALENDAR, POST, TAG, calendar_permalink, check_collisions, output_file_for,
    route_for, tag_permalink, template_for, url_for,
)

PACKAGE_TEMPLATES = os.path.join(os.path.dirname(os.path.abspath(__file__)), 'templates')

SYNTAX_CSS = 'pygments.css'

SMARTYPANTS_ATTR = smartypants.Attr.set1 | smartypants.Attr.w


class InfoFilter(logging.Filter):
    """Filter to allow only selected INFO messages to be shown in the console."""
    def filter(self, record):
        if record.levelno >= logging.WARNING:
            return True
        allowed_messages = [
            "Site build completed in",
            "Total articles generated:",
            "Total tag pages generated:",
            "Total calendar pages generated:",
            "Building articles",
            "Building tag pages",
            "Building calendar pages",
            "Building index page",
            "Generating feed",
            "Copied assets",
        ]
        return any(msg in record.getMessage() for msg in allowed_messages)


def create_markdown_parser(syntax_style=None):
    """
    Create a mistune markdown parser.

    With a Pygments style name, fenced code blocks with a known language are
    highlighted; otherwise code is escaped into a plain <pre> block.
    """
    class CustomRenderer(mistune.HTMLRenderer):
        def __init__(self):
            super().__init__(escape=False)

        def block_code(self, code, info=None):
            lang = info.strip().split(None, 1)[0] if info and info.strip() else None
            if syntax_style and lang:
                try:
                    lexer = get_lexer_by_name(lang)
                except ClassNotFound:
                    lexer = None
                if lexer is not None:
                    formatter = HtmlFormatter(style=syntax_style, cssclass='highlight')
                    return highlight(code, lexer, formatter)
            escaped_code = mistune.escape(code)
            if lang:
                return '<pre><code class="language-{}">{}</code></pre>\n'.format(mistune.escape(lang), escaped_code)
            return '<pre><code>{}</code></pre>\n'.format(escaped_code)

    return mistune.create_markdown(
        renderer=CustomRenderer(),
        plugins=['table', 'task_lists', 'strikethrough']
    )


def strip_tags(text):
    text = html.unescape(re.sub(r'<[^>]+>', '', text))
    return re.sub(r'\s+', ' ', text).strip()


def is_within(path, parent):
    return os.path.commonpath([path, parent]) == parent


def calendar_source(key):
    return f"calendar:{'-'.join(map(str, key))}"


class Chronicle:
    """Builds a blog from dated articles according to a SiteConfig."""

    def __init__(self, config, log_to_file=True, log_dir=None):
        self.config = config
        self.content_dir = config.content
        self.templates_dir = config.templates
        self.output_dir = config.output
        self.log_to_file = log_to_file
        self.log_dir = log_dir or os.path.join(os.getcwd(), 'logs')

        self.items = []
        self.routes = {}
        self.articles = {}
        self.tag_index = {}
        self.calendar_index = {}
        self.articles_generated = 0
        self.tag_pages_generated = 0
        self.calendar_pages_generated = 0
        self.outputs = {}
        self._written = {}

        self.setup_logging()

        if not os.path.isdir(self.content_dir):
            raise FileNotFoundError(f"Content directory not found: {self.content_dir}")

        # Project templates win; bundled templates fill the gaps
        loaders = []
        if os.path.isdir(self.templates_dir):
            loaders.append(FileSystemLoader(self.templates_dir))
        else:
            self.logger.debug(f"Templates directory {self.templates_dir} not found, using bundled templates")
        loaders.append(FileSystemLoader(PACKAGE_TEMPLATES))
        self.env = Environment(loader=ChoiceLoader(loaders), autoescape=False)

        syntax_style = config.syntax.value if config.syntax.enabled else None
        self.markdown_parser = create_markdown_parser(syntax_style)

    def setup_logging(self):
        """Set up logging configuration."""
        self.logger = logging.getLogger('chronicle')
        self.logger.setLevel(logging.DEBUG)

        if not self.logger.handlers:
            # Console handler with filter
            console_handler = logging.StreamHandler()
            console_handler.setLevel(logging.INFO)
            console_handler.addFilter(InfoFilter())
            console_formatter = logging.Formatter('%(message)s')
            console_handler.setFormatter(console_formatter)
            self.logger.addHandler(console_handler)

            if self.log_to_file:
                # File handler for all logs
                os.makedirs(self.log_dir, exist_ok=True)
                log_filename = datetime.now().strftime('chronicle_%Y-%m-%d_%H-%M-%S.log')
                log_filepath = os.path.join(self.log_dir, log_filename)

                file_handler = logging.FileHandler(log_filepath)
                file_handler.setLevel(logging.DEBUG)
                file_formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')
                file_handler.setFormatter(file_formatter)
                self.logger.addHandler(file_handler)

    def markdown_filter(self, text):
        """Convert markdown text to HTML, with typographic punctuation if enabled."""
        rendered = self.markdown_parser(text)
        if self.config.smartypants:
            # mistune emits &quot; for double quotes; code and pre contents are left alone
            rendered = smartypants.smartypants(rendered, SMARTYPANTS_ATTR)
        return rendered

    def clean_output_dir(self):
        """
        Remove the previous build so that every build starts from scratch.

        The output directory must lie inside the project root and must not
        be the root itself or contain the content or templates directory.
        """
        output = os.path.realpath(self.output_dir)
        root = os.path.realpath(self.config.root)
        if output in (root, os.path.realpath(os.getcwd())):
            raise BuildError(f"Refusing to clean project root as output directory: {self.output_dir}")
        if not is_within(output, root):
            raise BuildError(f"Refusing to clean output directory {self.output_dir} outside project root {self.config.root}")
        for name, path in (('content', self.content_dir), ('templates', self.templates_dir)):
            if is_within(os.path.realpath(path), output):
                raise BuildError(f"Refusing to clean output directory {self.output_dir}: it contains the {name} directory")

        if os.path.exists(output):
            shutil.rmtree(output)
        os.makedirs(output, exist_ok=True)
        self._written = {}

    def copy_assets_to_output(self):
        """Copy the css, js and images directories from the content directory."""
        for kind, dirname in self.config.asset_dirs.items():
            source = os.path.join(self.content_dir, dirname)
            if not os.path.isdir(source):
                self.logger.debug(f"No {kind} directory at {source}")
                continue
            destination = os.path.join(self.output_dir, dirname)
            try:
                shutil.copytree(source, destination, dirs_exist_ok=True)
            except (IOError, OSError) as e:
                raise BuildError(f"Failed to copy {kind} assets from {source}: {e}")
            self.logger.info(f"Copied assets from {source}")

    def minify_assets(self):
        """Write .min.css / .min.js next to every stylesheet and script."""
        targets = (
            (self.config.css_dir, '.css', csscompressor.compress),
            (self.config.js_dir, '.js', rjsmin.jsmin),
        )
        for dirname, ext, minify in targets:
            asset_dir = os.path.join(self.output_dir, dirname)
            if not os.path.exists(asset_dir):
                continue
            for file in sorted(os.listdir(asset_dir)):
                if not file.endswith(ext) or file.endswith('.min' + ext):
                    continue
                path = os.path.join(asset_dir, file)
                try:
                    with open(path, 'r', encoding='utf-8') as f:
                        source = f.read()
                    minified_path = path[:-len(ext)] + '.min' + ext
                    with open(minified_path, 'w', encoding='utf-8') as f:
                        f.write(minify(source))
                    self.logger.debug(f"Minified: {file}")
                except (IOError, OSError) as e:
                    self.logger.error(f"Failed to minify {file}: {e}")

    def write_syntax_css(self):
        """Write the Pygments stylesheet used by highlighted code blocks."""
        css = HtmlFormatter(style=self.config.syntax.value).get_style_defs('.highlight')
        self.write_output(self.syntax_css_file(), css, 'syntax stylesheet')

    def syntax_css_file(self):
        return f"{self.config.css_dir.strip('/')}/{SYNTAX_CSS}"

    def write_output(self, relative_file, text, source):
        """
        Write one generated file under the output directory.

        Two sources writing the same file is a permalink collision.
        """
        relative_file = relative_file.lstrip('/')
        if relative_file in self._written:
            raise PermalinkCollisionError(relative_file, self._written[relative_file], source)
        self._written[relative_file] = source

        output_path = os.path.join(self.output_dir, relative_file)
        try:
            os.makedirs(os.path.dirname(output_path), exist_ok=True)
            with open(output_path, 'w', encoding='utf-8') as f:
                f.write(text)
        except (IOError, OSError) as e:
            self.logger.error(f"Failed to write {output_path}: {e}")
            raise BuildError(f"Failed to write {output_path}: {e}")
        self.logger.debug(f"Generated: {output_path} ({source})")
        return output_path

    def calculate_relative_path(self, relative_file):
        """Calculate relative path from a generated file to the site root."""
        depth = relative_file.lstrip('/').count('/')
        return '../' * depth

    def render_template(self, template_name, **context):
        """Render a Jinja2 template with the site-wide context."""
        try:
            template = self.env.get_template(template_name)
        except (TemplateNotFound, TemplateSyntaxError) as e:
            self.logger.error(f"Template error: {e}")
            raise BuildError(f"Template error in {template_name}: {e}")
        render_context = self.site_context()
        render_context.update(context)
        return template.render(**render_context)

    def site_context(self):
        config = self.config
        return {
            'site': {
                'title': config.site_title,
                'url': config.site_url,
                'description': config.site_description,
            },
            'environment': config.environment,
            'comments': config.comments,
            'analytics': config.analytics,
            'syntax': config.syntax,
            'syntax_css': SYNTAX_CSS,
            'css_dir': config.css_dir,
            'js_dir': config.js_dir,
            'images_dir': config.images_dir,
            'feed_path': config.feed_path.lstrip('/'),
            'all_tags': [
                dict(self.tag_link(tag), count=len(items))
                for tag, items in self.tag_index.items()
            ],
        }

    def load(self):
        """
        Parse all sources, resolve their routes and build the derived indexes.

        Every output path is planned here, so collisions surface before the
        output directory is touched.
        """
        self.items = load_content(self.content_dir, self.config.sources, self.config.summary_separator)
        self.routes = check_collisions(self.items, self.config.permalink)
        self.tag_index = build_tag_index(self.items)
        self.calendar_index = build_calendar_index(self.items)

        self.articles = {}
        for permalink, item in self.routes.items():
            self.articles[item.source_path] = self.article_view(item, permalink)
        self.outputs = self.plan_outputs()
        return self.items

    def plan_outputs(self):
        """
        Map every file the build will write to the source that produces it,
        in build order.

        Raises:
            PermalinkCollisionError: two pages would land on the same file.
        """
        planned = []
        if self.config.syntax.enabled:
            planned.append((self.syntax_css_file(), 'syntax stylesheet'))
        for item in sort_newest_first(self.items):
            planned.append((output_file_for(self.articles[item.source_path]['permalink']), item.source_path))
        for tag in self.tag_index:
            planned.append((output_file_for(tag_permalink(tag, self.config.taglink)), f"tag:{tag}"))
        for key in self.calendar_index:
            planned.append((output_file_for(calendar_permalink(self.config, *key)), calendar_source(key)))
        for page_num, relative_file in self.index_files():
            planned.append((relative_file, f"index:{page_num}"))
        planned.append((self.config.feed_path.lstrip('/'), 'feed'))

        outputs = {}
        for relative_file, source in planned:
            if relative_file in outputs:
                raise PermalinkCollisionError(relative_file, outputs[relative_file], source)
            outputs[relative_file] = source
        return outputs

    def article_view(self, item, permalink):
        """Template-facing data for one article."""
        summary, remainder = split_excerpt(item.body, self.config.summary_separator)
        # the marker itself never reaches the rendered article
        full_text = summary + remainder
        return {
            'title': item.title,
            'slug': item.title_slug,
            'permalink': permalink.lstrip('/'),
            'url': url_for(permalink),
            'date': item.date,
            'date_display': item.date.strftime('%B %d, %Y'),
            'tags': [self.tag_link(tag) for tag in item.tags],
            'content': self.markdown_filter(full_text),
            'summary': self.markdown_filter(item.summary),
            'has_more': item.excerpt is not None,
            'source_path': item.source_path,
            'metadata': item.metadata,
        }

    def tag_link(self, tag):
        permalink = tag_permalink(tag, self.config.taglink)
        return {'name': tag, 'permalink': permalink.lstrip('/'), 'url': url_for(permalink)}

    def views(self, items):
        return [self.articles[item.source_path] for item in items]

    def build_articles(self):
        """Render every article through the configured layout."""
        self.logger.info(f"Building articles ({len(self.items)} sources)")
        ordered = sort_newest_first(self.items)
        template_name = route_for(POST, self.config).layout
        for position, item in enumerate(ordered):
            article = self.articles[item.source_path]
            newer = ordered[position - 1] if position > 0 else None
            older = ordered[position + 1] if position + 1 < len(ordered) else None
            relative_file = output_file_for(article['permalink'])
            rendered = self.render_template(
                template_name,
                article=article,
                title=article['title'],
                content=article['content'],
                newer=self.articles[newer.source_path] if newer else None,
                older=self.articles[older.source_path] if older else None,
                relative_path=self.calculate_relative_path(relative_file),
            )
            self.write_output(relative_file, rendered, item.source_path)
            self.articles_generated += 1

    def build_tag_pages(self):
        self.logger.info(f"Building tag pages ({len(self.tag_index)} tags)")
        route = route_for(TAG, self.config)
        for tag, items in self.tag_index.items():
            permalink = tag_permalink(tag, route.pattern)
            relative_file = output_file_for(permalink)
            rendered = self.render_template(
                route.layout,
                page_type='tag',
                tag=tag,
                title=f"Articles tagged '{tag}'",
                articles=self.views(items),
                relative_path=self.calculate_relative_path(relative_file),
            )
            self.write_output(relative_file, rendered, f"tag:{tag}")
            self.tag_pages_generated += 1

    def build_calendar_pages(self):
        self.logger.info(f"Building calendar pages ({len(self.calendar_index)} periods)")
        template_name = template_for(CALENDAR, self.config)
        for key, items in self.calendar_index.items():
            year, month, day = (tuple(key) + (None, None))[:3]
            permalink = calendar_permalink(self.config, year, month, day)
            relative_file = output_file_for(permalink)
            if day is not None:
                page_type, title = 'day', items[0].date.strftime('%B %d, %Y')
            elif month is not None:
                page_type, title = 'month', items[0].date.strftime('%B %Y')
            else:
                page_type, title = 'year', str(year)
            rendered = self.render_template(
                template_name,
                page_type=page_type,
                year=year,
                month=month,
                day=day,
                title=title,
                articles=self.views(items),
                relative_path=self.calculate_relative_path(relative_file),
            )
            self.write_output(relative_file, rendered, calendar_source(key))
            self.calendar_pages_generated += 1

    def get_pagination_links(self, current_page, total_pages):
        """
        Returns a list of page numbers (or ellipses) to display in pagination.
        Always shows page 1 and total_pages.
        Shows two pages before and after the current page.
        Inserts '...' when there is a gap.
        """
        delta = 2
        links = [1]

        start = max(current_page - delta, 2)
        end = min(current_page + delta, total_pages - 1)

        if start > 2:
            links.append('...')

        links.extend(range(start, end + 1))

        if end < total_pages - 1:
            links.append('...')

        if total_pages > 1:
            links.append(total_pages)

        return links

    def index_files(self):
        """Page number and output file of every index page."""
        per_page = self.config.posts_per_page
        total_pages = max(1, (len(self.items) + per_page - 1) // per_page)
        return [
            (page_num, 'index.html' if page_num == 1 else f'page/{page_num}/index.html')
            for page_num in range(1, total_pages + 1)
        ]

    def build_index_page(self):
        """
        Build paginated index pages.
        - index.html for page 1
        - page/<n>/index.html for pages 2..n
        """
        self.logger.info("Building index page")
        sorted_items = sort_newest_first(self.items)
        per_page = self.config.posts_per_page
        pages = self.index_files()
        total_pages = len(pages)

        for page_num, relative_file in pages:
            page_items = sorted_items[(page_num - 1) * per_page:page_num * per_page]
            rendered = self.render_template(
                'index.html',
                title=self.config.site_title or 'Home',
                articles=self.views(page_items),
                current_page=page_num,
                total_pages=total_pages,
                page_numbers=self.get_pagination_links(page_num, total_pages),
                relative_path=self.calculate_relative_path(relative_file),
            )
            self.write_output(relative_file, rendered, f"index:{page_num}")

    def generate_feed(self):
        """Generate the RSS feed at the configured fixed path."""
        self.logger.info("Generating feed")
        site_url = self.config.site_url or ''
        site_name = self.config.site_title or site_url or 'Blog'
        recent = sort_newest_first(self.items)[:self.config.feed_limit]

        feed = f'''<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0">
<channel>
<title>{escape(site_name)}</title>
<link>{escape(site_url + '/')}</link>
<description>Latest articles from {escape(site_name)}</description>
<lastBuildDate>{formatdate(usegmt=True)}</lastBuildDate>
'''
        for item in recent:
            article = self.articles[item.source_path]
            link = site_url + article['url']
            pub_date = formatdate(calendar.timegm(item.date.timetuple()), usegmt=True)
            categories = ''.join(f"<category>{escape(tag)}</category>\n" for tag in item.tags)
            feed += f'''
<item>
<title>{escape(item.title)}</title>
<link>{escape(link)}</link>
<description>{escape(strip_tags(article['summary']))}</description>
<pubDate>{pub_date}</pubDate>
{categories}<guid>{escape(link)}</guid>
</item>'''

        feed += '''
</channel>
</rss>
'''
        return self.write_output(self.config.feed_path, feed, 'feed')

    def build(self):
        """Main build process. Any BuildError aborts the build."""
        self.logger.info(f"Starting site build ({self.config.environment})...")
        self.load()
        self.clean_output_dir()
        self.copy_assets_to_output()
        if self.config.minify:
            self.minify_assets()
        if self.config.syntax.enabled:
            self.write_syntax_css()

        self.build_articles()
        self.build_tag_pages()
        self.build_calendar_pages()
        self.build_index_page()
        self.generate_feed()
        return self._written
