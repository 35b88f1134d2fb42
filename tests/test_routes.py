"""Tests for permalink resolution and template dispatch."""

import pytest

from chronicle_pkg.errors import BuildError, MissingFieldError, PermalinkCollisionError, UnknownPlaceholderError
from chronicle_pkg.routes import (
    CALENDAR, POST, TAG, RouteTemplate, calendar_permalink, check_collisions, output_file_for,
    parse_permalink, resolve_permalink, route_for, slugify, tag_permalink, template_for, url_for,
)
from chronicle_pkg.settings import SiteConfig


class TestResolvePermalink:
    """Test cases for resolve_permalink."""

    def test_title_pattern(self, make_item):
        item = make_item(2014, 11, 12, 'best-commit-messages-one-line')
        assert resolve_permalink(item, 'blog/{title}/') == 'blog/best-commit-messages-one-line/'

    def test_zero_padded_date(self, make_item):
        item = make_item(2014, 5, 4, 'upgrading')
        assert resolve_permalink(item, '{year}/{month}/{day}/{title}.html') == '2014/05/04/upgrading.html'

    def test_repeated_placeholder(self, make_item):
        item = make_item(2014, 5, 4, 'x')
        assert resolve_permalink(item, '{year}/{title}-{year}/') == '2014/x-2014/'

    def test_unknown_placeholder(self, make_item):
        item = make_item(2014, 5, 4, 'x')
        with pytest.raises(UnknownPlaceholderError, match='author'):
            resolve_permalink(item, 'posts/{author}/{title}/')

    def test_missing_field(self, make_item):
        item = make_item(2014, 5, 4, '')
        with pytest.raises(MissingFieldError, match='title'):
            resolve_permalink(item, 'posts/{title}/')

    def test_deterministic(self, make_item):
        item = make_item(2014, 11, 12, 'same')
        results = {resolve_permalink(item, 'posts/{year}/{title}/') for _ in range(5)}
        assert results == {'posts/2014/same/'}


class TestParsePermalink:
    """Test cases for reading fields back out of a permalink."""

    @pytest.mark.parametrize('pattern', [
        'posts/{title}/',
        '{year}/{month}/{day}/{title}.html',
        'archive/{year}-{month}/{title}/{day}',
    ])
    def test_round_trip(self, make_item, pattern):
        item = make_item(2014, 5, 4, 'rails-4-upgrade')
        values = parse_permalink(resolve_permalink(item, pattern), pattern)
        for name, value in values.items():
            assert value == {'title': 'rails-4-upgrade', 'year': 2014, 'month': 5, 'day': 4}[name]

    def test_mismatch(self):
        with pytest.raises(ValueError):
            parse_permalink('articles/x/', 'posts/{title}/')

    def test_inconsistent_repeat(self):
        with pytest.raises(ValueError):
            parse_permalink('2014/x-2015/', '{year}/{title}-{year}/')

    def test_unknown_placeholder(self):
        with pytest.raises(UnknownPlaceholderError):
            parse_permalink('a/b', 'a/{slug}')


class TestDerivedRoutes:
    """Test cases for tag and calendar routes and template dispatch."""

    def test_template_for(self):
        config = SiteConfig()
        assert template_for(POST, config) == 'article_layout.html'
        assert template_for(TAG, config) == 'tag.html'
        assert template_for(CALENDAR, config) == 'calendar.html'

    def test_template_for_unknown_kind(self):
        with pytest.raises(BuildError, match='feed'):
            template_for('feed', SiteConfig())

    def test_route_for_post(self):
        route = route_for(POST, SiteConfig(permalink='blog/{title}/', layout='post'))
        assert route == RouteTemplate('blog/{title}/', 'post.html')

    def test_route_for_tag(self):
        route = route_for(TAG, SiteConfig(taglink='topics/{tag}/', tag_template='topic.html'))
        assert route == RouteTemplate('topics/{tag}/', 'topic.html')
        assert tag_permalink('Rails', route.pattern) == 'topics/rails/'

    def test_tag_permalink_slugifies(self):
        assert tag_permalink('Ruby on Rails') == 'tags/ruby-on-rails.html'
        assert tag_permalink('C#', 'topics/{tag}/') == 'topics/c/'

    def test_tag_permalink_empty_slug(self):
        with pytest.raises(MissingFieldError):
            tag_permalink('!!!')

    def test_calendar_permalinks(self):
        config = SiteConfig()
        assert calendar_permalink(config, 2014) == '2014.html'
        assert calendar_permalink(config, 2014, 5) == '2014/05.html'
        assert calendar_permalink(config, 2014, 5, 4) == '2014/05/04.html'

    def test_slugify(self):
        assert slugify('Hello, World_again') == 'hello-world-again'


class TestOutputFiles:
    """Test cases for permalink to file mapping and collisions."""

    @pytest.mark.parametrize('permalink,expected', [
        ('posts/x/', 'posts/x/index.html'),
        ('/posts/x/', 'posts/x/index.html'),
        ('posts/x', 'posts/x/index.html'),
        ('tags/rails.html', 'tags/rails.html'),
        ('', 'index.html'),
    ])
    def test_output_file_for(self, permalink, expected):
        assert output_file_for(permalink) == expected

    def test_url_for(self):
        assert url_for('posts/x/') == '/posts/x/'

    def test_check_collisions(self, make_item):
        first = make_item(2014, 5, 4, 'same-title')
        second = make_item(2015, 1, 1, 'same-title')
        with pytest.raises(PermalinkCollisionError) as excinfo:
            check_collisions([first, second], 'posts/{title}/')
        assert excinfo.value.paths == (first.source_path, second.source_path)
        assert first.source_path in str(excinfo.value)
        assert second.source_path in str(excinfo.value)

    def test_no_collision_with_dated_pattern(self, make_item):
        first = make_item(2014, 5, 4, 'same-title')
        second = make_item(2015, 1, 1, 'same-title')
        routes = check_collisions([first, second], '{year}/{title}/')
        assert list(routes) == ['2014/same-title/', '2015/same-title/']
