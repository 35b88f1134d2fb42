"""
Route resolution for Chronicle.

Maps a content item's path-derived fields onto a permalink pattern such
as ``posts/{title}/`` and maps a page kind onto the template that renders
it. Everything here is pure: no I/O, no state.
"""

import re
from dataclasses import dataclass
from typing import Dict, Optional

from .errors import BuildError, MissingFieldError, PermalinkCollisionError, UnknownPlaceholderError

PLACEHOLDER_RE = re.compile(r'\{(\w+)\}')

# Zero-padding widths follow the {year}-{month}-{day} filename convention
NUMERIC_WIDTHS = {'year': 4, 'month': 2, 'day': 2}

# Regexes used to read values back out of a rendered path
PLACEHOLDER_PATTERNS = {
    'year': r'\d{4}',
    'month': r'\d{2}',
    'day': r'\d{2}',
    'title': r'[^/]+?',
    'tag': r'[^/]+?',
}

POST = 'post'
TAG = 'tag'
CALENDAR = 'calendar'


@dataclass(frozen=True)
class RouteTemplate:
    """A permalink pattern paired with the template that renders it."""
    pattern: str
    layout: str


def slugify(text: str) -> str:
    """Lowercase, with runs of non-word characters collapsed to a hyphen."""
    text = str(text).lower()
    text = re.sub(r'[^\w]+', '-', text, flags=re.UNICODE)
    return text.strip('-_').replace('_', '-')


def format_field(name, value) -> str:
    if name in NUMERIC_WIDTHS:
        return f"{int(value):0{NUMERIC_WIDTHS[name]}d}"
    return str(value)


def substitute(pattern: str, values: Dict, source: Optional[str] = None) -> str:
    """
    Replace every ``{placeholder}`` in ``pattern`` from ``values``.

    Raises:
        UnknownPlaceholderError: placeholder not in ``values``.
        MissingFieldError: placeholder value is None or empty.
    """
    def replace(match):
        name = match.group(1)
        if name not in values:
            raise UnknownPlaceholderError(name, pattern)
        value = values[name]
        if value is None or value == '':
            raise MissingFieldError(name, source)
        return format_field(name, value)

    return PLACEHOLDER_RE.sub(replace, pattern)


def item_fields(item) -> Dict:
    """Placeholder values a content item provides."""
    return {
        'title': item.title_slug,
        'year': item.year,
        'month': item.month,
        'day': item.day,
    }


def resolve_permalink(item, pattern: str) -> str:
    """Output permalink for a content item, e.g. ``posts/my-article/``."""
    return substitute(pattern, item_fields(item), item.source_path)


def parse_permalink(path: str, pattern: str) -> Dict:
    """
    Read placeholder values back out of a rendered permalink.

    Numeric fields come back as ints. A placeholder that occurs more than
    once must carry the same value each time.

    Raises:
        UnknownPlaceholderError: pattern uses an unknown placeholder.
        ValueError: ``path`` was not produced by ``pattern``.
    """
    parts = []
    position = 0
    seen = set()
    for match in PLACEHOLDER_RE.finditer(pattern):
        name = match.group(1)
        if name not in PLACEHOLDER_PATTERNS:
            raise UnknownPlaceholderError(name, pattern)
        parts.append(re.escape(pattern[position:match.start()]))
        if name in seen:
            parts.append(f'(?P={name})')
        else:
            parts.append(f'(?P<{name}>{PLACEHOLDER_PATTERNS[name]})')
            seen.add(name)
        position = match.end()
    parts.append(re.escape(pattern[position:]))

    match = re.match('^' + ''.join(parts) + '$', path)
    if not match:
        raise ValueError(f"Path '{path}' does not match pattern '{pattern}'")

    values = match.groupdict()
    for name in NUMERIC_WIDTHS:
        if name in values:
            values[name] = int(values[name])
    return values


def template_for(kind: str, config) -> str:
    """Template file that renders a page of the given kind."""
    if kind == POST:
        return config.layout_template
    if kind == TAG:
        return config.tag_template
    if kind == CALENDAR:
        return config.calendar_template
    raise BuildError(f"Unknown page kind: {kind}")


def route_for(kind: str, config) -> RouteTemplate:
    if kind == POST:
        return RouteTemplate(config.permalink, template_for(kind, config))
    if kind == TAG:
        return RouteTemplate(config.taglink, template_for(kind, config))
    raise BuildError(f"No single route for page kind: {kind}")


def tag_permalink(tag: str, pattern: str = 'tags/{tag}.html') -> str:
    slug = slugify(tag)
    if not slug:
        raise MissingFieldError('tag', f"tag {tag!r}")
    return substitute(pattern, {'tag': slug})


def calendar_permalink(config, year: int, month: Optional[int] = None, day: Optional[int] = None) -> str:
    """Permalink of a year, month or day archive page."""
    if day is not None:
        return substitute(config.day_link, {'year': year, 'month': month, 'day': day})
    if month is not None:
        return substitute(config.month_link, {'year': year, 'month': month})
    return substitute(config.year_link, {'year': year})


def output_file_for(permalink: str) -> str:
    """
    Relative output file for a permalink.

    Directory-style permalinks (trailing slash, or no extension on the
    last segment) are written as ``index.html`` inside that directory.
    """
    path = permalink.lstrip('/')
    if not path or path.endswith('/'):
        return path + 'index.html'
    last = path.rsplit('/', 1)[-1]
    if '.' not in last:
        return path + '/index.html'
    return path


def url_for(permalink: str) -> str:
    return '/' + permalink.lstrip('/')


def check_collisions(items, pattern: str) -> Dict[str, object]:
    """
    Resolve every item and fail on the first duplicate permalink.

    Returns a mapping of permalink to item, in input order.
    """
    routes = {}
    for item in items:
        permalink = resolve_permalink(item, pattern)
        if permalink in routes:
            raise PermalinkCollisionError(permalink, routes[permalink].source_path, item.source_path)
        routes[permalink] = item
    return routes
