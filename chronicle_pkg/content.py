"""
Content store: dated article files with YAML front matter.

Each article lives at a path matching the configured source pattern, e.g.
``articles/{year}-{month}-{day}-{title}.html``, optionally followed by
template extensions such as ``.markdown``. The date and title slug come
from the file name; the title and tags come from the front matter.
"""

import os
import re
import glob
import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, Optional, Tuple

import yaml

from .errors import BuildError, MalformedFilenameError, MissingFrontMatterError

logger = logging.getLogger('chronicle.content')

PLACEHOLDER_RE = re.compile(r'\{(\w+)\}')

SOURCE_FIELDS = {
    'year': r'(?P<year>\d{4})',
    'month': r'(?P<month>\d{2})',
    'day': r'(?P<day>\d{2})',
    'title': r'(?P<title>[^/]+?)',
}

# Trailing template extensions after the pattern, e.g. ".markdown" in "x.html.markdown"
EXTENSIONS_RE = r'(?P<ext>(?:\.[A-Za-z0-9]+)*)'

REQUIRED_FIELDS = ('title',)


@dataclass(frozen=True)
class ContentItem:
    """A parsed article. Immutable once loaded."""
    source_path: str
    year: int
    month: int
    day: int
    title_slug: str
    title: str
    tags: Tuple[str, ...] = ()
    body: str = ''
    excerpt: Optional[str] = None
    metadata: Dict = field(default_factory=dict, compare=False, hash=False, repr=False)

    @property
    def date(self) -> date:
        return date(self.year, self.month, self.day)

    @property
    def summary(self) -> str:
        """Text shown on listing pages."""
        return self.excerpt if self.excerpt is not None else self.body


def compile_source_pattern(pattern: str):
    """Turn a source pattern with placeholders into an anchored regex."""
    parts = []
    position = 0
    seen = set()
    for match in PLACEHOLDER_RE.finditer(pattern):
        name = match.group(1)
        if name not in SOURCE_FIELDS:
            raise BuildError(f"Unknown placeholder '{{{name}}}' in source pattern '{pattern}'")
        if name in seen:
            raise BuildError(f"Placeholder '{{{name}}}' used twice in source pattern '{pattern}'")
        seen.add(name)
        parts.append(re.escape(pattern[position:match.start()]))
        parts.append(SOURCE_FIELDS[name])
        position = match.end()
    parts.append(re.escape(pattern[position:]))

    missing = set(SOURCE_FIELDS) - seen
    if missing:
        raise BuildError(
            f"Source pattern '{pattern}' lacks placeholders: {', '.join(sorted(missing))}"
        )
    return re.compile('^' + ''.join(parts) + EXTENSIONS_RE + '$')


def source_glob(pattern: str) -> str:
    """Glob matching every candidate file for a source pattern."""
    return PLACEHOLDER_RE.sub('*', pattern) + '*'


def parse_source_path(relative_path: str, pattern: str) -> Dict:
    """
    Extract year, month, day and title slug from a path relative to the
    content directory.

    Raises:
        MalformedFilenameError: if the path does not match the pattern or
            the date is not a real calendar date.
    """
    normalized = relative_path.replace(os.sep, '/')
    match = compile_source_pattern(pattern).match(normalized)
    if not match:
        raise MalformedFilenameError(relative_path, f"expected {pattern}")

    year, month, day = int(match.group('year')), int(match.group('month')), int(match.group('day'))
    try:
        date(year, month, day)
    except ValueError as e:
        raise MalformedFilenameError(relative_path, str(e))

    title_slug = match.group('title')
    if not title_slug.strip('-'):
        raise MalformedFilenameError(relative_path, "empty title")

    return {'year': year, 'month': month, 'day': day, 'title_slug': title_slug}


def parse_tags(value) -> Tuple[str, ...]:
    """Accept a comma-separated string or a YAML list; drop blanks and repeats."""
    if value is None:
        return ()
    if isinstance(value, str):
        raw = value.split(',')
    elif isinstance(value, (list, tuple)):
        raw = value
    else:
        raw = [value]

    tags = []
    for tag in raw:
        tag = str(tag).strip()
        if tag and tag not in tags:
            tags.append(tag)
    return tuple(tags)


def split_excerpt(body: str, marker: str) -> Tuple[str, str]:
    """
    Split an article body at the first excerpt marker.

    Returns ``(summary, remainder)``. Without a marker the summary is the
    whole body and the remainder is empty; with one,
    ``summary + marker + remainder == body``.
    """
    if not marker:
        return body, ''
    summary, found, remainder = body.partition(marker)
    if not found:
        return body, ''
    return summary, remainder


def parse_front_matter(text: str, path: str = '<string>') -> Tuple[Dict, str]:
    """Split a source file into its YAML front matter and markdown body."""
    text = text.lstrip('\ufeff')
    if not text.startswith('---'):
        return {}, text.strip()

    parts = text.split('---', 2)
    if len(parts) < 3:
        return {}, text.strip()

    try:
        metadata = yaml.safe_load(parts[1])
    except yaml.YAMLError as e:
        raise BuildError(f"Invalid YAML front matter in {path}: {e}")
    if metadata is None:
        metadata = {}
    if not isinstance(metadata, dict):
        raise BuildError(f"Front matter in {path} must be a mapping")
    return metadata, parts[2].strip()


def load_item(file_path: str, relative_path: str, pattern: str, marker: str = 'READMORE') -> ContentItem:
    """Read and parse one article file."""
    fields = parse_source_path(relative_path, pattern)

    try:
        with open(file_path, 'r', encoding='utf-8') as f:
            text = f.read()
    except (IOError, OSError) as e:
        raise BuildError(f"Failed to read source file {relative_path}: {e}")

    metadata, body = parse_front_matter(text, relative_path)
    for name in REQUIRED_FIELDS:
        value = metadata.get(name)
        if value is None or not str(value).strip():
            raise MissingFrontMatterError(relative_path, name)

    excerpt = metadata.get('excerpt')
    if excerpt is not None:
        excerpt = str(excerpt)
    else:
        summary, _ = split_excerpt(body, marker)
        if summary != body:
            excerpt = summary.rstrip()

    return ContentItem(
        source_path=relative_path.replace(os.sep, '/'),
        title=str(metadata['title']).strip(),
        tags=parse_tags(metadata.get('tags')),
        body=body,
        excerpt=excerpt,
        metadata=metadata,
        **fields
    )


def find_source_files(content_dir: str, pattern: str):
    """Return paths relative to ``content_dir`` of every candidate source file, sorted."""
    candidates = glob.glob(os.path.join(content_dir, source_glob(pattern)))
    relative = [os.path.relpath(path, content_dir) for path in candidates if os.path.isfile(path)]
    return sorted(path.replace(os.sep, '/') for path in relative)


def load_content(content_dir: str, pattern: str, marker: str = 'READMORE'):
    """
    Load every article under ``content_dir``, in lexical filename order.

    Any malformed file aborts the load.
    """
    if not os.path.isdir(content_dir):
        raise FileNotFoundError(f"Content directory not found: {content_dir}")

    items = []
    for relative_path in find_source_files(content_dir, pattern):
        item = load_item(os.path.join(content_dir, relative_path), relative_path, pattern, marker)
        logger.debug(f"Loaded {relative_path} ({item.date.isoformat()}, {len(item.tags)} tags)")
        items.append(item)

    if not items:
        logger.warning(f"No source files matching '{pattern}' in {content_dir}")
    return items
