"""Test configuration and fixtures for Chronicle tests."""

import os
import sys
import pytest
import tempfile
import shutil
from pathlib import Path

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from chronicle_pkg.content import ContentItem
from chronicle_pkg.settings import SiteConfig


ARTICLES = {
    '2014-05-04-upgrading-to-rails-4.html.markdown': """---
title: Upgrading to Rails 4
tags: rails, ruby
---

Strong parameters moved into the controller.
""",
    '2014-11-12-best-commit-messages-one-line.html.markdown': """---
title: The best commit messages are one line
tags: git, rails
---

Keep the subject short.

READMORE

Longer explanations belong in the pull request.

```python
print("hi")
```
""",
    '2014-11-12-another-article-same-day.html.md': """---
title: Another article on the same day
tags:
  - git
---

Second article of the day.
""",
}


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests."""
    temp_dir = tempfile.mkdtemp()
    yield temp_dir
    shutil.rmtree(temp_dir, ignore_errors=True)


@pytest.fixture
def mock_content_dir(temp_dir):
    """Create a content directory with articles and asset directories."""
    content_dir = Path(temp_dir) / 'source'
    articles_dir = content_dir / 'articles'
    articles_dir.mkdir(parents=True)

    for name, text in ARTICLES.items():
        (articles_dir / name).write_text(text, encoding='utf-8')

    (content_dir / 'stylesheets').mkdir()
    (content_dir / 'stylesheets' / 'site.css').write_text("body {\n    color: #333333;\n}\n")
    (content_dir / 'javascripts').mkdir()
    (content_dir / 'javascripts' / 'site.js').write_text("function hello() {\n    return 1;\n}\n")
    (content_dir / 'images').mkdir()
    (content_dir / 'images' / 'logo.png').write_bytes(b'\x89PNG\r\n\x1a\n')

    return str(content_dir)


@pytest.fixture
def mock_templates_dir(temp_dir):
    """Create a templates directory overriding only the article layout."""
    templates_dir = Path(temp_dir) / 'templates'
    templates_dir.mkdir()

    (templates_dir / 'article_layout.html').write_text(
        "<h1>{{ article.title }}</h1>\n"
        "<div>{{ content|safe }}</div>\n"
        "{% if comments.enabled %}<div id=\"disqus_thread\" data-shortname=\"{{ comments.value }}\"></div>{% endif %}\n"
        "{% if analytics.enabled %}<script data-ga=\"{{ analytics.value }}\"></script>{% endif %}\n"
    )
    return str(templates_dir)


@pytest.fixture
def mock_output_dir(temp_dir):
    """Output directory path (not created)."""
    return str(Path(temp_dir) / 'build')


@pytest.fixture
def site_config(temp_dir, mock_content_dir, mock_templates_dir, mock_output_dir):
    """A SiteConfig pointing at the temporary directories."""
    return SiteConfig(
        content=mock_content_dir,
        templates=mock_templates_dir,
        output=mock_output_dir,
        root=temp_dir,
        site_title='Test Blog',
        site_url='https://example.com',
    )


@pytest.fixture
def make_item():
    """Factory for ContentItem instances without touching the filesystem."""
    def factory(year, month, day, slug, tags=(), title=None, body='Body'):
        return ContentItem(
            source_path=f'articles/{year:04d}-{month:02d}-{day:02d}-{slug}.html.markdown',
            year=year,
            month=month,
            day=day,
            title_slug=slug,
            title=title or slug.replace('-', ' ').title(),
            tags=tuple(tags),
            body=body,
        )
    return factory
