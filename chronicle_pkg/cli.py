#!/usr/bin/env python3
"""
Command-line interface for Chronicle - static blog generator.
"""

import os
import sys
import argparse
import time
from typing import List, Optional

from . import __version__
from .core import Chronicle
from .errors import BuildError
from .settings import ChronicleSettings


SAMPLE_ARTICLE = """---
title: Hello, Chronicle
tags: welcome, meta
---

This is the first article of your new blog. Everything above the marker
shows up on the home page and in the feed.

READMORE

Everything below the marker is only shown on the article page.

```python
print("hello")
```
"""


def create_starter_structure(content_dir: str = 'source') -> None:
    """Create the content directory layout with one sample article."""
    current_dir = os.getcwd()

    directories = [
        os.path.join(content_dir, 'articles'),
        os.path.join(content_dir, 'stylesheets'),
        os.path.join(content_dir, 'javascripts'),
        os.path.join(content_dir, 'images'),
    ]

    for directory in directories:
        dir_path = os.path.join(current_dir, directory)
        if os.path.exists(dir_path):
            print(f"Directory already exists: {directory}")
        else:
            os.makedirs(dir_path, exist_ok=True)
            print(f"Created directory: {directory}")

    today = time.strftime('%Y-%m-%d')
    article_path = os.path.join(content_dir, 'articles', f'{today}-hello-chronicle.html.markdown')
    if os.path.exists(article_path):
        print(f"Sample article already exists: {article_path}")
    else:
        with open(article_path, 'w', encoding='utf-8') as f:
            f.write(SAMPLE_ARTICLE)
        print(f"Created sample article: {article_path}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='Chronicle - Static Blog Generator')
    parser.add_argument('--output', type=str,
                        help='Output directory for generated site')
    parser.add_argument('--content', type=str,
                        help='Content directory containing articles and assets')
    parser.add_argument('--templates', type=str,
                        help='Templates directory')
    parser.add_argument('--permalink', type=str,
                        help="Permalink pattern for articles, e.g. 'posts/{title}/'")
    parser.add_argument('--posts-per-page', type=int,
                        help='Number of articles per index page')
    parser.add_argument('--site-title', type=str, help='Site title for pages and the feed')
    parser.add_argument('--site-url', type=str,
                        help='Site URL used for absolute links in the feed')
    parser.add_argument('--environment', type=str, default='build',
                        help="Configuration environment to apply (default: build)")
    parser.add_argument('--minify', action='store_true', default=None,
                        help='Minify CSS and JS assets')
    parser.add_argument('--no-log-file', action='store_true',
                        help='Do not write a log file under ./logs')
    parser.add_argument('--init', type=str, choices=['yml', 'yaml', 'json'],
                        help='Create a sample configuration file and starter content')
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')
    return parser


def main(argv: Optional[List[str]] = None) -> None:
    """Main CLI entry point."""
    args = build_parser().parse_args(argv)

    # Handle init command
    if args.init:
        settings_loader = ChronicleSettings()
        config_path = settings_loader.create_sample_config(args.init)
        print(f"Created sample configuration file: {config_path}")
        print("\nCreating starter project structure...")
        create_starter_structure()
        print("\nYour new Chronicle blog is ready! Run 'chronicle' to build it.")
        return

    overall_start_time = time.time()

    try:
        # Load settings from configuration file
        settings_loader = ChronicleSettings()
        settings_loader.load_settings()

        args_dict = {
            'output': args.output,
            'content': args.content,
            'templates': args.templates,
            'permalink': args.permalink,
            'posts_per_page': args.posts_per_page,
            'site_title': args.site_title,
            'site_url': args.site_url,
            'minify': args.minify,
        }
        config = settings_loader.build_config(args_dict, args.environment)

        generator = Chronicle(config, log_to_file=not args.no_log_file)
        generator.build()

        total_time = time.time() - overall_start_time
        generator.logger.info(f"Site build completed in {total_time:.6f} seconds.")
        generator.logger.info(f"Total articles generated: {generator.articles_generated}")
        generator.logger.info(f"Total tag pages generated: {generator.tag_pages_generated}")
        generator.logger.info(f"Total calendar pages generated: {generator.calendar_pages_generated}")

    except (BuildError, FileNotFoundError, PermissionError, IOError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == '__main__':
    main()
