#!/usr/bin/env python3
"""
Settings loader for Chronicle static blog generator.
Supports configuration from chronicle.yml, chronicle.yaml, or chronicle.json files,
with optional per-environment overrides.
"""

import os
import json
import yaml
from dataclasses import dataclass, field
from typing import Dict, Any, Optional

from .errors import ConfigError

# Environments that are always selectable, even without an override block
BUILTIN_ENVIRONMENTS = ('development', 'build')


@dataclass(frozen=True)
class PluginSettings:
    """Enabled flag plus the single string parameter a plugin takes."""
    enabled: bool = False
    value: Optional[str] = None

    @classmethod
    def from_value(cls, raw, key):
        """
        Build plugin settings from a config value.

        Accepts a bool, a bare string (the parameter itself), or a mapping
        holding ``enabled`` and ``key``. A parameter set to ``false``
        disables the plugin.
        """
        if raw is None or raw is False:
            return cls()
        if raw is True:
            return cls(enabled=True)
        if isinstance(raw, str):
            return cls(enabled=bool(raw.strip()), value=raw.strip() or None)
        if isinstance(raw, dict):
            param = raw.get(key)
            if param is False:
                return cls()
            value = str(param).strip() if param not in (None, True) else None
            enabled = raw.get('enabled', value is not None or param is True)
            return cls(enabled=bool(enabled), value=value or None)
        raise ConfigError(f"Invalid plugin setting for '{key}': {raw!r}")


@dataclass(frozen=True)
class SiteConfig:
    """Immutable configuration for one build of one site variant."""
    content: str = 'source'
    templates: str = 'templates'
    output: str = 'build'
    root: str = '.'
    site_title: Optional[str] = None
    site_url: Optional[str] = None
    site_description: Optional[str] = None
    permalink: str = 'posts/{title}/'
    sources: str = 'articles/{year}-{month}-{day}-{title}.html'
    layout: str = 'article_layout'
    tag_template: str = 'tag.html'
    calendar_template: str = 'calendar.html'
    taglink: str = 'tags/{tag}.html'
    year_link: str = '{year}.html'
    month_link: str = '{year}/{month}.html'
    day_link: str = '{year}/{month}/{day}.html'
    summary_separator: str = 'READMORE'
    posts_per_page: int = 10
    feed_path: str = 'feed.xml'
    feed_limit: int = 20
    css_dir: str = 'stylesheets'
    js_dir: str = 'javascripts'
    images_dir: str = 'images'
    minify: bool = False
    smartypants: bool = True
    environment: str = 'build'
    comments: PluginSettings = field(default_factory=PluginSettings)
    analytics: PluginSettings = field(default_factory=PluginSettings)
    syntax: PluginSettings = field(default_factory=lambda: PluginSettings(True, 'default'))

    @property
    def asset_dirs(self) -> Dict[str, str]:
        return {'css': self.css_dir, 'js': self.js_dir, 'images': self.images_dir}

    @property
    def layout_template(self) -> str:
        """Template file name for the article layout identifier."""
        return template_filename(self.layout)

    @classmethod
    def from_dict(cls, settings: Dict[str, Any]) -> 'SiteConfig':
        """
        Build a validated config from a merged settings mapping.

        Unknown keys are ignored so that settings files can carry
        values for other tools.
        """
        values = {}
        for name in cls.__dataclass_fields__:
            if name in ('comments', 'analytics', 'syntax'):
                continue
            if settings.get(name) is not None:
                values[name] = settings[name]

        for name in ('permalink', 'sources', 'layout', 'tag_template', 'calendar_template',
                     'taglink', 'year_link', 'month_link', 'day_link', 'feed_path',
                     'summary_separator'):
            if name in values and (not isinstance(values[name], str) or not values[name].strip()):
                raise ConfigError(f"Setting '{name}' must be a non-empty string")

        for name in ('posts_per_page', 'feed_limit'):
            if name in values:
                try:
                    values[name] = max(1, int(values[name]))
                except (TypeError, ValueError):
                    raise ConfigError(f"Setting '{name}' must be an integer, got {values[name]!r}")

        if values.get('site_url'):
            values['site_url'] = str(values['site_url']).rstrip('/')
        values['minify'] = bool(values.get('minify', False))
        values['smartypants'] = bool(values.get('smartypants', True))

        values['comments'] = PluginSettings.from_value(settings.get('comments'), 'shortname')
        values['analytics'] = PluginSettings.from_value(settings.get('analytics'), 'tracking_id')
        if 'syntax' in settings:
            syntax = PluginSettings.from_value(settings['syntax'], 'style')
            if syntax.enabled and not syntax.value:
                syntax = PluginSettings(True, 'default')
            values['syntax'] = syntax

        return cls(**values)


def template_filename(identifier: str) -> str:
    """Map a layout identifier such as ``article_layout`` to its template file."""
    identifier = str(identifier)
    return identifier if os.path.splitext(identifier)[1] else f"{identifier}.html"


def select_environment(settings: Dict[str, Any], environment: str) -> Dict[str, Any]:
    """
    Apply the override block for ``environment`` on top of the base settings.

    Override mappings are merged one level deep, so an environment can flip
    ``analytics.tracking_id`` without restating the rest of the block.
    """
    environments = settings.get('environments') or {}
    if not isinstance(environments, dict):
        raise ConfigError("Setting 'environments' must be a mapping")
    if environment not in environments and environment not in BUILTIN_ENVIRONMENTS:
        raise ConfigError(f"Unknown environment: {environment}")

    selected = {k: v for k, v in settings.items() if k != 'environments'}
    overrides = environments.get(environment) or {}
    if not isinstance(overrides, dict):
        raise ConfigError(f"Overrides for environment '{environment}' must be a mapping")

    for key, value in overrides.items():
        base = selected.get(key)
        if isinstance(base, dict) and isinstance(value, dict):
            merged = dict(base)
            merged.update(value)
            selected[key] = merged
        else:
            selected[key] = value
    selected['environment'] = environment
    return selected


class ChronicleSettings:
    """Load and manage Chronicle configuration settings."""

    # Default configuration
    DEFAULT_SETTINGS = {
        'output': 'build',
        'content': 'source',
        'templates': 'templates',
        'site_title': None,
        'site_url': None,
        'site_description': None,
        'permalink': 'posts/{title}/',
        'sources': 'articles/{year}-{month}-{day}-{title}.html',
        'layout': 'article_layout',
        'tag_template': 'tag.html',
        'calendar_template': 'calendar.html',
        'posts_per_page': 10,
        'feed_path': 'feed.xml',
        'minify': False,
        'smartypants': True,
    }

    # Config file names to look for (in order of preference)
    CONFIG_FILES = ['chronicle.yml', 'chronicle.yaml', 'chronicle.json']

    def __init__(self, config_dir: str = None):
        """
        Initialize settings loader.

        Args:
            config_dir: Directory to look for config files. Defaults to current directory.
        """
        self.config_dir = config_dir or os.getcwd()
        self.settings = self.DEFAULT_SETTINGS.copy()
        self.config_file_path = None

    def load_settings(self) -> Dict[str, Any]:
        """
        Load settings from configuration file if it exists.

        Returns:
            Dictionary of configuration settings
        """
        config_file = self._find_config_file()

        if config_file:
            self.config_file_path = config_file
            try:
                loaded_settings = self._load_config_file(config_file)
            except (ValueError, IOError) as e:
                raise ConfigError(str(e)) from e
            if not isinstance(loaded_settings, dict):
                raise ConfigError(f"Configuration file must contain a mapping: {config_file}")
            # Merge with defaults, giving preference to loaded settings
            self.settings.update(loaded_settings)
            print(f"Loaded configuration from: {os.path.relpath(config_file)}")

        return self.settings.copy()

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
                    raise ValueError(f"Unsupported config file format: {file_ext}")
        except FileNotFoundError:
            raise FileNotFoundError(f"Configuration file not found: {config_path}")
        except PermissionError:
            raise PermissionError(f"Permission denied reading configuration file: {config_path}")
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in configuration file {config_path}: {e}")
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON in configuration file {config_path}: {e}")

    def create_sample_config(self, file_format: str = 'yml') -> str:
        """
        Create a sample configuration file.

        Args:
            file_format: Format for config file ('yml', 'yaml', or 'json')

        Returns:
            Path to created sample config file
        """
        sample_config = {
            'site_url': 'https://example.com',
            'site_title': 'My Blog',
            'content': 'source',
            'templates': 'templates',
            'output': 'build',
            'permalink': 'posts/{title}/',
            'sources': 'articles/{year}-{month}-{day}-{title}.html',
            'layout': 'article_layout',
            'tag_template': 'tag.html',
            'calendar_template': 'calendar.html',
            'css_dir': 'stylesheets',
            'js_dir': 'javascripts',
            'images_dir': 'images',
            'smartypants': True,
            'comments': {'shortname': 'example'},
            'syntax': {'enabled': True, 'style': 'default'},
            'environments': {
                'development': {'analytics': {'tracking_id': False}},
                'build': {'analytics': {'tracking_id': 'UA-0000000-1'}},
            },
        }

        filename = f'chronicle.{file_format}'
        config_path = os.path.join(self.config_dir, filename)

        try:
            with open(config_path, 'w', encoding='utf-8') as f:
                if file_format in ['yml', 'yaml']:
                    # Custom YAML output with comments
                    f.write("# Chronicle Configuration File\n\n")
                    f.write("# Site information\n")
                    f.write("site_url: https://example.com\n")
                    f.write("site_title: My Blog\n\n")
                    f.write("# Directories\n")
                    f.write("content: source\n")
                    f.write("templates: templates\n")
                    f.write("output: build\n\n")
                    f.write("# Blog routing\n")
                    f.write("permalink: \"posts/{title}/\"\n")
                    f.write("sources: \"articles/{year}-{month}-{day}-{title}.html\"\n")
                    f.write("layout: article_layout\n")
                    f.write("tag_template: tag.html\n")
                    f.write("calendar_template: calendar.html\n\n")
                    f.write("# Asset directories (inside the content directory)\n")
                    f.write("css_dir: stylesheets\n")
                    f.write("js_dir: javascripts\n")
                    f.write("images_dir: images\n\n")
                    f.write("# Typographic quotes and dashes in article text\n")
                    f.write("smartypants: true\n\n")
                    f.write("# Plugins\n")
                    f.write("comments:\n")
                    f.write("  shortname: example\n")
                    f.write("syntax:\n")
                    f.write("  enabled: true\n")
                    f.write("  style: default\n\n")
                    f.write("# Per-environment overrides\n")
                    f.write("environments:\n")
                    f.write("  development:\n")
                    f.write("    analytics:\n")
                    f.write("      tracking_id: false\n")
                    f.write("  build:\n")
                    f.write("    analytics:\n")
                    f.write("      tracking_id: UA-0000000-1\n")
                elif file_format == 'json':
                    json.dump(sample_config, f, indent=2)
                else:
                    raise ValueError(f"Unsupported config file format: {file_format}")
        except PermissionError:
            raise PermissionError(f"Permission denied creating configuration file: {config_path}")
        except (IOError, OSError) as e:
            raise IOError(f"Error writing configuration file {config_path}: {e}")

        return config_path

    def merge_with_args(self, args_dict: Dict[str, Any], settings: Dict[str, Any] = None) -> Dict[str, Any]:
        """
        Merge configuration settings with command-line arguments.
        Command-line arguments take precedence over config file settings.

        Args:
            args_dict: Dictionary of command-line arguments
            settings: Settings to merge into. Defaults to the loaded settings.

        Returns:
            Merged configuration dictionary
        """
        merged = (self.settings if settings is None else settings).copy()

        # Override with non-None command line arguments
        for key, value in args_dict.items():
            if value is not None:
                merged[key] = value

        return merged

    def build_config(self, args_dict: Dict[str, Any] = None, environment: str = 'build') -> SiteConfig:
        """Select the environment, apply arguments on top and freeze the result."""
        selected = select_environment(self.settings, environment)
        merged = self.merge_with_args(args_dict or {}, selected)
        # The output directory may only be cleaned inside the project
        merged['root'] = merged.get('root') or self.config_dir
        return SiteConfig.from_dict(merged)
