"""Tests for settings loading and environment selection."""

import json
import pytest
import yaml
from pathlib import Path

from chronicle_pkg.errors import ConfigError
from chronicle_pkg.settings import ChronicleSettings, PluginSettings, SiteConfig, select_environment


class TestPluginSettings:
    """Test cases for PluginSettings.from_value."""

    @pytest.mark.parametrize('raw,expected', [
        (None, PluginSettings()),
        (False, PluginSettings()),
        (True, PluginSettings(True, None)),
        ('brianauton', PluginSettings(True, 'brianauton')),
        ({'shortname': 'brianauton'}, PluginSettings(True, 'brianauton')),
        ({'shortname': False}, PluginSettings()),
        ({'enabled': False, 'shortname': 'x'}, PluginSettings(False, 'x')),
    ])
    def test_from_value(self, raw, expected):
        assert PluginSettings.from_value(raw, 'shortname') == expected

    def test_invalid_value(self):
        with pytest.raises(ConfigError):
            PluginSettings.from_value(42, 'shortname')


class TestSiteConfig:
    """Test cases for SiteConfig.from_dict."""

    def test_defaults(self):
        config = SiteConfig.from_dict({})
        assert config.permalink == 'posts/{title}/'
        assert config.sources == 'articles/{year}-{month}-{day}-{title}.html'
        assert config.layout_template == 'article_layout.html'
        assert config.asset_dirs == {'css': 'stylesheets', 'js': 'javascripts', 'images': 'images'}
        assert config.feed_path == 'feed.xml'
        assert not config.comments.enabled
        assert not config.analytics.enabled
        assert config.syntax == PluginSettings(True, 'default')

    def test_values_and_normalization(self):
        config = SiteConfig.from_dict({
            'site_url': 'https://example.com/',
            'posts_per_page': '0',
            'comments': {'shortname': 'brianauton'},
            'analytics': {'tracking_id': 'UA-8088357-1'},
            'syntax': False,
            'unrelated_key': 'ignored',
        })
        assert config.site_url == 'https://example.com'
        assert config.posts_per_page == 1
        assert config.comments == PluginSettings(True, 'brianauton')
        assert config.analytics == PluginSettings(True, 'UA-8088357-1')
        assert not config.syntax.enabled

    def test_immutable(self):
        config = SiteConfig()
        with pytest.raises(AttributeError):
            config.permalink = 'x/{title}'

    def test_empty_permalink(self):
        with pytest.raises(ConfigError, match='permalink'):
            SiteConfig.from_dict({'permalink': ''})

    def test_bad_integer(self):
        with pytest.raises(ConfigError, match='posts_per_page'):
            SiteConfig.from_dict({'posts_per_page': 'many'})


class TestEnvironments:
    """Test cases for select_environment."""

    SETTINGS = {
        'site_title': 'Blog',
        'analytics': {'tracking_id': 'UA-1', 'anonymize': True},
        'environments': {
            'development': {'analytics': {'tracking_id': False}},
            'build': {'site_title': 'Blog (live)'},
        },
    }

    def test_development_disables_analytics(self):
        selected = select_environment(self.SETTINGS, 'development')
        assert selected['analytics'] == {'tracking_id': False, 'anonymize': True}
        assert 'environments' not in selected
        assert not SiteConfig.from_dict(selected).analytics.enabled

    def test_build_keeps_analytics(self):
        config = SiteConfig.from_dict(select_environment(self.SETTINGS, 'build'))
        assert config.analytics == PluginSettings(True, 'UA-1')
        assert config.site_title == 'Blog (live)'
        assert config.environment == 'build'

    def test_base_settings_untouched(self):
        select_environment(self.SETTINGS, 'development')
        assert self.SETTINGS['analytics']['tracking_id'] == 'UA-1'

    def test_builtin_environment_without_block(self):
        assert select_environment({'site_title': 'x'}, 'development')['site_title'] == 'x'

    def test_unknown_environment(self):
        with pytest.raises(ConfigError, match='staging'):
            select_environment(self.SETTINGS, 'staging')


class TestChronicleSettings:
    """Test cases for the settings file loader."""

    def test_no_config_file(self, temp_dir):
        settings = ChronicleSettings(temp_dir).load_settings()
        assert settings == ChronicleSettings.DEFAULT_SETTINGS

    def test_load_yaml(self, temp_dir):
        Path(temp_dir, 'chronicle.yml').write_text(yaml.dump({'permalink': 'blog/{title}/'}))
        loader = ChronicleSettings(temp_dir)
        settings = loader.load_settings()
        assert settings['permalink'] == 'blog/{title}/'
        assert settings['content'] == 'source'
        assert loader.config_file_path.endswith('chronicle.yml')

    def test_yml_preferred_over_json(self, temp_dir):
        Path(temp_dir, 'chronicle.yml').write_text('site_title: from yaml\n')
        Path(temp_dir, 'chronicle.json').write_text(json.dumps({'site_title': 'from json'}))
        assert ChronicleSettings(temp_dir).load_settings()['site_title'] == 'from yaml'

    def test_invalid_yaml(self, temp_dir):
        Path(temp_dir, 'chronicle.yml').write_text('permalink: [unclosed\n')
        with pytest.raises(ConfigError, match='Invalid YAML'):
            ChronicleSettings(temp_dir).load_settings()

    def test_invalid_json(self, temp_dir):
        Path(temp_dir, 'chronicle.json').write_text('{not json')
        with pytest.raises(ConfigError, match='Invalid JSON'):
            ChronicleSettings(temp_dir).load_settings()

    def test_non_mapping(self, temp_dir):
        Path(temp_dir, 'chronicle.yml').write_text('- a\n- b\n')
        with pytest.raises(ConfigError, match='mapping'):
            ChronicleSettings(temp_dir).load_settings()

    def test_merge_with_args(self, temp_dir):
        loader = ChronicleSettings(temp_dir)
        merged = loader.merge_with_args({'output': 'public', 'site_url': None})
        assert merged['output'] == 'public'
        assert merged['site_url'] is None

        selected = {'output': 'build', 'site_url': 'https://env.example.com'}
        merged = loader.merge_with_args({'output': 'public', 'site_url': None}, selected)
        assert merged == {'output': 'public', 'site_url': 'https://env.example.com'}
        assert selected['output'] == 'build'

    def test_root_defaults_to_config_dir(self, temp_dir):
        config = ChronicleSettings(temp_dir).build_config()
        assert config.root == temp_dir
        assert config.smartypants is True

    def test_args_override_environment(self, temp_dir):
        Path(temp_dir, 'chronicle.yml').write_text(yaml.dump({
            'environments': {'build': {'site_url': 'https://env.example.com'}},
        }))
        loader = ChronicleSettings(temp_dir)
        loader.load_settings()
        config = loader.build_config({'site_url': 'https://cli.example.com'}, 'build')
        assert config.site_url == 'https://cli.example.com'

    @pytest.mark.parametrize('file_format', ['yml', 'json'])
    def test_sample_config_round_trip(self, temp_dir, file_format):
        loader = ChronicleSettings(temp_dir)
        path = loader.create_sample_config(file_format)
        assert path.endswith(f'chronicle.{file_format}')

        fresh = ChronicleSettings(temp_dir)
        fresh.load_settings()
        development = fresh.build_config(environment='development')
        build = fresh.build_config(environment='build')
        assert development.comments == PluginSettings(True, 'example')
        assert not development.analytics.enabled
        assert build.analytics == PluginSettings(True, 'UA-0000000-1')
