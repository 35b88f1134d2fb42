"""
Chronicle - a static blog generator for dated markdown articles.

Chronicle reads articles named ``{year}-{month}-{day}-{title}.ext`` with YAML
front matter, routes each one to a permalink, and renders article, tag,
calendar and index pages plus a feed through Jinja2 templates.
"""

__version__ = "1.0.0"

from .core import Chronicle
from .settings import ChronicleSettings, SiteConfig

__all__ = ['Chronicle', 'ChronicleSettings', 'SiteConfig']
