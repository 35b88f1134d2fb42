"""
Tag and calendar grouping of content items.

Groups are rebuilt from the full item set on every build. Within a group
items are newest first by date; items sharing a date keep lexical
filename order.
"""

from collections import OrderedDict

from .routes import slugify


def sort_newest_first(items):
    """Newest first by (year, month, day), ties in lexical filename order."""
    by_name = sorted(items, key=lambda item: item.source_path)
    # sorted() is stable, so the filename order survives for equal dates
    return sorted(by_name, key=lambda item: (item.year, item.month, item.day), reverse=True)


def build_tag_index(items):
    """
    Map each tag to the items carrying it.

    Tags that share a slug (``Rails`` and ``rails``) form one group, named
    by the spelling seen first in lexical filename order. Tags are ordered
    alphabetically (case-insensitive); every item appears once per tag.
    """
    names = {}
    for item in sorted(items, key=lambda item: item.source_path):
        for tag in item.tags:
            names.setdefault(slugify(tag), tag)

    groups = {}
    for item in sort_newest_first(items):
        for slug in dict.fromkeys(slugify(tag) for tag in item.tags):
            groups.setdefault(names[slug], []).append(item)

    index = OrderedDict()
    for tag in sorted(groups, key=lambda t: (t.lower(), t)):
        index[tag] = tuple(groups[tag])
    return index


def build_calendar_index(items):
    """
    Map ``(year,)``, ``(year, month)`` and ``(year, month, day)`` keys to items.

    Keys are ordered newest first.
    """
    groups = {}
    for item in sort_newest_first(items):
        for key in ((item.year,), (item.year, item.month), (item.year, item.month, item.day)):
            groups.setdefault(key, []).append(item)

    index = OrderedDict()
    # a year sorts ahead of its months, a month ahead of its days
    for key in sorted(groups, key=lambda k: k + (99,) * (3 - len(k)), reverse=True):
        index[key] = tuple(groups[key])
    return index
