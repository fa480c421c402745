"""
List Filtering Helpers
======================
Pure functions used by every list operation to apply the free-text search
box. They work on model instances and plain dicts alike, so they can be
tested without a database.
"""


def resolve(item, path):
    """
    Read a (possibly dotted) field path from a model instance or dict.

    Returns None when any step of the path is missing.
    """
    value = item
    for part in path.split('.'):
        if value is None:
            return None
        if isinstance(value, dict):
            value = value.get(part)
        else:
            value = getattr(value, part, None)
    return value


def matches(value, query):
    """Case-insensitive substring match; None never matches."""
    if value is None:
        return False
    return query.lower() in str(value).lower()


def filter_items(items, query, fields):
    """
    Keep the items where any of ``fields`` contains ``query``.

    Args:
        items: Iterable of model instances or dicts
        query: Search text (blank or None returns all items)
        fields: Field paths to search, e.g. ['asset.asset_name', 'location']

    Returns:
        list, in the original order
    """
    items = list(items)
    if not query or not query.strip():
        return items

    query = query.strip()
    return [
        item for item in items
        if any(matches(resolve(item, field), query) for field in fields)
    ]
