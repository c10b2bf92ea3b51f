"""
Path helpers.

All paths handled by panfs are normalized: they start with "/", never end
with "/" (except the root itself) and contain no empty segments. Only "/"
separates segments; every other character, backslash included, belongs to
the node name.
"""

ROOT = "/"


def normalize_path(path: str) -> str:
    """Normalize a user-supplied path.

    A leading slash is added when missing and a trailing slash is dropped.
    Empty segments (``//``) are dropped too, since no node has an empty
    name. ``""`` and ``"/"`` both normalize to the root.
    """
    segments = [s for s in path.split("/") if s]
    return ROOT + "/".join(segments)


def is_root(path: str) -> bool:
    return normalize_path(path) == ROOT


def split_path(path: str) -> tuple[str, str]:
    """Split a normalized path into (parent_path, leaf_name).

    The parent of a top-level entry is ``"/"``. Splitting the root returns
    ``("/", "")``.
    """
    if path == ROOT:
        return ROOT, ""
    parent, _, name = path.rpartition("/")
    return parent or ROOT, name


def join_path(parent: str, name: str) -> str:
    if parent == ROOT:
        return ROOT + name
    return f"{parent}/{name}"


def segments(path: str) -> list[str]:
    return [s for s in path.split("/") if s]


def is_within(path: str, ancestor: str) -> bool:
    """True if ``path`` equals ``ancestor`` or lies underneath it."""
    if ancestor == ROOT:
        return True
    return path == ancestor or path.startswith(ancestor + "/")
