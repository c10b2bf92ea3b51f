"""
Path-to-node resolver.

Teambition pan is ID-based, not path-based. This module resolves
filesystem paths (e.g. "/media/music/1.mp3") to nodes by listing one folder
level at a time. Folder IDs discovered on the way are kept in a PathCache,
so once the parent of a path is cached a resolution costs one listing no
matter how deep the path is.
"""

import logging

from .api import RemoteDirectory
from .errors import NotFoundError
from .models import Identity, Kind, Node
from .path_cache import PathCache
from .paths import ROOT, normalize_path, split_path

logger = logging.getLogger(__name__)


class PathResolver:
    """
    Resolves normalized paths plus a kind filter to Node records.

    Safe to share between threads: the only shared state is the PathCache.
    """

    def __init__(self, remote: RemoteDirectory, ids: Identity, root: Node, cache: PathCache):
        """
        Args:
            remote: Remote directory service used for listings.
            ids: Organization/drive identifiers of the session.
            root: Well-known root folder node.
            cache: Folder path -> node ID cache shared by the session.
        """
        self._remote = remote
        self._ids = ids
        self._root = root
        self._cache = cache

    @property
    def root(self) -> Node:
        return self._root

    def resolve(self, path: str, kind: Kind = Kind.ANY, *, deadline: float | None = None) -> Node:
        """
        Resolve a path to the node it names.

        Args:
            path: Path to resolve; normalized internally.
            kind: Only accept nodes of this kind (Kind.ANY accepts both).
            deadline: Optional monotonic deadline for the network calls.

        Returns:
            The first child of the parent folder whose name matches the last
            path segment and whose kind matches ``kind``.

        Raises:
            NotFoundError: If no such child exists, or an ancestor is missing.
        """
        path = normalize_path(path)
        if path == ROOT:
            return self._root

        parent_path, name = split_path(path)
        parent_id = self._folder_id(parent_path, deadline)
        return self._find_child(parent_id, name, kind, path, deadline)

    def list(self, path: str, *, deadline: float | None = None) -> list[Node]:
        """Resolve ``path`` as a folder and return its children."""
        path = normalize_path(path)
        folder = self.resolve(path, Kind.FOLDER, deadline=deadline)
        return self._remote.list_nodes(self._ids, folder.node_id, deadline=deadline)

    def _folder_id(self, path: str, deadline: float | None) -> str:
        """
        Return the node ID of the folder at ``path``.

        Walks up from ``path`` until it reaches a cached ancestor (or the
        root), then back down, listing one level per missing ancestor and
        caching each folder found.
        """
        if path == ROOT:
            return self._root.node_id

        pending = []
        current = path
        current_id = self._root.node_id
        while current != ROOT:
            cached_id, found = self._cache.get(current)
            if found:
                current_id = cached_id
                break
            pending.append(current)
            current = split_path(current)[0]

        for folder_path in reversed(pending):
            name = split_path(folder_path)[1]
            node = self._find_child(current_id, name, Kind.FOLDER, folder_path, deadline)
            self._cache.put(folder_path, node.node_id)
            current_id = node.node_id

        return current_id

    def _find_child(
        self, parent_id: str, name: str, kind: Kind, path: str, deadline: float | None
    ) -> Node:
        """
        Find a child by name and kind within a parent folder.

        If multiple children match, returns the first one in listing order.
        """
        for node in self._remote.list_nodes(self._ids, parent_id, deadline=deadline):
            if node.name == name and kind.matches(node.kind):
                logger.debug("Resolved '%s' in %s -> %s", name, parent_id, node.node_id)
                return node

        logger.debug("Path segment not found: %s (%s) in parent %s", name, kind.value, parent_id)
        raise NotFoundError(
            f"Can't find {kind.value} {name!r} in parent {parent_id} ({path})",
            path=path,
            node_id=parent_id,
        )
