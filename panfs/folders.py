"""
Recursive, idempotent folder creation.

ensure_folder("/a/b/c") walks the path from the root and creates whatever
segments are missing, ancestors first. The check-and-create step of each
segment runs under a lock, so concurrent callers asking for the same folder
end up with one create request; the others find the folder on their check.
Folders are created with the "refuse" name policy, and a refusal is taken to
mean someone else created the folder first.

There is no rollback: if creating "/a/b" fails, "/a" stays.
"""

import logging
import threading

from .api import RemoteDirectory
from .errors import ConflictError, NotFoundError, PanError, with_context
from .models import Identity, Kind, Node
from .path_cache import PathCache
from .paths import ROOT, join_path, normalize_path, segments
from .resolver import PathResolver

logger = logging.getLogger(__name__)


class FolderCreator:
    def __init__(
        self,
        remote: RemoteDirectory,
        ids: Identity,
        resolver: PathResolver,
        cache: PathCache,
    ):
        self._remote = remote
        self._ids = ids
        self._resolver = resolver
        self._cache = cache
        # Held for one segment's check-and-create, never for a whole path.
        self._lock = threading.Lock()

    def ensure_folder(self, path: str, *, deadline: float | None = None) -> Node:
        """
        Make sure every folder along ``path`` exists.

        Args:
            path: Folder path to materialize; normalized internally.
            deadline: Optional monotonic deadline for the network calls.

        Returns:
            The node of the last path segment (the root node for "/").

        Raises:
            PanError: The first create failure, with the parent path attached.
        """
        path = normalize_path(path)
        parent = self._resolver.root
        parent_path = ROOT

        for name in segments(path):
            folder_path = join_path(parent_path, name)
            with self._lock:
                parent = self._check_or_create(parent, parent_path, name, folder_path, deadline)
            parent_path = folder_path

        return parent

    def _check_or_create(
        self,
        parent: Node,
        parent_path: str,
        name: str,
        folder_path: str,
        deadline: float | None,
    ) -> Node:
        try:
            found = self._resolver.resolve(folder_path, Kind.FOLDER, deadline=deadline)
        except NotFoundError:
            found = None
        except PanError as e:
            raise with_context(
                e, f"Can't check folder {name!r} under {parent_path}", path=parent_path
            ) from e
        if found is not None:
            self._cache.put(folder_path, found.node_id)
            return found

        logger.info("Creating folder %s", folder_path)
        try:
            created = self._remote.create_folder(self._ids, parent.node_id, name, deadline=deadline)
        except ConflictError as e:
            logger.info("Folder %s already exists, using it", folder_path)
            try:
                found = self._resolver.resolve(folder_path, Kind.FOLDER, deadline=deadline)
            except NotFoundError:
                # The name is taken by a file.
                raise with_context(e, f"Can't create folder {folder_path}", path=parent_path) from e
            self._cache.put(folder_path, found.node_id)
            return found
        except PanError as e:
            logger.error("Failed to create folder %r under %s: %s", name, parent_path, e)
            raise with_context(
                e, f"Can't create folder {name!r} under {parent_path}", path=parent_path
            ) from e

        self._cache.put(folder_path, created.node_id)
        return created
