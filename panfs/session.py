"""
Path-addressed filesystem session over Teambition pan.

A Session is created once per account via Session.connect(), which looks up
the organization, storage space and drive identifiers. It owns the folder
path cache and is meant to be shared by every caller working on that account.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from typing import IO

import httpx

from .api import PanApiClient, RemoteDirectory, deadline_after
from .config import AppConfig
from .errors import (
    CancelledError,
    NotFoundError,
    PanError,
    PreconditionError,
    TransportError,
    with_context,
)
from .folders import FolderCreator
from .models import Identity, Kind, Node, UploadResult
from .path_cache import DEFAULT_CAPACITY, PathCache
from .paths import ROOT, normalize_path, split_path
from .resolver import PathResolver

logger = logging.getLogger(__name__)


class RemoteFile:
    """Read-only, streamed handle on a remote file's content."""

    def __init__(self, node: Node, response: httpx.Response):
        self.node = node
        self._response = response
        self._chunks = response.iter_bytes()
        self._buffer = b""
        self.closed = False

    def _next_chunk(self) -> bytes | None:
        try:
            return next(self._chunks, None)
        except httpx.TimeoutException as e:
            raise CancelledError(
                f"Reading {self.node.name} timed out", node_id=self.node.node_id
            ) from e
        except httpx.RequestError as e:
            raise TransportError(f"Reading {self.node.name}: {e}", node_id=self.node.node_id) from e

    def read(self, size: int = -1) -> bytes:
        if self.closed:
            raise ValueError("I/O operation on closed file")
        if size is None or size < 0:
            parts = [self._buffer]
            while (chunk := self._next_chunk()) is not None:
                parts.append(chunk)
            self._buffer = b""
            return b"".join(parts)

        while len(self._buffer) < size:
            chunk = self._next_chunk()
            if chunk is None:
                break
            self._buffer += chunk
        data, self._buffer = self._buffer[:size], self._buffer[size:]
        return data

    def __iter__(self) -> Iterator[bytes]:
        if self._buffer:
            yield self._buffer
            self._buffer = b""
        while (chunk := self._next_chunk()) is not None:
            yield chunk

    def close(self) -> None:
        if not self.closed:
            self._response.close()
            self.closed = True

    def __enter__(self) -> RemoteFile:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


class Session:
    """
    Filesystem view of one Teambition pan drive.

    Every operation accepts ``timeout`` (seconds) covering all of the
    requests it makes; when it runs out the operation fails with
    CancelledError.
    """

    def __init__(
        self, remote: RemoteDirectory, ids: Identity, cache_capacity: int = DEFAULT_CAPACITY
    ):
        self.remote = remote
        self.ids = ids
        self.root = Node.root(ids.root_id)
        self.cache = PathCache(cache_capacity)
        self.resolver = PathResolver(remote, ids, self.root, self.cache)
        self.folders = FolderCreator(remote, ids, self.resolver, self.cache)

    @classmethod
    def connect(
        cls,
        remote: RemoteDirectory,
        cache_capacity: int = DEFAULT_CAPACITY,
        *,
        timeout: float | None = None,
    ) -> Session:
        """
        Discover the account's identifiers and build a session.

        Raises:
            NotFoundError: If the account has no storage space.
            TransportError, DecodeError: If a bootstrap request fails.
        """
        deadline = deadline_after(timeout)
        personal = remote.get_personal(deadline=deadline)

        spaces = remote.get_spaces(personal.org_id, personal.member_id, deadline=deadline)
        if not spaces:
            raise NotFoundError(f"No storage space found for organization {personal.org_id}")

        drive_id = remote.get_drive_id(personal.org_id, deadline=deadline)

        ids = Identity(
            org_id=personal.org_id,
            member_id=personal.member_id,
            drive_id=drive_id,
            root_id=spaces[0].root_id,
        )
        logger.info("Connected to Teambition pan (org %s, drive %s)", ids.org_id, ids.drive_id)
        return cls(remote, ids, cache_capacity)

    @classmethod
    def from_config(cls, config: AppConfig, http_client: httpx.Client | None = None) -> Session:
        """Build an HTTP client from ``config`` and connect."""
        remote = PanApiClient(config.teambition, config.connection, http_client=http_client)
        try:
            return cls.connect(remote, config.cache.capacity)
        except Exception:
            remote.close()
            raise

    def close(self) -> None:
        close = getattr(self.remote, "close", None)
        if close is not None:
            close()
        self.cache.clear()

    def __enter__(self) -> Session:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"Session(org_id={self.ids.org_id!r}, member_id={self.ids.member_id!r})"

    @contextmanager
    def _boundary(self, operation: str, target: str | Node) -> Iterator[None]:
        """Prefix errors with ``operation(target)``; attach the path if one is known."""
        path = None if isinstance(target, Node) else target
        try:
            yield
        except PanError as e:
            raise with_context(e, f"{operation}({target})", path=e.path or path) from e

    # -- reads ------------------------------------------------------------

    def stat(self, path: str, kind: Kind = Kind.ANY, *, timeout: float | None = None) -> Node:
        """Resolve ``path`` to a node of the given kind."""
        with self._boundary("stat", path):
            return self.resolver.resolve(path, kind, deadline=deadline_after(timeout))

    def list(self, path: str, *, timeout: float | None = None) -> list[Node]:
        """List the children of the folder at ``path``, ordered by name."""
        logger.debug("Listing directory: %s", path)
        with self._boundary("list", path):
            return self.resolver.list(path, deadline=deadline_after(timeout))

    def open(self, path: str, *, timeout: float | None = None) -> RemoteFile:
        """
        Open a remote file for streamed reading.

        The listing entry's download link is used when present, otherwise
        the node detail is fetched to obtain one.
        """
        deadline = deadline_after(timeout)
        with self._boundary("open", path):
            node = self.resolver.resolve(path, Kind.FILE, deadline=deadline)
            url = node.download_url
            if not url:
                url = self.remote.get_node(self.ids, node.node_id, deadline=deadline).download_url
            if not url:
                raise NotFoundError(f"Can't find downloadUrl of {node}", node_id=node.node_id)
            response = self.remote.download(url, deadline=deadline)
            return RemoteFile(node, response)

    # -- writes -----------------------------------------------------------

    def mkdir(self, path: str, *, timeout: float | None = None) -> Node:
        """Create the folder at ``path`` and any missing ancestors."""
        path = normalize_path(path)
        with self._boundary("mkdir", path):
            return self.folders.ensure_folder(path, deadline=deadline_after(timeout))

    def create_file(
        self,
        path: str,
        data: bytes | IO[bytes],
        size: int | None = None,
        *,
        overwrite: bool = False,
        timeout: float | None = None,
    ) -> UploadResult:
        """
        Upload ``data`` to ``path``, creating missing parent folders.

        The service auto-renames the upload when the name is already taken.
        With ``overwrite`` the existing file is removed instead and the
        upload session requested once more.

        Args:
            path: Destination file path.
            data: File content, as bytes or a binary file object.
            size: Content length; required when ``data`` is a file object.
            overwrite: Replace an existing file of the same name.

        Returns:
            The upload result, carrying the final node ID and name.
        """
        path = normalize_path(path)
        if path == ROOT:
            raise PreconditionError("Can't create a file at the root path", path=path)
        if size is None:
            if not isinstance(data, bytes):
                raise ValueError("size is required when uploading from a file object")
            size = len(data)

        deadline = deadline_after(timeout)
        parent_path, name = split_path(path)

        with self._boundary("create_file", path):
            parent = self.folders.ensure_folder(parent_path, deadline=deadline)
            upload = self.remote.create_file(
                self.ids, parent.node_id, name, size, deadline=deadline
            )
            if overwrite and upload.name and upload.name != name:
                logger.info("%s exists (upload renamed to %r), replacing it", path, upload.name)
                existing = self.resolver.resolve(path, Kind.FILE, deadline=deadline)
                self.remote.archive(self.ids, existing.node_id, deadline=deadline)
                upload = self.remote.create_file(
                    self.ids, parent.node_id, name, size, deadline=deadline
                )

            self.remote.upload(upload.upload_urls[0], data, size, deadline=deadline)
            self.remote.complete_upload(self.ids, upload, deadline=deadline)

        logger.info("Uploaded %s (%d bytes) as %s", path, size, upload.node_id)
        return upload

    def rename(self, target: str | Node, new_name: str, *, timeout: float | None = None) -> None:
        """Rename a node in place."""
        if not new_name or "/" in new_name:
            raise ValueError(f"Invalid name: {new_name!r}")
        target = self._guard_root(target, "rename")
        deadline = deadline_after(timeout)
        with self._boundary("rename", target):
            node = self._as_node(target, deadline)
            self.remote.rename(self.ids, node.node_id, new_name, deadline=deadline)
        self._forget(node, target)
        logger.info("Renamed %s -> %s", target, new_name)

    def move(
        self, target: str | Node, destination: str | Node, *, timeout: float | None = None
    ) -> None:
        """Move a node into the folder ``destination``."""
        target = self._guard_root(target, "move")
        deadline = deadline_after(timeout)
        with self._boundary("move", target):
            node = self._as_node(target, deadline)
            if isinstance(destination, Node):
                if not destination.is_dir:
                    raise PreconditionError(
                        f"Move destination {destination} is not a folder",
                        node_id=destination.node_id,
                    )
                folder = destination
            else:
                folder = self.resolver.resolve(destination, Kind.FOLDER, deadline=deadline)
            self.remote.move(self.ids, node.node_id, folder.node_id, deadline=deadline)
        self._forget(node, target)
        logger.info("Moved %s -> %s", target, folder.name)

    def remove(self, target: str | Node, *, timeout: float | None = None) -> None:
        """Archive (soft-delete) a node."""
        target = self._guard_root(target, "remove")
        deadline = deadline_after(timeout)
        with self._boundary("remove", target):
            node = self._as_node(target, deadline)
            self.remote.archive(self.ids, node.node_id, deadline=deadline)
        self._forget(node, target)
        logger.info("Removed %s", target)

    # -- helpers ----------------------------------------------------------

    def _guard_root(self, target: str | Node, operation: str) -> str | Node:
        """Reject the root before any request is made.

        Returns the target unchanged if it is a Node, else its normalized path.
        """
        if isinstance(target, Node):
            if target.node_id == self.root.node_id:
                raise PreconditionError(f"Can't {operation} root", path=ROOT)
            return target
        path = normalize_path(target)
        if path == ROOT:
            raise PreconditionError(f"Can't {operation} root", path=ROOT)
        return path

    def _as_node(self, target: str | Node, deadline: float | None) -> Node:
        if isinstance(target, Node):
            return target
        return self.resolver.resolve(target, Kind.ANY, deadline=deadline)

    def _forget(self, node: Node, target: str | Node) -> None:
        """Drop cached IDs under a folder that was renamed, moved or removed."""
        if not node.is_dir:
            return
        if isinstance(target, str):
            self.cache.invalidate_tree(target)
        self.cache.invalidate_node(node.node_id)
