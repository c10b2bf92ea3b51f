"""
Data model for Teambition pan nodes and bootstrap responses.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .errors import DecodeError


class Kind(str, Enum):
    """Node kinds, plus ANY for lookups that accept either."""

    FILE = "file"
    FOLDER = "folder"
    ANY = "any"

    def matches(self, kind: "Kind") -> bool:
        return self is Kind.ANY or self is kind


ROOT_NAME = "Root"


@dataclass(frozen=True)
class Node:
    """One remote filesystem entry. Snapshot, never updated in place."""

    node_id: str
    name: str
    kind: Kind
    size: int = 0
    updated: str = ""
    download_url: str | None = None
    parent_id: str | None = None

    @property
    def is_dir(self) -> bool:
        return self.kind is Kind.FOLDER

    @classmethod
    def root(cls, node_id: str) -> "Node":
        return cls(node_id=node_id, name=ROOT_NAME, kind=Kind.FOLDER)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Node":
        """Decode a node object as returned by ``/pan/api/nodes``."""
        if not isinstance(data, dict):
            raise DecodeError(f"Expected node object, got {type(data).__name__}")

        node_id = data.get("nodeId")
        if not node_id:
            raise DecodeError(f"Node without nodeId: {data!r}")

        try:
            kind = Kind(data.get("kind", ""))
        except ValueError as e:
            raise DecodeError(f"Unknown node kind {data.get('kind')!r}", node_id=node_id) from e
        if kind is Kind.ANY:
            raise DecodeError("Node kind cannot be 'any'", node_id=node_id)

        try:
            size = int(data.get("size") or 0)
        except (TypeError, ValueError) as e:
            raise DecodeError(f"Invalid size {data.get('size')!r}", node_id=node_id) from e

        return cls(
            node_id=str(node_id),
            name=str(data.get("name", "")),
            kind=kind,
            size=size,
            updated=str(data.get("updated") or ""),
            download_url=data.get("downloadUrl") or None,
            parent_id=data.get("parentId") or None,
        )

    def __str__(self) -> str:
        return f"Node{{Name: {self.name}, NodeId: {self.node_id}}}"


@dataclass(frozen=True)
class UploadResult:
    """One entry of the pre-upload (``/pan/api/nodes/file``) response."""

    node_id: str
    name: str
    upload_id: str
    upload_urls: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "UploadResult":
        if not isinstance(data, dict) or not data.get("nodeId"):
            raise DecodeError(f"Malformed upload result: {data!r}")
        urls = data.get("uploadUrl") or []
        if not isinstance(urls, list):
            raise DecodeError(f"uploadUrl is not a list: {urls!r}", node_id=data["nodeId"])
        return cls(
            node_id=str(data["nodeId"]),
            name=str(data.get("name", "")),
            upload_id=str(data.get("uploadId", "")),
            upload_urls=[str(u) for u in urls],
        )


@dataclass(frozen=True)
class Personal:
    org_id: str
    member_id: str


@dataclass(frozen=True)
class Space:
    root_id: str


@dataclass(frozen=True)
class Identity:
    """Identifiers discovered once at session bootstrap.

    ``root_id`` doubles as the ``spaceId`` the service expects on creates.
    """

    org_id: str
    member_id: str
    drive_id: str
    root_id: str
