"""
Teambition pan HTTP client.

Thin wrapper over the pan REST endpoints. It knows how to build requests,
attach the session cookie and decode responses into panfs models; it knows
nothing about paths. Path logic lives in the resolver and the session.

Every call takes an optional ``deadline`` (a ``time.monotonic()`` value).
Requests get whatever time is left before the deadline; a call made after
it has passed fails with CancelledError without touching the network.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Iterator
from typing import IO, Any, Protocol, runtime_checkable

import httpx

from .config import ConnectionConfig, TeambitionConfig
from .errors import (
    CancelledError,
    ConflictError,
    DecodeError,
    NotFoundError,
    TransportError,
)
from .models import Identity, Kind, Node, Personal, Space, UploadResult

logger = logging.getLogger(__name__)

LIST_LIMIT = 10000
UPLOAD_CHUNK_SIZE = 64 * 1024

CHECK_NAME_REFUSE = "refuse"
CHECK_NAME_AUTO_RENAME = "autoRename"


def deadline_after(timeout: float | None) -> float | None:
    """Turn a relative timeout in seconds into an absolute deadline."""
    if timeout is None:
        return None
    return time.monotonic() + timeout


@runtime_checkable
class RemoteDirectory(Protocol):
    """Remote operations the path layer depends on.

    PanApiClient is the production implementation; tests substitute an
    in-memory fake.
    """

    def get_personal(self, *, deadline: float | None = None) -> Personal: ...

    def get_spaces(
        self, org_id: str, member_id: str, *, deadline: float | None = None
    ) -> list[Space]: ...

    def get_drive_id(self, org_id: str, *, deadline: float | None = None) -> str: ...

    def list_nodes(
        self, ids: Identity, parent_id: str, *, deadline: float | None = None
    ) -> list[Node]:
        """Children of ``parent_id``, ordered by name ascending."""
        ...

    def get_node(self, ids: Identity, node_id: str, *, deadline: float | None = None) -> Node: ...

    def create_folder(
        self, ids: Identity, parent_id: str, name: str, *, deadline: float | None = None
    ) -> Node:
        """Create a folder; raises ConflictError if the name is taken."""
        ...

    def create_file(
        self,
        ids: Identity,
        parent_id: str,
        name: str,
        size: int,
        *,
        deadline: float | None = None,
    ) -> UploadResult:
        """Open an upload session; the service may auto-rename the file."""
        ...

    def upload(
        self, url: str, data: bytes | IO[bytes], size: int, *, deadline: float | None = None
    ) -> None: ...

    def complete_upload(
        self, ids: Identity, upload: UploadResult, *, deadline: float | None = None
    ) -> None: ...

    def rename(
        self, ids: Identity, node_id: str, new_name: str, *, deadline: float | None = None
    ) -> None: ...

    def move(
        self, ids: Identity, node_id: str, parent_id: str, *, deadline: float | None = None
    ) -> None: ...

    def archive(self, ids: Identity, node_id: str, *, deadline: float | None = None) -> None: ...

    def download(self, url: str, *, deadline: float | None = None) -> httpx.Response:
        """Open a streamed GET on a download URL. Caller closes the response."""
        ...


class PanApiClient:
    """
    httpx-based client for the Teambition pan API.
    """

    def __init__(
        self,
        tb_config: TeambitionConfig,
        conn_config: ConnectionConfig | None = None,
        http_client: httpx.Client | None = None,
    ):
        self.tb_config = tb_config
        self.conn_config = conn_config or ConnectionConfig()
        self._client = http_client or httpx.Client(follow_redirects=True)

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> PanApiClient:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    # -- plumbing ---------------------------------------------------------

    def _cookie(self) -> str:
        return (
            f"TEAMBITION_SESSIONID={self.tb_config.session_id};"
            f"TEAMBITION_SESSIONID.sig={self.tb_config.session_id_sig}"
        )

    def _timeout(self, deadline: float | None, operation: str) -> float:
        if deadline is None:
            return float(self.conn_config.timeout_seconds)
        remaining = deadline - time.monotonic()
        if remaining <= 0:
            raise CancelledError(f"{operation}: deadline exceeded before request")
        return remaining

    def _send(
        self,
        method: str,
        url: str,
        operation: str,
        *,
        deadline: float | None = None,
        stream: bool = False,
        authenticated: bool = True,
        **kwargs: Any,
    ) -> httpx.Response:
        """Send one request and map transport failures and error statuses."""
        timeout = self._timeout(deadline, operation)
        headers = kwargs.pop("headers", {})
        if authenticated:
            headers.setdefault("Content-Type", "application/json")
            headers["Cookie"] = self._cookie()

        logger.debug("%s: %s %s", operation, method, url)
        request = self._client.build_request(method, url, headers=headers, timeout=timeout, **kwargs)
        try:
            response = self._client.send(request, stream=stream)
        except httpx.TimeoutException as e:
            raise CancelledError(f"{operation}: request timed out") from e
        except httpx.RequestError as e:
            logger.warning("%s failed: %s", operation, e)
            raise TransportError(f"{operation}: {e}") from e

        if response.is_success:
            return response

        if stream:
            response.read()
            response.close()
        status = response.status_code
        detail = self._error_detail(response)
        if status == 404:
            raise NotFoundError(f"{operation}: not found ({detail})")
        if status == 409:
            raise ConflictError(f"{operation}: name conflict ({detail})")
        logger.warning("%s failed: HTTP %d %s", operation, status, detail)
        raise TransportError(f"{operation}: HTTP {status} {detail}", status_code=status)

    @staticmethod
    def _error_detail(response: httpx.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            return response.reason_phrase or response.text[:200]
        if isinstance(body, dict):
            msg = body.get("message") or body.get("error") or body.get("name")
            if msg:
                return str(msg)
        return response.reason_phrase

    def _json(self, method: str, url: str, operation: str, **kwargs: Any) -> Any:
        response = self._send(method, url, operation, **kwargs)
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise DecodeError(f"{operation}: invalid JSON response") from e

    def _pan(self, path: str) -> str:
        return f"{self.tb_config.base_url}{path}"

    # -- bootstrap --------------------------------------------------------

    def get_personal(self, *, deadline: float | None = None) -> Personal:
        body = self._json(
            "GET",
            f"{self.tb_config.account_url}/api/organizations/personal",
            "get_personal",
            deadline=deadline,
        )
        if not isinstance(body, dict) or not body.get("_id"):
            raise DecodeError(f"get_personal: unexpected response {body!r}")
        return Personal(org_id=str(body["_id"]), member_id=str(body.get("_creatorId", "")))

    def get_spaces(
        self, org_id: str, member_id: str, *, deadline: float | None = None
    ) -> list[Space]:
        body = self._json(
            "GET",
            self._pan("/pan/api/spaces"),
            "get_spaces",
            params={"orgId": org_id, "memberId": member_id},
            deadline=deadline,
        )
        if not isinstance(body, list):
            raise DecodeError(f"get_spaces: expected a list, got {type(body).__name__}")
        try:
            return [Space(root_id=str(s["rootId"])) for s in body]
        except (KeyError, TypeError) as e:
            raise DecodeError(f"get_spaces: malformed space entry: {e}") from e

    def get_drive_id(self, org_id: str, *, deadline: float | None = None) -> str:
        body = self._json(
            "GET",
            self._pan(f"/pan/api/orgs/{org_id}"),
            "get_drive_id",
            params={"orgId": org_id},
            deadline=deadline,
        )
        try:
            return str(body["data"]["driveId"])
        except (KeyError, TypeError) as e:
            raise DecodeError(f"get_drive_id: missing data.driveId in {body!r}") from e

    # -- nodes ------------------------------------------------------------

    def list_nodes(
        self, ids: Identity, parent_id: str, *, deadline: float | None = None
    ) -> list[Node]:
        body = self._json(
            "GET",
            self._pan("/pan/api/nodes"),
            "list_nodes",
            params={
                "orgId": ids.org_id,
                "driveId": ids.drive_id,
                "parentId": parent_id,
                "limit": LIST_LIMIT,
                "orderBy": "name",
                "orderDirection": "asc",
            },
            deadline=deadline,
        )
        if not isinstance(body, dict) or not isinstance(body.get("data"), list):
            raise DecodeError(
                f"list_nodes: missing data array for parent {parent_id}", node_id=parent_id
            )
        nodes = [Node.from_dict(item) for item in body["data"]]
        logger.debug("Listed %d node(s) under %s", len(nodes), parent_id)
        return nodes

    def get_node(self, ids: Identity, node_id: str, *, deadline: float | None = None) -> Node:
        body = self._json(
            "GET",
            self._pan(f"/pan/api/nodes/{node_id}"),
            "get_node",
            params={"orgId": ids.org_id, "driveId": ids.drive_id},
            deadline=deadline,
        )
        if isinstance(body, dict) and isinstance(body.get("data"), dict):
            body = body["data"]
        return Node.from_dict(body)

    def create_folder(
        self, ids: Identity, parent_id: str, name: str, *, deadline: float | None = None
    ) -> Node:
        body = self._json(
            "POST",
            self._pan("/pan/api/nodes/folder"),
            "create_folder",
            json={
                "ccpParentId": parent_id,
                "checkNameMode": CHECK_NAME_REFUSE,
                "driveId": ids.drive_id,
                "name": name,
                "orgId": ids.org_id,
                "parentId": parent_id,
                "spaceId": ids.root_id,
                "type": "folder",
            },
            deadline=deadline,
        )
        created = body[0] if isinstance(body, list) and body else body
        if not isinstance(created, dict) or not created.get("nodeId"):
            raise DecodeError(f"create_folder: no nodeId in response for {name!r}")
        return Node(
            node_id=str(created["nodeId"]),
            name=str(created.get("name") or name),
            kind=Kind.FOLDER,
            updated=str(created.get("updated") or ""),
            parent_id=parent_id,
        )

    def create_file(
        self,
        ids: Identity,
        parent_id: str,
        name: str,
        size: int,
        *,
        deadline: float | None = None,
    ) -> UploadResult:
        body = self._json(
            "POST",
            self._pan("/pan/api/nodes/file"),
            "create_file",
            json={
                "orgId": ids.org_id,
                "spaceId": ids.root_id,
                "parentId": parent_id,
                "checkNameMode": CHECK_NAME_AUTO_RENAME,
                "infos": [
                    {
                        "name": name,
                        "ccpParentId": parent_id,
                        "driveId": ids.drive_id,
                        "size": size,
                        "chunkCount": 1,
                        "contentType": "",
                        "type": "file",
                    }
                ],
            },
            deadline=deadline,
        )
        if not isinstance(body, list) or not body:
            raise DecodeError(f"create_file: empty upload result for {name!r}")
        result = UploadResult.from_dict(body[0])
        if not result.upload_urls:
            raise DecodeError(
                f"Failed to create {name!r}: no upload url in response", node_id=result.node_id
            )
        return result

    def upload(
        self, url: str, data: bytes | IO[bytes], size: int, *, deadline: float | None = None
    ) -> None:
        content = data if isinstance(data, bytes) else _iter_chunks(data)
        response = self._send(
            "PUT",
            url,
            "upload",
            headers={"Content-Length": str(size), "Content-Type": ""},
            content=content,
            deadline=deadline,
            authenticated=False,
        )
        logger.debug("Uploaded %d bytes (HTTP %d)", size, response.status_code)

    def complete_upload(
        self, ids: Identity, upload: UploadResult, *, deadline: float | None = None
    ) -> None:
        self._send(
            "POST",
            self._pan("/pan/api/nodes/complete"),
            "complete_upload",
            json={
                "driveId": ids.drive_id,
                "orgId": ids.org_id,
                "nodeId": upload.node_id,
                "uploadId": upload.upload_id,
                "ccpFileId": upload.node_id,
            },
            deadline=deadline,
        )

    def rename(
        self, ids: Identity, node_id: str, new_name: str, *, deadline: float | None = None
    ) -> None:
        self._send(
            "PUT",
            self._pan(f"/pan/api/nodes/{node_id}"),
            "rename",
            json={
                "orgId": ids.org_id,
                "driveId": ids.drive_id,
                "ccpFileId": node_id,
                "name": new_name,
            },
            deadline=deadline,
        )

    def move(
        self, ids: Identity, node_id: str, parent_id: str, *, deadline: float | None = None
    ) -> None:
        self._send(
            "POST",
            self._pan("/pan/api/nodes/move"),
            "move",
            json={
                "orgId": ids.org_id,
                "driveId": ids.drive_id,
                "sameLevel": False,
                "ids": [{"id": node_id, "ccpFileId": node_id}],
                "parentId": parent_id,
            },
            deadline=deadline,
        )

    def archive(self, ids: Identity, node_id: str, *, deadline: float | None = None) -> None:
        self._send(
            "POST",
            self._pan("/pan/api/nodes/archive"),
            "archive",
            json={"nodeIds": [node_id], "orgId": ids.org_id},
            deadline=deadline,
        )

    def download(self, url: str, *, deadline: float | None = None) -> httpx.Response:
        return self._send("GET", url, "download", deadline=deadline, stream=True)


def _iter_chunks(fileobj: IO[bytes]) -> Iterator[bytes]:
    while True:
        chunk = fileobj.read(UPLOAD_CHUNK_SIZE)
        if not chunk:
            break
        yield chunk
