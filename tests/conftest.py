"""
Shared pytest fixtures for panfs tests.
"""

import threading
import time
from collections.abc import Generator
from pathlib import Path

import httpx
import pytest

from panfs.config import (
    AppConfig,
    CacheConfig,
    ConnectionConfig,
    LogConfig,
    TeambitionConfig,
)
from panfs.errors import ConflictError, NotFoundError
from panfs.models import Identity, Kind, Node, Personal, Space, UploadResult
from panfs.session import Session

ORG_ID = "org-1"
MEMBER_ID = "member-1"
DRIVE_ID = "drive-1"
ROOT_ID = "root-1"


class FakeRemote:
    """
    In-memory stand-in for the Teambition pan service.

    Keeps a node tree, records every call in ``calls`` as (operation, args)
    tuples and mimics the service's name policies: folder creates refuse an
    existing name, file creates auto-rename.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._counter = 0
        self.nodes: dict[str, Node] = {}
        self.children: dict[str, list[str]] = {ROOT_ID: []}
        self.content: dict[str, bytes] = {}
        self.pending: dict[str, tuple[str, str, int]] = {}
        self.uploads: dict[str, bytes] = {}
        self.calls: list[tuple] = []
        self.spaces = [Space(root_id=ROOT_ID)]
        # name -> exception raised by create_folder for that name
        self.fail_create: dict[str, Exception] = {}
        self.create_delay = 0.0
        self.in_flight_creates = 0
        self.max_in_flight_creates = 0
        self.closed = False

    # -- test helpers -----------------------------------------------------

    def _new_id(self, prefix: str) -> str:
        with self._lock:
            self._counter += 1
            return f"{prefix}-{self._counter}"

    def add(self, parent_id: str, name: str, kind: Kind, content: bytes = b"") -> Node:
        node_id = self._new_id(kind.value)
        node = Node(
            node_id=node_id,
            name=name,
            kind=kind,
            size=len(content),
            updated="2024-01-15T10:30:00.000Z",
            download_url=f"https://download.example/{node_id}" if kind is Kind.FILE else None,
            parent_id=parent_id,
        )
        with self._lock:
            self.nodes[node_id] = node
            self.children.setdefault(parent_id, []).append(node_id)
            if kind is Kind.FOLDER:
                self.children.setdefault(node_id, [])
            else:
                self.content[node_id] = content
        return node

    def child(self, parent_id: str, name: str, kind: Kind = Kind.ANY) -> Node | None:
        for node_id in self.children.get(parent_id, []):
            node = self.nodes[node_id]
            if node.name == name and kind.matches(node.kind):
                return node
        return None

    def count(self, operation: str) -> int:
        return sum(1 for call in self.calls if call[0] == operation)

    def created_folder_names(self) -> list[str]:
        return [call[2] for call in self.calls if call[0] == "create_folder"]

    def _record(self, *call) -> None:
        with self._lock:
            self.calls.append(call)

    # -- RemoteDirectory --------------------------------------------------

    def get_personal(self, *, deadline=None) -> Personal:
        self._record("get_personal")
        return Personal(org_id=ORG_ID, member_id=MEMBER_ID)

    def get_spaces(self, org_id, member_id, *, deadline=None) -> list[Space]:
        self._record("get_spaces", org_id, member_id)
        return list(self.spaces)

    def get_drive_id(self, org_id, *, deadline=None) -> str:
        self._record("get_drive_id", org_id)
        return DRIVE_ID

    def list_nodes(self, ids, parent_id, *, deadline=None) -> list[Node]:
        self._record("list_nodes", parent_id)
        with self._lock:
            if parent_id not in self.children:
                raise NotFoundError(f"list_nodes: no such parent {parent_id}")
            nodes = [self.nodes[i] for i in self.children[parent_id]]
        return sorted(nodes, key=lambda n: n.name)

    def get_node(self, ids, node_id, *, deadline=None) -> Node:
        self._record("get_node", node_id)
        if node_id not in self.nodes:
            raise NotFoundError(f"get_node: {node_id}")
        return self.nodes[node_id]

    def create_folder(self, ids, parent_id, name, *, deadline=None) -> Node:
        self._record("create_folder", parent_id, name)
        with self._lock:
            self.in_flight_creates += 1
            self.max_in_flight_creates = max(self.max_in_flight_creates, self.in_flight_creates)
        try:
            if self.create_delay:
                time.sleep(self.create_delay)
            if name in self.fail_create:
                raise self.fail_create[name]
            if self.child(parent_id, name) is not None:
                raise ConflictError(f"create_folder: {name} exists")
            return self.add(parent_id, name, Kind.FOLDER)
        finally:
            with self._lock:
                self.in_flight_creates -= 1

    def create_file(self, ids, parent_id, name, size, *, deadline=None) -> UploadResult:
        self._record("create_file", parent_id, name, size)
        final = name
        n = 0
        while self.child(parent_id, final) is not None:
            n += 1
            stem, dot, ext = name.rpartition(".")
            final = f"{stem}({n}).{ext}" if dot else f"{name}({n})"
        node_id = self._new_id("upload")
        self.pending[node_id] = (parent_id, final, size)
        return UploadResult(
            node_id=node_id,
            name=final,
            upload_id=f"uid-{node_id}",
            upload_urls=[f"https://upload.example/{node_id}"],
        )

    def upload(self, url, data, size, *, deadline=None) -> None:
        self._record("upload", url, size)
        self.uploads[url] = data if isinstance(data, bytes) else data.read()

    def complete_upload(self, ids, upload, *, deadline=None) -> None:
        self._record("complete_upload", upload.node_id, upload.upload_id)
        parent_id, name, size = self.pending.pop(upload.node_id)
        data = self.uploads.get(upload.upload_urls[0], b"")
        node = Node(
            node_id=upload.node_id,
            name=name,
            kind=Kind.FILE,
            size=size,
            download_url=f"https://download.example/{upload.node_id}",
            parent_id=parent_id,
        )
        with self._lock:
            self.nodes[node.node_id] = node
            self.children[parent_id].append(node.node_id)
            self.content[node.node_id] = data

    def rename(self, ids, node_id, new_name, *, deadline=None) -> None:
        self._record("rename", node_id, new_name)
        node = self.nodes[node_id]
        self.nodes[node_id] = Node(
            node_id=node.node_id,
            name=new_name,
            kind=node.kind,
            size=node.size,
            download_url=node.download_url,
            parent_id=node.parent_id,
        )

    def move(self, ids, node_id, parent_id, *, deadline=None) -> None:
        self._record("move", node_id, parent_id)
        node = self.nodes[node_id]
        with self._lock:
            self.children[node.parent_id].remove(node_id)
            self.children[parent_id].append(node_id)
        self.nodes[node_id] = Node(
            node_id=node.node_id,
            name=node.name,
            kind=node.kind,
            size=node.size,
            download_url=node.download_url,
            parent_id=parent_id,
        )

    def archive(self, ids, node_id, *, deadline=None) -> None:
        self._record("archive", node_id)
        node = self.nodes.pop(node_id)
        with self._lock:
            self.children[node.parent_id].remove(node_id)

    def download(self, url, *, deadline=None) -> httpx.Response:
        self._record("download", url)
        node_id = url.rsplit("/", 1)[-1]
        return httpx.Response(200, content=self.content[node_id])

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def remote() -> FakeRemote:
    """Creates an empty in-memory remote."""
    return FakeRemote()


@pytest.fixture
def ids() -> Identity:
    return Identity(org_id=ORG_ID, member_id=MEMBER_ID, drive_id=DRIVE_ID, root_id=ROOT_ID)


@pytest.fixture
def session(remote: FakeRemote) -> Generator[Session, None, None]:
    """Creates a Session bootstrapped against the fake remote."""
    s = Session.connect(remote)
    remote.calls.clear()
    yield s


@pytest.fixture
def tree(remote: FakeRemote) -> dict[str, Node]:
    """
    Populates the remote with a small tree:

        /media/music/1.mp3
        /media/video/
        /docs/report      (file)
        /docs/report/     (folder)
        /docs/report/q1.txt
        /readme.txt
    """
    media = remote.add(ROOT_ID, "media", Kind.FOLDER)
    music = remote.add(media.node_id, "music", Kind.FOLDER)
    song = remote.add(music.node_id, "1.mp3", Kind.FILE, b"ID3 fake mp3")
    video = remote.add(media.node_id, "video", Kind.FOLDER)
    docs = remote.add(ROOT_ID, "docs", Kind.FOLDER)
    report_file = remote.add(docs.node_id, "report", Kind.FILE, b"report body")
    report_dir = remote.add(docs.node_id, "report", Kind.FOLDER)
    q1 = remote.add(report_dir.node_id, "q1.txt", Kind.FILE, b"q1")
    readme = remote.add(ROOT_ID, "readme.txt", Kind.FILE, b"hello")
    return {
        "/media": media,
        "/media/music": music,
        "/media/music/1.mp3": song,
        "/media/video": video,
        "/docs": docs,
        "report_file": report_file,
        "report_dir": report_dir,
        "/docs/report/q1.txt": q1,
        "/readme.txt": readme,
    }


@pytest.fixture
def tb_config() -> TeambitionConfig:
    """Creates a TeambitionConfig with dummy credentials."""
    return TeambitionConfig(session_id="sid-123", session_id_sig="sig-456")


@pytest.fixture
def conn_config() -> ConnectionConfig:
    return ConnectionConfig(timeout_seconds=5)


@pytest.fixture
def app_config(tb_config: TeambitionConfig, conn_config: ConnectionConfig) -> AppConfig:
    """Creates a complete AppConfig for testing."""
    return AppConfig(
        teambition=tb_config,
        cache=CacheConfig(capacity=16),
        connection=conn_config,
        logging=LogConfig(level="DEBUG", file="", console=False),
    )


@pytest.fixture
def tmp_config_file(tmp_path: Path) -> Generator[Path, None, None]:
    """
    Creates a temporary INI configuration file for config tests.

    Returns:
        Path to the temporary config file.
    """
    config_content = """[teambition]
session_id = file-sid
session_id_sig = file-sig
base_url = https://pan.example.com/

[cache]
capacity = 64

[connection]
timeout_seconds = 45

[logging]
level = DEBUG
file = test.log
console = false
"""
    config_path = tmp_path / "test_config.ini"
    config_path.write_text(config_content, encoding="utf-8")
    yield config_path
