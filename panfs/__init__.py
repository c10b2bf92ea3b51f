__version__ = "0.1.0"

# Public API exports
from .api import PanApiClient, RemoteDirectory
from .config import (
    AppConfig,
    CacheConfig,
    ConnectionConfig,
    LogConfig,
    TeambitionConfig,
    load_config,
)
from .errors import (
    CancelledError,
    ConflictError,
    DecodeError,
    NotFoundError,
    PanError,
    PreconditionError,
    TransportError,
)
from .folders import FolderCreator
from .models import Identity, Kind, Node, UploadResult
from .path_cache import PathCache
from .paths import normalize_path
from .resolver import PathResolver
from .session import RemoteFile, Session

__all__ = [
    "__version__",
    # Configuration
    "AppConfig",
    "TeambitionConfig",
    "CacheConfig",
    "ConnectionConfig",
    "LogConfig",
    "load_config",
    # Remote service
    "RemoteDirectory",
    "PanApiClient",
    # Model
    "Identity",
    "Kind",
    "Node",
    "UploadResult",
    # Path layer
    "normalize_path",
    "PathCache",
    "PathResolver",
    "FolderCreator",
    "Session",
    "RemoteFile",
    # Errors
    "PanError",
    "TransportError",
    "DecodeError",
    "NotFoundError",
    "PreconditionError",
    "ConflictError",
    "CancelledError",
]
