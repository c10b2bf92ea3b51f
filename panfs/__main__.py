"""
panfs - Main Entry Point

Command-line access to a Teambition pan drive through path-based commands
(ls, stat, mkdir, put, get, rm, mv, rename).
"""

import argparse
import logging
import os
import sys

from .config import load_config
from .errors import PanError
from .logger import setup_logging
from .models import Kind
from .session import Session

logger = logging.getLogger(__name__)

DOWNLOAD_CHUNK_SIZE = 64 * 1024


def parse_args(argv=None):
    """Parse command-line arguments."""
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--config", help="Path to configuration file")
    common.add_argument("--session-id", help="TEAMBITION_SESSIONID cookie value")
    common.add_argument("--session-id-sig", help="TEAMBITION_SESSIONID.sig cookie value")
    common.add_argument("--timeout", type=int, help="Per-request timeout in seconds")
    common.add_argument("--verbose", action="store_true", help="Enable debug logging")

    parser = argparse.ArgumentParser(
        description="panfs - Path-based access to Teambition pan",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  panfs ls /media --config panfs.ini
  panfs mkdir /backup/2024/photos
  panfs put ./1.mp3 /media/music/1.mp3 --overwrite
  panfs get /media/music/1.mp3 ./1.mp3
  panfs mv /home/test2 /
  panfs rename /test test2
  panfs rm /test2
        """,
    )
    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    ls_parser = subparsers.add_parser("ls", parents=[common], help="List a folder")
    ls_parser.add_argument("path", nargs="?", default="/", help="Remote folder (default: /)")

    stat_parser = subparsers.add_parser("stat", parents=[common], help="Show a node")
    stat_parser.add_argument("path", help="Remote path")
    stat_parser.add_argument(
        "--kind", choices=[k.value for k in Kind], default=Kind.ANY.value, help="Kind filter"
    )

    mkdir_parser = subparsers.add_parser(
        "mkdir", parents=[common], help="Create a folder and its parents"
    )
    mkdir_parser.add_argument("path", help="Remote folder path")

    put_parser = subparsers.add_parser("put", parents=[common], help="Upload a local file")
    put_parser.add_argument("local", help="Local file")
    put_parser.add_argument("remote", help="Remote path (trailing / keeps the local name)")
    put_parser.add_argument(
        "--overwrite", action="store_true", help="Replace an existing file of the same name"
    )

    get_parser = subparsers.add_parser("get", parents=[common], help="Download a remote file")
    get_parser.add_argument("remote", help="Remote file path")
    get_parser.add_argument("local", help="Local destination file")

    rm_parser = subparsers.add_parser("rm", parents=[common], help="Archive a file or folder")
    rm_parser.add_argument("path", help="Remote path")

    mv_parser = subparsers.add_parser("mv", parents=[common], help="Move into another folder")
    mv_parser.add_argument("source", help="Remote path to move")
    mv_parser.add_argument("destination", help="Remote destination folder")

    rename_parser = subparsers.add_parser("rename", parents=[common], help="Rename in place")
    rename_parser.add_argument("path", help="Remote path")
    rename_parser.add_argument("new_name", help="New name (no slashes)")

    return parser.parse_args(argv)


def _run(args, action) -> int:
    """
    Load configuration, connect, run ``action(session)`` and clean up.

    Translates failures into an [ERROR] line and exit code 1.
    """
    session = None
    try:
        config = load_config(
            config_path=args.config,
            session_id=args.session_id,
            session_id_sig=args.session_id_sig,
            timeout=args.timeout,
            debug=args.verbose,
        )
        setup_logging(config.logging)

        logger.info("Connecting to Teambition pan...")
        session = Session.from_config(config)
        return action(session)

    except PanError as e:
        logger.error("%s failed: %s", args.command, e)
        print(f"[ERROR] {e}")
        return 1
    except ValueError as e:
        # Configuration validation errors
        print(f"[ERROR] Configuration error: {e}")
        return 1
    except FileNotFoundError as e:
        # Config file or local file not found
        print(f"[ERROR] {e}")
        return 1
    except Exception as e:
        logger.exception("Fatal error: %s", e)
        print(f"[ERROR] Fatal error: {e}")
        return 1
    finally:
        if session is not None:
            try:
                session.close()
            except Exception as e:
                logger.warning("Error closing session: %s", e)


def _format_node(node) -> str:
    marker = "d" if node.is_dir else "-"
    return f"{marker} {node.size:>12} {node.updated:<24} {node.name}"


def cmd_ls(args):
    """Handle the ls command."""

    def action(session: Session) -> int:
        for node in session.list(args.path):
            print(_format_node(node))
        return 0

    return _run(args, action)


def cmd_stat(args):
    """Handle the stat command."""

    def action(session: Session) -> int:
        node = session.stat(args.path, Kind(args.kind))
        print(f"Name:    {node.name}")
        print(f"Kind:    {node.kind.value}")
        print(f"NodeId:  {node.node_id}")
        print(f"Size:    {node.size}")
        print(f"Updated: {node.updated}")
        return 0

    return _run(args, action)


def cmd_mkdir(args):
    """Handle the mkdir command."""

    def action(session: Session) -> int:
        node = session.mkdir(args.path)
        print(f"[OK] {args.path} ({node.node_id})")
        return 0

    return _run(args, action)


def cmd_put(args):
    """
    Handle the put command.

    A remote path ending in "/" is treated as the destination folder and
    the local file name is kept.
    """
    remote = args.remote
    if remote.endswith("/"):
        remote = remote + os.path.basename(args.local)

    def action(session: Session) -> int:
        size = os.path.getsize(args.local)
        with open(args.local, "rb") as f:
            result = session.create_file(remote, f, size, overwrite=args.overwrite)
        print(f"[OK] Uploaded {args.local} -> {remote} ({size} bytes)")
        if result.name and result.name != os.path.basename(remote):
            print(f"     Stored as: {result.name}")
        return 0

    return _run(args, action)


def cmd_get(args):
    """Handle the get command."""

    def action(session: Session) -> int:
        written = 0
        with session.open(args.remote) as remote_file, open(args.local, "wb") as out:
            for chunk in remote_file:
                out.write(chunk)
                written += len(chunk)
        print(f"[OK] Downloaded {args.remote} -> {args.local} ({written} bytes)")
        return 0

    return _run(args, action)


def cmd_rm(args):
    """Handle the rm command."""

    def action(session: Session) -> int:
        session.remove(args.path)
        print(f"[OK] Removed {args.path}")
        return 0

    return _run(args, action)


def cmd_mv(args):
    """Handle the mv command."""

    def action(session: Session) -> int:
        session.move(args.source, args.destination)
        print(f"[OK] Moved {args.source} -> {args.destination}")
        return 0

    return _run(args, action)


def cmd_rename(args):
    """Handle the rename command."""

    def action(session: Session) -> int:
        session.rename(args.path, args.new_name)
        print(f"[OK] Renamed {args.path} -> {args.new_name}")
        return 0

    return _run(args, action)


COMMANDS = {
    "ls": cmd_ls,
    "stat": cmd_stat,
    "mkdir": cmd_mkdir,
    "put": cmd_put,
    "get": cmd_get,
    "rm": cmd_rm,
    "mv": cmd_mv,
    "rename": cmd_rename,
}


def main(argv=None):
    """Main entry point."""
    args = parse_args(argv)

    handler = COMMANDS.get(args.command)
    if handler is not None:
        return handler(args)

    print("Usage: panfs <command> [options]")
    print()
    print("Commands:")
    print("  ls       List a folder")
    print("  stat     Show a file or folder")
    print("  mkdir    Create a folder and its parents")
    print("  put      Upload a local file")
    print("  get      Download a remote file")
    print("  rm       Archive a file or folder")
    print("  mv       Move into another folder")
    print("  rename   Rename in place")
    print()
    print("Run 'panfs <command> --help' for more information.")
    return 1


if __name__ == "__main__":
    sys.exit(main() or 0)
