"""Create, export, import and inspect the locally stored analysis database."""

from __future__ import annotations

import argparse
import logging
import sys
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, List, Optional

from config.settings import BLOB_STORE_KEY, BLOB_STORE_URL, DATA_DIR, LOG_LEVEL
from src.db.errors import PersistenceError
from src.services.blob_store import BlobStore
from src.services.database_session import DatabaseSession

logger = logging.getLogger(__name__)


@contextmanager
def open_session(args: argparse.Namespace) -> Iterator[DatabaseSession]:
    session = DatabaseSession(BlobStore(args.database_url), storage_key=args.key)
    try:
        session.initialize()
        yield session
    finally:
        session.close()


def init_database(args: argparse.Namespace) -> int:
    with open_session(args) as session:
        if session.is_ready:
            print(f"Database already exists at {args.database_url}")
            return 0
        session.create_new()
    print(f"Created new database at {args.database_url}")
    return 0


def export_database(args: argparse.Namespace) -> int:
    with open_session(args) as session:
        if not session.is_ready:
            print("No database stored yet; run 'init' or 'import' first", file=sys.stderr)
            return 1
        path = session.export_to(args.output_dir)
    print(f"Exported database to {path}")
    return 0


def import_database(args: argparse.Namespace) -> int:
    data = Path(args.file).read_bytes()
    with open_session(args) as session:
        session.import_file(data)
    print(f"Imported {args.file} into {args.database_url}")
    return 0


def show_stats(args: argparse.Namespace) -> int:
    with open_session(args) as session:
        if not session.is_ready:
            print("No database stored yet", file=sys.stderr)
            return 1
        rows = session.execute(
            "SELECT (SELECT COUNT(*) FROM jobs), (SELECT COUNT(*) FROM analysisResults)"
        )
    jobs, analyses = rows[0]
    print(f"jobs: {jobs}")
    print(f"analyses: {analyses}")
    return 0


def reset_database(args: argparse.Namespace) -> int:
    if not args.yes:
        print("Refusing to delete the stored database without --yes", file=sys.stderr)
        return 1
    store = BlobStore(args.database_url)
    try:
        store.open()
        removed = store.delete(args.key)
    finally:
        store.close()
    print("Stored database deleted" if removed else "No stored database to delete")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Manage the local resume analysis database.")
    parser.add_argument(
        "--database-url",
        dest="database_url",
        default=BLOB_STORE_URL,
        help="SQLAlchemy URL of the local blob store (default: %(default)s)",
    )
    parser.add_argument(
        "--key",
        default=BLOB_STORE_KEY,
        help="Blob store key holding the database image (default: %(default)s)",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    init_parser = subparsers.add_parser("init", help="Create a new database if none is stored")
    init_parser.set_defaults(func=init_database)

    export_parser = subparsers.add_parser("export", help="Write the database image to a file")
    export_parser.add_argument(
        "--output-dir",
        dest="output_dir",
        default=str(DATA_DIR / "exports"),
        help="Directory for the exported file (default: %(default)s)",
    )
    export_parser.set_defaults(func=export_database)

    import_parser = subparsers.add_parser("import", help="Replace the database with an exported file")
    import_parser.add_argument("file", help="Path to a previously exported database file")
    import_parser.set_defaults(func=import_database)

    stats_parser = subparsers.add_parser("stats", help="Print job and analysis counts")
    stats_parser.set_defaults(func=show_stats)

    reset_parser = subparsers.add_parser("reset", help="Delete the stored database image")
    reset_parser.add_argument("--yes", action="store_true", help="Confirm deletion")
    reset_parser.set_defaults(func=reset_database)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    logging.basicConfig(
        level=getattr(logging, LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    args = build_parser().parse_args(argv)
    try:
        return args.func(args)
    except PersistenceError as error:
        logger.error("%s failed: %s", args.command, error)
        print(f"Error: {error}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())
