from __future__ import annotations

import argparse
from typing import Optional, Sequence

from .config import IngestConfig
from .db import SessionLocal, init_db
from .errors import PhotoVaultError
from .services import lifecycle_service, photo_store

def cmd_db(args: argparse.Namespace) -> int:
    if args.action == "init":
        init_db()
        print("Database tables created.")
        return 0

    print("Unknown db action")
    return 2

def cmd_list(args: argparse.Namespace) -> int:
    db = SessionLocal()
    try:
        photos = photo_store.list_photos(db, trashed=args.trashed)
        for p in photos:
            print(f"{p.id}\t{p.date_created:%Y-%m-%d %H:%M:%S}\t{p.name}")
        print(f"{len(photos)} photo(s)")
        return 0
    finally:
        db.close()

def cmd_trash(args: argparse.Namespace) -> int:
    db = SessionLocal()
    try:
        modified = lifecycle_service.trash(db, args.ids)
        print(f"{modified} Photos trashed successfully!")
        return 0
    finally:
        db.close()

def cmd_purge(args: argparse.Namespace) -> int:
    if not args.yes:
        print("Refusing to purge without --yes")
        return 2

    db = SessionLocal()
    try:
        report = lifecycle_service.purge_all(db, IngestConfig.from_settings())
        print(
            f"Deleted {report.files_deleted} file(s), {report.photos_deleted} photo(s), "
            f"{report.faces_deleted} face record(s); {report.file_errors} file error(s)."
        )
        return 0
    finally:
        db.close()

def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(prog="photovault-ctl")
    sub = parser.add_subparsers(dest="cmd", required=True)

    p_db = sub.add_parser("db")
    p_db.add_argument("action", choices=["init"])
    p_db.set_defaults(func=cmd_db)

    p_list = sub.add_parser("list")
    p_list.add_argument("--trashed", action="store_true")
    p_list.set_defaults(func=cmd_list)

    p_trash = sub.add_parser("trash")
    p_trash.add_argument("ids", help="Comma-separated photo ids.")
    p_trash.set_defaults(func=cmd_trash)

    p_purge = sub.add_parser("purge")
    p_purge.add_argument("--yes", action="store_true", help="Confirm deleting every file and record.")
    p_purge.set_defaults(func=cmd_purge)

    args = parser.parse_args(argv)
    try:
        return args.func(args)
    except PhotoVaultError as exc:
        print(f"ERROR {exc}")
        return 1

if __name__ == "__main__":
    raise SystemExit(main())
