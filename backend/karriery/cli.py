"""Command line entry point for serving the API and maintaining the store."""

from __future__ import annotations

import argparse
import logging
import os
from pathlib import Path
from typing import Sequence

from .backups import create_backup, list_backups, restore_backup
from .config import get_settings
from .database import build_store
from .exceptions import DataImportError
from .store import CONTACTS_KEY, SESSIONS_KEY, RecordStore


def run_diagnostics(store: RecordStore) -> None:
    """Print what the configured substrate currently holds."""

    settings = get_settings()
    print("Backend:", settings.storage_backend)
    print("Database URL:", settings.database_url)
    keys = store.substrate.keys()
    print("Keys:", ", ".join(keys) or "<none>")

    stats = store.update_statistics()
    print("users:", stats.get("totalUsers", 0), "active:", stats.get("activeUsers", 0))
    print("tickets:", stats.get("totalTickets", 0), "open:", stats.get("openTickets", 0))
    print("contact requests present:", CONTACTS_KEY in keys)
    print("sessions present:", SESSIONS_KEY in keys)
    print("maintenance:", store.get_settings().get("maintenance", False))


def main(argv: Sequence[str] | None = None) -> int:
    """Parse CLI arguments and dispatch to the requested workflow."""

    parser = argparse.ArgumentParser(
        prog="karriery",
        description="Run the Karriery backend or one of its maintenance helpers.",
    )
    parser.add_argument("--diag", action="store_true", help="Print store diagnostics and exit.")
    parser.add_argument("--backup", action="store_true", help="Write a backup to BACKUP_DIR and exit.")
    parser.add_argument("--list-backups", action="store_true", help="List backups newest first and exit.")
    parser.add_argument("--restore", metavar="BACKUP_ID", help="Restore the named backup and exit.")
    parser.add_argument("--host", default=os.getenv("HOST", "127.0.0.1"))
    parser.add_argument("--port", type=int, default=int(os.getenv("PORT", 8000)))

    args = parser.parse_args(None if argv is None else list(argv))
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    backup_root = Path(get_settings().backup_dir)

    if args.list_backups:
        for item in list_backups(backup_root):
            print(item["id"], item.get("created_at") or "-", item.get("users", "?"), item.get("tickets", "?"))
        return 0

    if args.diag or args.backup or args.restore:
        store = build_store()
        try:
            if args.diag:
                run_diagnostics(store)
            elif args.backup:
                metadata = create_backup(
                    store,
                    backup_root,
                    progress_callback=lambda done, total, message: print(f"[{done}/{total}] {message}"),
                )
                print("Backup written:", metadata["id"])
            else:
                try:
                    restore_backup(store, backup_root, args.restore)
                except (FileNotFoundError, DataImportError) as exc:
                    print("ERROR:", exc)
                    return 1
                print("Restored:", args.restore)
        finally:
            store.substrate.close()
        return 0

    import uvicorn

    uvicorn.run("karriery.main:app", host=args.host, port=args.port)
    return 0
