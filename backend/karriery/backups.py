"""Timestamped on-disk backups of the record store's export bundle."""
from __future__ import annotations

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Callable, Optional

from .store import RecordStore

logger = logging.getLogger(__name__)

BUNDLE_NAME = "karriery-data.json"

ProgressCallback = Callable[[int, int, str], None]


def create_backup(
    store: RecordStore,
    backup_root: Path,
    progress_callback: Optional[ProgressCallback] = None,
) -> dict:
    """Write the export bundle and metadata.json to a new timestamped folder."""

    backup_root = Path(backup_root)
    backup_root.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now()
    backup_id = timestamp.strftime("%Y%m%d-%H%M%S-%f")
    backup_dir = backup_root / backup_id
    backup_dir.mkdir(parents=True, exist_ok=True)

    if progress_callback:
        progress_callback(0, 2, "Exporting data…")
    bundle = store.export_all_data()
    with (backup_dir / BUNDLE_NAME).open("w", encoding="utf-8") as fh:
        json.dump(bundle, fh, indent=2)

    metadata = {
        "id": backup_id,
        "created_at": timestamp.isoformat(),
        "users": len(bundle["users"]),
        "tickets": len(bundle["tickets"]),
    }
    with (backup_dir / "metadata.json").open("w", encoding="utf-8") as fh:
        json.dump(metadata, fh, indent=2)

    if progress_callback:
        progress_callback(2, 2, "Backup complete.")
    logger.info("Created backup %s", backup_id)
    return metadata


def list_backups(backup_root: Path) -> list[dict]:
    """Return metadata for available backups sorted newest first."""

    backup_root = Path(backup_root)
    if not backup_root.exists():
        return []

    backups: list[dict] = []
    for candidate in backup_root.iterdir():
        if not candidate.is_dir() or not (candidate / BUNDLE_NAME).exists():
            continue
        meta_path = candidate / "metadata.json"
        metadata: dict | None = None
        if meta_path.exists():
            try:
                metadata = json.loads(meta_path.read_text(encoding="utf-8"))
            except (OSError, ValueError):
                logger.warning("Unreadable metadata in backup %s", candidate.name)
                metadata = None
        if not metadata:
            metadata = {"id": candidate.name, "created_at": None}
        metadata["path"] = candidate
        backups.append(metadata)

    def _sort_key(item: dict):
        created = item.get("created_at")
        try:
            return datetime.fromisoformat(created)  # type: ignore[arg-type]
        except (TypeError, ValueError):
            return datetime.min

    backups.sort(key=_sort_key, reverse=True)
    return backups


def restore_backup(store: RecordStore, backup_root: Path, backup_id: str) -> bool:
    """
    Import a backup's bundle into the store.

    Raises FileNotFoundError for unknown ids and DataImportError when the
    bundle is corrupt (the store is left untouched in that case).
    """

    bundle_path = Path(backup_root) / backup_id / BUNDLE_NAME
    if Path(backup_id).name != backup_id or backup_id in (".", "..") or not bundle_path.is_file():
        raise FileNotFoundError(f"Backup '{backup_id}' not found")

    ok = store.import_data(bundle_path.read_text(encoding="utf-8"))
    logger.info("Restored backup %s", backup_id)
    return ok
