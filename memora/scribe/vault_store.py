"""
Vault Store

Durable collection of MemoryRecords, newest first, persisted as a JSON list
(default: ~/.memora/records.json).
"""

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from ..common.config import STORE_PATH
from ..common.schemas import MemoryCategory, MemoryRecord

logger = logging.getLogger("memora.scribe.vault_store")

HIGH_PRIORITY_IMPORTANCE = 8


class VaultStore:
    """
    File-backed record store.

    Workflow:
    1. Scribe adds freshly built records (prepended, newest first)
    2. Retriever reads the ordered collection
    3. Users delete records by id
    """

    def __init__(self, store_path: Optional[Path] = None):
        """
        Initialize the store.

        Args:
            store_path: Path to the JSON file (default: ~/.memora/records.json)
        """
        self._store_path = Path(store_path) if store_path else STORE_PATH
        self._records: List[MemoryRecord] = []
        self._invalid: List[Any] = []
        self._load()

    def _load(self) -> None:
        """
        Load records from disk.

        Entries that fail validation are skipped but kept verbatim so the
        next save writes them back. A file that cannot be decoded at all is
        moved aside to `<name>.corrupt` before the store starts empty.
        """
        self._records = []
        self._invalid = []
        if not self._store_path.exists():
            return

        try:
            with open(self._store_path) as f:
                data = json.load(f)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            logger.warning("Failed to load records from %s: %s", self._store_path, e)
            self._quarantine()
            return

        if not isinstance(data, list):
            logger.warning("Failed to load records from %s: expected a list", self._store_path)
            self._quarantine()
            return

        for index, item in enumerate(data):
            try:
                self._records.append(MemoryRecord.model_validate(item))
            except ValidationError as e:
                logger.warning("Skipping invalid record #%d in %s: %s", index, self._store_path, e)
                self._invalid.append(item)

    def _quarantine(self) -> None:
        """Move an unreadable store file aside so it is never overwritten"""
        target = self._store_path.with_name(self._store_path.name + ".corrupt")
        self._store_path.replace(target)
        logger.warning("Moved unreadable store to %s", target)

    def _save(self) -> None:
        """Save records to disk"""
        self._store_path.parent.mkdir(parents=True, exist_ok=True)

        data = [record.model_dump(mode="json") for record in self._records]
        data.extend(self._invalid)
        with open(self._store_path, "w") as f:
            json.dump(data, f, indent=2)

    @property
    def records(self) -> List[MemoryRecord]:
        """All records, newest first"""
        return list(self._records)

    def __len__(self) -> int:
        return len(self._records)

    def add(self, record: MemoryRecord) -> MemoryRecord:
        """Prepend a record and persist"""
        if self.get(record.id) is not None:
            raise ValueError(f"Record {record.id} already exists")
        self._records.insert(0, record)
        self._save()
        logger.info("Stored memory %s (%s)", record.id, record.title)
        return record

    def get(self, record_id: str) -> Optional[MemoryRecord]:
        for record in self._records:
            if record.id == record_id:
                return record
        return None

    def delete(self, record_id: str) -> bool:
        """Delete a record; returns False if it did not exist"""
        remaining = [r for r in self._records if r.id != record_id]
        if len(remaining) == len(self._records):
            return False
        self._records = remaining
        self._save()
        logger.info("Deleted memory %s", record_id)
        return True

    def list_records(self, category: Optional[str] = None) -> List[MemoryRecord]:
        """
        List records, optionally restricted to one category.

        `category` of None or "All" returns everything.
        """
        if not category or category == "All":
            return self.records
        wanted = MemoryCategory.parse(category)
        return [r for r in self._records if r.category == wanted]

    def update_embedding(self, record_id: str, embedding: List[float]) -> bool:
        """Persist a computed embedding onto a stored record"""
        return self.update_embeddings({record_id: embedding}) == 1

    def update_embeddings(self, embeddings: Dict[str, List[float]]) -> int:
        """
        Persist several computed embeddings with a single write.

        Unknown ids and empty vectors are ignored.

        Returns:
            Number of records updated
        """
        updated = 0
        for record in self._records:
            vector = embeddings.get(record.id)
            if vector:
                record.embedding = list(vector)
                updated += 1
        if updated:
            self._save()
        return updated

    def stats(self) -> Dict[str, Any]:
        """Vault metrics: total, high-priority count, last update time"""
        last_updated = None
        if self._records:
            latest_ms = max(r.timestamp for r in self._records)
            last_updated = datetime.fromtimestamp(latest_ms / 1000, tz=timezone.utc).isoformat()

        return {
            "total": len(self._records),
            "high_priority": sum(1 for r in self._records if r.importance >= HIGH_PRIORITY_IMPORTANCE),
            "last_updated": last_updated,
            "by_category": {
                c.value: sum(1 for r in self._records if r.category == c)
                for c in MemoryCategory
            },
        }
