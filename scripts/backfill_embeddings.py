#!/usr/bin/env python3
"""
Embedding Backfill Script

Computes document embeddings for stored memories that have none (e.g. the
embedding backend was unavailable at capture time), or re-embeds every
memory after switching embedding models.

Usage:
    python scripts/backfill_embeddings.py [--dry-run] [--all] [--store-path PATH]
"""

import argparse
import sys

from memora.common.config import load_config
from memora.common.embedding_service import EmbeddingMode, EmbeddingService
from memora.common.schemas import render_document_text
from memora.scribe.vault_store import VaultStore


def select_records(store: VaultStore, reembed_all: bool):
    """Records that need a (new) document vector"""
    return [r for r in store.records if reembed_all or not r.has_embedding]


def backfill(store: VaultStore, embedding_svc: EmbeddingService, reembed_all: bool = False) -> tuple:
    """
    Embed the selected records and persist the vectors.

    Returns:
        (updated, errors) counts
    """
    updated = 0
    errors = 0
    for record in select_records(store, reembed_all):
        vector = embedding_svc.embed(render_document_text(record), EmbeddingMode.DOCUMENT)
        if not vector:
            print(f"[Backfill] WARNING: No embedding returned for {record.id}")
            errors += 1
            continue
        store.update_embedding(record.id, vector)
        updated += 1
    return updated, errors


def main():
    parser = argparse.ArgumentParser(description="Backfill document embeddings for stored memories")
    parser.add_argument("--dry-run", action="store_true", help="Print what would be done without executing")
    parser.add_argument("--all", action="store_true", help="Re-embed every memory, not only those missing a vector")
    parser.add_argument("--store-path", type=str, default=None, help="Path to the JSON record store")
    args = parser.parse_args()

    config = load_config()
    store = VaultStore(args.store_path or config.vault.store_path)
    pending = select_records(store, args.all)
    print(f"[Backfill] {len(pending)} of {len(store)} memories selected")

    if args.dry_run:
        print("[Backfill] DRY RUN - no changes will be made")
        for record in pending:
            print(f"[Backfill] Would embed {record.id}: {record.title}")
        return

    if not pending:
        print("[Backfill] Nothing to do")
        return

    print(f"[Backfill] Mode: {config.embedding.mode}, model: {config.embedding.model}")
    embedding_svc = EmbeddingService(
        mode=config.embedding.mode,
        model=config.embedding.model,
        api_key=config.llm.google_api_key or None,
        max_chars=config.embedding.max_chars,
    )
    if not embedding_svc.is_available:
        print("[Backfill] ERROR: Embedding service not available")
        sys.exit(1)

    updated, errors = backfill(store, embedding_svc, args.all)
    print(f"[Backfill] Complete: {updated} updated, {errors} errors, {len(pending)} selected")


if __name__ == "__main__":
    main()
