#!/usr/bin/env python3
"""
Entry Re-embedding Utility
Regenerates embeddings for every stored entry, e.g. after switching embedding
models or to fill in entries whose embedding failed at write time.
"""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from journal.core.config import get_embedding_provider, get_entry_store, validate_config
from journal.core.entry_service import reembed_entries


def main():
    """Re-embed all entries in the configured store."""
    issues = validate_config()
    if issues:
        for issue in issues:
            print(f"ERROR: {issue}")
        sys.exit(1)

    store = get_entry_store()
    embedding_provider = get_embedding_provider()

    total = store.count()
    if total == 0:
        print("No entries to re-embed")
        return

    print(f"Found {total} entries to re-embed\n")

    def report(entry, ok):
        status = "✓" if ok else "✗"
        print(f"  {status} {entry.title}")

    embedded, failed = reembed_entries(store, embedding_provider, progress=report)

    print(f"\nRe-embedded {embedded} entries, {failed} failed")
    if failed:
        sys.exit(1)


if __name__ == "__main__":
    main()
