"""Directory store: the single owner of the published snapshot.

Writers publish whole new ``Directory`` instances; readers get the current
reference and never see a partially rebuilt structure. Publishing is a plain
reference swap, so readers need no locking.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from pydantic import TypeAdapter, ValidationError

from tokendir.core.errors import DirectoryUnavailableError
from tokendir.core.logging import get_logger
from tokendir.models.directory import DexQuote, Directory, TokenEntry
from tokendir.services.reconciliation import build_directory

log = get_logger("services.store")

_TOKEN_LIST = TypeAdapter(List[TokenEntry])


class DirectoryStore:
    def __init__(self) -> None:
        self._directory: Optional[Directory] = None
        self._version = 0
        self._dex_quotes: Dict[Tuple[str, str], DexQuote] = {}
        self._dex_updated_at: Optional[datetime] = None

    def current(self) -> Optional[Directory]:
        return self._directory

    def require(self) -> Directory:
        directory = self._directory
        if directory is None:
            raise DirectoryUnavailableError("no directory has been published yet")
        return directory

    @property
    def version(self) -> int:
        return self._version

    def publish(self, directory: Directory) -> Directory:
        """Replace the published snapshot; the stored copy carries the next version."""
        self._version += 1
        published = directory.model_copy(
            update={"version": self._version, "published_at": datetime.now(timezone.utc)}
        )
        self._directory = published
        return published

    def swap_if(self, expected_version: int, directory: Directory) -> bool:
        """Publish only if nothing else was published since ``expected_version``.

        Keeps the reconciliation publish time so staleness is measured from the
        last reconciliation, not from the last price refresh.
        """
        current = self._directory
        if current is None or current.version != expected_version:
            return False
        self._directory = directory.model_copy(
            update={
                "version": expected_version,
                "published_at": current.published_at,
                "prices_updated_at": datetime.now(timezone.utc),
            }
        )
        return True

    # -------------------------------------------------------------------------
    # DEX quotes
    # -------------------------------------------------------------------------
    @property
    def dex_quotes(self) -> Dict[Tuple[str, str], DexQuote]:
        return self._dex_quotes

    @property
    def dex_updated_at(self) -> Optional[datetime]:
        return self._dex_updated_at

    def merge_dex_quotes(self, quotes: Dict[Tuple[str, str], DexQuote]) -> None:
        """Merge new quotes over the known ones; pairs without a new quote keep the old one."""
        if not quotes:
            return
        merged = dict(self._dex_quotes)
        merged.update(quotes)
        self._dex_quotes = merged
        self._dex_updated_at = datetime.now(timezone.utc)

    def retain_dex_quotes(self, keys: Iterable[Tuple[str, str]]) -> int:
        """Drop quotes for pairs no longer in the directory; returns how many were dropped."""
        wanted = set(keys)
        kept = {key: quote for key, quote in self._dex_quotes.items() if key in wanted}
        dropped = len(self._dex_quotes) - len(kept)
        if dropped:
            self._dex_quotes = kept
        return dropped

    # -------------------------------------------------------------------------
    # Seed
    # -------------------------------------------------------------------------
    def load_seed(self, path: str | Path) -> Directory:
        """Publish a base dictionary (JSON list of token entries) from disk."""
        seed_path = Path(path)
        try:
            raw = json.loads(seed_path.read_text(encoding="utf-8"))
            tokens: Sequence[TokenEntry] = _TOKEN_LIST.validate_python(raw)
        except (OSError, ValueError, ValidationError) as exc:
            raise DirectoryUnavailableError(f"cannot load seed dictionary {seed_path}: {exc}") from exc
        if not tokens:
            raise DirectoryUnavailableError(f"seed dictionary {seed_path} is empty")

        published = self.publish(build_directory(tokens))
        log.info(f"Seed dictionary loaded: {len(tokens)} tokens from {seed_path} (version {published.version})")
        return published
