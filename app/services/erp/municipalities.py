"""Municipality (IBGE) code lookup backed by a CSV file of ``code,name,state`` rows."""

from __future__ import annotations

import csv
import logging
import threading
import unicodedata
from pathlib import Path

logger = logging.getLogger(__name__)


def normalize_name(value: str | None) -> str:
    """Upper-case, accent-free, single-spaced form used for matching."""
    if not value:
        return ""
    decomposed = unicodedata.normalize("NFKD", value)
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return " ".join(stripped.upper().split())


class MunicipalityDirectory:
    def __init__(self, path: str | Path):
        self.path = Path(path)
        self._index: dict[tuple[str, str], str] | None = None
        self._by_name: dict[str, str] = {}
        self._cache: dict[tuple[str, str], str | None] = {}
        self._lock = threading.Lock()

    def _load(self) -> dict[tuple[str, str], str]:
        with self._lock:
            if self._index is not None:
                return self._index
            index: dict[tuple[str, str], str] = {}
            if not self.path.is_file():
                logger.warning("Municipality code file not found: %s", self.path)
            else:
                with self.path.open(newline="", encoding="utf-8") as handle:
                    for row in csv.DictReader(handle):
                        code = (row.get("code") or "").strip()
                        name = normalize_name(row.get("name"))
                        state = normalize_name(row.get("state"))
                        if not code or not name:
                            continue
                        index[(name, state)] = code
                        self._by_name.setdefault(name, code)
                logger.info("Loaded %d municipality codes from %s", len(index), self.path)
            self._index = index
            return index

    def lookup(self, city: str | None, state: str | None = None) -> str | None:
        name = normalize_name(city)
        if not name:
            return None
        uf = normalize_name(state)
        key = (name, uf)
        if key in self._cache:
            return self._cache[key]

        index = self._load()
        # Without a state the first file row with that name is used
        code = index.get(key) if uf else self._by_name.get(name)
        self._cache[key] = code
        return code

    __call__ = lookup
