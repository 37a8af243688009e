# champion_catalog.py
from __future__ import annotations

import difflib
import json
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Optional

import requests

DDRAGON_VERSIONS_URL = "https://ddragon.leagueoflegends.com/api/versions.json"
DDRAGON_CHAMPION_URL = "https://ddragon.leagueoflegends.com/cdn/{version}/data/{locale}/champion.json"

_STRIP_CHARS = [" ", "\t", ".", "'", "’", "-", "_", "·", "&"]


class CatalogError(ValueError):
    pass


class UnknownChampionError(KeyError):
    def __init__(self, name: str, suggestions: List[str]):
        super().__init__(name)
        self.name = name
        self.suggestions = suggestions

    def __str__(self) -> str:
        if self.suggestions:
            return f"unknown champion '{self.name}' (did you mean: {', '.join(self.suggestions)})"
        return f"unknown champion '{self.name}'"


def normalize_name(s: str) -> str:
    # remove whitespace/punctuation + lowercase
    s = (s or "").strip().lower()
    for ch in _STRIP_CHARS:
        s = s.replace(ch, "")
    return s


@dataclass(frozen=True)
class Champion:
    id: int
    name: str


class ChampionCatalog:
    def __init__(self, champions: Iterable[Champion]):
        self._by_norm: Dict[str, Champion] = {}
        self._by_id: Dict[int, Champion] = {}
        for c in champions:
            key = normalize_name(c.name)
            if not key or key in self._by_norm:
                continue
            self._by_norm[key] = c
            self._by_id.setdefault(c.id, c)

    @classmethod
    def from_entries(cls, entries) -> "ChampionCatalog":
        if not isinstance(entries, list):
            raise CatalogError("champion catalog must be a JSON list of {id, name}")
        champs: List[Champion] = []
        for i, e in enumerate(entries):
            if not isinstance(e, dict) or "id" not in e or "name" not in e:
                raise CatalogError(f"catalog entry #{i} is not {{id, name}}: {e!r}")
            try:
                cid = int(e["id"])
            except (TypeError, ValueError):
                raise CatalogError(f"catalog entry #{i} has a non-integer id: {e['id']!r}")
            champs.append(Champion(id=cid, name=str(e["name"])))
        return cls(champs)

    @classmethod
    def from_file(cls, path: Path) -> "ChampionCatalog":
        with open(path, "r", encoding="utf-8") as f:
            try:
                data = json.load(f)
            except json.JSONDecodeError as e:
                raise CatalogError(f"{path}: invalid JSON ({e})")
        return cls.from_entries(data)

    def __len__(self) -> int:
        return len(self._by_norm)

    def __contains__(self, name: str) -> bool:
        return normalize_name(name) in self._by_norm

    @property
    def all_names(self) -> List[str]:
        return sorted(c.name for c in self._by_norm.values())

    def lookup(self, name: str) -> Optional[Champion]:
        return self._by_norm.get(normalize_name(name))

    def by_id(self, champion_id: int) -> Optional[Champion]:
        return self._by_id.get(int(champion_id))

    def suggest(self, name: str, n: int = 5, cutoff: float = 0.6) -> List[str]:
        close = difflib.get_close_matches(normalize_name(name), list(self._by_norm.keys()), n=n, cutoff=cutoff)
        return [self._by_norm[k].name for k in close]

    def resolve(self, name: str) -> Champion:
        c = self.lookup(name)
        if c is None:
            raise UnknownChampionError(name, self.suggest(name))
        return c

    def resolve_many(self, names: Iterable[str]) -> List[Champion]:
        return [self.resolve(n) for n in names if (n or "").strip()]


# ---- Data Dragon refresh ----
def _get_latest_ddragon_version(timeout=10) -> str:
    r = requests.get(DDRAGON_VERSIONS_URL, timeout=timeout)
    r.raise_for_status()
    return r.json()[0]


def _download_champion_json(version: str, locale: str, timeout=15) -> dict:
    r = requests.get(DDRAGON_CHAMPION_URL.format(version=version, locale=locale), timeout=timeout)
    r.raise_for_status()
    return r.json()


def refresh_from_ddragon(path: Path, locale: str = "en_US") -> int:
    """
    Download the latest champion list and write it as [{id, name}].
    Returns the number of champions written.
    """
    version = _get_latest_ddragon_version()
    raw = _download_champion_json(version, locale)
    data = raw.get("data", {})

    entries = []
    for champ in data.values():
        # champ["key"] = "21" (championId)
        entries.append({"id": int(champ["key"]), "name": champ["name"]})
    entries.sort(key=lambda e: e["name"])

    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(entries, f, ensure_ascii=False, indent=2)

    return len(entries)


def load_catalog(path: Path, locale: str = "en_US", refresh: bool = False) -> ChampionCatalog:
    if refresh or not path.exists():
        refresh_from_ddragon(path, locale=locale)
    return ChampionCatalog.from_file(path)
