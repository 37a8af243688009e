import json
import os
from pathlib import Path

from champion_catalog import Champion, ChampionCatalog
from selection_plan import SelectionPlan


def _plan_path() -> Path:
    """
    Stored next to this file, not the CWD.
    One file per profile: selection_plan.personal.json / selection_plan.public.json
    """
    here = Path(__file__).resolve().parent
    profile = (os.getenv("APP_PROFILE") or "personal").strip().lower()
    return here / f"selection_plan.{profile}.json"


def _champ_entry(c: Champion) -> dict:
    return {"id": c.id, "name": c.name}


def _resolve_entry(catalog: ChampionCatalog, entry) -> Champion | None:
    # ids are authoritative, names are a fallback for hand-edited files
    if isinstance(entry, dict):
        if entry.get("id") is not None:
            c = catalog.by_id(int(entry["id"]))
            if c is not None:
                return c
        entry = entry.get("name")
    if isinstance(entry, int):
        return catalog.by_id(entry)
    if isinstance(entry, str):
        return catalog.lookup(entry)
    return None


def save_plan(plan: SelectionPlan, path: Path | None = None):
    """Only intent is stored; cursor/locked are episode progress."""
    path = path or _plan_path()
    data = {
        "ban": _champ_entry(plan.ban) if plan.ban else None,
        "picks": [_champ_entry(c) for c in plan.picks],
        "rune_swap_enabled": bool(plan.rune_swap_enabled),
    }
    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f, ensure_ascii=False, indent=2)


def load_plan(catalog: ChampionCatalog, path: Path | None = None) -> SelectionPlan:
    path = path or _plan_path()
    plan = SelectionPlan()
    if not path.exists():
        return plan

    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, dict):
        return plan

    if data.get("ban") is not None:
        plan.set_ban(_resolve_entry(catalog, data["ban"]))

    picks = []
    for e in data.get("picks") or []:
        c = _resolve_entry(catalog, e)
        if c is not None:
            picks.append(c)
    plan.set_picks(picks)
    plan.rune_swap_enabled = bool(data.get("rune_swap_enabled", False))
    return plan
