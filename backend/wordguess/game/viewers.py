from __future__ import annotations

import json
import logging
import threading
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Callable, Literal


logger = logging.getLogger(__name__)

Tier = Literal["none", "red", "gold", "platinum"]

# wins_total -> tier; anything above the last threshold stays platinum.
TIER_THRESHOLDS: tuple[tuple[int, Tier], ...] = (
    (3, "platinum"),
    (2, "gold"),
    (1, "red"),
)


def tier_for(wins: int) -> Tier:
    for threshold, tier in TIER_THRESHOLDS:
        if wins >= threshold:
            return tier
    return "none"


@dataclass
class Viewer:
    id: str
    display_name: str
    wins_total: int = 0
    tier: Tier = "none"


def _spawn_thread(fn: Callable[[], None]) -> None:
    threading.Thread(target=fn, daemon=True).start()


class ViewerStore:
    """Win counts and tiers per viewer, optionally mirrored to a JSON file.

    Writes are write-behind: ``save`` snapshots the records and hands the
    actual file write to ``spawn``. A failed write is logged and dropped; the
    in-memory records are always the source of truth. Each snapshot carries a
    version so a slow writer never overwrites a newer file.
    """

    def __init__(self, path: str | Path | None = None, spawn: Callable[[Callable[[], None]], None] | None = None) -> None:
        self.path = Path(path) if path else None
        self._spawn = spawn or _spawn_thread
        self._records: dict[str, Viewer] = {}
        self._write_lock = threading.Lock()
        self._version = 0
        self._written_version = 0

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, viewer_id: str) -> bool:
        return viewer_id in self._records

    def get(self, viewer_id: str) -> Viewer | None:
        return self._records.get(viewer_id)

    def touch(self, viewer_id: str, nickname: str) -> Viewer:
        viewer = self._records.get(viewer_id)
        if viewer is None:
            viewer = Viewer(id=viewer_id, display_name=nickname)
            self._records[viewer_id] = viewer
        elif nickname and viewer.display_name != nickname:
            viewer.display_name = nickname
        return viewer

    def record_win(self, viewer_id: str, nickname: str) -> tuple[Viewer, bool]:
        """Returns (viewer, tier_changed)."""
        viewer = self.touch(viewer_id, nickname)
        before = viewer.tier
        viewer.wins_total += 1
        viewer.tier = tier_for(viewer.wins_total)
        self.save()
        return viewer, viewer.tier != before

    def reset(self) -> None:
        self._records.clear()
        self.save()

    def leaderboard(self, limit: int = 10) -> list[dict]:
        ranked = sorted(
            (v for v in self._records.values() if v.wins_total > 0),
            key=lambda v: (-v.wins_total, v.display_name.lower()),
        )
        return [
            {"userId": v.id, "nickname": v.display_name, "wins": v.wins_total, "tier": v.tier}
            for v in ranked[:limit]
        ]

    # ---- persistence ----

    def load(self) -> None:
        if self.path is None or not self.path.exists():
            return
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            logger.warning("[users-load] path=%s failed: %s", self.path, exc)
            return
        if not isinstance(raw, dict):
            return

        for viewer_id, rec in raw.items():
            if not isinstance(rec, dict):
                continue
            try:
                wins = int(rec.get("wins_total", 0))
            except (TypeError, ValueError):
                wins = 0
            self._records[str(viewer_id)] = Viewer(
                id=str(viewer_id),
                display_name=str(rec.get("display_name") or viewer_id),
                wins_total=wins,
                tier=tier_for(wins),
            )
        logger.info("[users-load] path=%s viewers=%d", self.path, len(self._records))

    def save(self) -> None:
        if self.path is None:
            return
        with self._write_lock:
            payload = {
                v.id: {k: val for k, val in asdict(v).items() if k != "id"}
                for v in self._records.values()
            }
            self._version += 1
            version = self._version
        self._spawn(lambda: self._write(payload, version))

    def _write(self, payload: dict, version: int) -> None:
        try:
            with self._write_lock:
                # a newer snapshot already reached the disk
                if version <= self._written_version:
                    return
                self.path.parent.mkdir(parents=True, exist_ok=True)
                tmp = self.path.with_suffix(self.path.suffix + ".tmp")
                tmp.write_text(json.dumps(payload, ensure_ascii=False, indent=2), encoding="utf-8")
                tmp.replace(self.path)
                self._written_version = version
        except OSError as exc:
            logger.warning("[users-save] path=%s failed: %s", self.path, exc)
