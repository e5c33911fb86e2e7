from __future__ import annotations

"""JSON-backed persistence for match history and settings.

The match history is a single JSON array rewritten as a whole on every
append. Reads never raise on bad data: a corrupt file reads as an empty
history and invalid records are skipped.
"""

import json
import logging
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, List, Optional, Union


from .schema import FixedCountMatch, Settings, TimedMatch, parse_match

logger = logging.getLogger(__name__)

MATCHES_FILE = "matches.json"
SETTINGS_FILE = "settings.json"

AnyMatch = Union[FixedCountMatch, TimedMatch]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _write_json(path: Path, data: Any) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_name(path.name + ".tmp")
    with tmp.open("w", encoding="utf-8") as f:
        json.dump(data, f, ensure_ascii=False, separators=(",", ":"))
    os.replace(tmp, path)


def _backup(path: Path, raw: bytes, now: datetime) -> None:
    backup = path.with_name(f"{path.stem}.backup-{now.strftime('%Y%m%d-%H%M%S')}{path.suffix}")
    backup.write_bytes(raw)
    logger.warning("Unreadable history backed up to %s", backup)


class MatchStore:
    def __init__(self, path: Union[str, Path], clock: Optional[Callable[[], datetime]] = None) -> None:
        self.path = Path(path)
        self._now = clock or _utcnow

    def _read_raw(self) -> tuple[List[Any], Optional[bytes]]:
        """Return the stored records and, when the file is unreadable, its raw bytes."""
        if not self.path.exists():
            return [], None
        try:
            raw = self.path.read_bytes()
        except OSError as exc:
            logger.warning("Cannot read match history %s: %s", self.path, exc)
            return [], None
        try:
            data = json.loads(raw.decode("utf-8"))
        except ValueError as exc:
            # UnicodeDecodeError and JSONDecodeError are both ValueErrors
            logger.warning("Match history %s is not valid JSON (%s); treating as empty", self.path, exc)
            return [], raw
        if not isinstance(data, list):
            logger.warning("Match history %s is not a JSON array; treating as empty", self.path)
            return [], raw
        return data, None

    def all(self) -> List[AnyMatch]:
        records, _ = self._read_raw()
        out: List[AnyMatch] = []
        for idx, raw in enumerate(records):
            try:
                out.append(parse_match(raw))
            except (ValueError, TypeError) as exc:
                # ValidationError is a ValueError
                logger.warning("Skipping invalid match record #%d (%s)", idx, type(exc).__name__)
        return out

    def append(self, record: Union[AnyMatch, dict]) -> AnyMatch:
        """Stamp ``record`` with an id and timestamp and add it to the history.

        Records already on disk are kept verbatim, including ones this version
        cannot parse.
        """
        match = parse_match(record)
        records, corrupt_raw = self._read_raw()
        now = self._now()
        if corrupt_raw is not None:
            _backup(self.path, corrupt_raw, now)

        new_id = int(now.timestamp() * 1000)
        existing = [r.get("id") for r in records if isinstance(r, dict) and isinstance(r.get("id"), int)]
        if existing and new_id <= max(existing):
            new_id = max(existing) + 1

        stored = match.model_copy(update={"id": new_id, "timestamp": now})
        records.append(stored.to_json())
        _write_json(self.path, records)
        logger.debug("Stored %s match %d (%d/%d)", stored.kind, new_id, stored.score, stored.attempted)
        return stored

    def find_by_id(self, match_id: int) -> Optional[AnyMatch]:
        for m in self.all():
            if m.id == match_id:
                return m
        return None

    def delete(self, match_id: int) -> bool:
        records, corrupt_raw = self._read_raw()
        if corrupt_raw is not None:
            return False
        kept = [r for r in records if not (isinstance(r, dict) and r.get("id") == match_id)]
        if len(kept) == len(records):
            return False
        _write_json(self.path, kept)
        return True

    def clear(self) -> None:
        self.path.unlink(missing_ok=True)


class SettingsStore:
    def __init__(self, path: Union[str, Path]) -> None:
        self.path = Path(path)

    def load(self) -> Settings:
        if not self.path.exists():
            return Settings()
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
            return Settings.model_validate(data)
        except (OSError, ValueError) as exc:
            # ValidationError is a ValueError
            logger.warning("Settings %s unusable (%s); using defaults", self.path, exc)
            return Settings()

    def save(self, settings: Settings) -> None:
        _write_json(self.path, settings.to_json())
