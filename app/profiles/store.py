# app/profiles/store.py
from __future__ import annotations
import json
import re
import threading
from typing import Any, Dict, List, Optional
import structlog

from app.analytics.metrics import MetricsSummary
from app.analytics.digraphs import DigraphMap
from app.profiles.models import Profile, ProfileFormatError, profiles_to_records

log = structlog.get_logger()

MAX_PROFILES = 50
SAVE_NAME_LEN = 50
_UNSAFE_NAME_CHARS = re.compile(r'[<>"/\\&]')

def clean_profile_name(raw: str) -> str:
    name = _UNSAFE_NAME_CHARS.sub("", (raw or "").strip()[:SAVE_NAME_LEN])
    if not name:
        raise ValueError("invalid profile name")
    return name

class ProfileStore:
    """Ordered collection of saved profiles with JSON export/import."""
    def __init__(self, profiles: Optional[List[Profile]] = None):
        self._profiles: List[Profile] = list(profiles or [])
        self._lock = threading.RLock()

    def __len__(self) -> int:
        return len(self._profiles)

    @property
    def profiles(self) -> List[Profile]:
        with self._lock:
            return list(self._profiles)

    def save(self, name: str, metrics: MetricsSummary, digraphs: DigraphMap,
             source_text: str = "", captured_at_ms: Optional[int] = None) -> Profile:
        profile = Profile.snapshot(clean_profile_name(name), metrics, digraphs, source_text, captured_at_ms)
        with self._lock:
            self._profiles.append(profile)
        log.info("profiles.save", name=profile.name, presses=metrics.total_key_presses)
        return profile

    def add(self, profile: Profile) -> None:
        with self._lock:
            self._profiles.append(profile)

    def clear(self) -> None:
        with self._lock:
            self._profiles = []

    # -------- records --------

    def records(self) -> List[Dict[str, Any]]:
        with self._lock:
            return profiles_to_records(self._profiles)

    def import_records(self, payload: Any, limit: Optional[int] = None) -> int:
        """
        Append every well-formed record; malformed ones are logged and skipped.
        Returns the number accepted. Only a non-list payload is an error.
        """
        if not isinstance(payload, list):
            raise ProfileFormatError("profile collection must be a list")
        accepted: List[Profile] = []
        for idx, rec in enumerate(payload):
            if limit is not None and len(accepted) >= limit:
                break
            try:
                accepted.append(Profile.from_record(rec))
            except ProfileFormatError as e:
                log.warning("profiles.import.skip", index=idx, err=str(e))
        with self._lock:
            self._profiles.extend(accepted)
        log.info("profiles.import", received=len(payload), accepted=len(accepted))
        return len(accepted)

    # -------- files --------

    def export_json(self, path: str) -> int:
        recs = self.records()
        with open(path, "w", encoding="utf-8") as f:
            json.dump(recs, f, ensure_ascii=False, indent=2)
        log.info("profiles.export", path=path, count=len(recs))
        return len(recs)

    def import_json(self, path: str) -> int:
        with open(path, "r", encoding="utf-8") as f:
            payload = json.load(f)
        return self.import_records(payload)

    def load_json(self, path: str) -> int:
        """Replace the collection with the file's contents (at most MAX_PROFILES)."""
        with open(path, "r", encoding="utf-8") as f:
            payload = json.load(f)
        if not isinstance(payload, list):
            raise ProfileFormatError("profile collection must be a list")
        with self._lock:
            self._profiles = []
            return self.import_records(payload, limit=MAX_PROFILES)
