from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Any, Mapping

# --- core enums ---
class KeyAction(Enum):
    DOWN = "down"
    UP = "up"

    @classmethod
    def parse(cls, kind: str) -> "KeyAction":
        """Accepts the record values and the Press/Release event names."""
        if isinstance(kind, str) and kind in _KIND_ALIASES:
            return _KIND_ALIASES[kind]
        return cls(kind)

_KIND_ALIASES = {"Press": KeyAction.DOWN, "Release": KeyAction.UP}

# --- key event ---
@dataclass(frozen=True)
class KeyEvent:
    """One press or release observation, timestamped relative to session start."""
    key: str = ""                       # logical key identifier ("t", "T", "Shift")
    code: str = ""                      # physical key code ("KeyT", "ShiftLeft")
    action: KeyAction = KeyAction.DOWN
    t_ms: float = 0.0

    @property
    def is_press(self) -> bool:
        return self.action is KeyAction.DOWN

    @property
    def is_release(self) -> bool:
        return self.action is KeyAction.UP

    def to_record(self) -> Dict[str, Any]:
        return {
            "kind": self.action.value,
            "keyId": self.key,
            "physicalCode": self.code,
            "timestampMs": self.t_ms,
        }

    @classmethod
    def from_record(cls, rec: Mapping[str, Any]) -> "KeyEvent":
        return cls(
            key=str(rec["keyId"]),
            code=str(rec.get("physicalCode", rec["keyId"])),
            action=KeyAction.parse(rec["kind"]),
            t_ms=float(rec["timestampMs"]),
        )

# --- helpers for building streams by hand (tests, CLI fixtures) ---
def press(key: str, t_ms: float, code: str | None = None) -> KeyEvent:
    return KeyEvent(key=key, code=code or key, action=KeyAction.DOWN, t_ms=t_ms)

def release(key: str, t_ms: float, code: str | None = None) -> KeyEvent:
    return KeyEvent(key=key, code=code or key, action=KeyAction.UP, t_ms=t_ms)
