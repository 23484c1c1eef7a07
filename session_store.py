"""
Settings and saved-game persistence.

The app only sees an opaque key -> string store. MemoryStore is used by
tests; JsonFileStore keeps every key in one JSON file next to the app.
Anything unreadable is treated as missing.
"""
from __future__ import annotations

import json
import logging
import os
from dataclasses import asdict, dataclass, replace
from typing import Dict, Optional

import config as cfg
from minesweeper_game import MinesweeperGame

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Settings:
    scroll_speed_sec: float = cfg.DEFAULT_SCROLL_SPEED
    blink_threshold_sec: float = cfg.DEFAULT_BLINK_THRESHOLD
    focus_area_size: int = cfg.DEFAULT_FOCUS_AREA_SIZE

    def __post_init__(self):
        # Small float slack so 0.1 survives repeated +/- 0.1 steps.
        if self.scroll_speed_sec < cfg.MIN_TIMING_SECONDS - 1e-9:
            raise ValueError(f"scroll speed below {cfg.MIN_TIMING_SECONDS}s: {self.scroll_speed_sec}")
        if self.blink_threshold_sec < cfg.MIN_TIMING_SECONDS - 1e-9:
            raise ValueError(f"blink threshold below {cfg.MIN_TIMING_SECONDS}s: {self.blink_threshold_sec}")
        if self.focus_area_size not in cfg.FOCUS_AREA_SIZES:
            raise ValueError(f"focus area size must be one of {cfg.FOCUS_AREA_SIZES}: {self.focus_area_size}")

    @property
    def scroll_speed_ms(self) -> int:
        return int(round(self.scroll_speed_sec * 1000))

    @property
    def blink_threshold_ms(self) -> int:
        return int(round(self.blink_threshold_sec * 1000))

    def adjusted(self, name: str, direction: int) -> "Settings":
        """
        Returns a copy with one setting stepped up (+1) or down (-1), clamped to its range.
        """
        if name == "focus_area_size":
            sizes = cfg.FOCUS_AREA_SIZES
            i = sizes.index(self.focus_area_size) + direction
            return replace(self, focus_area_size=sizes[max(0, min(len(sizes) - 1, i))])

        if name not in ("scroll_speed_sec", "blink_threshold_sec"):
            raise ValueError(f"unknown setting: {name!r}")
        value = round(getattr(self, name) + direction * cfg.SETTING_STEP_SECONDS, 1)
        return replace(self, **{name: max(cfg.MIN_TIMING_SECONDS, value)})

    def to_json(self) -> str:
        return json.dumps(asdict(self))

    @classmethod
    def from_json(cls, text: str) -> "Settings":
        data = json.loads(text)
        return cls(
            scroll_speed_sec=float(data["scroll_speed_sec"]),
            blink_threshold_sec=float(data["blink_threshold_sec"]),
            focus_area_size=int(data["focus_area_size"]),
        )


class SessionStore:
    """Key -> string store. Subclasses implement the three operations."""

    def get(self, key: str) -> Optional[str]:
        raise NotImplementedError

    def set(self, key: str, value: str) -> None:
        raise NotImplementedError

    def remove(self, key: str) -> None:
        raise NotImplementedError


class MemoryStore(SessionStore):
    def __init__(self, data: Optional[Dict[str, str]] = None) -> None:
        self.data: Dict[str, str] = dict(data or {})

    def get(self, key: str) -> Optional[str]:
        return self.data.get(key)

    def set(self, key: str, value: str) -> None:
        self.data[key] = value

    def remove(self, key: str) -> None:
        self.data.pop(key, None)


class JsonFileStore(SessionStore):
    def __init__(self, path: str = cfg.STORE_PATH) -> None:
        self.path = path
        self.data: Dict[str, str] = {}
        self.load()

    def load(self) -> None:
        if not os.path.exists(self.path):
            self.data = {}
            return
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("ignoring unreadable store %s: %s", self.path, e)
            data = {}
        if not isinstance(data, dict):
            logger.warning("ignoring store %s: not a JSON object", self.path)
            data = {}
        self.data = {str(k): v for k, v in data.items() if isinstance(v, str)}

    def save(self) -> None:
        # A crash mid-write leaves the previous store intact.
        tmp_path = self.path + ".tmp"
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(self.data, f, indent=2)
        os.replace(tmp_path, self.path)

    def get(self, key: str) -> Optional[str]:
        return self.data.get(key)

    def set(self, key: str, value: str) -> None:
        self.data[key] = value
        self.save()

    def remove(self, key: str) -> None:
        if self.data.pop(key, None) is not None:
            self.save()


def load_settings(store: SessionStore) -> Settings:
    text = store.get(cfg.SETTINGS_KEY)
    if text is None:
        return Settings()
    try:
        return Settings.from_json(text)
    except (ValueError, KeyError, TypeError) as e:
        logger.warning("discarding saved settings: %s", e)
        return Settings()


def load_game(store: SessionStore, rng=None) -> Optional[MinesweeperGame]:
    text = store.get(cfg.GAME_STATE_KEY)
    if text is None:
        return None
    try:
        return MinesweeperGame.restore(json.loads(text), rng=rng)
    except (ValueError, KeyError, TypeError) as e:
        logger.warning("discarding saved game: %s", e)
        return None
