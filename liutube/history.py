"""Watch history kept in a small JSON key-value store."""

import contextlib
import json
import os
import sys
import threading
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional

from .logger import warn
from .models import HISTORY_STORAGE_KEY, MAX_HISTORY_ITEMS, UNKNOWN_CHANNEL, HistoryEntry


class JsonStore:
    """String keys mapped to JSON values, persisted as one JSON object on disk."""

    def __init__(self, path: str) -> None:
        self.path = path

    def _load(self) -> Dict[str, Any]:
        try:
            with open(self.path, "r", encoding="utf-8") as handle:
                data = json.load(handle)
        except FileNotFoundError:
            return {}
        except (OSError, json.JSONDecodeError) as exc:
            warn(f"Failed to read store {self.path}: {exc}")
            return {}

        if not isinstance(data, dict):
            warn(f"Store {self.path} must contain a JSON object. Ignoring.")
            return {}
        return data

    def _save(self, data: Dict[str, Any]) -> None:
        directory = os.path.dirname(self.path)
        if directory:
            os.makedirs(directory, exist_ok=True)

        temp_path = f"{self.path}.tmp"
        try:
            with open(temp_path, "w", encoding="utf-8") as handle:
                json.dump(data, handle, indent=2, ensure_ascii=False)
            os.replace(temp_path, self.path)
        except OSError:
            with contextlib.suppress(OSError):
                os.remove(temp_path)
            raise

    def get_item(self, key: str) -> Any:
        return self._load().get(key)

    def set_item(self, key: str, value: Any) -> None:
        data = self._load()
        data[key] = value
        self._save(data)

    def remove_item(self, key: str) -> None:
        data = self._load()
        if key in data:
            del data[key]
            self._save(data)


def parse_duration(duration: Optional[str]) -> int:
    """Convert 'H:MM:SS' or 'M:SS' into seconds; unparseable parts count as 0."""
    if not duration:
        return 0
    seconds = 0
    for power, part in enumerate(reversed(str(duration).split(":"))):
        try:
            value = int(part.strip() or 0)
        except ValueError:
            value = 0
        seconds += value * (60 ** power)
    return seconds


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class HistoryManager:
    """Most-recent-first list of watched videos, unique by id and capped in size."""

    def __init__(
        self,
        store: JsonStore,
        storage_key: str = HISTORY_STORAGE_KEY,
        max_items: int = MAX_HISTORY_ITEMS,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.store = store
        self.storage_key = storage_key
        self.max_items = max_items
        self.clock = clock
        self.lock = threading.RLock()

    def add_video(self, video: Dict[str, Any]) -> HistoryEntry:
        """Record a watch, moving the video to the front and bumping its count."""
        with self.lock:
            history = self.get_history()
            video_id = str(video["id"])
            previous = next((item for item in history if item.id == video_id), None)
            history = [item for item in history if item.id != video_id]

            entry = HistoryEntry(
                id=video_id,
                title=str(video.get("title") or ""),
                author=video.get("author") or UNKNOWN_CHANNEL,
                thumbnail=video.get("thumbnail") or "",
                duration=video.get("duration") or "",
                watched_at=self.clock().isoformat(),
                watch_count=(previous.watch_count if previous else 0) + 1,
            )
            history.insert(0, entry)
            del history[self.max_items:]

            self.save_history(history)
            return entry

    def get_history(self) -> List[HistoryEntry]:
        raw = self.store.get_item(self.storage_key)
        if not isinstance(raw, list):
            return []

        entries: List[HistoryEntry] = []
        for item in raw:
            try:
                entries.append(HistoryEntry.from_dict(item))
            except (KeyError, TypeError, ValueError) as exc:
                warn(f"Skipping malformed history entry {item!r}: {exc}")
        return entries

    def search_history(self, query: Optional[str]) -> List[HistoryEntry]:
        history = self.get_history()
        if not query:
            return history

        term = query.lower()
        return [
            item for item in history
            if term in item.title.lower() or term in item.author.lower()
        ]

    def get_recent_history(self, limit: int = 20) -> List[HistoryEntry]:
        return self.get_history()[:limit]

    def update_video(self, video_id: str, updates: Dict[str, Any]) -> Optional[HistoryEntry]:
        with self.lock:
            video_id = str(video_id)
            history = self.get_history()
            for index, item in enumerate(history):
                if item.id == video_id:
                    merged = item.to_dict()
                    merged.update(updates)
                    merged["id"] = video_id
                    history[index] = HistoryEntry.from_dict(merged)
                    self.save_history(history)
                    return history[index]
            return None

    def remove_video(self, video_id: str) -> bool:
        with self.lock:
            video_id = str(video_id)
            history = self.get_history()
            remaining = [item for item in history if item.id != video_id]
            self.save_history(remaining)
            return len(remaining) != len(history)

    def clear_history(self) -> bool:
        with self.lock:
            try:
                self.store.remove_item(self.storage_key)
            except OSError as exc:
                print(f"Error clearing history: {exc}", file=sys.stderr)
                return False
            return True

    def clear_old_history(self, days: int = 30) -> int:
        """Drop entries watched more than *days* ago; returns how many were removed."""
        with self.lock:
            history = self.get_history()
            cutoff = self.clock() - timedelta(days=days)
            remaining = [item for item in history if self._watched_after(item, cutoff)]
            self.save_history(remaining)
            return len(history) - len(remaining)

    @staticmethod
    def _watched_after(item: HistoryEntry, cutoff: datetime) -> bool:
        try:
            watched = datetime.fromisoformat(item.watched_at)
        except ValueError:
            return False
        if watched.tzinfo is None:
            watched = watched.replace(tzinfo=timezone.utc)
        return watched > cutoff

    def save_history(self, history: List[HistoryEntry]) -> None:
        try:
            self.store.set_item(self.storage_key, [item.to_dict() for item in history])
        except OSError as exc:
            print(f"Error saving history: {exc}", file=sys.stderr)

    def get_stats(self) -> Dict[str, Any]:
        history = self.get_history()
        return {
            "total_videos": len(history),
            "total_watch_time": sum(parse_duration(item.duration) * item.watch_count for item in history),
            "most_watched_channels": self.get_most_watched_channels(history, 5),
            "recent_activity": [item.to_dict() for item in history[:10]],
        }

    @staticmethod
    def get_most_watched_channels(history: List[HistoryEntry], limit: int = 5) -> List[Dict[str, Any]]:
        channel_stats: Dict[str, Dict[str, Any]] = {}
        for item in history:
            stats = channel_stats.setdefault(item.author, {"name": item.author, "count": 0})
            stats["count"] += item.watch_count

        ranked = sorted(channel_stats.values(), key=lambda stats: stats["count"], reverse=True)
        return ranked[:limit]
