from __future__ import annotations

import json
import logging
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, TypeVar

import httpx

from .models import NewsItem, Player, Session
from .serialization import (
    deserialize_news_item,
    deserialize_player,
    deserialize_session,
    serialize_news_item,
    serialize_player,
    serialize_session,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(slots=True)
class SaveResult:
    success: bool
    cloud_synced: bool = False
    message: str = ""


class RemoteSync:
    """Best-effort mirror of local snapshots to a remote HTTP endpoint."""

    def __init__(self, base_url: str, timeout: float = 5.0, transport: httpx.BaseTransport | None = None) -> None:
        self.base_url = base_url
        self.timeout = timeout
        self._transport = transport

    def push(self, collection: str, payload: Any) -> bool:
        try:
            with httpx.Client(base_url=self.base_url, timeout=self.timeout, transport=self._transport) as client:
                resp = client.put(f"/sync/{collection}", json=payload)
                resp.raise_for_status()
        except httpx.HTTPError as exc:
            logger.warning("Remote sync of %s failed: %s", collection, exc)
            return False
        return True


class SessionStore:
    """Local-first JSON store for players, session history, the active session and news."""

    SAVE_VERSION = 1

    def __init__(self, data_dir: str | Path | None = None, remote: RemoteSync | None = None) -> None:
        self.data_dir = Path(data_dir or ".")
        self.remote = remote
        self.last_load_error: str = ""
        self.players_path = self.data_dir / "players.json"
        self.history_path = self.data_dir / "session_history.json"
        self.active_session_path = self.data_dir / "active_session.json"
        self.news_path = self.data_dir / "news_feed.json"

    def _load_list(self, path: Path, key: str, label: str) -> list[Any]:
        if not path.exists():
            return []
        try:
            raw = json.loads(path.read_text(encoding="utf-8"))
            if isinstance(raw, dict):
                version = int(raw.get("save_version", 1) or 1)
                if version > self.SAVE_VERSION:
                    self.last_load_error = (
                        f"Unsupported {label} version {version}; app supports up to {self.SAVE_VERSION}."
                    )
                    return []
                payload = raw.get(key, [])
                if isinstance(payload, list):
                    return payload
                self.last_load_error = f"{label.capitalize()} payload is invalid; starting empty."
                return []
            if isinstance(raw, list):
                return raw
            self.last_load_error = f"{label.capitalize()} file has invalid format; starting empty."
        except (json.JSONDecodeError, OSError, ValueError) as exc:
            self.last_load_error = f"Failed to load {label} ({exc}); starting empty."
            return []
        return []

    def _parse_all(self, rows: list[Any], parse: Callable[[dict[str, Any]], T | None]) -> list[T]:
        parsed: list[T] = []
        for row in rows:
            if not isinstance(row, dict):
                continue
            try:
                item = parse(row)
            except (TypeError, ValueError) as exc:
                logger.warning("Skipping malformed record: %s", exc)
                continue
            if item is not None:
                parsed.append(item)
        return parsed

    def _write_json_with_backup(self, path: Path, payload: Any, *, with_backup: bool = True) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        if with_backup and path.exists():
            backup = path.with_suffix(path.suffix + ".bak")
            try:
                shutil.copy2(path, backup)
            except OSError as exc:
                logger.warning("Could not refresh backup %s: %s", backup, exc)
        path.write_text(json.dumps(payload, indent=2), encoding="utf-8")

    def _save(self, path: Path, key: str, rows: list[Any], *, with_backup: bool = True, sync: bool = True) -> SaveResult:
        payload = {"save_version": self.SAVE_VERSION, key: rows}
        try:
            self._write_json_with_backup(path, payload, with_backup=with_backup)
        except OSError as exc:
            logger.warning("Failed to write %s: %s", path, exc)
            return SaveResult(success=False, message=f"Failed to save {key} ({exc}).")
        if not sync or self.remote is None:
            return SaveResult(success=True, message=f"Saved {key} locally.")
        if self.remote.push(key, payload):
            return SaveResult(success=True, cloud_synced=True, message=f"Saved {key}.")
        return SaveResult(success=True, message=f"Saved {key} locally; remote sync failed.")

    def load_players(self) -> list[Player]:
        rows = self._load_list(self.players_path, "players", "players")
        return self._parse_all(rows, deserialize_player)

    def save_players(self, players: list[Player]) -> SaveResult:
        """Upsert ``players`` by id into the stored roster."""
        by_id = {p.player_id: p for p in self.load_players()}
        for player in players:
            by_id[player.player_id] = player
        return self._save(self.players_path, "players", [serialize_player(p) for p in by_id.values()])

    def load_session_history(self, limit: int | None = None) -> list[Session]:
        rows = self._load_list(self.history_path, "sessions", "session history")
        sessions = self._parse_all(rows, deserialize_session)
        return sessions[:limit] if limit is not None else sessions

    def save_session(self, session: Session) -> SaveResult:
        """Insert or replace ``session`` in history, newest first."""
        sessions = [s for s in self.load_session_history() if s.session_id != session.session_id]
        sessions.insert(0, session)
        sessions.sort(key=lambda s: s.date.timestamp() if s.date is not None else 0.0, reverse=True)
        return self._save(self.history_path, "sessions", [serialize_session(s) for s in sessions])

    def load_active_session(self) -> Session | None:
        if not self.active_session_path.exists():
            return None
        try:
            raw = json.loads(self.active_session_path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError) as exc:
            self.last_load_error = f"Failed to load active session ({exc})."
            return None
        if not isinstance(raw, dict):
            self.last_load_error = "Active session file has invalid format."
            return None
        version = int(raw.get("save_version", 1) or 1)
        if version > self.SAVE_VERSION:
            self.last_load_error = (
                f"Unsupported active session version {version}; app supports up to {self.SAVE_VERSION}."
            )
            return None
        payload = raw.get("session")
        if not isinstance(payload, dict):
            return None
        return deserialize_session(payload)

    def save_active_session(self, session: Session | None) -> SaveResult:
        """Persist or clear the in-progress session. Never leaves this device."""
        if session is None:
            try:
                self.active_session_path.unlink(missing_ok=True)
            except OSError as exc:
                logger.warning("Failed to clear active session: %s", exc)
                return SaveResult(success=False, message=f"Failed to clear active session ({exc}).")
            return SaveResult(success=True, message="Active session cleared.")
        payload = {"save_version": self.SAVE_VERSION, "session": serialize_session(session)}
        try:
            # Autosaved on every state change; skip the backup copy.
            self._write_json_with_backup(self.active_session_path, payload, with_backup=False)
        except OSError as exc:
            logger.warning("Failed to write active session: %s", exc)
            return SaveResult(success=False, message=f"Failed to save active session ({exc}).")
        return SaveResult(success=True, message="Active session saved locally.")

    def load_news_feed(self, limit: int | None = None) -> list[NewsItem]:
        rows = self._load_list(self.news_path, "news", "news feed")
        items = self._parse_all(rows, deserialize_news_item)
        items.sort(key=lambda item: item.timestamp, reverse=True)
        return items[:limit] if limit is not None else items

    def save_news_feed(self, items: list[NewsItem]) -> SaveResult:
        return self._save(self.news_path, "news", [serialize_news_item(item) for item in items], with_backup=False)
