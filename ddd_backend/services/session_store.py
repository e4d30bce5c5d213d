"""
DDD Service Backend - Application Session Store
Version: 1.1.0

Changelog:
v1.1.0 (2026-10-19): Unauthenticated sessions pruned after SESSION_TTL_HOURS;
                      one file lock shared by every store instance
v1.0.0 (2026-10-05): Admin/authenticated flags as an explicit session object
                      with file persistence

Handlers receive an AppSession through a FastAPI dependency; only this
module reads or writes the session file.
"""

import json
import logging
import os
import secrets
import threading
from datetime import datetime, timedelta
from typing import Dict, Optional

from pydantic import BaseModel, Field

from ddd_backend.config import settings

logger = logging.getLogger(__name__)

# Guards read-modify-write of the session file across request threads
_file_lock = threading.Lock()


class AppSession(BaseModel):
    """Per-browser application state"""
    session_id: str = Field(default_factory=lambda: secrets.token_urlsafe(24))
    is_authenticated: bool = False
    is_admin: bool = False
    updated_at: datetime = Field(default_factory=datetime.now)


def _is_stale(raw: dict, cutoff: datetime) -> bool:
    if raw.get("is_authenticated"):
        return False
    try:
        return datetime.fromisoformat(raw["updated_at"]) < cutoff
    except (KeyError, TypeError, ValueError):
        return True


class SessionStore:
    """Save/load boundary for AppSession objects (JSON file)"""

    def __init__(self, path: Optional[str] = None):
        self.path = path or settings.SESSION_FILE

    def _read_all(self) -> Dict[str, dict]:
        if not os.path.exists(self.path):
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (json.JSONDecodeError, OSError) as e:
            logger.warning(f"Session file unreadable, starting empty: {e}")
            return {}
        return data if isinstance(data, dict) else {}

    def _write_all(self, data: Dict[str, dict]):
        os.makedirs(os.path.dirname(os.path.abspath(self.path)), exist_ok=True)
        tmp_path = f"{self.path}.tmp"
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(data, f)
        os.replace(tmp_path, self.path)

    def load(self, session_id: Optional[str]) -> Optional[AppSession]:
        if not session_id:
            return None
        with _file_lock:
            raw = self._read_all().get(session_id)
        return AppSession(**raw) if raw else None

    def save(self, session: AppSession) -> AppSession:
        """Persist a session and drop unauthenticated ones idle past the TTL"""
        session.updated_at = datetime.now()
        cutoff = session.updated_at - timedelta(hours=settings.SESSION_TTL_HOURS)
        with _file_lock:
            data = self._read_all()
            stale = [sid for sid, raw in data.items() if _is_stale(raw, cutoff)]
            for sid in stale:
                del data[sid]
            data[session.session_id] = session.model_dump(mode="json")
            self._write_all(data)
        if stale:
            logger.info(f"Pruned {len(stale)} expired session(s)")
        return session

    def delete(self, session_id: str):
        with _file_lock:
            data = self._read_all()
            if data.pop(session_id, None) is not None:
                self._write_all(data)
