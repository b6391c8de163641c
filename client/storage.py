"""
client/storage.py -- Where the client keeps its access and refresh tokens.

MemoryTokenStorage lives and dies with the process. FileTokenStorage persists
both tokens to a small JSON file (mode 0600) so a CLI login survives between
invocations.

Both implementations are safe to share between threads: every read and write
happens under one lock, and set_tokens() replaces both values together.
"""

from __future__ import annotations

import json
import logging
import os
import threading
from pathlib import Path
from typing import Optional

logger = logging.getLogger("oceanos.client")


class TokenStorage:
    """Interface shared by the storage backends."""

    def get_access(self) -> Optional[str]:
        raise NotImplementedError

    def get_refresh(self) -> Optional[str]:
        raise NotImplementedError

    def set_tokens(self, access: str, refresh: str) -> None:
        raise NotImplementedError

    def set_access(self, access: str) -> None:
        raise NotImplementedError

    def clear(self) -> None:
        raise NotImplementedError


class MemoryTokenStorage(TokenStorage):
    def __init__(self, access: Optional[str] = None, refresh: Optional[str] = None) -> None:
        self._lock = threading.Lock()
        self._access = access
        self._refresh = refresh

    def get_access(self) -> Optional[str]:
        with self._lock:
            return self._access

    def get_refresh(self) -> Optional[str]:
        with self._lock:
            return self._refresh

    def set_tokens(self, access: str, refresh: str) -> None:
        with self._lock:
            self._access, self._refresh = access, refresh

    def set_access(self, access: str) -> None:
        with self._lock:
            self._access = access

    def clear(self) -> None:
        with self._lock:
            self._access = self._refresh = None


class FileTokenStorage(TokenStorage):
    """JSON file holding {"accessToken": ..., "refreshToken": ...}.

    A missing or unreadable file reads as "no tokens"; the next write replaces
    it. The parent directory is created on first write.
    """

    def __init__(self, path: str | os.PathLike = "~/.oceanos/tokens.json") -> None:
        self.path = Path(path).expanduser()
        self._lock = threading.Lock()

    def _load(self) -> dict[str, str]:
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return {}
        except (OSError, ValueError) as exc:
            logger.warning("Ignoring unreadable token file %s: %s", self.path, exc)
            return {}
        return raw if isinstance(raw, dict) else {}

    def _store(self, data: dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd = os.open(self.path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            json.dump(data, fh)
        # O_CREAT's mode is ignored for an existing file.
        os.chmod(self.path, 0o600)

    def get_access(self) -> Optional[str]:
        with self._lock:
            return self._load().get("accessToken")

    def get_refresh(self) -> Optional[str]:
        with self._lock:
            return self._load().get("refreshToken")

    def set_tokens(self, access: str, refresh: str) -> None:
        with self._lock:
            self._store({"accessToken": access, "refreshToken": refresh})

    def set_access(self, access: str) -> None:
        with self._lock:
            data = self._load()
            data["accessToken"] = access
            self._store(data)

    def clear(self) -> None:
        with self._lock:
            self.path.unlink(missing_ok=True)
