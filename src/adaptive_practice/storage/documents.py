"""Locked JSON documents (fcntl.flock + atomic write).

Every document has a sidecar ``.lock`` file. Reads take a shared lock,
read-modify-write cycles take an exclusive lock for the whole cycle, and
writes go through a temp file + ``os.replace`` so a crash never leaves a
half-written document behind.
"""

import fcntl
import json
import os
import re
import tempfile
import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import IO, Any

import structlog

from adaptive_practice.errors import IdentityError, StoreUnavailableError

logger = structlog.get_logger()

_USER_ID_RE = re.compile(r"^[A-Za-z0-9_.@:-]{1,128}$")
_LOCK_POLL_SECONDS = 0.01


def validate_user_id(user_id: str | None) -> str:
    """Reject missing identities and anything unsafe to use as a document name."""
    if not user_id or not isinstance(user_id, str):
        raise IdentityError("missing user identity")
    if not _USER_ID_RE.match(user_id) or user_id.strip(".") == "":
        raise IdentityError(f"malformed user identity: {user_id!r}")
    return user_id


class DocumentStore:
    """Directory of JSON documents addressed by name.

    Args:
        root: Directory holding the documents.
        lock_timeout: Seconds to wait for a lock before giving up.
    """

    def __init__(self, root: Path, lock_timeout: float = 5.0):
        self.root = root
        self.root.mkdir(parents=True, exist_ok=True)
        self.lock_timeout = lock_timeout

    def path_for(self, name: str) -> Path:
        return self.root / f"{name}.json"

    def _acquire(self, lock_file: IO[str], mode: int, name: str) -> None:
        deadline = time.monotonic() + self.lock_timeout
        while True:
            try:
                fcntl.flock(lock_file, mode | fcntl.LOCK_NB)
                return
            except BlockingIOError:
                if time.monotonic() >= deadline:
                    logger.warning("store_lock_timeout", document=name)
                    raise StoreUnavailableError(f"timed out waiting for lock on {name}")
                time.sleep(_LOCK_POLL_SECONDS)

    @contextmanager
    def _locked(self, name: str, exclusive: bool) -> Iterator[Path]:
        lock_path = self.root / f"{name}.json.lock"
        try:
            lock_file = open(lock_path, "a")
        except OSError as e:
            raise StoreUnavailableError(f"cannot open lock for {name}: {e}") from e
        with lock_file:
            self._acquire(lock_file, fcntl.LOCK_EX if exclusive else fcntl.LOCK_SH, name)
            try:
                yield self.path_for(name)
            finally:
                fcntl.flock(lock_file, fcntl.LOCK_UN)

    @staticmethod
    def _load(path: Path, default_factory: Callable[[], dict]) -> dict:
        if not path.exists():
            return default_factory()
        try:
            return json.loads(path.read_text())
        except (OSError, json.JSONDecodeError) as e:
            raise StoreUnavailableError(f"cannot read {path.name}: {e}") from e

    def _dump(self, path: Path, data: dict) -> None:
        try:
            with tempfile.NamedTemporaryFile(
                "w", dir=self.root, delete=False, suffix=".json"
            ) as tmp:
                json.dump(data, tmp, default=str)
            os.replace(tmp.name, path)
        except OSError as e:
            raise StoreUnavailableError(f"cannot write {path.name}: {e}") from e

    def read(self, name: str, default_factory: Callable[[], dict] = dict) -> dict:
        """Snapshot of a document under a shared lock."""
        with self._locked(name, exclusive=False) as path:
            return self._load(path, default_factory)

    @contextmanager
    def transaction(
        self, name: str, default_factory: Callable[[], dict] = dict
    ) -> Iterator[dict[str, Any]]:
        """Exclusive read-modify-write of one document.

        Mutations made to the yielded dict are written back when the block
        exits normally. If the block raises or leaves the document unchanged,
        nothing is written.
        """
        with self._locked(name, exclusive=True) as path:
            data = self._load(path, default_factory)
            before = json.dumps(data, sort_keys=True, default=str)
            yield data
            if json.dumps(data, sort_keys=True, default=str) != before:
                self._dump(path, data)

    def delete(self, name: str) -> bool:
        with self._locked(name, exclusive=True) as path:
            if not path.exists():
                return False
            try:
                path.unlink()
            except OSError as e:
                raise StoreUnavailableError(f"cannot delete {path.name}: {e}") from e
            return True
