"""
FILE: lumina/core/storage.py
PURPOSE: Durable key/value store for JSON values with change notification
EXPORTS:
  - JsonStore: one JSON file per key under a data directory
  - PersistentValue: in-memory value mirrored to one store key
DEPENDENCIES:
  - json, logging, os, pathlib, tempfile (stdlib)
NOTES:
  - write() never raises: failures are logged and the caller carries on
    with its in-memory value
  - read() returns the caller's default on a missing or corrupt file
  - Changes made by another process (or another JsonStore on the same
    directory) are picked up by poll() and delivered to subscribers as
    whole-value replacements; last writer wins
"""

import json
import logging
import os
import re
import tempfile
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

logger = logging.getLogger(__name__)

_SAFE_KEY = re.compile(r"[^A-Za-z0-9._-]")

_MISSING = object()


class JsonStore:
    """
    File-backed key/value store.

    Each key is stored as <directory>/<key>.json. There is no transaction
    spanning more than one key.
    """

    def __init__(self, directory) -> None:
        self._dir = Path(directory)
        self._subscribers: Dict[str, List[Callable[[Any], None]]] = {}
        # Last raw content this instance wrote or observed, per key
        self._seen: Dict[str, Optional[str]] = {}

    @property
    def directory(self) -> Path:
        return self._dir

    def path_for(self, key: str) -> Path:
        return self._dir / f"{_SAFE_KEY.sub('_', key)}.json"

    def _read_raw(self, key: str) -> Optional[str]:
        try:
            return self.path_for(key).read_text(encoding="utf-8")
        except FileNotFoundError:
            return None

    def read(self, key: str, default: Any = None) -> Any:
        """Return the stored value for key, or default if absent or unreadable."""
        try:
            raw = self._read_raw(key)
        except OSError as e:
            logger.warning("Error reading store key %r: %s", key, e)
            return default

        if raw is None:
            return default

        try:
            return json.loads(raw)
        except ValueError as e:
            logger.warning("Error parsing store key %r, using default: %s", key, e)
            return default

    def write(self, key: str, value: Any) -> bool:
        """
        Persist value under key.

        Returns:
            True if the value reached disk, False if the write failed
            (the failure is logged, never raised).
        """
        try:
            raw = json.dumps(value, ensure_ascii=False)
        except (TypeError, ValueError) as e:
            logger.error("Error serializing store key %r: %s", key, e)
            return False

        path = self.path_for(key)
        try:
            self._dir.mkdir(parents=True, exist_ok=True)
            # Write to a sibling temp file first so readers never see a partial file
            fd, tmp_name = tempfile.mkstemp(dir=str(self._dir), prefix=".tmp-", suffix=".json")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    f.write(raw)
                os.replace(tmp_name, path)
            except OSError:
                if os.path.exists(tmp_name):
                    os.unlink(tmp_name)
                raise
        except OSError as e:
            logger.error("Error writing store key %r: %s", key, e)
            return False

        self._seen[key] = raw
        return True

    def remove(self, key: str) -> None:
        """Delete the stored value for key (no-op if absent)."""
        try:
            self.path_for(key).unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.error("Error removing store key %r: %s", key, e)
            return
        self._seen[key] = None

    # --- Change notification ---

    def subscribe(self, key: str, callback: Callable[[Any], None]) -> Callable[[], None]:
        """
        Register callback(new_value) for changes to key made elsewhere.

        Returns:
            A function that removes the subscription.
        """
        self._subscribers.setdefault(key, []).append(callback)
        if key not in self._seen:
            try:
                self._seen[key] = self._read_raw(key)
            except OSError:
                self._seen[key] = None

        def unsubscribe() -> None:
            callbacks = self._subscribers.get(key, [])
            if callback in callbacks:
                callbacks.remove(callback)

        return unsubscribe

    def poll(self) -> List[str]:
        """
        Check subscribed keys for changes made by another writer.

        Returns:
            Keys whose subscribers were notified.
        """
        changed = []
        for key, callbacks in list(self._subscribers.items()):
            if not callbacks:
                continue
            try:
                raw = self._read_raw(key)
            except OSError as e:
                logger.warning("Error polling store key %r: %s", key, e)
                continue

            if raw == self._seen.get(key):
                continue
            self._seen[key] = raw

            # A deleted key carries no new value to deliver
            if raw is None:
                continue
            try:
                value = json.loads(raw)
            except ValueError as e:
                logger.warning("Ignoring unparsable change to store key %r: %s", key, e)
                continue

            for callback in list(callbacks):
                callback(value)
            changed.append(key)

        return changed


class PersistentValue:
    """
    A value kept in memory and mirrored to one store key.

    Works like a settable variable that survives restarts: set() updates
    memory first and then writes through to the store; a failed write
    leaves the in-memory value in place.
    """

    def __init__(self, store: JsonStore, key: str, default: Any) -> None:
        self._store = store
        self._key = key
        self._default = default
        self._value = store.read(key, _MISSING)
        if self._value is _MISSING:
            self._value = default
        self._unsubscribe = store.subscribe(key, self._on_external_change)

    @property
    def key(self) -> str:
        return self._key

    @property
    def value(self) -> Any:
        return self._value

    def set(self, value: Any) -> None:
        """Replace the value; accepts a callable receiving the previous value."""
        new_value = value(self._value) if callable(value) else value
        self._value = new_value
        self._store.write(self._key, new_value)

    def _on_external_change(self, value: Any) -> None:
        logger.debug("Store key %r changed externally; replacing in-memory value", self._key)
        self._value = value

    def close(self) -> None:
        self._unsubscribe()
