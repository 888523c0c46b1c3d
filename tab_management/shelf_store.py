"""
ShelfStore - persisted groups and settings on top of a key-value blob backend.
"""
from __future__ import annotations

import copy
import json
import os
import tempfile
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple, Union

from error_handling import ExternalFailureError
from utils.event_logger import get_event_logger
from .tab_info import Group, GroupKind


GROUPS_KEY = "groups"
SETTINGS_KEY = "settings"


@dataclass
class StorageChange:
    """Old and new value of one key touched by a write"""
    old_value: Any = None
    new_value: Any = None


ChangeListener = Callable[[Dict[str, StorageChange]], None]


class KeyValueBackend(ABC):
    """
    Flat key-value blob store with change notifications.

    There are no transactions: a write replaces the given keys and nothing
    else. Listeners are called after every write, with a change entry for
    each key the write touched.
    """

    def __init__(self):
        self._listeners: List[ChangeListener] = []

    @abstractmethod
    def _load(self, strict: bool = False) -> Dict[str, Any]:
        """
        Return the whole blob.

        With ``strict`` an unreadable blob raises instead of reading as
        empty; writes load this way so they never merge into a blank.
        """

    @abstractmethod
    def _save(self, data: Dict[str, Any]) -> None:
        """Replace the whole blob."""

    def poll(self) -> Dict[str, StorageChange]:
        """Notify listeners of changes made outside this backend; returns them."""
        return {}

    def read(self, keys: Iterable[str]) -> Dict[str, Any]:
        data = self._load()
        return {key: copy.deepcopy(data[key]) for key in keys if key in data}

    def write(self, values: Mapping[str, Any]) -> None:
        data = self._load(strict=True)
        changes = {}
        for key, value in values.items():
            changes[key] = StorageChange(old_value=data.get(key), new_value=copy.deepcopy(value))
            data[key] = copy.deepcopy(value)
        self._save(data)
        self._emit(changes)

    def on_change(self, listener: ChangeListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def _emit(self, changes: Dict[str, StorageChange]) -> None:
        for listener in list(self._listeners):
            try:
                listener(changes)
            except Exception as e:
                get_event_logger().system_warning("Storage change listener failed", error=str(e))


class MemoryBackend(KeyValueBackend):
    """Process-local backend."""

    def __init__(self, initial: Optional[Mapping[str, Any]] = None):
        super().__init__()
        self._data: Dict[str, Any] = copy.deepcopy(dict(initial or {}))

    def _load(self, strict: bool = False) -> Dict[str, Any]:
        return copy.deepcopy(self._data)

    def _save(self, data: Dict[str, Any]) -> None:
        self._data = data


class JsonFileBackend(KeyValueBackend):
    """
    Backend that keeps the blob in a single JSON document.

    Every write replaces the file atomically (temp file + rename), so a
    reader never sees a half-written document. A missing file reads as
    empty; an unreadable or corrupt one reads as empty too, but a write
    refuses to replace it.

    Other processes may share the file. ``poll`` compares the file's
    identity (inode, mtime, size) with the last version this backend saw
    and reports the keys that changed; reads and writes poll first.
    """

    _UNSEEN = object()

    def __init__(self, path: Union[str, Path]):
        super().__init__()
        self.path = Path(path).expanduser()
        self._lock = threading.RLock()
        self._signature: Any = self._UNSEEN
        self._snapshot: Dict[str, Any] = {}

    def _file_signature(self) -> Optional[Tuple[int, int, int]]:
        try:
            st = self.path.stat()
        except FileNotFoundError:
            return None
        return (st.st_ino, st.st_mtime_ns, st.st_size)

    def _read_document(self) -> Dict[str, Any]:
        """Parse the file; raises ExternalFailureError when it exists but cannot be used."""
        try:
            text = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        except OSError as e:
            raise ExternalFailureError(f"Could not read {self.path}", metadata={"path": str(self.path)}) from e
        try:
            raw = json.loads(text)
        except json.JSONDecodeError as e:
            raise ExternalFailureError(f"{self.path} is not valid JSON", metadata={"path": str(self.path)}) from e
        if not isinstance(raw, dict):
            raise ExternalFailureError(f"{self.path} does not hold a JSON object", metadata={"path": str(self.path)})
        return raw

    def _load(self, strict: bool = False) -> Dict[str, Any]:
        try:
            return self._read_document()
        except ExternalFailureError as e:
            if strict:
                get_event_logger().system_error("Refusing to overwrite the stored document", error=e, path=str(self.path))
                raise
            get_event_logger().system_warning(f"{e.message}, reading as empty", error=str(e.__cause__ or ""))
            return {}

    def _save(self, data: Dict[str, Any]) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(prefix=f".{self.path.name}.", dir=str(self.path.parent))
        except OSError as e:
            raise ExternalFailureError(f"Could not write {self.path}", metadata={"path": str(self.path)}) from e
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(data, fh, ensure_ascii=False, indent=2)
                fh.flush()
                st = os.fstat(fh.fileno())
            os.replace(tmp_path, self.path)
        except BaseException as e:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
            if isinstance(e, OSError):
                raise ExternalFailureError(f"Could not write {self.path}", metadata={"path": str(self.path)}) from e
            raise
        # Our own write is not an external change
        self._signature = (st.st_ino, st.st_mtime_ns, st.st_size)
        self._snapshot = copy.deepcopy(data)

    def poll(self) -> Dict[str, StorageChange]:
        with self._lock:
            try:
                signature = self._file_signature()
            except OSError as e:
                get_event_logger().system_warning(f"Could not stat {self.path}", error=str(e))
                return {}
            if signature == self._signature:
                return {}
            try:
                data = self._read_document()
            except ExternalFailureError:
                # Reads log it; retry on the next poll
                return {}

            first_look = self._signature is self._UNSEEN
            previous = self._snapshot
            self._signature = signature
            self._snapshot = data
            if first_look:
                return {}

            changes = {
                key: StorageChange(old_value=copy.deepcopy(previous.get(key)), new_value=copy.deepcopy(data.get(key)))
                for key in sorted(set(previous) | set(data))
                if previous.get(key) != data.get(key)
            }
        if changes:
            get_event_logger().system_debug(f"External change to {self.path}", keys=list(changes))
            self._emit(changes)
        return changes

    def read(self, keys: Iterable[str]) -> Dict[str, Any]:
        self.poll()
        return super().read(keys)

    def write(self, values: Mapping[str, Any]) -> None:
        with self._lock:
            self.poll()
            super().write(values)


class ShelfStore:
    """
    Typed access to the two persisted records: ``groups`` and ``settings``.

    The live browsing group is filtered out of every group write here, so no
    caller can persist it by accident.
    """

    def __init__(self, backend: KeyValueBackend):
        self.backend = backend

    def read_raw_groups(self) -> List[Any]:
        stored = self.backend.read([GROUPS_KEY]).get(GROUPS_KEY)
        return stored if isinstance(stored, list) else []

    def read_settings(self) -> Optional[Dict[str, Any]]:
        stored = self.backend.read([SETTINGS_KEY]).get(SETTINGS_KEY)
        return stored if isinstance(stored, dict) else None

    def write_groups(self, groups: Iterable[Group]) -> None:
        payload = [group.to_dict() for group in groups if group.kind is not GroupKind.LIVE_BROWSING]
        self.backend.write({GROUPS_KEY: payload})
        get_event_logger().store_write([GROUPS_KEY], group_count=len(payload))

    def write_settings(self, settings: Mapping[str, Any]) -> None:
        self.backend.write({SETTINGS_KEY: dict(settings)})
        get_event_logger().store_write([SETTINGS_KEY])

    def poll(self) -> Dict[str, StorageChange]:
        return self.backend.poll()

    def on_change(self, listener: ChangeListener) -> Callable[[], None]:
        return self.backend.on_change(listener)
