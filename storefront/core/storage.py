"""Key/value storage slots holding whole-collection JSON blobs.

Values are always strings, the same contract browser ``localStorage`` gives:
callers serialise with :func:`write_json` and read back with
:func:`read_json`, which never raises on a damaged slot.
"""

import json
import logging
import os
import tempfile
import threading
from typing import Any, Dict, List, Optional


logger = logging.getLogger(__name__)

CURRENT_USER_KEY = "currentUser"
REGISTERED_USERS_KEY = "registeredUsers"
ORDERS_KEY = "orders_data"
INVENTORY_KEY = "inventory_data"
PAYMENT_METHODS_KEY = "paymentMethods"
GUEST_FAVORITES_KEY = "favorites_guest"


def cart_key(user_id: str) -> str:
    return f"cart_user_{user_id}"


def favorites_key(user_id: Optional[str]) -> str:
    return f"favorites_{user_id}" if user_id else GUEST_FAVORITES_KEY


class KeyValueStorage:
    """Interface shared by the storage backends."""

    def get_item(self, key: str) -> Optional[str]:
        raise NotImplementedError

    def set_item(self, key: str, value: str) -> None:
        raise NotImplementedError

    def remove_item(self, key: str) -> None:
        raise NotImplementedError

    def keys(self) -> List[str]:
        raise NotImplementedError

    def clear(self) -> None:
        raise NotImplementedError


class MemoryStorage(KeyValueStorage):
    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._items: Dict[str, str] = dict(initial or {})

    def get_item(self, key: str) -> Optional[str]:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._items[key] = str(value)

    def remove_item(self, key: str) -> None:
        self._items.pop(key, None)

    def keys(self) -> List[str]:
        return list(self._items)

    def clear(self) -> None:
        self._items.clear()


class FileStorage(KeyValueStorage):
    """All slots kept in one JSON object file.

    The file is re-read on every access so two processes pointed at the same
    path see each other's writes; the last writer wins.
    """

    def __init__(self, path: str):
        self.path = path
        self._lock = threading.Lock()

    def _load(self) -> Dict[str, str]:
        if not os.path.exists(self.path):
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Failed to read storage file {self.path}: {e}")
            return {}
        if not isinstance(data, dict):
            logger.error(f"Storage file {self.path} does not hold an object, ignoring it")
            return {}
        return {str(k): str(v) for k, v in data.items()}

    def _dump(self, items: Dict[str, str]) -> None:
        directory = os.path.dirname(os.path.abspath(self.path))
        os.makedirs(directory, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=directory, prefix=".storefront-", suffix=".json")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(items, f, indent=2, sort_keys=True)
            os.replace(tmp_path, self.path)
        except Exception:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise

    def get_item(self, key: str) -> Optional[str]:
        with self._lock:
            return self._load().get(key)

    def set_item(self, key: str, value: str) -> None:
        with self._lock:
            items = self._load()
            items[key] = str(value)
            self._dump(items)

    def remove_item(self, key: str) -> None:
        with self._lock:
            items = self._load()
            if key in items:
                del items[key]
                self._dump(items)

    def keys(self) -> List[str]:
        with self._lock:
            return list(self._load())

    def clear(self) -> None:
        with self._lock:
            self._dump({})


def create_storage(path: Optional[str]) -> KeyValueStorage:
    if not path:
        logger.warning("STORAGE_PATH is empty, state will not survive a restart")
        return MemoryStorage()
    return FileStorage(path)


def read_json(storage: KeyValueStorage, key: str, default: Any = None) -> Any:
    raw = storage.get_item(key)
    if raw is None:
        return default
    try:
        return json.loads(raw)
    except json.JSONDecodeError as e:
        logger.error(f"Malformed JSON under storage key '{key}': {e}")
        return default


def write_json(storage: KeyValueStorage, key: str, value: Any) -> None:
    storage.set_item(key, json.dumps(value))
