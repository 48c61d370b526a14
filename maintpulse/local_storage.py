"""
Durable key/value storage for the client, one JSON file on disk.

Plays the role a browser's localStorage plays for the web frontend: small
string-keyed values that survive a restart. The file is written with mode
0600 and replaced atomically. A missing, unreadable or malformed file reads
as empty; it is never an error.
"""
import json
import logging
import os
import threading

log = logging.getLogger("maintpulse.local_storage")


class LocalStorage:

    def __init__(self, path: str):
        self.path = path
        self._lock = threading.Lock()

    def _load(self) -> dict:
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            return {}
        except (OSError, ValueError) as exc:
            log.warning("Ignoring unreadable local storage %s: %s", self.path, exc)
            return {}
        if not isinstance(data, dict):
            log.warning("Ignoring malformed local storage %s", self.path)
            return {}
        return data

    def _save(self, data: dict):
        directory = os.path.dirname(self.path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        tmp = self.path + ".tmp"
        with open(tmp, "w", encoding="utf-8") as f:
            json.dump(data, f)
        os.chmod(tmp, 0o600)
        os.replace(tmp, self.path)

    def get_item(self, key: str):
        with self._lock:
            return self._load().get(key)

    def set_item(self, key: str, value):
        with self._lock:
            data = self._load()
            data[key] = value
            self._save(data)

    def remove_item(self, key: str):
        with self._lock:
            data = self._load()
            if key in data:
                del data[key]
                self._save(data)
