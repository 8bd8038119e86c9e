import asyncio
import json
import logging
import os
from typing import Any
from urllib.parse import quote


# persistent key value store for blob contents, one json file per key.
# keys are content hashes, so an entry never changes and is never invalidated
class ContentCache:
    def __init__(self, directory: str):
        self.directory = directory

    def pathFor(self, key: str) -> str:
        return os.path.join(self.directory, quote(key, safe="") + ".json")

    def _read(self, key: str) -> Any:
        try:
            with open(self.pathFor(key), "r", encoding="utf-8") as cached:
                return json.load(cached)["value"]
        except FileNotFoundError:
            return None
        except OSError as e:
            # e.g. the cache directory is a file or not readable
            logging.warning(f"Cache entry {key} can't be read: {e}")
            return None
        except (ValueError, KeyError):
            # a half written entry counts as a miss and gets overwritten
            logging.warning(f"Unreadable cache entry {key}, ignoring it")
            return None

    def _write(self, key: str, value: Any) -> bool:
        target = self.pathFor(key)
        tempPath = f"{target}.{os.getpid()}-{id(value)}.tmp"
        try:
            os.makedirs(self.directory, exist_ok=True)
            with open(tempPath, "w", encoding="utf-8") as cached:
                json.dump({"key": key, "value": value}, cached)
            # same key means same content, so concurrent writers end up with the same file
            os.replace(tempPath, target)
            return True
        except OSError as e:
            logging.warning(f"Couldn't store cache entry {key}: {e}")
            return False
        finally:
            if os.path.exists(tempPath):
                try:
                    os.remove(tempPath)
                except OSError as e:
                    logging.warning(f"Couldn't remove {tempPath}: {e}")

    async def get(self, key: str) -> Any:
        return await asyncio.to_thread(self._read, key)

    async def put(self, key: str, value: Any):
        if await asyncio.to_thread(self._write, key, value):
            logging.debug(f"Cached {key}")
