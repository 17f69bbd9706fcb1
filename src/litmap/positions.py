"""Node position persistence.

Two channels, chosen by node id:
- database-backed nodes write through the authoritative store (mode column
  plus legacy combined column) and never touch the client cache
- synthetic nodes (``project-``, ``notebook-``, ``source-`` ids) have no row
  and live only in the client cache under ``<id>-<mode>-position``
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import TYPE_CHECKING, Protocol

from .constants import POSITION_CACHE_KEY, SYNTHETIC_PREFIXES
from .models import LayoutMode, Position
from .sync import LocalChange, WriteQueue

if TYPE_CHECKING:
    from .store import GraphRepository

logger = logging.getLogger(__name__)


def is_synthetic_id(node_id: str) -> bool:
    """Check whether a node id follows the session-only naming convention."""
    return node_id.startswith(SYNTHETIC_PREFIXES)


def cache_key(node_id: str, mode: LayoutMode) -> str:
    return POSITION_CACHE_KEY.format(node_id=node_id, mode=mode)


class ClientCache(Protocol):
    """Key -> JSON string map."""

    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...


class MemoryCache:
    """Process-local client cache."""

    def __init__(self, data: dict[str, str] | None = None):
        self.data: dict[str, str] = dict(data or {})

    def get(self, key: str) -> str | None:
        return self.data.get(key)

    def set(self, key: str, value: str) -> None:
        self.data[key] = value


class JsonFileCache:
    """Client cache persisted as a single JSON object on disk.

    A corrupted file is treated as empty.
    """

    def __init__(self, path: Path):
        self.path = path
        self._data: dict[str, str] | None = None

    def _load(self) -> dict[str, str]:
        if self._data is None:
            self._data = {}
            if self.path.exists():
                try:
                    loaded = json.loads(self.path.read_text())
                    if isinstance(loaded, dict):
                        self._data = {str(k): str(v) for k, v in loaded.items()}
                except (json.JSONDecodeError, OSError) as e:
                    logger.warning(f"Ignoring unreadable position cache {self.path}: {e}")
        return self._data

    def get(self, key: str) -> str | None:
        return self._load().get(key)

    def set(self, key: str, value: str) -> None:
        data = self._load()
        data[key] = value
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(data, indent=2, sort_keys=True))


class PositionPersistenceAdapter:
    """Saves and loads node coordinates per layout mode.

    Writes are fire-and-forget: they go through the write queue, so a failed
    remote write is logged and never rolls back the in-memory move.
    """

    def __init__(
        self,
        repository: "GraphRepository",
        cache: ClientCache,
        write_queue: WriteQueue,
    ):
        self._repository = repository
        self._cache = cache
        self._queue = write_queue

    def channel_for(self, node_id: str) -> str:
        """Name the channel a node's positions go through: 'cache' or 'store'."""
        return "cache" if is_synthetic_id(node_id) else "store"

    def save(self, node_id: str, mode: LayoutMode, position: Position) -> None:
        local = LocalChange("move", node_id, position, mode)
        if is_synthetic_id(node_id):
            key = cache_key(node_id, mode)
            payload = json.dumps(position.as_dict())
            self._queue.submit(
                f"cache position of {node_id}",
                self._cache.set, key, payload,
                local=local,
            )
        else:
            self._queue.submit(
                f"save position of {node_id}",
                self._repository.update_node_position, node_id, position, mode,
                local=local,
            )

    def load(self, node_id: str, mode: LayoutMode) -> Position | None:
        """Return the cached position of a synthetic node.

        Database-backed nodes carry their positions on the record itself, so
        they are never read from the cache. Malformed entries load as absent.
        """
        if not is_synthetic_id(node_id):
            return None

        key = cache_key(node_id, mode)
        raw = self._cache.get(key)
        if raw is None:
            return None
        try:
            data = json.loads(raw)
            return Position(x=float(data["x"]), y=float(data["y"]))
        except (json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
            logger.warning(f"Ignoring malformed cached position {key}: {e}")
            return None
