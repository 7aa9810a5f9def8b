"""On-device bias cache, one JSON file per (user, day)."""

from __future__ import annotations

from datetime import date
from pathlib import Path

import structlog
from pydantic import ValidationError

from bias_journal.models.bias import BiasStateSnapshot

logger = structlog.get_logger()


class LocalBiasCache:
    def __init__(self, root: str | Path) -> None:
        self.root = Path(root)

    def _path(self, user_id: str, day_key: date) -> Path:
        return self.root / (user_id or "anonymous") / f"{day_key.isoformat()}.json"

    def read(self, user_id: str, day_key: date) -> BiasStateSnapshot | None:
        path = self._path(user_id, day_key)
        if not path.exists():
            return None
        try:
            return BiasStateSnapshot.model_validate_json(path.read_text(encoding="utf-8"))
        except ValidationError:
            logger.warning("local_bias_cache_corrupt", path=str(path))
            return None

    def write(self, user_id: str, snapshot: BiasStateSnapshot) -> None:
        path = self._path(user_id, snapshot.day_key)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(snapshot.model_dump_json(), encoding="utf-8")
        logger.info("local_bias_cached", day_key=snapshot.day_key.isoformat(), bias=snapshot.bias.value)

    def clear(self, user_id: str, day_key: date) -> bool:
        """Remove the cached entry. Returns True if one existed."""
        path = self._path(user_id, day_key)
        if not path.exists():
            return False
        path.unlink()
        logger.info("local_bias_cache_cleared", day_key=day_key.isoformat())
        return True
