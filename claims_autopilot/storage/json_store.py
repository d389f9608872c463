"""JSON snapshot store for running the agent without a database."""

import dataclasses
import json
import logging
import typing
from datetime import date, datetime
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Type

from .memory_store import TABLES, InMemoryStore

logger = logging.getLogger(__name__)


def _json_default(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def _decode_value(field_type: Any, value: Any) -> Any:
    """Convert a JSON value back into the annotated field type."""
    if value is None:
        return None

    origin = typing.get_origin(field_type)
    if origin is typing.Union:
        candidates = [arg for arg in typing.get_args(field_type) if arg is not type(None)]
        return _decode_value(candidates[0], value) if len(candidates) == 1 else value

    if field_type is datetime:
        return datetime.fromisoformat(value)
    if field_type is date:
        return date.fromisoformat(value)
    if isinstance(field_type, type) and issubclass(field_type, Enum):
        return field_type(value)
    if dataclasses.is_dataclass(field_type):
        return decode_record(field_type, value)
    return value


def decode_record(record_type: Type[Any], data: Dict[str, Any]) -> Any:
    """
    Build a dataclass instance from its JSON representation.

    Unknown keys are ignored so older snapshots keep loading after fields
    are removed.
    """
    hints = typing.get_type_hints(record_type)
    kwargs = {}
    for f in dataclasses.fields(record_type):
        if f.name in data:
            kwargs[f.name] = _decode_value(hints[f.name], data[f.name])
    return record_type(**kwargs)


class JsonFileStore(InMemoryStore):
    """
    Store that keeps every table in memory and rewrites a JSON snapshot
    after each mutation.

    The snapshot is written to a temporary file and renamed into place, so
    a crash mid-write leaves the previous snapshot intact.
    """

    def __init__(self, state_path: str = "data/autopilot_state.json"):
        """
        Initialize JsonFileStore.

        Args:
            state_path: Path of the JSON snapshot; created on first write
        """
        super().__init__()
        self.state_path = Path(state_path)
        self.state_path.parent.mkdir(parents=True, exist_ok=True)
        self._loading = False

        if self.state_path.exists():
            self._load()

        logger.info(f"Initialized JsonFileStore: state_path={self.state_path}")

    def _load(self) -> None:
        try:
            with open(self.state_path, "r", encoding="utf-8") as f:
                snapshot = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Failed to load state snapshot {self.state_path}: {str(e)}")
            raise IOError(f"Failed to load state snapshot: {str(e)}") from e

        self._loading = True
        try:
            for table, (record_type, key) in TABLES.items():
                for raw in snapshot.get(table, []):
                    record = decode_record(record_type, raw)
                    self._tables[table][getattr(record, key)] = record
        finally:
            self._loading = False

        counts = {table: len(rows) for table, rows in self._tables.items() if rows}
        logger.info(f"Loaded state snapshot: {counts}")

    def _after_write(self) -> None:
        if self._loading:
            return

        snapshot = {
            table: [dataclasses.asdict(record) for record in rows.values()]
            for table, rows in self._tables.items()
        }
        tmp_path = self.state_path.with_suffix(self.state_path.suffix + ".tmp")

        try:
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(snapshot, f, indent=2, default=_json_default)
            tmp_path.replace(self.state_path)
        except OSError as e:
            logger.error(f"Failed to save state snapshot {self.state_path}: {str(e)}")
            raise IOError(f"Failed to save state snapshot: {str(e)}") from e

        logger.debug(f"Saved state snapshot: {self.state_path}")
