"""
Value types exchanged with the Mealie backup API and the local backup folder.

All records are immutable snapshots; the workflow only reads them.
"""

import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, List, Optional

from .errors import DecodeError


EPOCH = datetime.fromtimestamp(0, tz=timezone.utc)

# fraction and offset parts that datetime.fromisoformat only reads from 3.11 on
_FRACTION = re.compile(r"\.(\d+)(?=[+-]\d{2}:?\d{2}$|$)")
_OFFSET = re.compile(r"([+-]\d{2})(\d{2})$")


def parse_timestamp(value: Any) -> Optional[datetime]:
    """
    Parse an ISO-8601/RFC3339 timestamp into an aware datetime.

    A trailing 'Z' is accepted and naive values are taken as UTC. Fractions of
    any length are cut or padded to microseconds, and offsets may omit the colon.
    Returns None if the value cannot be parsed.
    """
    if not isinstance(value, str) or not value:
        return None
    text = value.strip()
    if text.endswith(('Z', 'z')):
        text = text[:-1] + '+00:00'
    text = _OFFSET.sub(r"\1:\2", text)
    text = _FRACTION.sub(lambda m: '.' + m.group(1)[:6].ljust(6, '0'), text)
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _field(payload: Any, key: str, kind, operation: str):
    if not isinstance(payload, dict) or key not in payload:
        raise DecodeError(f"Response missing field '{key}'", operation=operation)
    value = payload[key]
    if not isinstance(value, kind):
        raise DecodeError(
            f"Field '{key}' has type {type(value).__name__}, expected {kind.__name__}",
            operation=operation
        )
    return value


@dataclass(frozen=True)
class BackupRecord:
    """A backup archive held by the server."""

    name: str
    date: str
    size: str

    @property
    def created_at(self) -> Optional[datetime]:
        return parse_timestamp(self.date)

    @classmethod
    def from_dict(cls, payload: Any, operation: str = 'list_backups') -> 'BackupRecord':
        return cls(
            name=_field(payload, 'name', str, operation),
            date=_field(payload, 'date', str, operation),
            size=_field(payload, 'size', str, operation),
        )


@dataclass(frozen=True)
class BackupCatalog:
    """
    Backups known to the server, in server order.

    Order is whatever the server returned; it is not guaranteed to be
    chronological.
    """

    backups: List[BackupRecord] = field(default_factory=list)
    templates: List[str] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.backups)

    @classmethod
    def from_dict(cls, payload: Any, operation: str = 'list_backups') -> 'BackupCatalog':
        imports = _field(payload, 'imports', list, operation)
        templates = _field(payload, 'templates', list, operation)
        if not all(isinstance(t, str) for t in templates):
            raise DecodeError("Field 'templates' must be a list of strings", operation=operation)
        return cls(
            backups=[BackupRecord.from_dict(item, operation) for item in imports],
            templates=list(templates),
        )


@dataclass(frozen=True)
class SuccessResult:
    """Server acknowledgement for create/delete calls."""

    message: str
    error: bool

    @classmethod
    def from_dict(cls, payload: Any, operation: str) -> 'SuccessResult':
        return cls(
            message=_field(payload, 'message', str, operation),
            error=_field(payload, 'error', bool, operation),
        )


@dataclass(frozen=True)
class FieldViolation:
    """One entry of a server validation error payload."""

    loc: List[str]
    msg: str
    type: str

    def __str__(self) -> str:
        location = '.'.join(str(part) for part in self.loc) or '<root>'
        return f"{location}: {self.msg} ({self.type})"

    @classmethod
    def from_dict(cls, payload: Any, operation: str) -> 'FieldViolation':
        loc = _field(payload, 'loc', list, operation)
        return cls(
            loc=[str(part) for part in loc],
            msg=_field(payload, 'msg', str, operation),
            type=_field(payload, 'type', str, operation),
        )


@dataclass(frozen=True)
class LocalBackupFile:
    """A regular file in the local backup directory."""

    path: Path
    created_at: datetime = EPOCH

    @property
    def name(self) -> str:
        return self.path.name
