"""Backup file naming.

Backups carry their metadata in the filename so listings never need the key:

    vault-<timestamp>_<count|error>.dat                  regular (pre-save)
    vault-before-restore-<timestamp>_<count|unknown>.dat restore point

Older files may lack the count suffix or use second-resolution timestamps;
both still parse.
"""
from __future__ import annotations
import re
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Optional, Union
from config.settings import TIMESTAMP_FORMAT, LEGACY_TIMESTAMP_FORMAT

REGULAR_PREFIX = 'vault-'
RESTORE_PREFIX = 'vault-before-restore-'
SUFFIX = '.dat'
COUNT_ERROR = 'error'
COUNT_UNKNOWN = 'unknown'

_NAME_RE = re.compile(
	r'^vault-(?P<restore>before-restore-)?'
	r'(?P<ts>\d{4}-\d{2}-\d{2}-\d{2}-\d{2}-\d{2}(?:-\d{6})?)'
	r'(?:_(?P<count>\d+|error|unknown))?\.dat$'
)


class BackupKind(str, Enum):
	REGULAR = 'regular'
	RESTORE_POINT = 'restore-point'


@dataclass(frozen=True)
class BackupMetadata:
	path: Path
	kind: Optional[BackupKind]
	timestamp: Optional[datetime]
	entry_count: Optional[int]
	count_failed: bool = False

	@property
	def is_managed(self) -> bool:
		"""True when the name follows the rotation scheme (and may be pruned)."""
		return self.kind is not None

	@property
	def count_label(self) -> str:
		if self.entry_count is not None:
			return str(self.entry_count)
		return COUNT_ERROR if self.count_failed else COUNT_UNKNOWN


def parse_backup_name(path: Union[str, Path]) -> BackupMetadata:
	path = Path(path)
	m = _NAME_RE.match(path.name)
	if not m:
		return BackupMetadata(path, None, None, None)
	kind = BackupKind.RESTORE_POINT if m.group('restore') else BackupKind.REGULAR
	ts_raw = m.group('ts')
	fmt = TIMESTAMP_FORMAT if len(ts_raw) > 19 else LEGACY_TIMESTAMP_FORMAT
	count = m.group('count')
	return BackupMetadata(
		path=path,
		kind=kind,
		timestamp=datetime.strptime(ts_raw, fmt),
		entry_count=int(count) if count and count.isdigit() else None,
		count_failed=count == COUNT_ERROR,
	)


def backup_name(kind: BackupKind, timestamp: datetime, count: Union[int, str]) -> str:
	prefix = RESTORE_PREFIX if kind is BackupKind.RESTORE_POINT else REGULAR_PREFIX
	return f'{prefix}{timestamp.strftime(TIMESTAMP_FORMAT)}_{count}{SUFFIX}'


def sort_key(meta: BackupMetadata):
	"""Newest-first ordering key: timestamp, then filename for unparsed names."""
	return (meta.timestamp or datetime.min, meta.path.name)
