"""Filesystem helpers: atomic replace and owner-only permissions."""
from __future__ import annotations
import logging, os, shutil
from pathlib import Path
from typing import Optional, Union
from .errors import PermissionFailure

log = logging.getLogger(__name__)

OWNER_ONLY = 0o600


def restrict_permissions(path: Path) -> bool:
	"""Best-effort chmod 0600. Returns False (and logs) where unsupported."""
	try:
		os.chmod(path, OWNER_ONLY)
	except (OSError, NotImplementedError) as e:
		log.warning('%s', PermissionFailure(f'Could not restrict permissions on {path.name}: {e}'))
		return False
	return True


def atomic_write(target: Path, data: Union[str, bytes, bytearray], temp: Optional[Path] = None, private: bool = False) -> None:
	"""Write `data` to `temp`, then rename it over `target`.

	A non-atomic copy is used only when the rename itself raises OSError.
	The staging file is removed if anything before the commit fails. With
	`private` the staging file is created owner-only before any data lands.
	"""
	temp = temp or target.with_name(target.name + '.tmp')
	if isinstance(data, str):
		data = data.encode('utf-8')
	try:
		if private:
			temp.unlink(missing_ok=True)
			fd = os.open(temp, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, OWNER_ONLY)
			f = os.fdopen(fd, 'wb')
		else:
			f = open(temp, 'wb')
		with f:
			f.write(data)
			f.flush()
			os.fsync(f.fileno())
		if private:
			restrict_permissions(temp)
		_commit(temp, target, private)
	except Exception:
		temp.unlink(missing_ok=True)
		raise


def atomic_copy(source: Path, target: Path, temp: Optional[Path] = None) -> None:
	temp = temp or target.with_name(target.name + '.tmp')
	try:
		shutil.copyfile(source, temp)
		_commit(temp, target)
	except Exception:
		temp.unlink(missing_ok=True)
		raise


def _commit(temp: Path, target: Path, private: bool = False) -> None:
	try:
		os.replace(temp, target)
	except OSError as e:
		log.warning('Atomic rename onto %s failed (%s); overwriting in place', target.name, e)
		shutil.copyfile(temp, target)
		if private:
			restrict_permissions(target)
		temp.unlink(missing_ok=True)
