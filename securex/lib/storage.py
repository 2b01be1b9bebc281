"""Encrypted vault persistence with rotating backups.

Every save first copies the committed ciphertext of `vault.dat` into the
backup directory, prunes old backups, then writes the new ciphertext to
`vault.tmp` and renames it over `vault.dat`. The live vault is therefore
either absent or a complete, committed ciphertext.

Restores snapshot the live vault into a separate restore-point pool so a
restore can itself be undone.
"""
from __future__ import annotations
import logging
from datetime import datetime, timedelta
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Union
from config.settings import VaultConfig
from .backups import (
	BackupKind, BackupMetadata, COUNT_ERROR, COUNT_UNKNOWN, backup_name, parse_backup_name, sort_key
)
from .crypto import VaultCrypto
from .errors import AuthenticationFailure, CorruptDataFailure, IOFailure
from .fsutil import atomic_copy, atomic_write
from .models import VaultEntry, deserialize_entries, serialize_entries, wipe_entries
from .secret import SecretBuffer, wipe_all

log = logging.getLogger(__name__)


class VaultStore:
	def __init__(self, config: VaultConfig, key: SecretBuffer, crypto: Optional[VaultCrypto] = None,
				clock: Callable[[], datetime] = datetime.now):
		self.config = config
		self.key = key
		self.crypto = crypto or VaultCrypto(config.kdf_iterations)
		self.clock = clock

	@property
	def path(self) -> Path:
		return self.config.vault_file

	@property
	def backups_dir(self) -> Path:
		return self.config.backups_dir

	def with_key(self, key: SecretBuffer) -> 'VaultStore':
		return VaultStore(self.config, key, self.crypto, self.clock)

	def exists(self) -> bool:
		return self.path.is_file()

	# -- load / save -------------------------------------------------

	def load(self) -> List[VaultEntry]:
		if not self.exists():
			return []
		token = self._read_text(self.path)
		if not token.strip():
			return []
		return self.decrypt_entries(token)

	def decrypt_entries(self, token: str, key: Optional[SecretBuffer] = None) -> List[VaultEntry]:
		"""Decrypt and parse a ciphertext token (AuthenticationFailure / CorruptDataFailure)."""
		plain = bytearray(self.crypto.decrypt_text(token, self.key if key is None else key))
		try:
			return deserialize_entries(plain)
		finally:
			wipe_all(plain)

	def save(self, entries: Iterable[VaultEntry]) -> None:
		entries = list(entries)
		self.backup_current_vault()
		self.save_without_backup(entries)

	def save_without_backup(self, entries: Iterable[VaultEntry]) -> None:
		payload = serialize_entries(entries)
		try:
			token = self.crypto.encrypt_text(bytes(payload), self.key)
		finally:
			wipe_all(payload)
		try:
			atomic_write(self.path, token, temp=self.config.vault_temp_file)
		except OSError as e:
			raise IOFailure(f'Could not write vault: {e}') from e
		log.info('Vault saved -> %s', self.path)

	# -- backups -----------------------------------------------------

	def backup_current_vault(self) -> Optional[Path]:
		"""Copy the committed vault ciphertext into a new regular backup, then prune."""
		if not self.exists():
			return None
		target = self._snapshot(BackupKind.REGULAR, COUNT_ERROR)
		self.prune(BackupKind.REGULAR)
		return target

	def get_backup_files(self) -> List[Path]:
		if not self.backups_dir.is_dir():
			return []
		try:
			return sorted(p for p in self.backups_dir.iterdir() if p.is_file() and p.suffix != '.tmp')
		except OSError as e:
			raise IOFailure(f'Could not list backups: {e}') from e

	def get_backup_metadata(self, path: Union[str, Path]) -> BackupMetadata:
		return parse_backup_name(path)

	def get_entry_count_fast(self, path: Union[str, Path]) -> Optional[int]:
		return self.get_backup_metadata(path).entry_count

	def list_backups(self, kind: Optional[BackupKind] = None) -> List[BackupMetadata]:
		"""Backups newest first, optionally restricted to one pool."""
		metas = [self.get_backup_metadata(p) for p in self.get_backup_files()]
		if kind is not None:
			metas = [m for m in metas if m.kind is kind]
		return sorted(metas, key=sort_key, reverse=True)

	def restore_from_backup(self, backup: Union[str, Path]) -> Optional[Path]:
		"""Replace the live vault with `backup`, keeping a restore point of the old one."""
		source = Path(backup)
		if not source.is_file():
			raise IOFailure(f'Backup does not exist: {source}')
		restore_point = None
		if self.exists():
			restore_point = self._snapshot(BackupKind.RESTORE_POINT, COUNT_UNKNOWN)
		try:
			atomic_copy(source, self.path, temp=self.config.vault_temp_file)
		except OSError as e:
			raise IOFailure(f'Could not restore backup: {e}') from e
		log.info('Vault restored from %s', source.name)
		self.prune(BackupKind.REGULAR)
		self.prune(BackupKind.RESTORE_POINT)
		return restore_point

	def prune(self, kind: BackupKind) -> List[Path]:
		limit = self.config.max_restore_points if kind is BackupKind.RESTORE_POINT else self.config.max_regular_backups
		removed = []
		for meta in self.list_backups(kind)[limit:]:
			try:
				meta.path.unlink(missing_ok=True)
			except OSError as e:
				raise IOFailure(f'Could not prune backup {meta.path.name}: {e}') from e
			removed.append(meta.path)
		if removed:
			log.info('Pruned %d %s backup(s)', len(removed), kind.value)
		return removed

	def reencrypt_all_backups(self, old_key: SecretBuffer, new_key: SecretBuffer) -> List[Path]:
		"""Move every backup from `old_key` to `new_key`, keeping filenames.

		Returns the backups that could not be decrypted with `old_key`; those
		are left untouched.
		"""
		skipped = []
		for path in self.get_backup_files():
			plain = None
			try:
				plain = bytearray(self.crypto.decrypt_text(self._read_text(path), old_key))
				token = self.crypto.encrypt_text(bytes(plain), new_key)
				atomic_write(path, token)
			except AuthenticationFailure:
				log.warning('Backup %s does not decrypt with the previous key; skipped', path.name)
				skipped.append(path)
			except (OSError, IOFailure) as e:
				log.warning('Backup %s could not be re-encrypted: %s', path.name, e)
				skipped.append(path)
			finally:
				wipe_all(plain)
		return skipped

	# -- internals ---------------------------------------------------

	def _snapshot(self, kind: BackupKind, failure_label: str) -> Path:
		try:
			self.backups_dir.mkdir(parents=True, exist_ok=True)
			blob = self.path.read_bytes()
			count = self._count_entries(blob, failure_label)
			target = self.backups_dir / backup_name(kind, self._free_timestamp(kind), count)
			atomic_write(target, blob)
		except OSError as e:
			raise IOFailure(f'Could not back up vault: {e}') from e
		log.info('Backed up vault -> %s', target.name)
		return target

	def _count_entries(self, blob: bytes, failure_label: str) -> Union[int, str]:
		if not blob.strip():
			return 0
		try:
			entries = self.decrypt_entries(blob.decode('ascii'))
		except (UnicodeDecodeError, AuthenticationFailure, CorruptDataFailure) as e:
			log.warning('Could not count entries for backup: %s', e)
			return failure_label
		count = len(entries)
		wipe_entries(entries)
		return count

	def _free_timestamp(self, kind: BackupKind) -> datetime:
		taken = {m.timestamp for m in self.list_backups(kind)}
		ts = self.clock()
		while ts in taken:
			ts += timedelta(microseconds=1)
		return ts

	@staticmethod
	def _read_text(path: Path) -> str:
		try:
			return path.read_text(encoding='ascii')
		except UnicodeDecodeError:
			raise AuthenticationFailure(f'{path.name} is not a vault ciphertext') from None
		except OSError as e:
			raise IOFailure(f'Could not read {path.name}: {e}') from e
