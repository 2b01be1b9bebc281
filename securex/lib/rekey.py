"""Master password change.

Order of operations:

1. verify the old password (nothing is touched on mismatch)
2. derive the old key; build the new credential and new key
3. obtain plaintext entries (snapshot, live vault, or newest readable backup)
4. back up the live vault under the old key
5. write the `rekey.pending` marker, then the vault under the new key
6. install the new credential, remove the marker
7. re-encrypt every backup to the new key
8. wipe passwords, keys and entry copies

A crash between 5 and 6 leaves the marker behind; `recover_interrupted_rekey`
uses it to finish or discard the change deterministically.
"""
from __future__ import annotations
import logging
from typing import Iterable, List, Optional
from config.settings import VaultConfig
from .auth import CredentialGate, MasterCredential
from .errors import AuthenticationFailure, CorruptDataFailure, IOFailure, VaultError
from .fsutil import atomic_write
from .models import VaultEntry, copy_entries, wipe_entries
from .secret import SecretBuffer, SecretLike, wipe_all
from .storage import VaultStore

log = logging.getLogger(__name__)


class RekeyError(VaultError):
	pass


class RekeyCoordinator:
	def __init__(self, config: VaultConfig, gate: CredentialGate):
		self.config = config
		self.gate = gate
		self.crypto = gate.crypto

	@property
	def marker(self):
		return self.config.rekey_marker

	def rekey_pending(self) -> bool:
		return self.marker.is_file()

	def change_master_password(self, old_password: SecretLike, new_password: SecretLike,
							store: VaultStore, snapshot: Optional[Iterable[VaultEntry]] = None) -> bool:
		old_pw = SecretBuffer.of(old_password)
		new_pw = SecretBuffer.of(new_password)
		old_key = new_key = None
		entries: Optional[List[VaultEntry]] = None
		try:
			if not self.gate.verify(old_pw.copy()):
				log.warning('Master password change rejected: old password does not verify')
				return False

			old_salt = self.gate.salt()
			if old_salt is None:
				return False
			old_key = self.crypto.derive_key(old_pw.copy(), old_salt)
			new_cred = self.gate.hash_password(new_pw.copy())
			new_key = self.crypto.derive_key(new_pw.copy(), new_cred.salt)

			entries = copy_entries(snapshot) if snapshot is not None else self._recover_entries(store.with_key(old_key))

			store.with_key(old_key).backup_current_vault()
			self._write_marker(new_cred)
			store.with_key(new_key).save_without_backup(entries)
			self.gate.write(new_cred)
			self.marker.unlink(missing_ok=True)

			skipped = store.reencrypt_all_backups(old_key, new_key)
			if skipped:
				log.warning('%d backup(s) remain under an earlier key: %s', len(skipped), ', '.join(p.name for p in skipped))
			log.info('Master password changed; vault and %d backup(s) re-keyed',
					len(store.get_backup_files()) - len(skipped))
			return True
		except (VaultError, OSError) as e:
			log.error('Master password change aborted: %s', e)
			return False
		finally:
			wipe_all(old_pw, new_pw, old_key, new_key)
			wipe_entries(entries)

	def recover_interrupted_rekey(self, password: SecretLike) -> bool:
		"""Finish or discard a change that crashed between writing the vault and the credential."""
		pw = SecretBuffer.of(password)
		try:
			if not self.rekey_pending():
				return False
			pending = MasterCredential.decode(self.marker.read_text(encoding='ascii'))
			if self.gate.matches(pw.copy(), pending) and self._vault_opens(pw.copy(), pending.salt):
				self.gate.write(pending)
				self.marker.unlink(missing_ok=True)
				log.warning('Completed interrupted master password change; older backups may need the previous password')
				return True
			current = self.gate.read()
			if current and self.gate.matches(pw.copy(), current) and self._vault_opens(pw.copy(), current.salt):
				self.marker.unlink(missing_ok=True)
				log.info('Discarded interrupted master password change; vault still uses the current password')
				return True
			return False
		except (VaultError, OSError) as e:
			log.error('Could not recover interrupted master password change: %s', e)
			return False
		finally:
			pw.wipe()

	def _recover_entries(self, store: VaultStore) -> List[VaultEntry]:
		try:
			return store.load()
		except (AuthenticationFailure, CorruptDataFailure, IOFailure) as e:
			log.warning('Live vault unreadable with current key (%s); trying backups', e)
		for meta in store.list_backups():
			try:
				token = meta.path.read_text(encoding='ascii')
				if not token.strip():
					continue
				entries = store.decrypt_entries(token)
				log.info('Recovered entries from backup %s', meta.path.name)
				return entries
			except (AuthenticationFailure, CorruptDataFailure, OSError, UnicodeDecodeError):
				continue
		raise RekeyError('No vault or backup decrypts with the current key')

	def _vault_opens(self, password: SecretBuffer, salt: bytes) -> bool:
		with self.crypto.derive_key(password, salt) as key:
			try:
				wipe_entries(VaultStore(self.config, key, self.crypto).load())
				return True
			except (AuthenticationFailure, CorruptDataFailure):
				return False

	def _write_marker(self, credential: MasterCredential) -> None:
		atomic_write(self.marker, credential.encode(), private=True)
