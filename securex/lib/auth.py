"""Master credential: creation, verification and salt extraction.

`master.dat` holds `base64(salt ‖ hash)`. The same salt seeds the vault key
derivation, so the verification hash is HKDF-separated from the PBKDF2
output; the stored hash is never usable as the vault key.
"""
from __future__ import annotations
import base64, binascii, hmac, logging
from dataclasses import dataclass
from typing import Optional
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.hkdf import HKDF
from config.settings import SALT_LENGTH, KEY_LENGTH, VaultConfig
from .crypto import VaultCrypto
from .errors import CorruptDataFailure, IOFailure
from .fsutil import atomic_write
from .secret import SecretBuffer, SecretLike

log = logging.getLogger(__name__)

VERIFY_INFO = b'securex master verification'


@dataclass(frozen=True)
class MasterCredential:
	salt: bytes
	hash: bytes

	def encode(self) -> str:
		return base64.b64encode(self.salt + self.hash).decode('ascii')

	@classmethod
	def decode(cls, text: str) -> 'MasterCredential':
		try:
			raw = base64.b64decode(text.strip(), validate=True)
		except (binascii.Error, ValueError):
			raise CorruptDataFailure('Master credential is not valid base64') from None
		if len(raw) != SALT_LENGTH + KEY_LENGTH:
			raise CorruptDataFailure('Master credential has unexpected length')
		return cls(raw[:SALT_LENGTH], raw[SALT_LENGTH:])


class CredentialGate:
	def __init__(self, config: VaultConfig, crypto: Optional[VaultCrypto] = None):
		self.config = config
		self.crypto = crypto or VaultCrypto(config.kdf_iterations)
		try:
			config.app_dir.mkdir(parents=True, exist_ok=True)
		except OSError as e:
			raise IOFailure(f'Could not create application data directory {config.app_dir}: {e}') from e

	@property
	def path(self):
		return self.config.master_file

	def exists(self) -> bool:
		return self.path.is_file()

	def hash_password(self, password: SecretLike) -> MasterCredential:
		"""Build a fresh credential (new random salt). Wipes `password`."""
		salt = self.crypto.generate_salt()
		return MasterCredential(salt, self._verification_hash(password, salt))

	def create(self, password: SecretLike) -> MasterCredential:
		cred = self.hash_password(password)
		self.write(cred)
		log.info('Master credential created')
		return cred

	def write(self, credential: MasterCredential) -> None:
		try:
			atomic_write(self.path, credential.encode(), temp=self.config.master_temp_file, private=True)
		except OSError as e:
			raise IOFailure(f'Could not write master credential: {e}') from e

	def read(self) -> Optional[MasterCredential]:
		if not self.exists():
			return None
		try:
			text = self.path.read_text(encoding='ascii')
		except (OSError, UnicodeDecodeError) as e:
			raise IOFailure(f'Could not read master credential: {e}') from e
		return MasterCredential.decode(text)

	def verify(self, password: SecretLike) -> bool:
		pw = SecretBuffer.of(password)
		try:
			try:
				cred = self.read()
			except (IOFailure, CorruptDataFailure) as e:
				log.warning('Master credential unreadable: %s', e)
				return False
			if cred is None:
				return False
			return self.matches(pw, cred)
		finally:
			pw.wipe()

	def matches(self, password: SecretLike, credential: MasterCredential) -> bool:
		"""Constant-time check of `password` against an explicit credential."""
		candidate = self._verification_hash(password, credential.salt)
		return hmac.compare_digest(candidate, credential.hash)

	def salt(self) -> Optional[bytes]:
		cred = self.read()
		return cred.salt if cred else None

	def _verification_hash(self, password: SecretLike, salt: bytes) -> bytes:
		with self.crypto.derive_key(password, salt) as stretched:
			return HKDF(algorithm=hashes.SHA256(), length=KEY_LENGTH, salt=None, info=VERIFY_INFO).derive(stretched.raw)
