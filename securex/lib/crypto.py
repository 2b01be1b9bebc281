"""Cryptographic engine: PBKDF2 key derivation + AES-256-GCM payloads."""
from __future__ import annotations
import base64, binascii, secrets
from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from config.settings import (
	DEFAULT_ITERATIONS, SALT_LENGTH, KEY_LENGTH, IV_LENGTH, AUTH_TAG_LENGTH
)
from .errors import CryptoError, AuthenticationFailure
from .secret import SecretBuffer, SecretLike


class VaultCrypto:
	def __init__(self, iterations: int = DEFAULT_ITERATIONS):
		self.iterations = iterations

	def generate_salt(self) -> bytes:
		return secrets.token_bytes(SALT_LENGTH)

	def derive_key(self, password: SecretLike, salt: bytes) -> SecretBuffer:
		"""Derive a 256-bit key. The password buffer is wiped before returning."""
		pw = SecretBuffer.of(password)
		try:
			if not pw:
				raise CryptoError('Password empty')
			kdf = PBKDF2HMAC(algorithm=hashes.SHA256(), length=KEY_LENGTH, salt=salt, iterations=self.iterations)
			return SecretBuffer.take(bytearray(kdf.derive(pw.raw)))
		finally:
			pw.wipe()

	def encrypt(self, data: bytes, key: SecretBuffer) -> bytes:
		k = _key_bytes(key)
		iv = secrets.token_bytes(IV_LENGTH)
		enc = Cipher(algorithms.AES(k), modes.GCM(iv)).encryptor()
		ct = enc.update(data) + enc.finalize()
		return iv + ct + enc.tag

	def decrypt(self, blob: bytes, key: SecretBuffer) -> bytes:
		k = _key_bytes(key)
		if len(blob) < IV_LENGTH + AUTH_TAG_LENGTH:
			raise AuthenticationFailure('Ciphertext too short')
		iv = blob[:IV_LENGTH]; tag = blob[-AUTH_TAG_LENGTH:]; ct = blob[IV_LENGTH:-AUTH_TAG_LENGTH]
		dec = Cipher(algorithms.AES(k), modes.GCM(iv, tag)).decryptor()
		try:
			return dec.update(ct) + dec.finalize()
		except InvalidTag:
			raise AuthenticationFailure('Authentication tag mismatch') from None

	def encrypt_text(self, data: bytes, key: SecretBuffer) -> str:
		return base64.b64encode(self.encrypt(data, key)).decode('ascii')

	def decrypt_text(self, token: str, key: SecretBuffer) -> bytes:
		try:
			blob = base64.b64decode(token.strip(), validate=True)
		except (binascii.Error, ValueError):
			raise AuthenticationFailure('Ciphertext is not valid base64') from None
		return self.decrypt(blob, key)


def _key_bytes(key: SecretBuffer) -> bytearray:
	k = key.raw if isinstance(key, SecretBuffer) else key
	if len(k) != KEY_LENGTH:
		raise CryptoError('Bad key length')
	return k
