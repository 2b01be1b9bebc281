"""Exception hierarchy shared by the vault engine."""
from __future__ import annotations


class VaultError(Exception):
	"""Base class for every error raised by the engine."""


class IOFailure(VaultError):
	"""Disk or permission error while reading or writing vault files."""


class CryptoError(VaultError):
	"""Invalid input to a cryptographic primitive (empty password, bad key)."""


class AuthenticationFailure(CryptoError):
	"""AEAD tag mismatch: wrong key, wrong password or tampered ciphertext."""


class CorruptDataFailure(VaultError):
	"""Payload decrypted fine but is not a valid serialized vault."""


class PermissionFailure(VaultError):
	"""Restrictive file permissions could not be applied. Logged, never fatal."""
