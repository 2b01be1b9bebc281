"""Vault entries and their JSON wire form."""
from __future__ import annotations
import json
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional
from .errors import CorruptDataFailure
from .secret import SecretBuffer, SecretLike


@dataclass
class VaultEntry:
	account: str
	username: str
	password: SecretBuffer
	url: Optional[str] = None

	def __post_init__(self):
		self.password = SecretBuffer.of(self.password)

	@classmethod
	def create(cls, account: str, username: str, password: SecretLike, url: Optional[str] = None) -> 'VaultEntry':
		return cls(account, username, SecretBuffer.of(password), url or None)

	def set_password(self, password: SecretLike) -> None:
		old = self.password
		self.password = SecretBuffer.of(password)
		old.wipe()

	def copy(self) -> 'VaultEntry':
		return VaultEntry(self.account, self.username, self.password.copy(), self.url)

	def wipe(self) -> None:
		self.password.wipe()

	def to_dict(self) -> Dict[str, Any]:
		d = {'account': self.account, 'username': self.username, 'password': self.password.reveal()}
		if self.url:
			d['url'] = self.url
		return d

	@classmethod
	def from_dict(cls, raw: Any) -> 'VaultEntry':
		if not isinstance(raw, dict):
			raise CorruptDataFailure('Vault entry is not an object')
		try:
			account, username, password = raw['account'], raw['username'], raw['password']
		except KeyError as e:
			raise CorruptDataFailure(f'Vault entry missing field {e}') from None
		url = raw.get('url')
		if not all(isinstance(v, str) for v in (account, username, password)) or not (url is None or isinstance(url, str)):
			raise CorruptDataFailure('Vault entry has a non-string field')
		return cls(account, username, SecretBuffer(password), url or None)

	def __repr__(self) -> str:
		return f'VaultEntry(account={self.account!r}, username={self.username!r}, url={self.url!r})'


def serialize_entries(entries: Iterable[VaultEntry]) -> bytearray:
	"""JSON-encode entries into a wipeable buffer."""
	return bytearray(json.dumps([e.to_dict() for e in entries], indent=2).encode('utf-8'))


def deserialize_entries(data: bytes) -> List[VaultEntry]:
	try:
		raw = json.loads(data.decode('utf-8'))
	except (UnicodeDecodeError, json.JSONDecodeError) as e:
		raise CorruptDataFailure(f'Invalid vault data format: {e}') from None
	if raw is None:
		return []
	if not isinstance(raw, list):
		raise CorruptDataFailure('Vault payload is not a list of entries')
	return [VaultEntry.from_dict(item) for item in raw]


def copy_entries(entries: Iterable[VaultEntry]) -> List[VaultEntry]:
	return [e.copy() for e in entries]


def wipe_entries(entries: Optional[Iterable[VaultEntry]]) -> None:
	for e in entries or ():
		e.wipe()
