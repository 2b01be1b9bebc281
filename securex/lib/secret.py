"""Wipeable in-memory buffers for passwords, keys and decrypted secrets.

Python `str` and `bytes` objects are immutable and cannot be scrubbed, so
every secret the engine owns lives in a `SecretBuffer` backed by a
`bytearray`. Ownership is explicit: `take()` moves a bytearray in and zeroes
the source, `copy()` makes an independent buffer, and `wipe()` (also run on
context-manager exit and on finalisation) zeroes the contents.
"""
from __future__ import annotations
import hmac
from typing import Union

SecretLike = Union['SecretBuffer', bytearray, bytes, str]


class SecretBuffer:
	__slots__ = ('_buf', '_wiped')

	def __init__(self, data: Union[bytes, bytearray, str] = b''):
		if isinstance(data, str):
			data = data.encode('utf-8')
		self._buf = bytearray(data)
		self._wiped = False

	@classmethod
	def take(cls, buf: bytearray) -> 'SecretBuffer':
		"""Move the contents of `buf` into a new buffer and zero `buf`."""
		out = cls(buf)
		_zero(buf)
		return out

	@classmethod
	def of(cls, value: SecretLike) -> 'SecretBuffer':
		"""Coerce `value`, taking ownership when it already is a SecretBuffer."""
		if isinstance(value, SecretBuffer):
			return value
		if isinstance(value, bytearray):
			return cls.take(value)
		return cls(value)

	@property
	def raw(self) -> bytearray:
		if self._wiped:
			raise ValueError('secret buffer already wiped')
		return self._buf

	@property
	def wiped(self) -> bool:
		return self._wiped

	def copy(self) -> 'SecretBuffer':
		return SecretBuffer(self.raw)

	def reveal(self) -> str:
		"""Decode to text. The returned str cannot be wiped; keep its scope short."""
		return self.raw.decode('utf-8')

	def wipe(self) -> None:
		if not self._wiped:
			_zero(self._buf)
			self._wiped = True

	def __enter__(self) -> 'SecretBuffer':
		return self

	def __exit__(self, *exc) -> None:
		self.wipe()

	def __del__(self):
		try:
			self.wipe()
		except AttributeError:  # partially constructed
			pass

	def __len__(self) -> int:
		return len(self._buf)

	def __bool__(self) -> bool:
		return not self._wiped and len(self._buf) > 0

	def __eq__(self, other) -> bool:
		if not isinstance(other, SecretBuffer):
			return NotImplemented
		return hmac.compare_digest(bytes(self.raw), bytes(other.raw))

	__hash__ = None  # type: ignore[assignment]

	def __repr__(self) -> str:
		state = 'wiped' if self._wiped else f'len={len(self._buf)}'
		return f'<SecretBuffer {state}>'


def _zero(buf: bytearray) -> None:
	for i in range(len(buf)):
		buf[i] = 0


def wipe_all(*buffers) -> None:
	"""Wipe every non-None buffer (SecretBuffer or bytearray)."""
	for b in buffers:
		if b is None:
			continue
		if isinstance(b, SecretBuffer):
			b.wipe()
		elif isinstance(b, bytearray):
			_zero(b)
