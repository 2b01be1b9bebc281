"""User preferences persisted as JSON next to the vault."""
from __future__ import annotations
import json, logging
from typing import Any, Dict
from config.settings import DEFAULT_AUTO_LOCK_MINUTES, VaultConfig
from .errors import IOFailure
from .fsutil import atomic_write

log = logging.getLogger(__name__)

AUTO_LOCK_KEY = 'auto_lock_minutes'
NEVER = -1


class SettingsStore:
	def __init__(self, config: VaultConfig):
		self.path = config.settings_file
		self._data: Dict[str, Any] = self._load()

	def _load(self) -> Dict[str, Any]:
		if not self.path.exists():
			return {}
		try:
			data = json.loads(self.path.read_text(encoding='utf-8'))
		except (OSError, ValueError) as e:
			log.warning('Could not load settings file, using defaults: %s', e)
			return {}
		return data if isinstance(data, dict) else {}

	def get_auto_lock_minutes(self) -> int:
		"""Minutes of inactivity before locking; -1 means never."""
		value = self._data.get(AUTO_LOCK_KEY, DEFAULT_AUTO_LOCK_MINUTES)
		if isinstance(value, bool) or not isinstance(value, int):
			return DEFAULT_AUTO_LOCK_MINUTES
		return value if value > 0 else NEVER

	def set_auto_lock_minutes(self, minutes: int) -> None:
		if minutes <= 0:
			minutes = NEVER
		self._data[AUTO_LOCK_KEY] = minutes
		try:
			self.path.parent.mkdir(parents=True, exist_ok=True)
			atomic_write(self.path, json.dumps(self._data, indent=2))
		except OSError as e:
			raise IOFailure(f'Could not save settings: {e}') from e
