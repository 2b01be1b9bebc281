"""Project configuration settings.

Constants shared by the engine plus `VaultConfig`, the explicit path/limit
bundle handed to every component. Nothing here touches the filesystem at
import time.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from pathlib import Path
import os

# Security / crypto
DEFAULT_ITERATIONS = 65_536
SALT_LENGTH = 16
KEY_LENGTH = 32  # AES-256
IV_LENGTH = 12   # GCM nonce
AUTH_TAG_LENGTH = 16  # GCM tag length

# File layout
APP_DIR_ENV = "SECUREX_HOME"
DEFAULT_APP_DIR = Path.home() / ".securex"
MASTER_FILE = "master.dat"
VAULT_FILE = "vault.dat"
SETTINGS_FILE = "settings.json"
REKEY_MARKER = "rekey.pending"
BACKUPS_DIR = "backups"

# Backups
MAX_REGULAR_BACKUPS = 5
MAX_RESTORE_POINTS = 5
TIMESTAMP_FORMAT = "%Y-%m-%d-%H-%M-%S-%f"
LEGACY_TIMESTAMP_FORMAT = "%Y-%m-%d-%H-%M-%S"

# Settings
DEFAULT_AUTO_LOCK_MINUTES = 5
MIN_GENERATED_LENGTH = 12


@dataclass(frozen=True)
class VaultConfig:
	app_dir: Path = field(default_factory=lambda: DEFAULT_APP_DIR)
	max_regular_backups: int = MAX_REGULAR_BACKUPS
	max_restore_points: int = MAX_RESTORE_POINTS
	kdf_iterations: int = DEFAULT_ITERATIONS

	def __post_init__(self):
		object.__setattr__(self, 'app_dir', Path(self.app_dir))

	@classmethod
	def from_env(cls, **overrides) -> 'VaultConfig':
		env_dir = os.environ.get(APP_DIR_ENV)
		if env_dir and 'app_dir' not in overrides:
			overrides['app_dir'] = Path(env_dir)
		return cls(**overrides)

	@property
	def master_file(self) -> Path:
		return self.app_dir / MASTER_FILE

	@property
	def master_temp_file(self) -> Path:
		return self.app_dir / 'master.tmp'

	@property
	def vault_file(self) -> Path:
		return self.app_dir / VAULT_FILE

	@property
	def vault_temp_file(self) -> Path:
		return self.app_dir / 'vault.tmp'

	@property
	def backups_dir(self) -> Path:
		return self.app_dir / BACKUPS_DIR

	@property
	def rekey_marker(self) -> Path:
		return self.app_dir / REKEY_MARKER

	@property
	def settings_file(self) -> Path:
		return self.app_dir / SETTINGS_FILE


__all__ = [
	'DEFAULT_ITERATIONS', 'SALT_LENGTH', 'KEY_LENGTH', 'IV_LENGTH', 'AUTH_TAG_LENGTH',
	'APP_DIR_ENV', 'DEFAULT_APP_DIR', 'MASTER_FILE', 'VAULT_FILE', 'SETTINGS_FILE',
	'REKEY_MARKER', 'BACKUPS_DIR', 'MAX_REGULAR_BACKUPS', 'MAX_RESTORE_POINTS',
	'TIMESTAMP_FORMAT', 'LEGACY_TIMESTAMP_FORMAT', 'DEFAULT_AUTO_LOCK_MINUTES',
	'MIN_GENERATED_LENGTH', 'VaultConfig',
]
