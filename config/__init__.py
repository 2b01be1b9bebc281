"""Configuration package for securex.

Re-exports everything from `config.settings` so callers may write
`from config import VaultConfig`. Keep the constants themselves in
`settings.py`.
"""

from .settings import *  # noqa: F401,F403
from .settings import __all__  # noqa: F401
