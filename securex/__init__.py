"""securex: local encrypted credential vault."""

__version__ = "0.3.0"
