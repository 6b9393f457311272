"""Section-level review of markdown plans."""

__version__ = "0.1.0"
