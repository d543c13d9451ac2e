"""Smart-contract signature scanner."""

__version__ = "0.3.0"
