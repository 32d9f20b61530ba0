"""CureQueue clinic booking and queue backend."""

__version__ = "1.0.0"
