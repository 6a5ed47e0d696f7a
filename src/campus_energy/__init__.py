"""Smart campus energy monitor."""

__version__ = "1.0.0"
