"""View, search, query and edit a Things task list held as a replayed state snapshot."""

__version__ = "0.1.0"