from .protocols import TagStatStore, VersionFilter, VersionStore
from .tag_stats import SqlTagStatStore
from .versions import SqlVersionStore

__all__ = [
    "TagStatStore",
    "VersionStore",
    "VersionFilter",
    "SqlTagStatStore",
    "SqlVersionStore",
]
