# src/objsync/__init__.py
"""
objsync: mirror one object store into another.

Both stores are listed in key order and merge-joined in a single pass, so
only the objects missing at the destination are copied, in constant memory
whatever the number of objects or their size.

The primary entry point for programmatic use is the `SyncPipeline` class.
"""

from typing import List

from objsync.pipeline import SyncPipeline

__all__: List[str] = ["SyncPipeline"]
