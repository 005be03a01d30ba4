"""
Metadata discovery in owner-id pages.
"""

from .pager import DEFAULT_CHUNK_SIZE, ChunkIterator, MetaPager

__all__ = ["ChunkIterator", "DEFAULT_CHUNK_SIZE", "MetaPager"]
