"""Remote access to published LRG records."""

from lrg_sync.remote.client import LRGRemoteClient

__all__ = ["LRGRemoteClient"]
