"""OverlayIO FUSE Interface.

Exposes a FileStreamWrapper as a mountable filesystem.

Usage:
    from overlayio.fuse import OverlayOperations
    from overlayio.stream import FileStreamWrapper

    ops = OverlayOperations(FileStreamWrapper())
"""

from overlayio.fuse.operations import OpenFile, OverlayOperations, flags_to_mode

__all__ = [
    "OverlayOperations",
    "OpenFile",
    "flags_to_mode",
]
