"""Stream wrapper for OverlayIO.

Provides the file stream wrapper and the pieces it is built from:
path translation, include-path search, and file/directory handles.
"""

from .handles import CachedFileHandle, DirectoryHandle, FileHandle, PhysicalFileHandle
from .include_path import IncludePathResolver
from .translator import PathTranslator
from .wrapper import FileStreamWrapper, WrapperContext, remove_scheme

__all__ = [
    "FileStreamWrapper",
    "WrapperContext",
    "remove_scheme",
    "PathTranslator",
    "IncludePathResolver",
    "FileHandle",
    "CachedFileHandle",
    "PhysicalFileHandle",
    "DirectoryHandle",
]
