"""
Physical path translation.

Turns scheme-stripped logical paths into OS-addressable paths. Both
translators are pure string transforms: nothing here touches the
filesystem, and the cache overlay they may consult is immutable.
"""

import os
import posixpath
from typing import Optional

from overlayio.core.constants import LogicalPath, PhysicalPath, RelativePath
from overlayio.infrastructure.content_cache import StaticContentCache


class PathTranslator:
    """Translate logical paths relative to a source root.

    Attributes:
        source_root: Directory that relative paths are resolved against
        content_cache: Optional cache overlay used by the cache-aware variant
    """

    def __init__(
        self,
        source_root: Optional[str] = None,
        content_cache: Optional[StaticContentCache] = None,
    ):
        self.source_root = posixpath.normpath(os.path.abspath(source_root or os.getcwd()))
        self.content_cache = content_cache

    def translate_path(self, path: LogicalPath) -> PhysicalPath:
        """Default translation.

        Relative paths are joined to the source root and the result is
        normalized. An empty path translates to the source root.
        """
        if not path:
            return self.source_root
        if not posixpath.isabs(path):
            path = posixpath.join(self.source_root, path)
        return posixpath.normpath(path)

    def cache_relative_path(self, physical: PhysicalPath) -> RelativePath:
        """Rebase a translated path against the cache overlay's root.

        Paths under the source root are rebased against it as well, so a
        cache compiled from a copy of the source tree still matches.
        Paths outside both roots come back unchanged (absolute), which
        never matches a cache entry.
        """
        cache = self.content_cache
        if cache is None:
            return physical

        relative = cache.get_relative_path(physical)
        if posixpath.isabs(relative):
            if physical == self.source_root:
                return ""
            prefix = self.source_root.rstrip("/") + "/"
            if physical.startswith(prefix):
                return physical[len(prefix):]
        return relative

    def translate_path_with_file_cache(self, path: LogicalPath) -> PhysicalPath:
        """Cache-aware translation.

        Like translate_path(), but when the cache overlay holds the
        translated path the result is rebased onto the overlay's root,
        so metadata checks see the tree the content was compiled from.
        """
        translated = self.translate_path(path)
        cache = self.content_cache
        if cache is None:
            return translated

        relative = self.cache_relative_path(translated)
        if not posixpath.isabs(relative) and cache.exists(relative):
            return posixpath.join(cache.root, relative) if relative else cache.root
        return translated
