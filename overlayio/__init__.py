"""OverlayIO - filesystem access through a static content cache.

Opens are served from a precompiled, read-only content cache when it holds
the requested file, then from the include path, then from the physical
filesystem. Metadata and mutation calls go straight to the filesystem
after path translation.

Usage:
    from overlayio import FileStreamWrapper, WrapperContext, StaticContentCache

    cache = StaticContentCache.from_directory("/srv/www")
    wrapper = FileStreamWrapper(WrapperContext(content_cache=cache, source_root="/srv/www"))
    with wrapper.open("file:///srv/www/index.html") as handle:
        data = handle.read()
"""

from overlayio.core.constants import OVERLAYIO_VERSION, MkdirOption, OpenOption, RmdirOption
from overlayio.infrastructure.content_cache import StaticContentCache
from overlayio.stream.wrapper import FileStreamWrapper, WrapperContext, remove_scheme

__version__ = OVERLAYIO_VERSION

__all__ = [
    "FileStreamWrapper",
    "WrapperContext",
    "StaticContentCache",
    "remove_scheme",
    "OpenOption",
    "MkdirOption",
    "RmdirOption",
    "__version__",
]
