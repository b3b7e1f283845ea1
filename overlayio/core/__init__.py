"""OverlayIO Core - Shared constants, validators and file operations.

Import specific functions from submodules:
    from overlayio.core import constants
    from overlayio.core import file_ops
    from overlayio.core import validators
"""

# Re-export main module references for convenience
from overlayio.core import constants, file_ops, validators

__all__ = [
    "constants",
    "file_ops",
    "validators",
]
