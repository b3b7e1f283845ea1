"""
Include-path search.

Resolves a relative path against an ordered list of include roots, the
way an interpreter resolves include/require statements.
"""

import os
import posixpath
import stat
from typing import List, Optional, Sequence, Tuple

from overlayio.core.constants import PhysicalPath

IncludeHit = Tuple[PhysicalPath, os.stat_result]


class IncludePathResolver:
    """Search include roots for a file.

    Resolution order for ``resolve(path, current_dir)``:

    1. Absolute paths are checked as-is.
    2. Paths starting with "./" or "../" are checked against ``cwd`` only.
    3. Other relative paths are tried under each include root in order,
       then under ``current_dir`` when one is given.

    Only regular files count as hits.
    """

    def __init__(self, include_paths: Optional[Sequence[str]] = None, cwd: Optional[str] = None):
        self.include_paths: List[str] = [p for p in (include_paths or []) if p]
        self.cwd = cwd or os.getcwd()

    def resolve(self, path: str, current_dir: str = "") -> Optional[IncludeHit]:
        """Find ``path`` on the include path.

        Args:
            path: Logical path, scheme already stripped
            current_dir: Directory of the including file ("" for none)

        Returns:
            (resolved path, stat result) on a hit, None otherwise
        """
        if not path:
            return None

        for candidate in self._candidates(path, current_dir):
            st = self._stat_regular(candidate)
            if st is not None:
                return candidate, st
        return None

    def _candidates(self, path: str, current_dir: str) -> List[str]:
        if posixpath.isabs(path):
            return [path]

        if path.startswith("./") or path.startswith("../"):
            return [posixpath.normpath(posixpath.join(self.cwd, path))]

        roots = [posixpath.join(self.cwd, root) for root in self.include_paths]
        if current_dir:
            roots.append(current_dir)
        return [posixpath.normpath(posixpath.join(root, path)) for root in roots]

    @staticmethod
    def _stat_regular(candidate: str) -> Optional[os.stat_result]:
        try:
            st = os.stat(candidate)
        except OSError:
            return None
        return st if stat.S_ISREG(st.st_mode) else None
