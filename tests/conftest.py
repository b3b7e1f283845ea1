"""Shared pytest fixtures for OverlayIO tests."""
import tempfile
from pathlib import Path
from typing import Any, Dict, Generator
from unittest.mock import MagicMock

import pytest
import yaml

from overlayio.infrastructure.content_cache import StaticContentCache
from overlayio.infrastructure.logger import Logger
from overlayio.stream.wrapper import FileStreamWrapper, WrapperContext


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir).resolve()


@pytest.fixture
def source_dir(temp_dir: Path) -> Path:
    """Create a source directory with test files."""
    source = temp_dir / "source"
    source.mkdir()

    (source / "file.txt").write_text("Hello World")
    (source / "index.html").write_text("<h1>live</h1>")
    (source / "subdir").mkdir()
    (source / "subdir" / "nested.txt").write_text("Nested content")

    return source


@pytest.fixture
def include_dir(temp_dir: Path) -> Path:
    """Create an include-path root with a library file."""
    include = temp_dir / "include"
    include.mkdir()
    (include / "lib.php").write_text("<?php // library")
    (include / "pkg").mkdir()
    (include / "pkg" / "mod.php").write_text("<?php // module")
    return include


@pytest.fixture
def content_cache(source_dir: Path) -> StaticContentCache:
    """Cache overlay rooted at source_dir whose content differs from disk."""
    return StaticContentCache.from_mapping(
        str(source_dir),
        {
            "index.html": b"<h1>cached</h1>",
            "only-in-cache.txt": b"baked in at build time",
            "assets/app.js": b"console.log('cached');",
        },
    )


@pytest.fixture
def mock_logger() -> MagicMock:
    """Logger stand-in that records diagnostics."""
    return MagicMock(spec=Logger)


@pytest.fixture
def wrapper(source_dir: Path, mock_logger: MagicMock) -> FileStreamWrapper:
    """Wrapper without a cache overlay, rooted at source_dir."""
    return FileStreamWrapper(WrapperContext(source_root=str(source_dir)), logger=mock_logger)


@pytest.fixture
def cached_wrapper(
    source_dir: Path, include_dir: Path, content_cache: StaticContentCache, mock_logger: MagicMock
) -> FileStreamWrapper:
    """Wrapper with a cache overlay and an include path."""
    context = WrapperContext(
        content_cache=content_cache,
        source_root=str(source_dir),
        include_paths=(str(include_dir),),
    )
    return FileStreamWrapper(context, logger=mock_logger)


@pytest.fixture
def sample_config(source_dir: Path, include_dir: Path) -> Dict[str, Any]:
    """Provide a sample OverlayIO configuration."""
    return {
        "overlayio": {
            "source_root": str(source_dir),
            "include_path": [str(include_dir)],
            "use_direct_copy": True,
            "content_cache": {
                "enabled": True,
                "root": str(source_dir),
            },
            "logging": {
                "level": "DEBUG",
                "file": None,
            },
        }
    }


@pytest.fixture
def config_file(temp_dir: Path, sample_config: Dict[str, Any]) -> Path:
    """Create a configuration file."""
    config_path = temp_dir / "overlayio.yaml"
    with open(config_path, "w") as f:
        yaml.dump(sample_config, f)
    return config_path
