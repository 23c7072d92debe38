import logging

import pytest

from dirpeek.config import reset_config
from dirpeek.terminal_image import (
    CellDimensions,
    reset_capabilities_cache,
    set_cell_dimensions,
)


@pytest.fixture(autouse=True)
def isolated_environment(tmp_path, monkeypatch):
    """Keep config files and terminal detection out of the real environment."""
    monkeypatch.setenv("DIRPEEK_CONFIG_DIR", str(tmp_path / "config"))
    monkeypatch.setenv("DIRPEEK_IMAGE_PROTOCOL", "kitty")
    reset_config()
    reset_capabilities_cache()
    set_cell_dimensions(CellDimensions(width_px=10, height_px=20))
    yield
    reset_config()
    reset_capabilities_cache()
    set_cell_dimensions(CellDimensions(width_px=9, height_px=18))


@pytest.fixture(autouse=True)
def restore_package_logger():
    """Undo handlers the CLI installs on the ``dirpeek`` logger."""
    logger = logging.getLogger("dirpeek")
    handlers, propagate, level = list(logger.handlers), logger.propagate, logger.level
    yield
    logger.handlers = handlers
    logger.propagate = propagate
    logger.setLevel(level)
