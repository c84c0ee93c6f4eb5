"""Unit tests for XDG Base Directory utilities."""

import os
import tempfile
from pathlib import Path
from unittest import mock

import pytest

from corsguard.utils.xdg import (
    get_config_dir,
    get_default_config_path,
    get_xdg_config_home,
)


class TestXDGBasePaths:
    """Test XDG base directory path resolution."""

    @pytest.mark.unit
    def test_xdg_config_home_from_env(self):
        """Test XDG_CONFIG_HOME is used when set."""
        # Arrange
        test_path = "/custom/config"

        # Act
        with mock.patch.dict(os.environ, {"XDG_CONFIG_HOME": test_path}):
            result = get_xdg_config_home()

        # Assert
        assert result == Path(test_path)

    @pytest.mark.unit
    def test_xdg_config_home_default(self):
        """Test default ~/.config when XDG_CONFIG_HOME not set."""
        # Arrange
        home = Path.home()

        # Act
        with mock.patch.dict(os.environ, {}, clear=True):
            result = get_xdg_config_home()

        # Assert
        assert result == home / ".config"


class TestCorsguardPaths:
    """Test corsguard specific paths."""

    @pytest.mark.unit
    def test_get_config_dir_does_not_create_directory(self):
        """Test config directory path is resolved without touching the disk."""
        # Arrange
        with tempfile.TemporaryDirectory() as tmpdir:
            test_config_home = Path(tmpdir) / "config"

            # Act
            with mock.patch.dict(
                os.environ, {"XDG_CONFIG_HOME": str(test_config_home)}
            ):
                result = get_config_dir()

            # Assert
            assert result == test_config_home / "corsguard"
            assert not result.exists()

    @pytest.mark.unit
    def test_get_default_config_path(self):
        """Test default config file path generation."""
        # Arrange
        test_config_home = "/custom/config"

        # Act
        with mock.patch.dict(os.environ, {"XDG_CONFIG_HOME": test_config_home}):
            result = get_default_config_path()

        # Assert
        assert result == Path(test_config_home) / "corsguard" / "config.yaml"
