"""
Test suite for configuration.

System role: Verification of settings defaults and validation
"""

import pytest
from pydantic import ValidationError

from answer_engine.configs.retrieval import RetrievalSettings
from answer_engine.configs.settings import Settings


class TestSettings:
    """Test suite for Settings."""

    def test_log_level_should_be_normalized(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test lower-case level names are accepted and upper-cased."""
        # Arrange
        monkeypatch.setenv("LOG_LEVEL", "debug")

        # Act
        settings = Settings()

        # Assert
        assert settings.log_level == "DEBUG"

    def test_unknown_log_level_should_be_rejected(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test an unknown level name fails validation."""
        # Arrange
        monkeypatch.setenv("LOG_LEVEL", "chatty")

        # Act & Assert
        with pytest.raises(ValidationError):
            Settings()

    def test_prefixed_env_should_reach_concern_settings(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test per-concern settings read their own prefixed variables."""
        # Arrange
        monkeypatch.setenv("RETRIEVAL_RELAX_STEP", "0.1")

        # Act
        settings = RetrievalSettings()

        # Assert
        assert settings.relax_step == pytest.approx(0.1)
