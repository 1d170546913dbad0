"""Tests for environment-based settings."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from cnamodel.config.settings import Settings


@pytest.fixture(autouse=True)
def _isolated_env(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    for name in ("TEMPLATE_AUTHOR", "TEMPLATE_VERSION", "OUTPUT_FORMAT", "LOG_LEVEL"):
        monkeypatch.delenv(f"CNAMODEL_{name}", raising=False)


class TestSettings:
    def test_defaults(self):
        settings = Settings()
        assert settings.template_author == "CNA modeling tool"
        assert settings.template_version == "0.1.0"
        assert settings.output_format == "yaml"
        assert settings.log_level == "WARNING"

    def test_environment_override(self, monkeypatch):
        monkeypatch.setenv("CNAMODEL_TEMPLATE_AUTHOR", "Platform Team")
        monkeypatch.setenv("CNAMODEL_OUTPUT_FORMAT", "json")
        settings = Settings()
        assert settings.template_author == "Platform Team"
        assert settings.output_format == "json"

    def test_dotenv_file(self, tmp_path):
        (tmp_path / ".env").write_text("CNAMODEL_TEMPLATE_VERSION=2.0.0\n")
        assert Settings().template_version == "2.0.0"

    def test_rejects_unknown_output_format(self, monkeypatch):
        monkeypatch.setenv("CNAMODEL_OUTPUT_FORMAT", "xml")
        with pytest.raises(ValidationError):
            Settings()
