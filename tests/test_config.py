import pytest
from pydantic import ValidationError

from palette_shift.config import Settings


class TestSettings:
    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("DEFAULT_BLEND_PERCENT", raising=False)
        monkeypatch.delenv("DEFAULT_PALETTE", raising=False)
        s = Settings()
        assert s.default_blend_percent == 70
        assert s.default_palette == "nord"

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("DEFAULT_BLEND_PERCENT", "40")
        monkeypatch.setenv("SHIFT_WORKERS", "3")
        s = Settings()
        assert s.default_blend_percent == 40
        assert s.shift_workers == 3

    def test_blend_percent_bounded(self, monkeypatch):
        monkeypatch.setenv("DEFAULT_BLEND_PERCENT", "150")
        with pytest.raises(ValidationError):
            Settings()
