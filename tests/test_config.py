import pytest
from pydantic import ValidationError

from config import Settings


def test_secret_key_has_no_default(monkeypatch):
    monkeypatch.delenv("SECRET_KEY", raising=False)
    with pytest.raises(ValidationError):
        Settings(_env_file=None)


def test_settings_read_from_environment(monkeypatch):
    monkeypatch.setenv("SECRET_KEY", "from-env")
    monkeypatch.setenv("LOCAL_UTC_OFFSET_MINUTES", "-300")
    loaded = Settings(_env_file=None)
    assert loaded.SECRET_KEY == "from-env"
    assert loaded.LOCAL_UTC_OFFSET_MINUTES == -300
    assert loaded.EARLY_MORNING_CUTOFF_HOUR == 8
