import pydantic
import pytest

from portalar.core.errors import UnconfiguredError
from portalar.storage.facade import build_storage


def test_defaults(settings):
    assert settings.database_type == "sqlite"
    assert settings.jwt_expires_in == 86400
    assert settings.is_production is False
    assert settings.summarizer_configured is False


def test_cors_origins_split(make_settings):
    settings = make_settings(allowed_origins="https://a.example, https://b.example,")
    assert settings.cors_origins == ["https://a.example", "https://b.example"]


def test_password_hash_must_be_bcrypt(make_settings):
    with pytest.raises(pydantic.ValidationError):
        make_settings(admin_password_hash="plaintext")


def test_jwt_secret_minimum_length(make_settings):
    with pytest.raises(pydantic.ValidationError):
        make_settings(admin_jwt_secret="short")


def test_unknown_database_type(make_settings):
    with pytest.raises(pydantic.ValidationError):
        make_settings(database_type="mongodb")


@pytest.mark.parametrize("database_type", ["sqlite", "postgres", "memory"])
def test_build_storage_selects_backend(make_settings, database_type):
    storage = build_storage(make_settings(database_type=database_type))
    assert storage.backend == database_type


@pytest.mark.asyncio
async def test_firebase_without_credentials_is_unconfigured(make_settings, monkeypatch):
    monkeypatch.delenv("GOOGLE_APPLICATION_CREDENTIALS", raising=False)
    storage = build_storage(make_settings(
        database_type="firebase",
        firebase_service_account="{not json",
    ))

    with pytest.raises(UnconfiguredError):
        await storage.initialize()
