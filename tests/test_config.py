from taskapi.config import Settings


def test_settings_from_env(monkeypatch):
    monkeypatch.setenv("SECRET_KEY", "s3cret")
    monkeypatch.setenv("ACCESS_TOKEN_EXPIRE_MINUTES", "15")
    monkeypatch.setenv("CORS_ORIGINS", "http://a.test, http://b.test,")
    monkeypatch.setenv("SENDGRID_API_KEY", "")
    monkeypatch.setenv("LOG_LEVEL", "debug")

    settings = Settings.from_env()
    assert settings.secret_key == "s3cret"
    assert settings.access_token_expire_minutes == 15
    assert settings.cors_origins == ["http://a.test", "http://b.test"]
    assert settings.sendgrid_api_key is None
    assert settings.log_level == "DEBUG"


def test_bad_integer_falls_back_to_default(monkeypatch):
    monkeypatch.setenv("ACCESS_TOKEN_EXPIRE_MINUTES", "soon")
    assert Settings.from_env().access_token_expire_minutes == Settings.access_token_expire_minutes
