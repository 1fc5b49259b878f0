from reelroom.core.settings import Settings


def test_defaults_without_env(monkeypatch):
    for var in ("MONGO_URI", "MONGO_DATABASE", "CHAT_HISTORY_DEFAULT_LIMIT", "PROJECTS_COLLECTION"):
        monkeypatch.delenv(var, raising=False)
    s = Settings()
    assert s.app_env in {"test", "ci"}
    assert s.mongo_database == "reelroom"
    assert s.projects_collection == "scripts"
    assert s.chat_history_default_limit == 50
    assert s.jwt_algorithm == "HS256"


def test_env_overrides(monkeypatch):
    monkeypatch.setenv("MONGO_DATABASE", "films")
    monkeypatch.setenv("SECRET_KEY", "s3cret-value")
    monkeypatch.setenv("CHAT_HISTORY_MAX_LIMIT", "75")
    s = Settings()
    assert s.mongo_database == "films"
    assert s.secret_key.get_secret_value() == "s3cret-value"
    assert "s3cret-value" not in repr(s)
    assert s.chat_history_max_limit == 75
