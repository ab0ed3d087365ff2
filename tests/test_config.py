import pytest

from taskflow import config, database


@pytest.fixture()
def db_env(monkeypatch):
    monkeypatch.delenv("DATABASE_URL", raising=False)
    for name, value in {"DB_HOST": "db.internal", "DB_USER": "app", "DB_PASS": "p@ss", "DB_NAME": "helpdesk"}.items():
        monkeypatch.setenv(name, value)
    monkeypatch.delenv("DB_PORT", raising=False)
    return monkeypatch


def test_database_url_built_from_parts(db_env):
    url = config.database_url()
    assert url.startswith("mysql+pymysql://app:")
    assert "@db.internal:4000/helpdesk" in url
    assert "charset=utf8mb4" in url


def test_database_url_prefers_explicit_value(db_env):
    db_env.setenv("DATABASE_URL", "sqlite:///./other.db")
    assert config.database_url() == "sqlite:///./other.db"


def test_missing_database_variables_abort(db_env):
    db_env.delenv("DB_PASS")
    db_env.delenv("DB_NAME")
    with pytest.raises(config.ConfigError, match="DB_PASS, DB_NAME"):
        config.database_url()


def test_invalid_port_aborts(db_env):
    db_env.setenv("DB_PORT", "quatro mil")
    with pytest.raises(config.ConfigError):
        config.database_url()


def test_ssl_connect_args(monkeypatch):
    monkeypatch.setenv("DB_SSL", "true")
    assert config.database_connect_args() == {"ssl_verify_cert": True, "ssl_verify_identity": True}
    monkeypatch.setenv("DB_SSL", "false")
    assert config.database_connect_args() == {}


def test_cors_origins(monkeypatch):
    monkeypatch.setenv("CORS_ORIGINS", "https://a.example, https://b.example")
    assert config.cors_origins() == ["https://a.example", "https://b.example"]
    monkeypatch.delenv("CORS_ORIGINS")
    assert config.cors_origins() == ["*"]


def test_engine_lifecycle(tmp_path):
    database.dispose_engine()
    with pytest.raises(RuntimeError):
        database.get_engine()

    engine = database.init_engine(f"sqlite:///{tmp_path / 'lifecycle.db'}")
    try:
        assert database.get_engine() is engine
        # A second call reuses the pool
        assert database.init_engine() is engine
    finally:
        database.dispose_engine()

    with pytest.raises(RuntimeError):
        database.get_engine()
