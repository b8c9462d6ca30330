"""Tests for configuration loading."""

import pytest
from pydantic import ValidationError

from shorturl.core.setting import Settings, StoreBackend, load_settings
from shorturl.main import main


@pytest.fixture(autouse=True)
def workdir(tmp_path, monkeypatch):
    # .env is read from the working directory
    monkeypatch.chdir(tmp_path)
    return tmp_path


class TestDefaults:
    def test_defaults(self):
        settings = Settings()
        assert settings.HOST == ""
        assert settings.bind_host == "0.0.0.0"
        assert settings.PORT == 8080
        assert settings.DOMAIN == "localhost"
        assert settings.HTTPS is False
        assert settings.LOCAL is True
        assert settings.TOKEN == "5ecr3tT0k3n"
        assert settings.STORE_BACKEND is StoreBackend.memory

    def test_no_flags_means_defaults(self):
        assert load_settings([]) == Settings()

    def test_frozen(self):
        settings = Settings()
        with pytest.raises(ValidationError):
            settings.PORT = 9090


class TestEnvironment:
    def test_token_from_superscrt(self, monkeypatch):
        monkeypatch.setenv("SUPERSCRT", "from-env")
        assert Settings().TOKEN == "from-env"

    def test_token_from_token_variable(self, monkeypatch):
        monkeypatch.setenv("TOKEN", "via-token")
        assert load_settings(["--token", "from-flag"]).TOKEN == "via-token"

    def test_env_wins_over_flags(self, monkeypatch):
        monkeypatch.setenv("PORT", "9090")
        monkeypatch.setenv("SUPERSCRT", "from-env")
        settings = load_settings(["--port", "7000", "--token", "from-flag"])
        assert settings.PORT == 9090
        assert settings.TOKEN == "from-env"

    def test_empty_env_falls_back_to_flag(self, monkeypatch):
        monkeypatch.setenv("PORT", "")
        monkeypatch.setenv("SUPERSCRT", "")
        settings = load_settings(["--port", "7000", "--token", "from-flag"])
        assert settings.PORT == 7000
        assert settings.TOKEN == "from-flag"

    def test_flags(self):
        settings = load_settings([
            "--host", "127.0.0.1", "--domain", "sho.rt", "--https", "--no-local",
            "--store", "sqlite", "--database-url", "sqlite:///x.db", "--log-level", "debug",
        ])
        assert settings.bind_host == "127.0.0.1"
        assert settings.short_url_base() == "https://sho.rt"
        assert settings.STORE_BACKEND is StoreBackend.sqlite
        assert settings.DATABASE_URL == "sqlite:///x.db"
        assert settings.LOG_LEVEL == "DEBUG"


class TestDotenv:
    @pytest.fixture
    def dotenv(self, workdir):
        (workdir / ".env").write_text("PORT=9999\nSUPERSCRT=from-dotenv\nDOMAIN=sho.rt\n")

    def test_kept_without_flags(self, dotenv):
        settings = load_settings([])
        assert settings.PORT == 9999
        assert settings.TOKEN == "from-dotenv"
        assert settings.DOMAIN == "sho.rt"

    def test_wins_over_flags(self, dotenv):
        settings = load_settings(["--port", "7000", "--token", "from-flag"])
        assert settings.PORT == 9999
        assert settings.TOKEN == "from-dotenv"

    def test_flag_fills_fields_dotenv_leaves_unset(self, dotenv):
        assert load_settings(["--host", "127.0.0.1"]).HOST == "127.0.0.1"

    def test_env_wins_over_dotenv(self, dotenv, monkeypatch):
        monkeypatch.setenv("PORT", "8181")
        assert load_settings([]).PORT == 8181


class TestShortURLBase:
    @pytest.mark.parametrize("values,expected", [
        ({"LOCAL": True, "PORT": 8080}, "http://localhost:8080"),
        ({"LOCAL": True, "PORT": 9000, "HTTPS": True}, "http://localhost:9000"),
        ({"LOCAL": False, "DOMAIN": "sho.rt"}, "http://sho.rt"),
        ({"LOCAL": False, "DOMAIN": "sho.rt", "HTTPS": True}, "https://sho.rt"),
    ])
    def test_base(self, values, expected):
        assert Settings(**values).short_url_base() == expected


class TestInvalid:
    @pytest.mark.parametrize("argv", [
        ["--port", "0"],
        ["--port", "70000"],
        ["--log-level", "loud"],
        ["--token", ""],
    ])
    def test_rejected(self, argv):
        with pytest.raises(ValidationError):
            load_settings(argv)

    def test_main_exits_on_invalid_configuration(self):
        with pytest.raises(SystemExit) as exc_info:
            main(["--port", "0"])
        assert exc_info.value.code == 1
