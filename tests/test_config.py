"""
Tests for settings and the command line.
"""
import pytest
from pydantic import ValidationError

from httpupload.__main__ import main
from httpupload.auth.signature import sign_v1, sign_v2
from httpupload.config import Settings, get_settings


class TestSettings:
    """Tests for Settings validation."""

    def test_defaults(self, monkeypatch):
        """Only the secret is required."""
        monkeypatch.setenv("HTTPUP_SECRET", "abc")
        settings = Settings()

        assert settings.listen_address == ":8889"
        assert settings.host == "0.0.0.0"
        assert settings.port == 8889
        assert str(settings.storage_path) == "data"
        assert settings.metrics_port is None

    def test_env_prefix(self, monkeypatch, tmp_path):
        """Variables are read with the HTTPUP_ prefix."""
        monkeypatch.setenv("HTTPUP_SECRET", "abc")
        monkeypatch.setenv("HTTPUP_LISTEN_ADDRESS", "127.0.0.1:9000")
        monkeypatch.setenv("HTTPUP_STORAGE_PATH", str(tmp_path / "files"))
        settings = Settings()

        assert settings.secret.get_secret_value() == "abc"
        assert settings.host == "127.0.0.1"
        assert settings.port == 9000
        assert settings.storage_path == tmp_path / "files"

    def test_secret_hidden(self):
        """The secret does not appear in reprs."""
        settings = Settings(secret="topsecret")
        assert "topsecret" not in repr(settings)

    def test_empty_secret_rejected(self):
        """An empty secret is a configuration error."""
        with pytest.raises(ValidationError):
            Settings(secret="")

    def test_missing_secret_rejected(self, monkeypatch):
        """The secret has no default."""
        monkeypatch.delenv("HTTPUP_SECRET", raising=False)
        with pytest.raises(ValidationError):
            Settings(_env_file=None)

    @pytest.mark.parametrize("address", ["", "localhost", "localhost:http"])
    def test_bad_listen_address(self, address: str):
        """listen_address must be host:port."""
        with pytest.raises(ValidationError):
            Settings(secret="abc", listen_address=address)

    def test_ipv6_listen_address(self):
        """Brackets are stripped from IPv6 hosts."""
        settings = Settings(secret="abc", listen_address="[::1]:8889")
        assert settings.host == "::1"
        assert settings.port == 8889

    def test_check_creates_storage(self, tmp_path):
        """check() creates the storage directory and parents."""
        settings = Settings(secret="abc", storage_path=tmp_path / "a" / "b")
        settings.check()

        assert (tmp_path / "a" / "b").is_dir()

    def test_check_fails_on_file(self, tmp_path):
        """A file in place of the storage directory is reported."""
        (tmp_path / "data").write_bytes(b"x")
        settings = Settings(secret="abc", storage_path=tmp_path / "data")

        with pytest.raises(RuntimeError, match="could not create storage path"):
            settings.check()

    def test_get_settings_cached(self, monkeypatch):
        """get_settings loads once."""
        monkeypatch.setenv("HTTPUP_SECRET", "abc")
        assert get_settings() is get_settings()


class TestCommandLine:
    """Tests for the httpupload command."""

    def test_sign_v2(self, monkeypatch, capsys):
        """sign prints a v2 URL by default."""
        monkeypatch.setenv("HTTPUP_SECRET", "s3cr3t")

        code = main(["sign", "/a/b.png", "--size", "10", "--content-type", "image/png",
                     "--base-url", "https://upload.example.org/"])

        assert code == 0
        token = sign_v2("s3cr3t", "/a/b.png", 10, "image/png")
        assert capsys.readouterr().out.strip() == f"https://upload.example.org/a/b.png?v2={token}"

    def test_sign_v1(self, monkeypatch, capsys):
        """sign --version 1 prints a v1 URL."""
        monkeypatch.setenv("HTTPUP_SECRET", "s3cr3t")

        code = main(["sign", "/a/b.png", "-s", "10", "-v", "1"])

        assert code == 0
        token = sign_v1("s3cr3t", "/a/b.png", 10)
        assert capsys.readouterr().out.strip() == f"http://localhost:8889/a/b.png?v={token}"

    def test_sign_quotes_path(self, monkeypatch, capsys):
        """Paths are percent-encoded in the URL but signed decoded."""
        monkeypatch.setenv("HTTPUP_SECRET", "s3cr3t")

        main(["sign", "/a b.png", "-s", "1", "-v", "1"])

        token = sign_v1("s3cr3t", "/a b.png", 1)
        assert capsys.readouterr().out.strip() == f"http://localhost:8889/a%20b.png?v={token}"

    def test_missing_secret_exit_code(self, monkeypatch, capsys, tmp_path):
        """Configuration errors exit with code 2."""
        monkeypatch.delenv("HTTPUP_SECRET", raising=False)
        monkeypatch.chdir(tmp_path)

        code = main(["sign", "/a", "-s", "1"])

        assert code == 2
        assert "error reading config" in capsys.readouterr().err

    def test_serve_leaves_storage_check_to_startup(self, monkeypatch, tmp_path):
        """serve hands the app to uvicorn without checking storage itself."""
        monkeypatch.setenv("HTTPUP_SECRET", "s3cr3t")
        monkeypatch.setenv("HTTPUP_LISTEN_ADDRESS", "127.0.0.1:9999")
        monkeypatch.setenv("HTTPUP_STORAGE_PATH", str(tmp_path / "data"))

        checks = []
        monkeypatch.setattr(Settings, "check", lambda self: checks.append(self))
        runs = []
        monkeypatch.setattr("uvicorn.run", lambda app, **kwargs: runs.append(kwargs))

        code = main(["serve"])

        assert code == 0
        assert checks == []
        assert runs == [{"host": "127.0.0.1", "port": 9999, "log_config": None}]
