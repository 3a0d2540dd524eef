"""Unit tests for the local development server."""

from pathlib import Path

from dashboard_api.__main__ import parse_args
from dashboard_api.server import resolve_static


class TestResolveStaticUnit:
    def test_existing_file(self, tmp_path):
        (tmp_path / "index.html").write_text("<html></html>", encoding="utf-8")
        (tmp_path / "assets").mkdir()
        (tmp_path / "assets" / "app.js").write_text("console.log(1)", encoding="utf-8")

        assert resolve_static(tmp_path, "/assets/app.js") == (tmp_path / "assets" / "app.js").resolve()
        assert resolve_static(tmp_path, "/index.html") == (tmp_path / "index.html").resolve()

    def test_missing_file(self, tmp_path):
        assert resolve_static(tmp_path, "/settings") is None

    def test_directory_is_not_served(self, tmp_path):
        (tmp_path / "assets").mkdir()

        assert resolve_static(tmp_path, "/assets") is None

    def test_path_traversal_is_rejected(self, tmp_path):
        static_dir = tmp_path / "dist"
        static_dir.mkdir()
        (tmp_path / "secret.txt").write_text("nope", encoding="utf-8")

        assert resolve_static(static_dir, "/../secret.txt") is None

    def test_no_static_dir(self):
        assert resolve_static(None, "/index.html") is None


class TestParseArgsUnit:
    def test_defaults(self, monkeypatch):
        for name in ("HOST", "PORT", "STATIC_DIR", "LOG_LEVEL"):
            monkeypatch.delenv(name, raising=False)

        args = parse_args([])

        assert args.host == "0.0.0.0"
        assert args.port == 8080
        assert args.static_dir == Path("dist")
        assert args.log_level == "INFO"

    def test_overrides(self):
        args = parse_args(["--port", "3000", "--static-dir", "build", "--log-level", "DEBUG"])

        assert args.port == 3000
        assert args.static_dir == Path("build")
        assert args.log_level == "DEBUG"
