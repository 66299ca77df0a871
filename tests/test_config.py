"""
Tests for Config loading and ScribeContext wiring.
"""

import json

import pytest


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    from notescribe.config import CREDENTIAL_NAMES

    for name in CREDENTIAL_NAMES:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.delenv("NOTESCRIBE_DEV_CREDENTIALS", raising=False)


@pytest.fixture
def dirs(tmp_path):
    home = tmp_path / "home"
    project = tmp_path / "project"
    project.mkdir()
    return home, project


class TestConfigLoad:

    def test_defaults(self, dirs):
        from notescribe.config import Config

        home, project = dirs
        config = Config.load(home=home, project_dir=project)

        assert home.is_dir()
        assert config.platform == "native"
        assert config.timeout == 30.0
        assert config.whisper_model == "whisper-1"
        assert config.credentials == {}

    def test_settings_file(self, dirs):
        from notescribe.config import Config

        home, project = dirs
        home.mkdir()
        (home / "settings.json").write_text(json.dumps({
            "platform": "web",
            "proxy_timeout": 45,
            "debug": "yes",
            "credentials": {"GEMINI_API_KEY": "from-settings"},
        }))

        config = Config.load(home=home, project_dir=project)

        assert config.is_web
        assert config.timeout == 45.0
        assert config.debug is True
        assert config.credentials["GEMINI_API_KEY"] == "from-settings"

    def test_home_settings_override_project(self, dirs):
        from notescribe.config import Config

        home, project = dirs
        home.mkdir()
        (project / "settings.json").write_text(json.dumps({"gemini_model": "project-model", "debug": True}))
        (home / "settings.json").write_text(json.dumps({"gemini_model": "home-model"}))

        config = Config.load(home=home, project_dir=project)

        assert config.gemini_model == "home-model"
        assert config.debug is True

    def test_unknown_platform_falls_back(self, dirs):
        from notescribe.config import Config

        home, project = dirs
        home.mkdir()
        (home / "settings.json").write_text(json.dumps({"platform": "toaster"}))

        assert Config.load(home=home, project_dir=project).platform == "native"

    def test_corrupt_settings_ignored(self, dirs, capsys):
        from notescribe.config import Config

        home, project = dirs
        home.mkdir()
        (home / "settings.json").write_text("{broken")

        config = Config.load(home=home, project_dir=project)

        assert config.platform == "native"
        assert "[config] Error loading" in capsys.readouterr().out

    def test_env_file_and_environment(self, dirs, monkeypatch):
        from notescribe.config import Config

        home, project = dirs
        (project / ".env").write_text(
            "# keys\nOPENAI_API_KEY='sk-project'\nGEMINI_API_KEY=gem-project\nUNRELATED=1\n"
        )
        monkeypatch.setenv("GEMINI_API_KEY", "gem-env")

        config = Config.load(home=home, project_dir=project)

        assert config.credentials["OPENAI_API_KEY"] == "sk-project"
        assert config.credentials["GEMINI_API_KEY"] == "gem-env"
        assert "UNRELATED" not in config.credentials

    def test_parse_env_lines(self):
        from notescribe.config import parse_env_lines

        parsed = parse_env_lines('A=1\n\n# comment\nB = "two"\nnot a pair\n')
        assert parsed == {"A": "1", "B": "two"}


class TestScribeContext:

    def _config(self, tmp_path, platform):
        from notescribe.config import Config

        config = Config(home=tmp_path)
        config.platform = platform
        config.metrics_enabled = False
        return config

    def test_native_wiring(self, tmp_path):
        from notescribe.audio import NativeRecorder
        from notescribe.context import ScribeContext
        from notescribe.transport import DirectTransport

        with ScribeContext.create(self._config(tmp_path, "native")) as ctx:
            assert isinstance(ctx.transport, DirectTransport)
            assert isinstance(ctx.recorder, NativeRecorder)
            assert ctx.transport.timeout == 30.0
            assert ctx.transcriber.transport is ctx.transport
            assert ctx.compiler.transport is ctx.transport
            assert ctx.metrics is None

    def test_web_wiring(self, tmp_path):
        from notescribe.audio import BrowserRecorder
        from notescribe.context import ScribeContext
        from notescribe.transport import ProxiedTransport

        with ScribeContext.create(self._config(tmp_path, "web")) as ctx:
            assert isinstance(ctx.transport, ProxiedTransport)
            assert isinstance(ctx.recorder, BrowserRecorder)
            assert ctx.recorder.blobs is ctx.blobs
            assert ctx.transport.blobs is ctx.blobs
            assert ctx.transport.timeout == 60.0
            assert ctx.transport.proxy_url == "http://localhost:3001"

    def test_close_releases_recording(self, tmp_path):
        from notescribe.context import ScribeContext

        ctx = ScribeContext.create(self._config(tmp_path, "web"))
        ctx.recorder.start()
        ctx.recorder.push_chunk(b"audio")

        ctx.close()

        assert not ctx.recorder.is_recording
        assert len(ctx.blobs) == 0
