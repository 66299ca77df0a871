"""
Configuration management.

Loads from: environment variables > .env files > settings.json > defaults
Project-root files are read first, ~/.notescribe/ files override them.
"""

from pathlib import Path
from typing import Dict, Optional
import json
import os

from .types import NATIVE, PLATFORMS


# Credential names the rest of the package asks for
OPENAI_API_KEY = "OPENAI_API_KEY"
OPENAI_API_URL = "OPENAI_API_URL"
GEMINI_API_KEY = "GEMINI_API_KEY"
GEMINI_API_URL = "GEMINI_API_URL"

CREDENTIAL_NAMES = (OPENAI_API_KEY, OPENAI_API_URL, GEMINI_API_KEY, GEMINI_API_URL)

# Non-secret defaults shipped with the app
DEFAULT_URLS = {
    OPENAI_API_URL: "https://api.openai.com/v1",
    GEMINI_API_URL: "https://generativelanguage.googleapis.com/v1beta",
}

# Defaults
DEFAULT_CONFIG = {
    "platform": NATIVE,
    "proxy_url": "http://localhost:3001",

    # Providers
    "whisper_model": "whisper-1",
    "whisper_language": "en",
    "gemini_model": "gemini-2.0-flash",

    # Timeouts (seconds)
    "native_timeout": 30.0,
    "proxy_timeout": 60.0,

    # Diagnostics
    "debug": False,
    "metrics_enabled": True,
}


class Config:
    """
    Single source of truth for all settings.

    Usage:
        config = Config.load()
        context = ScribeContext.create(config)
    """

    def __init__(self, home: Optional[Path] = None):
        self.platform: str = NATIVE
        self.proxy_url: str = "http://localhost:3001"

        # Providers
        self.whisper_model: str = "whisper-1"
        self.whisper_language: str = "en"
        self.gemini_model: str = "gemini-2.0-flash"

        # Timeouts
        self.native_timeout: float = 30.0
        self.proxy_timeout: float = 60.0

        # Diagnostics
        self.debug: bool = False
        self.metrics_enabled: bool = True

        # Bundled credentials (settings.json "credentials" block, .env, environment)
        self.credentials: Dict[str, str] = {}

        # Paths
        if home is None:
            home = Path(os.getenv("NOTESCRIBE_HOME", Path.home() / ".notescribe"))
        self.data_dir: Path = Path(home)
        self.settings_file: Path = self.data_dir / "settings.json"
        self.env_file: Path = self.data_dir / ".env"
        self.secure_store_file: Path = self.data_dir / "secure_store.json"
        self.dev_credentials_file: Path = Path(
            os.getenv("NOTESCRIBE_DEV_CREDENTIALS", self.data_dir / "dev_credentials.json")
        )
        self.recordings_dir: Path = self.data_dir / "recordings"
        self.notes_file: Path = self.data_dir / "notes.json"
        self.metrics_file: Path = self.data_dir / "metrics.jsonl"

    @classmethod
    def load(cls, home: Optional[Path] = None, project_dir: Path = Path(".")) -> "Config":
        """Load configuration from all sources."""
        config = cls(home)
        config._ensure_data_dir()
        config._load_settings(project_dir)
        config._load_env(project_dir)
        return config

    @property
    def is_web(self) -> bool:
        return self.platform != NATIVE

    @property
    def timeout(self) -> float:
        """Provider timeout for the configured platform."""
        return self.proxy_timeout if self.is_web else self.native_timeout

    def _ensure_data_dir(self) -> None:
        """Create data directory if it doesn't exist."""
        self.data_dir.mkdir(parents=True, exist_ok=True)

    def _load_settings(self, project_dir: Path) -> None:
        """Load settings from settings.json (project root, then data dir)."""
        project_settings = project_dir / "settings.json"
        if project_settings.exists():
            self._apply_settings_file(project_settings)

        if self.settings_file.exists():
            self._apply_settings_file(self.settings_file)

    def _apply_settings_file(self, settings_file: Path) -> None:
        """Apply settings from a JSON file."""
        try:
            with open(settings_file) as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            print(f"[config] Error loading {settings_file}: {e}")
            return

        for key, default in DEFAULT_CONFIG.items():
            if key not in data:
                continue
            if isinstance(default, bool):
                value = data[key]
                if isinstance(value, str):
                    value = value.strip().lower() in ("1", "true", "yes")
                setattr(self, key, bool(value))
            else:
                setattr(self, key, type(default)(data[key]))

        for name, value in (data.get("credentials") or {}).items():
            if value:
                self.credentials[name] = str(value)

        if "recordings_dir" in data:
            self.recordings_dir = Path(data["recordings_dir"]).expanduser()
        if "notes_file" in data:
            self.notes_file = Path(data["notes_file"]).expanduser()

        if self.platform not in PLATFORMS:
            print(f"[config] Unknown platform {self.platform!r}, using native")
            self.platform = NATIVE

    def _load_env(self, project_dir: Path) -> None:
        """Load credentials from .env files and the environment."""
        project_env = project_dir / ".env"
        if project_env.exists():
            self._parse_env_file(project_env)

        if self.env_file.exists():
            self._parse_env_file(self.env_file)

        # Environment variables override file values
        for name in CREDENTIAL_NAMES:
            value = os.getenv(name)
            if value:
                self.credentials[name] = value

    def _parse_env_file(self, env_file: Path) -> None:
        """Parse a .env file and keep the credential entries."""
        try:
            for key, value in parse_env_lines(env_file.read_text()).items():
                if key in CREDENTIAL_NAMES and value:
                    self.credentials[key] = value
        except OSError as e:
            print(f"[config] Error loading {env_file}: {e}")


def parse_env_lines(text: str) -> Dict[str, str]:
    """Parse KEY=value lines, skipping blanks and comments."""
    values = {}
    for line in text.splitlines():
        line = line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, value = line.split("=", 1)
        values[key.strip()] = value.strip().strip("'\"")
    return values
