"""
Credential resolution with layered, platform-aware sources.

Native:  secure store > bundled config > development credentials file
Web:     bundled config > public environment variables > development credentials file

Nothing secret is embedded in the code. The development file is an explicit,
local-only convenience; without it a missing key is a ConfigurationError.
"""

import json
import os
from pathlib import Path
from typing import Dict, List, Mapping, Optional

from .config import (
    Config, DEFAULT_URLS, OPENAI_API_KEY, OPENAI_API_URL, GEMINI_API_KEY, GEMINI_API_URL,
)
from .errors import ConfigurationError
from .types import NATIVE, ProviderCredentials


PUBLIC_ENV_PREFIX = "NOTESCRIBE_PUBLIC_"


class CredentialSource:
    """One place a credential may live."""

    label: str = "source"

    def get(self, name: str) -> Optional[str]:
        raise NotImplementedError


class MappingSource(CredentialSource):
    """Values bundled with the app configuration."""

    def __init__(self, label: str, values: Mapping[str, str]):
        self.label = label
        self._values = dict(values)

    def get(self, name: str) -> Optional[str]:
        return self._values.get(name) or None


class PublicEnvSource(CredentialSource):
    """Public build-time variables exposed to the web target (NOTESCRIBE_PUBLIC_<NAME>)."""

    label = "public env vars"

    def __init__(self, environ: Optional[Mapping[str, str]] = None, prefix: str = PUBLIC_ENV_PREFIX):
        self._environ = os.environ if environ is None else environ
        self.prefix = prefix

    def get(self, name: str) -> Optional[str]:
        return self._environ.get(f"{self.prefix}{name}") or None


class JsonFileSource(CredentialSource):
    """Read-only JSON object file. A missing file holds nothing."""

    def __init__(self, label: str, path: Path):
        self.label = label
        self.path = Path(path)

    def _read(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        with open(self.path) as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError(f"{self.path} must contain a JSON object")
        return {str(k): str(v) for k, v in data.items() if v}

    def get(self, name: str) -> Optional[str]:
        return self._read().get(name)


class SecureStore(JsonFileSource):
    """
    On-device secret store: a JSON file readable only by the owner.
    """

    def __init__(self, path: Path):
        super().__init__("secure storage", path)

    def set(self, name: str, value: str) -> None:
        data = self._read()
        data[name] = value
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(".tmp")
        # Owner-only from creation; the mode argument does not apply to an existing file
        if tmp_path.exists():
            tmp_path.unlink()
        fd = os.open(tmp_path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "w") as f:
            json.dump(data, f, indent=2)
        os.replace(tmp_path, self.path)


class CredentialResolver:
    """
    Resolves provider keys and URLs.

    One resolver lives in the runtime context; its cache is filled lazily
    on first lookup of each name and updated by save().

    Usage:
        resolver = CredentialResolver.from_config(config)
        key = resolver.resolve("OPENAI_API_KEY")
    """

    def __init__(
        self,
        platform: str,
        bundled: CredentialSource,
        secure_store: Optional[SecureStore] = None,
        public_env: Optional[CredentialSource] = None,
        dev_fallback: Optional[CredentialSource] = None,
    ):
        self.platform = platform
        self.bundled = bundled
        self.secure_store = secure_store
        self.public_env = public_env
        self.dev_fallback = dev_fallback
        self._cache: Dict[str, str] = {}

    @classmethod
    def from_config(cls, config: Config) -> "CredentialResolver":
        bundled = MappingSource("app config", {**DEFAULT_URLS, **config.credentials})
        return cls(
            platform=config.platform,
            bundled=bundled,
            secure_store=SecureStore(config.secure_store_file),
            public_env=PublicEnvSource(),
            dev_fallback=JsonFileSource("development credentials", config.dev_credentials_file),
        )

    @property
    def sources(self) -> List[CredentialSource]:
        """Sources in lookup order for this platform."""
        if self.platform == NATIVE:
            ordered = [self.secure_store, self.bundled, self.dev_fallback]
        else:
            ordered = [self.bundled, self.public_env, self.dev_fallback]
        return [s for s in ordered if s is not None]

    def resolve(self, name: str) -> str:
        """
        Return the first non-empty value for name.

        Raises:
            ConfigurationError: no source has a value
        """
        cached = self._cache.get(name)
        if cached:
            return cached

        for source in self.sources:
            try:
                value = source.get(name)
            except (OSError, ValueError) as e:
                print(f"[credentials] {source.label} error for {name}: {e}")
                continue
            if value:
                print(f"[credentials] Found {name} in {source.label}")
                self._cache[name] = value
                return value

        print(f"[credentials] {name} not found in any source")
        raise ConfigurationError(name)

    def save(self, name: str, value: str) -> None:
        """Store a secret on the device. A warning and no-op on the web target."""
        if self.platform != NATIVE or self.secure_store is None:
            print(f"[credentials] Cannot save {name} on the {self.platform} platform")
            return

        self.secure_store.set(name, value)
        self._cache[name] = value
        print(f"[credentials] Saved {name} to {self.secure_store.label}")

    def clear_cache(self) -> None:
        self._cache.clear()

    def openai_key(self) -> str:
        return self.resolve(OPENAI_API_KEY)

    def openai_url(self) -> str:
        return self.resolve(OPENAI_API_URL).rstrip("/")

    def gemini_key(self) -> str:
        return self.resolve(GEMINI_API_KEY)

    def gemini_url(self) -> str:
        return self.resolve(GEMINI_API_URL).rstrip("/")

    def openai(self) -> ProviderCredentials:
        return ProviderCredentials(api_key=self.openai_key(), base_url=self.openai_url())

    def gemini(self) -> ProviderCredentials:
        return ProviderCredentials(api_key=self.gemini_key(), base_url=self.gemini_url())
