"""Configuration for the rserve issuer and server.

Configuration is read once at startup from an optional ``config.yaml`` and
then overridden by ``RSERVE_*`` environment variables.
"""

import dataclasses
import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Self

import yaml
from mashumaro.config import BaseConfig
from mashumaro.exceptions import ExtraKeysError, InvalidFieldValue, MissingField
from mashumaro.mixins.yaml import DataClassYAMLMixin

from rserve.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_PORT = 8090
DEFAULT_CONFIG_DIR = "config"
CONFIG_FILE = "config.yaml"

# Field name to environment variable for string settings.
_STR_ENV_VARS = {
    "host": "RSERVE_HOST",
    "scheme": "RSERVE_SCHEME",
    "listen_host": "RSERVE_LISTEN_HOST",
    "remote": "RSERVE_REMOTE",
    "public_key": "RSERVE_PUBLIC_KEY",
    "private_key": "RSERVE_PRIVATE_KEY",
}
PORT_ENV_VAR = "RSERVE_PORT"
BIND_REMOTE_ENV_VAR = "RSERVE_BIND_REMOTE"
REMOTE_ROOT_ENV_VAR = "RSERVE_REMOTE_ROOT"

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off", ""}


@dataclass(frozen=True)
class RserveConfig(DataClassYAMLMixin):
    """Process-wide configuration shared by the issuer and the server."""

    host: str = ""
    """Public host (and optional port) that signed URLs point at."""

    scheme: str = "https"
    """URL scheme of signed URLs."""

    listen_host: str = "0.0.0.0"
    """Interface the server binds to."""

    port: int = DEFAULT_PORT
    """Port the server listens on."""

    remote: str = ""
    """Name of the remote that files are served from."""

    public_key: str = ""
    """Base64url Ed25519 public key used by the server."""

    private_key: str = ""
    """Base64url Ed25519 private key used by the issuer."""

    bind_remote: bool = False
    """Whether the remote name is part of the signed message."""

    remotes: dict[str, str] = field(default_factory=dict)
    """Local root directory for each remote name."""

    class Config(BaseConfig):
        forbid_extra_keys = True

    @property
    def base_url(self) -> str:
        """Scheme and host prefix of signed URLs."""
        return f"{self.scheme}://{self.host}"

    @classmethod
    def load(cls, config_dir: Path | str | None = None) -> Self:
        """Load configuration from ``config_dir`` and the environment.

        The config file is optional. Nothing is written back to disk.
        """
        if config_dir is None:
            config_dir = os.getenv("RSERVE_CONFIG_DIR", DEFAULT_CONFIG_DIR)
        config_file = Path(config_dir) / CONFIG_FILE

        config = cls()
        if config_file.exists():
            logger.debug("Loading configuration from %s", config_file)
            try:
                text = config_file.read_text()
                if text.strip():
                    config = cls.from_yaml(text)
            except yaml.YAMLError as err:
                raise ConfigurationError(f"Invalid YAML in {config_file}: {err}") from err
            except (
                ExtraKeysError,
                MissingField,
                InvalidFieldValue,
                AttributeError,
                TypeError,
                ValueError,
            ) as err:
                raise ConfigurationError(f"Invalid configuration in {config_file}: {err}") from err
        return config.with_env_overrides(os.environ)

    def with_env_overrides(self, environ: Mapping[str, str]) -> Self:
        """Return a copy with ``RSERVE_*`` environment variables applied."""
        changes: dict[str, object] = {}
        for name, env_var in _STR_ENV_VARS.items():
            if (value := environ.get(env_var)) is not None:
                changes[name] = value

        if (port := environ.get(PORT_ENV_VAR)) is not None:
            try:
                changes["port"] = int(port)
            except ValueError as err:
                raise ConfigurationError(
                    f"{PORT_ENV_VAR} must be an integer, got {port!r}"
                ) from err

        if (bind := environ.get(BIND_REMOTE_ENV_VAR)) is not None:
            if bind.lower() in _TRUE_VALUES:
                changes["bind_remote"] = True
            elif bind.lower() in _FALSE_VALUES:
                changes["bind_remote"] = False
            else:
                raise ConfigurationError(
                    f"{BIND_REMOTE_ENV_VAR} must be a boolean, got {bind!r}"
                )

        if (root := environ.get(REMOTE_ROOT_ENV_VAR)) is not None:
            remote = str(changes.get("remote", self.remote))
            if not remote:
                raise ConfigurationError(
                    f"{REMOTE_ROOT_ENV_VAR} requires RSERVE_REMOTE to be set"
                )
            changes["remotes"] = {**self.remotes, remote: root}

        return dataclasses.replace(self, **changes)

    def _require(self, *names: str) -> None:
        for name in names:
            if not getattr(self, name):
                raise ConfigurationError(
                    f"Missing required configuration: {_STR_ENV_VARS[name]}"
                )
        if "|" in self.remote:
            raise ConfigurationError("RSERVE_REMOTE cannot contain '|'")

    def require_server(self) -> None:
        """Validate the settings the server needs to start."""
        self._require("host", "public_key", "remote")

    def require_storage_root(self) -> str:
        """Return the local root directory of the served remote."""
        if (root := self.remotes.get(self.remote)) is None:
            raise ConfigurationError(
                f"No storage root configured for remote '{self.remote}' "
                f"(set {REMOTE_ROOT_ENV_VAR} or 'remotes' in {CONFIG_FILE})"
            )
        return root

    def require_issuer(self) -> None:
        """Validate the settings the issuer needs to sign URLs."""
        self._require("host", "private_key", "remote")
