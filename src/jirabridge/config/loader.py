"""
Configuration Loader.

Reads the YAML configuration, expands environment references, applies
JIRABRIDGE_* overrides and credential fallbacks, then validates the result
into a JirabridgeConfig.

Processing order for a file:
    .env -> YAML -> ${VAR} expansion -> overrides -> credentials -> validation
"""

import os
import re
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from jirabridge.config.environment import EnvironmentConfig, load_environment
from jirabridge.config.models import JirabridgeConfig
from jirabridge.errors import ConfigError

# Searched in order when no path is given
DEFAULT_CONFIG_PATHS = [
    "jirabridge.yml",
    "jirabridge.yaml",
    "config/jirabridge.yml",
    "config/jirabridge.yaml",
]

CONFIG_ENV_VAR = "JIRABRIDGE_CONFIG"

# Environment variable -> dotted config path
ENV_VAR_OVERRIDES = {
    "JIRABRIDGE_LOG_LEVEL": "logging.level",
    "JIRABRIDGE_TEMPLATE": "template",
    "JIRABRIDGE_HTTP_TIMEOUT": "http.timeout_seconds",
}

# Number of validation errors spelled out in messages
_MAX_LISTED_ERRORS = 5

_INT = re.compile(r"[-+]?\d+")
_FLOAT = re.compile(r"[-+]?(\d+\.\d*|\.\d+)")


class ConfigurationError(ConfigError):
    """Raised when a configuration file cannot be loaded or validated.

    Attributes:
        errors: Pydantic error dicts, when validation failed
        path: Offending file, when known
    """

    def __init__(
        self,
        message: str,
        errors: list[dict] | None = None,
        path: Path | None = None,
    ) -> None:
        super().__init__(message)
        self.errors = errors or []
        self.path = path

    def __str__(self) -> str:
        lines = [super().__str__()]
        if self.path:
            lines[0] += f" (file: {self.path})"
        for err in self.errors[:_MAX_LISTED_ERRORS]:
            location = ".".join(str(part) for part in err.get("loc", ()))
            lines.append(f"  - {location}: {err.get('msg', 'invalid')}")
        hidden = len(self.errors) - _MAX_LISTED_ERRORS
        if hidden > 0:
            lines.append(f"  ... and {hidden} more errors")
        return "\n".join(lines)


def _coerce(value: str) -> Any:
    """Turn an environment string into bool, int, float or str."""
    if value == "":
        return None
    lowered = value.lower()
    if lowered in ("true", "yes", "on"):
        return True
    if lowered in ("false", "no", "off"):
        return False
    if _INT.fullmatch(value):
        return int(value)
    if _FLOAT.fullmatch(value):
        return float(value)
    return value


class ConfigLoader:
    """Loads jirabridge configuration from YAML.

    Supports:
    - ${VAR}, ${VAR:-default} and ${VAR:default} references in any string
    - JIRABRIDGE_* overrides (see ENV_VAR_OVERRIDES)
    - JIRA_USER / JIRA_PASSWORD as default receiver credentials
    - Template paths relative to the configuration file
    - Reloading from the same path

    Usage:
        loader = ConfigLoader("jirabridge.yml")
        config = loader.load()

        # Discover via JIRABRIDGE_CONFIG or DEFAULT_CONFIG_PATHS
        config = ConfigLoader().load_from_env()
    """

    ENV_PATTERN = re.compile(r"\$\{(\w+)(?::-?([^}]*))?\}")

    def __init__(
        self,
        config_path: str | Path | None = None,
        env_file: str = ".env",
    ) -> None:
        """Initialize the config loader.

        Args:
            config_path: YAML file; omit to use load_from_env()
            env_file: .env file consulted before loading
        """
        self._config_path = Path(config_path) if config_path else None
        self._env_file = env_file
        self._config: JirabridgeConfig | None = None
        self._loaded_from_path: Path | None = None

    @property
    def config_path(self) -> Path | None:
        """Configured file path."""
        return self._config_path

    @property
    def loaded_from_path(self) -> Path | None:
        """Path of the last successful load."""
        return self._loaded_from_path

    @property
    def config(self) -> JirabridgeConfig | None:
        """Last successfully loaded configuration."""
        return self._config

    def load(self, path: str | Path | None = None) -> JirabridgeConfig:
        """Load and validate a configuration file.

        Args:
            path: File to load instead of the configured one

        Returns:
            Validated JirabridgeConfig

        Raises:
            ConfigurationError: If the file is malformed or invalid
            FileNotFoundError: If the file does not exist
        """
        if path is not None:
            self._config_path = Path(path)
        if self._config_path is None:
            raise ConfigurationError("No configuration path given")

        env = load_environment(self._env_file)
        raw = self._expand(self._read_yaml(self._config_path))
        self._apply_env_overrides(raw)
        self._apply_credentials(raw, env)
        self._resolve_template_path(raw)

        try:
            config = JirabridgeConfig(**raw)
        except ValidationError as e:
            raise ConfigurationError(
                f"Configuration validation failed: {e.error_count()} errors",
                errors=e.errors(),
                path=self._config_path,
            ) from e

        self._config = config
        self._loaded_from_path = self._config_path
        return config

    def load_from_env(self) -> JirabridgeConfig:
        """Discover and load the configuration file.

        JIRABRIDGE_CONFIG wins; otherwise DEFAULT_CONFIG_PATHS are tried
        relative to the working directory.

        Raises:
            ConfigurationError: If the file is invalid
            FileNotFoundError: If no configuration file exists
        """
        load_environment(self._env_file)

        explicit = os.environ.get(CONFIG_ENV_VAR)
        if explicit:
            if not Path(explicit).exists():
                raise FileNotFoundError(
                    f"Config file specified by {CONFIG_ENV_VAR} not found: {explicit}"
                )
            return self.load(explicit)

        for candidate in DEFAULT_CONFIG_PATHS:
            if Path(candidate).exists():
                return self.load(candidate)

        raise FileNotFoundError(
            f"No configuration file found. Searched: {', '.join(DEFAULT_CONFIG_PATHS)}. "
            f"Set {CONFIG_ENV_VAR} or create one of them."
        )

    def reload(self) -> JirabridgeConfig:
        """Load again from the last used path.

        ``config`` keeps the previous configuration if this fails.

        Raises:
            RuntimeError: If there is no path to reload from
            ConfigurationError: If the file is now invalid
        """
        path = self._loaded_from_path or self._config_path
        if path is None:
            raise RuntimeError(
                "Cannot reload: no configuration path. Call load() or load_from_env() first."
            )
        return self.load(path)

    @staticmethod
    def _read_yaml(path: Path) -> dict[str, Any]:
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")
        try:
            with open(path) as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML: {e}", path=path) from e
        if not isinstance(data, dict):
            raise ConfigurationError("Configuration must be a mapping", path=path)
        return data

    def _expand(self, node: Any) -> Any:
        """Expand ${VAR} references in every string of a YAML tree."""
        if isinstance(node, dict):
            return {key: self._expand(value) for key, value in node.items()}
        if isinstance(node, list):
            return [self._expand(item) for item in node]
        if isinstance(node, str):
            return self._expand_string(node)
        return node

    def _expand_string(self, value: str) -> Any:
        """Expand references in one string.

        A string consisting of a single reference takes the type of the
        resolved value; embedded references are replaced as text. References
        with neither a value nor a default stay as written.
        """
        whole = self.ENV_PATTERN.fullmatch(value)
        if whole:
            resolved = os.environ.get(whole.group(1), whole.group(2))
            return value if resolved is None else _coerce(resolved)

        def substitute(match: re.Match[str]) -> str:
            resolved = os.environ.get(match.group(1), match.group(2))
            return match.group(0) if resolved is None else resolved

        return self.ENV_PATTERN.sub(substitute, value)

    def _apply_env_overrides(self, raw: dict[str, Any]) -> None:
        for env_var, dotted in ENV_VAR_OVERRIDES.items():
            value = os.environ.get(env_var)
            if value is None:
                continue
            *parents, leaf = dotted.split(".")
            target = raw
            for part in parents:
                if not isinstance(target.get(part), dict):
                    target[part] = {}
                target = target[part]
            target[leaf] = _coerce(value)

    @staticmethod
    def _apply_credentials(raw: dict[str, Any], env: EnvironmentConfig) -> None:
        """Use JIRA_USER / JIRA_PASSWORD where defaults set no credentials."""
        if raw.get("defaults") is None:
            raw["defaults"] = {}
        defaults = raw["defaults"]
        if not isinstance(defaults, dict):
            return
        if env.jira_user and "user" not in defaults:
            defaults["user"] = env.jira_user
        if env.jira_password and "password" not in defaults:
            defaults["password"] = env.jira_password.get_secret_value()

    def _resolve_template_path(self, raw: dict[str, Any]) -> None:
        template = raw.get("template")
        if isinstance(template, str) and template and not Path(template).is_absolute():
            raw["template"] = str(self._config_path.parent / template)


def load_config(
    config_path: str | Path,
    env_file: str = ".env",
) -> JirabridgeConfig:
    """Load configuration from a file.

    Raises:
        ConfigurationError: If config validation fails
        FileNotFoundError: If config file not found
    """
    return ConfigLoader(config_path, env_file).load()
