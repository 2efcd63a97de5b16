"""
Environment Variable Handling.

Reads Jira credentials from the process environment, optionally seeded from a
.env file through python-dotenv. Values already present in the environment
are never replaced by the file.
"""

import os
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, Field, SecretStr

# Environment variables holding fallback Jira credentials
JIRA_USER_VAR = "JIRA_USER"
JIRA_PASSWORD_VAR = "JIRA_PASSWORD"

_dotenv_loaded: bool = False
_config: "EnvironmentConfig | None" = None


def ensure_dotenv_loaded(env_file: str = ".env") -> bool:
    """Load a .env file into os.environ once per process.

    Args:
        env_file: Path to .env file, relative to the working directory

    Returns:
        True if a .env file was found (now or earlier), False otherwise
    """
    global _dotenv_loaded

    if _dotenv_loaded:
        return True
    _dotenv_loaded = True

    env_path = Path(env_file)
    if not env_path.exists():
        return False
    load_dotenv(env_path, override=False)
    return True


class EnvironmentConfig(BaseModel):
    """Credentials taken from the environment.

    Attributes:
        jira_user: Fallback Jira user for receivers without one
        jira_password: Fallback Jira password or API token
        env_file: .env file consulted
    """

    jira_user: str | None = Field(default=None, description="Jira user")
    jira_password: SecretStr | None = Field(
        default=None,
        description="Jira password or API token",
    )
    env_file: str = Field(default=".env", description="Path to .env file")

    @classmethod
    def from_environ(cls, env_file: str = ".env") -> "EnvironmentConfig":
        """Build from os.environ; empty variables count as unset."""
        return cls(
            jira_user=os.environ.get(JIRA_USER_VAR) or None,
            jira_password=os.environ.get(JIRA_PASSWORD_VAR) or None,
            env_file=env_file,
        )


def load_environment(env_file: str = ".env") -> EnvironmentConfig:
    """Load and cache the environment configuration.

    The cache is rebuilt when a different .env file is requested.
    """
    global _config

    ensure_dotenv_loaded(env_file)
    if _config is None or _config.env_file != env_file:
        _config = EnvironmentConfig.from_environ(env_file)
    return _config


def reset_environment() -> None:
    """Forget cached credentials and the .env load state."""
    global _config, _dotenv_loaded
    _config = None
    _dotenv_loaded = False
