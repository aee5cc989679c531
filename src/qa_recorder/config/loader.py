"""
Config Loader - Build Settings from a YAML file, the environment and CLI overrides.

Lookup order for the file: an explicit path, then ``QA_RECORDER_CONFIG``,
then ``qa-recorder.yaml`` in the working directory, then the user config
directory. Environment variables fill anything the file leaves out, and
CLI overrides win over both.
"""

import os
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml
from dotenv import load_dotenv
from pydantic import ValidationError

from qa_recorder.config.settings import Settings
from qa_recorder.exceptions import ConfigurationError

CONFIG_ENV_VAR = "QA_RECORDER_CONFIG"
ENV_FILES = (Path(".env"), Path(".env.local"))


class ConfigLoader:
    """
    Resolve and read the recorder configuration.

    Example:
        >>> loader = ConfigLoader("ci.yaml")
        >>> settings = loader.load(overrides={"replay": {"speed": "fast"}})
        >>> loader.source
        PosixPath('ci.yaml')
    """

    SEARCH_PATHS: List[Path] = [
        Path("qa-recorder.yaml"),
        Path("qa-recorder.yml"),
        Path.home() / ".config" / "qa-recorder" / "config.yaml",
    ]

    def __init__(self, config_path: Optional[Union[str, Path]] = None):
        self.config_path = Path(config_path) if config_path else None
        self.source: Optional[Path] = None

    def find_config_file(self) -> Optional[Path]:
        """
        Pick the config file to read.

        Raises:
            ConfigurationError: If an explicitly named file does not exist
        """
        explicit = self.config_path or (Path(os.environ[CONFIG_ENV_VAR]) if os.environ.get(CONFIG_ENV_VAR) else None)
        if explicit is not None:
            if not explicit.is_file():
                raise ConfigurationError(f"Config file not found: {explicit}", {"path": str(explicit)})
            return explicit
        return next((path for path in self.SEARCH_PATHS if path.is_file()), None)

    def read_file(self, path: Path) -> Dict[str, Any]:
        """Parse a YAML config file into a mapping (empty files give {})."""
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in {path}: {e}", {"path": str(path)}) from e
        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigurationError(f"Config file {path} must contain a mapping", {"path": str(path)})
        return data

    def load(
        self,
        env_file: Optional[Union[str, Path]] = None,
        overrides: Optional[Dict[str, Any]] = None,
    ) -> Settings:
        """
        Build the settings.

        Args:
            env_file: .env file to load first (defaults to ./.env or ./.env.local)
            overrides: Nested values applied last

        Raises:
            ConfigurationError: If the file is unreadable or a value fails validation
        """
        if env_file:
            load_dotenv(env_file)
        else:
            found = next((path for path in ENV_FILES if path.exists()), None)
            if found is not None:
                load_dotenv(found)

        self.source = self.find_config_file()
        file_values = self.read_file(self.source) if self.source else {}

        try:
            settings = Settings(**file_values)
            if overrides:
                settings = settings.merge_with(overrides)
        except ValidationError as e:
            where = str(self.source) if self.source else "environment"
            raise ConfigurationError(f"Invalid configuration ({where}): {e}", {"source": where}) from e
        return settings


def load_config(
    config_path: Optional[Union[str, Path]] = None,
    env_file: Optional[Union[str, Path]] = None,
    **overrides: Any,
) -> Settings:
    """
    Load settings in one call.

    Example:
        >>> settings = load_config()
        >>> settings = load_config("ci.yaml", replay={"timeout_ms": 10000})
    """
    return ConfigLoader(config_path).load(env_file=env_file, overrides=overrides or None)
