"""
Configuration loader for session parameters.

This module handles loading and parsing of YAML configuration files into
SessionParams, the session mode and the log settings.
"""
import os
from pathlib import Path
from typing import Any, Optional

import yaml

from ..core.data.data_structures import SessionParams
from ..core.data.net_enums import SessionMode
from .managers.log_manager import LogLevel, LogManager

DEFAULT_CONFIG_PATH = "assets/config/session.yaml"

# YAML key -> SessionParams field, per section
SESSION_FIELDS = {
    'host': 'host',
    'port': 'port',
    'uuid': 'uuid',
    'max_connections': 'max_connections',
    'backlog': 'backlog',
    'tick_rate': 'tick_rate',
}
TIMEOUT_FIELDS = {
    'connect': 'connect_timeout',
    'send': 'send_timeout',
    'poll': 'poll_interval',
}
POLICY_FIELDS = {
    'enabled': 'enable_policy_server',
    'port': 'policy_port',
}


class SessionConfigLoader:
    """Loads session configuration from YAML files."""

    def __init__(self, config_path: Optional[str] = None, log_manager: Optional[LogManager] = None):
        self.config_path = config_path or DEFAULT_CONFIG_PATH
        self.log_manager = log_manager
        self._config: dict[str, Any] = {}

    def _resolve_path(self) -> Path:
        if os.path.isabs(self.config_path):
            return Path(self.config_path)
        # Relative paths are taken from the project root
        project_root = Path(__file__).parent.parent.parent
        return project_root / self.config_path

    def _warn(self, message: str) -> None:
        if self.log_manager is not None:
            self.log_manager.warning(message)

    def load_config(self) -> bool:
        """
        Load configuration from the YAML file.

        A missing file leaves the defaults in place.

        Returns:
            bool: True if a config file was loaded

        Raises:
            ValueError: If the file is not valid YAML or not a mapping
        """
        config_file = self._resolve_path()
        if not config_file.exists():
            self._warn(f"Session config file not found: {config_file}")
            self._config = {}
            return False

        try:
            with open(config_file, 'r', encoding='utf-8') as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ValueError(f"Failed to parse YAML session config: {e}") from e

        if not isinstance(data, dict):
            raise ValueError(f"Session config must be a mapping, got {type(data).__name__}")

        self._config = data
        return True

    def _section(self, name: str) -> dict[str, Any]:
        section = self._config.get(name) or {}
        if not isinstance(section, dict):
            raise ValueError(f"Config section '{name}' must be a mapping")
        return section

    def get_mode(self, default: SessionMode = SessionMode.SERVER) -> SessionMode:
        """Session mode from ``session.mode`` ("server" or "client")."""
        mode_name = self._section('session').get('mode')
        if mode_name is None:
            return default
        try:
            return SessionMode[str(mode_name).upper()]
        except KeyError:
            raise ValueError(f"Unknown session mode '{mode_name}'") from None

    def get_params(self, **overrides: Any) -> SessionParams:
        """
        Build SessionParams from the loaded config.

        Args:
            **overrides: Field values that win over the file

        Raises:
            ValueError: If a value is out of range or a key is unknown
        """
        values: dict[str, Any] = {}
        for section_name, fields in (
            ('session', SESSION_FIELDS),
            ('timeouts', TIMEOUT_FIELDS),
            ('policy', POLICY_FIELDS),
        ):
            for key, value in self._section(section_name).items():
                if key == 'mode' and section_name == 'session':
                    continue
                if key not in fields:
                    raise ValueError(f"Unknown key '{key}' in config section '{section_name}'")
                values[fields[key]] = value

        values.update(overrides)
        try:
            return SessionParams(**values)
        except TypeError as e:
            raise ValueError(f"Invalid session parameters: {e}") from e

    def create_log_manager(self, name: str = "peerlink") -> LogManager:
        """Create a LogManager configured from the ``logging`` section."""
        section = self._section('logging')
        level_name = str(section.get('level', 'info')).upper()
        try:
            level = LogLevel[level_name]
        except KeyError:
            raise ValueError(f"Unknown log level '{level_name}'") from None

        return LogManager(
            name=name,
            max_messages=int(section.get('max_messages', 1000)),
            default_level=level,
            echo=bool(section.get('echo', False)),
        )

    @classmethod
    def load_params(cls, config_path: Optional[str] = None, **overrides: Any) -> SessionParams:
        """Load a config file and build SessionParams in one step."""
        loader = cls(config_path)
        loader.load_config()
        return loader.get_params(**overrides)
