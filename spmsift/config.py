"""
spmsift/config.py
=================
YAML configuration (.spmsift/config.yaml)

Example:

    format: summary
    severity: warning
    metrics: true
    target: MyLibrary

Precedence: CLI flag > config file > built-in default.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from loguru import logger

from .errors import ConfigError
from .models import OutputFormat, Severity, SwiftPackageCommand


CONFIG_DIR = ".spmsift"
CONFIG_FILE = "config.yaml"


@dataclass
class SpmsiftConfig:
    """CLI defaults loaded from YAML"""
    format: OutputFormat = OutputFormat.JSON
    severity: Severity = Severity.INFO
    verbose: bool = False
    metrics: bool = False
    command: Optional[SwiftPackageCommand] = None
    target: Optional[str] = None
    log_file: Optional[str] = None

    @classmethod
    def load(cls, directory: Optional[Path] = None, path: Optional[Path] = None) -> "SpmsiftConfig":
        """
        Load configuration

        Args:
            directory: where to look for .spmsift/config.yaml (default: cwd)
            path: explicit config file; problems with it raise ConfigError

        Returns:
            SpmsiftConfig (defaults when no file exists)
        """
        explicit = path is not None
        config_file = Path(path) if explicit else Path(directory or Path.cwd()) / CONFIG_DIR / CONFIG_FILE

        if not config_file.exists():
            if explicit:
                raise ConfigError(f"Config file not found: {config_file}")
            return cls()

        try:
            with open(config_file, encoding='utf-8') as f:
                data = yaml.safe_load(f) or {}
            if not isinstance(data, dict):
                raise ConfigError(f"{config_file}: top level must be a mapping")
            return cls.from_dict(data)
        except (OSError, yaml.YAMLError, ConfigError) as exc:
            if explicit:
                if isinstance(exc, ConfigError):
                    raise
                raise ConfigError(f"{config_file}: {exc}") from exc
            logger.warning("Ignoring unusable config {}: {}", config_file, exc)
            return cls()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SpmsiftConfig":
        """Build from parsed YAML, validating enum values"""
        config = cls()
        try:
            if "format" in data:
                config.format = OutputFormat(str(data["format"]).lower())
            if "severity" in data:
                config.severity = Severity(str(data["severity"]).lower())
            if "command" in data and data["command"]:
                config.command = SwiftPackageCommand(str(data["command"]).lower())
        except ValueError as exc:
            raise ConfigError(str(exc)) from exc

        config.verbose = bool(data.get("verbose", False))
        config.metrics = bool(data.get("metrics", False))
        for key in ("target", "log_file"):
            value = data.get(key)
            if value is not None and not isinstance(value, str):
                raise ConfigError(f"{key} must be a string, got {type(value).__name__}")
        config.target = data.get("target") or None
        config.log_file = data.get("log_file") or None
        return config

    def to_dict(self) -> Dict[str, Any]:
        """YAML serialisation"""
        data: Dict[str, Any] = {
            "format": self.format.value,
            "severity": self.severity.value,
            "verbose": self.verbose,
            "metrics": self.metrics,
        }
        if self.command:
            data["command"] = self.command.value
        if self.target:
            data["target"] = self.target
        if self.log_file:
            data["log_file"] = self.log_file
        return data

    def save(self, directory: Path) -> Path:
        """Write .spmsift/config.yaml under ``directory``"""
        config_dir = Path(directory) / CONFIG_DIR
        config_dir.mkdir(parents=True, exist_ok=True)
        config_file = config_dir / CONFIG_FILE

        with open(config_file, 'w', encoding='utf-8') as f:
            yaml.dump(self.to_dict(), f, default_flow_style=False, allow_unicode=True, sort_keys=False)
        return config_file


__all__ = ['SpmsiftConfig', 'CONFIG_DIR', 'CONFIG_FILE']
