"""
Configuration Management System for Atelier

This module provides a centralized configuration system that supports a 4-tier
precedence hierarchy: environment → project → user → system defaults.
"""

import logging
import os
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional
from urllib.parse import urlsplit

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

logger = logging.getLogger(__name__)


class ValidationLevel(Enum):
    """Configuration validation strictness levels"""
    STRICT = "strict"      # Fail fast on validation errors
    LENIENT = "lenient"    # Log warnings, use defaults


class AccessGateConfig(BaseModel):
    """Remote access gate resolution settings"""
    model_config = ConfigDict(extra='forbid')

    validation_token: str = Field(default="", description="Token the resolver must echo back")
    host_endpoint: str = Field(default="", description="Resolver endpoint URL")
    auth_secret: str = Field(default="", description="Shared secret sent as the 'p' parameter")

    # Persisted record keys
    cached_url_key: str = Field(default="storedTrustedURL", min_length=1, description="Settings key for the destination")
    cached_token_key: str = Field(default="storedVerificationToken", min_length=1, description="Secret key for the token")

    # Retry policy
    backoff_base: float = Field(default=2.0, gt=1.0, le=10.0, description="Exponential backoff base (seconds)")
    backoff_max_exponent: int = Field(default=6, ge=1, le=16, description="Exponent ceiling")
    backoff_cap_seconds: float = Field(default=30.0, ge=1.0, le=3600.0, description="Max delay between attempts")
    request_timeout: Optional[float] = Field(default=None, gt=0.0, le=300.0, description="Per-request timeout, None for client default")


class DeviceConfig(BaseModel):
    """Overrides for the detected device profile"""
    model_config = ConfigDict(extra='forbid')

    os_description: Optional[str] = Field(default=None, description="Platform name and version")
    locale: Optional[str] = Field(default=None, description="Preferred language code")
    device_model: Optional[str] = Field(default=None, description="Hardware model identifier")
    country: Optional[str] = Field(default=None, description="Region code")


class StorageConfig(BaseModel):
    """Local persistence layout"""
    model_config = ConfigDict(extra='forbid')

    data_dir: str = Field(default="data", description="Root directory for local databases")
    settings_db: str = Field(default="settings.duckdb", description="Plain settings database file")
    secrets_db: str = Field(default="secrets.duckdb", description="Encrypted secrets database file")
    secret_key_file: str = Field(default="secret.key", description="Fernet key file")
    inventory_db: str = Field(default="inventory.duckdb", description="Inventory records database file")
    seed_sample_data: bool = Field(default=True, description="Seed sample records into an empty inventory")

    def path_for(self, name: str) -> Path:
        return Path(self.data_dir) / name


class LoggingConfig(BaseModel):
    """Logging Configuration"""
    model_config = ConfigDict(extra='forbid')

    level: str = Field(default="DEBUG", description="File log level")
    console_level: str = Field(default="WARNING", description="Console log level")
    log_dir: str = Field(default="data/logs", description="Directory for rotating log files")


class SystemConfig(BaseModel):
    """Complete system configuration"""
    model_config = ConfigDict(extra='forbid')

    access: AccessGateConfig = Field(default_factory=AccessGateConfig)
    device: DeviceConfig = Field(default_factory=DeviceConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    # Metadata
    schema_version: int = Field(default=1, description="Configuration schema version")


# Environment variable → (section, key, type)
ENV_OVERRIDES: Dict[str, tuple[str, str, type]] = {
    'ATELIER_GATE_TOKEN': ('access', 'validation_token', str),
    'ATELIER_GATE_ENDPOINT': ('access', 'host_endpoint', str),
    'ATELIER_GATE_SECRET': ('access', 'auth_secret', str),
    'ATELIER_GATE_TIMEOUT': ('access', 'request_timeout', float),
    'ATELIER_LOCALE': ('device', 'locale', str),
    'ATELIER_COUNTRY': ('device', 'country', str),
    'ATELIER_DATA_DIR': ('storage', 'data_dir', str),
    'LOG_LEVEL': ('logging', 'level', str),
}


class ConfigManager:
    """Centralized configuration manager with 4-tier precedence hierarchy"""

    def __init__(self, project_root: Optional[Path] = None):
        self.project_root = project_root or Path.cwd()
        self.config_dir = self.project_root / "atelier" / "shared" / "config" / "settings"
        self._system_config: Optional[SystemConfig] = None
        self._user_config: Optional[Dict[str, Any]] = None
        self._project_config: Optional[Dict[str, Any]] = None

        self.config_dir.mkdir(parents=True, exist_ok=True)

    def _load_yaml_file(self, file_path: Path) -> Dict[str, Any]:
        """Load YAML configuration file"""
        if not file_path.exists():
            return {}

        try:
            with open(file_path, 'r', encoding='utf-8') as f:
                return yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            logger.warning(f"Failed to load {file_path}: {e}")
            return {}

    def _save_yaml_file(self, file_path: Path, data: Dict[str, Any]) -> bool:
        """Save configuration to YAML file"""
        try:
            with open(file_path, 'w', encoding='utf-8') as f:
                yaml.dump(data, f, default_flow_style=False, sort_keys=False, indent=2)
            return True
        except OSError as e:
            logger.error(f"Failed to save {file_path}: {e}")
            return False

    def _load_system_defaults(self) -> SystemConfig:
        """Load system default configuration"""
        if self._system_config is None:
            defaults_dict = self._load_yaml_file(self.config_dir / "defaults.yaml")
            try:
                self._system_config = SystemConfig(**defaults_dict)
            except ValidationError as e:
                logger.warning(f"System defaults validation failed: {e}")
                self._system_config = SystemConfig()

        return self._system_config

    def _load_user_config(self) -> Dict[str, Any]:
        """Load user-level configuration"""
        if self._user_config is None:
            self._user_config = self._load_yaml_file(self.config_dir / "user.yaml")
        return self._user_config

    def _load_project_config(self) -> Dict[str, Any]:
        """Load project-specific configuration"""
        if self._project_config is None:
            self._project_config = self._load_yaml_file(self.config_dir / "project.yaml")
        return self._project_config

    def _merge_configs(self) -> Dict[str, Any]:
        """Merge configurations with precedence: env → project → user → system"""
        merged = self._load_system_defaults().model_dump()
        self._deep_merge(merged, self._load_user_config())
        self._deep_merge(merged, self._load_project_config())
        self._deep_merge(merged, self._get_env_overrides())
        return merged

    def _deep_merge(self, base: Dict[str, Any], updates: Dict[str, Any]) -> None:
        """Deep merge configuration dictionaries"""
        for key, value in updates.items():
            if key in base and isinstance(base[key], dict) and isinstance(value, dict):
                self._deep_merge(base[key], value)
            else:
                base[key] = value

    def _get_env_overrides(self) -> Dict[str, Any]:
        """Extract configuration overrides from environment variables"""
        overrides: Dict[str, Any] = {}
        for env_key, (section, config_key, value_type) in ENV_OVERRIDES.items():
            value = os.getenv(env_key)
            if value is None:
                continue
            if value_type is float:
                try:
                    converted: Any = float(value)
                except ValueError:
                    logger.warning(f"Ignoring non-numeric {env_key}={value!r}")
                    continue
            else:
                converted = value
            overrides.setdefault(section, {})[config_key] = converted

        return overrides

    def get_config(self, validation_level: ValidationLevel = ValidationLevel.STRICT) -> SystemConfig:
        """Get merged configuration with validation"""
        merged_config = self._merge_configs()

        try:
            return SystemConfig(**merged_config)
        except ValidationError as e:
            if validation_level == ValidationLevel.STRICT:
                raise ValueError(f"Configuration validation failed: {e}") from e
            logger.warning(f"Configuration validation failed, using defaults: {e}")
            return SystemConfig()

    def save_project_config(self, config_updates: Dict[str, Any]) -> bool:
        """Save project-specific configuration updates"""
        project_path = self.config_dir / "project.yaml"
        existing_config = self._load_yaml_file(project_path)
        self._deep_merge(existing_config, config_updates)

        success = self._save_yaml_file(project_path, existing_config)
        if success:
            self._project_config = None

        return success

    def reload_config(self) -> None:
        """Clear cached configurations and reload from files"""
        self._system_config = None
        self._user_config = None
        self._project_config = None


# Global instance
_config_manager: Optional[ConfigManager] = None


def get_config_manager(project_root: Optional[Path] = None) -> ConfigManager:
    """Get global configuration manager instance"""
    global _config_manager
    if _config_manager is None or project_root is not None:
        _config_manager = ConfigManager(project_root)
    return _config_manager


def get_config(validation_level: ValidationLevel = ValidationLevel.STRICT) -> SystemConfig:
    """Get current system configuration"""
    return get_config_manager().get_config(validation_level)


def validate_critical_config(config: SystemConfig) -> bool:
    """Validate the access gate parameters that would otherwise end in a fallback."""
    access = config.access
    critical_checks = [
        _validate_endpoint(access.host_endpoint),
        bool(access.validation_token.strip()),
        bool(access.auth_secret.strip()),
    ]
    return all(critical_checks)


def _validate_endpoint(endpoint: str) -> bool:
    """Endpoint must be an absolute http(s) URL with a host."""
    try:
        parts = urlsplit(endpoint)
    except ValueError:
        return False
    return parts.scheme in ("http", "https") and bool(parts.hostname)
