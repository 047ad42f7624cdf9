"""
CLI Configuration Management

Loads the loudbatch CLI configuration from defaults, a JSON configuration
file, a .env file and LOUDBATCH_* environment variables, and turns it into
the analysis value objects.
"""

import copy
import json
import logging
import os
import platform
from pathlib import Path
from typing import Any, Dict, List, Optional

from dotenv import load_dotenv

from ..core.config import AnalysisSettings, AnalysisThresholds
from ..core.exceptions import ConfigurationError
from ..utils.filesystem import DEFAULT_AUDIO_EXTENSIONS


class CLIConfig:
    """
    CLI configuration manager

    Features:
    - Defaults, configuration file and environment, merged in that order
    - Platform-specific configuration path
    - .env discovery in the working directory and its parents
    - Range validation of numeric options
    """

    def __init__(self, config_path: Optional[str] = None, load_env_file: bool = True):
        """Initialize configuration manager"""
        self.config_path = config_path or self._get_default_config_path()
        self.explicit_path = config_path is not None
        self._config_cache: Optional[Dict[str, Any]] = None
        self._defaults = self._get_default_config()
        self.logger = logging.getLogger('loudbatch.config')

        if load_env_file:
            env_path = self._find_env_file()
            if env_path:
                load_dotenv(env_path)
                self.logger.debug(f"Loaded environment from {env_path}")

    def _get_default_config_path(self) -> str:
        """Get default configuration file path based on platform"""
        if platform.system() == "Windows":
            config_dir = os.path.expandvars(r"%APPDATA%\loudbatch")
        elif platform.system() == "Darwin":
            config_dir = os.path.expanduser("~/Library/Application Support/loudbatch")
        else:
            config_dir = os.path.expanduser("~/.config/loudbatch")
        return os.path.join(config_dir, "config.json")

    def _find_env_file(self) -> Optional[str]:
        """Find .env file in current directory or up to 3 parents"""
        current_dir = Path.cwd()
        for _ in range(4):
            env_file = current_dir / '.env'
            if env_file.exists():
                return str(env_file)
            if current_dir == current_dir.parent:
                break
            current_dir = current_dir.parent
        return None

    def _get_default_config(self) -> Dict[str, Any]:
        """Get default configuration values"""
        settings = AnalysisSettings()
        return {
            "app": {
                "log_level": "INFO",
                "log_dir": None,
            },

            "analysis": {
                "target_i": settings.target_i,
                "target_tp": settings.target_tp,
                "target_lra": settings.target_lra,
                "timeout_seconds": settings.timeout_seconds,
                "max_workers": settings.max_workers,
                "diagnostics_enabled": settings.diagnostics_enabled,
                "diagnostics_dir": settings.diagnostics_dir,
                "diagnostics_max_chars": settings.diagnostics_max_chars,
            },

            "thresholds": AnalysisThresholds().to_dict(),

            "tools": {
                "ffmpeg": None,
                "ffprobe": None,
            },

            "files": {
                "extensions": list(DEFAULT_AUDIO_EXTENSIONS),
                "recursive": True,
            },

            "normalization": {
                "interpreter": "/bin/bash",
                "script": None,
            },

            "reporting": {
                "default_format": "json",
                "sort": "input",
            },
        }

    def load_config(self, force_reload: bool = False) -> Dict[str, Any]:
        """
        Load configuration from all sources

        Args:
            force_reload: Force reload from file (ignore cache)

        Returns:
            Merged configuration dictionary

        Raises:
            ConfigurationError: If an explicitly given configuration file is
                missing or not valid JSON
        """
        if self._config_cache is not None and not force_reload:
            return self._config_cache

        config = copy.deepcopy(self._defaults)

        file_config = self._load_from_file()
        if file_config:
            config = self._deep_merge(config, file_config)

        env_config = self._load_from_environment()
        if env_config:
            config = self._deep_merge(config, env_config)

        config = self._validate_config(config)

        self._config_cache = config
        return config

    def _load_from_file(self) -> Optional[Dict[str, Any]]:
        """Load configuration from JSON file"""
        if not os.path.exists(self.config_path):
            if self.explicit_path:
                raise ConfigurationError("Configuration file not found", filepath=self.config_path)
            return None

        try:
            with open(self.config_path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigurationError("Failed to load configuration file",
                                     details=str(e), filepath=self.config_path) from e

        if not isinstance(data, dict):
            raise ConfigurationError("Configuration must be a JSON object", filepath=self.config_path)
        return data

    def _load_from_environment(self) -> Dict[str, Any]:
        """Load configuration overrides from environment variables"""
        config: Dict[str, Any] = {}

        env_mappings = {
            'LOUDBATCH_LOG_LEVEL': ('app', 'log_level', str),
            'LOUDBATCH_LOG_DIR': ('app', 'log_dir', str),
            'LOUDBATCH_WORKERS': ('analysis', 'max_workers', int),
            'LOUDBATCH_TIMEOUT': ('analysis', 'timeout_seconds', float),
            'LOUDBATCH_TARGET_I': ('analysis', 'target_i', float),
            'LOUDBATCH_TARGET_TP': ('analysis', 'target_tp', float),
            'LOUDBATCH_TARGET_LRA': ('analysis', 'target_lra', float),
            'LOUDBATCH_DIAGNOSTICS': ('analysis', 'diagnostics_enabled', self._str_to_bool),
            'LOUDBATCH_DIAGNOSTICS_DIR': ('analysis', 'diagnostics_dir', str),
            'LOUDBATCH_LUFS_MIN': ('thresholds', 'lufs_min', float),
            'LOUDBATCH_LUFS_MAX': ('thresholds', 'lufs_max', float),
            'LOUDBATCH_TRUE_PEAK_MAX': ('thresholds', 'true_peak_max', float),
            'LOUDBATCH_FFMPEG': ('tools', 'ffmpeg', str),
            'LOUDBATCH_FFPROBE': ('tools', 'ffprobe', str),
            'LOUDBATCH_NORMALIZE_SCRIPT': ('normalization', 'script', str),
            'LOUDBATCH_NORMALIZE_INTERPRETER': ('normalization', 'interpreter', str),
        }

        for env_var, (section, key, converter) in env_mappings.items():
            value = os.environ.get(env_var)
            if value is None:
                continue
            try:
                converted_value = converter(value)
            except ValueError as e:
                self.logger.warning(f"Invalid environment variable {env_var}={value}: {e}")
                continue
            config.setdefault(section, {})[key] = converted_value

        return config

    def _str_to_bool(self, value: str) -> bool:
        """Convert string to boolean"""
        return value.lower() in ('true', '1', 'yes', 'on', 'enabled')

    def _deep_merge(self, base: Dict[str, Any], update: Dict[str, Any]) -> Dict[str, Any]:
        """Deep merge two dictionaries"""
        result = base.copy()

        for key, value in update.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._deep_merge(result[key], value)
            else:
                result[key] = value

        return result

    def _validate_config(self, config: Dict[str, Any]) -> Dict[str, Any]:
        """Validate and sanitize configuration values"""
        analysis = config.get('analysis', {})
        analysis['max_workers'] = max(1, min(int(analysis.get('max_workers', 8)), 32))
        analysis['timeout_seconds'] = max(1.0, float(analysis.get('timeout_seconds', 60.0)))
        analysis['diagnostics_max_chars'] = max(0, int(analysis.get('diagnostics_max_chars', 20000)))

        thresholds = config.get('thresholds', {})
        if float(thresholds.get('lufs_min', -15.5)) > float(thresholds.get('lufs_max', -13.5)):
            raise ConfigurationError(
                "Invalid loudness range",
                details=f"lufs_min {thresholds.get('lufs_min')} > lufs_max {thresholds.get('lufs_max')}"
            )
        thresholds['sample_rate_tolerance_khz'] = abs(float(thresholds.get('sample_rate_tolerance_khz', 0.05)))

        reporting = config.get('reporting', {})
        if reporting.get('default_format') not in ('json', 'csv'):
            self.logger.warning(f"Unknown report format {reporting.get('default_format')!r}, using json")
            reporting['default_format'] = 'json'

        return config

    def save_config(self, config: Optional[Dict[str, Any]] = None) -> bool:
        """
        Save configuration to file

        Args:
            config: Configuration to save (uses current if None)

        Returns:
            True if saved successfully
        """
        if config is None:
            config = self.load_config()
        try:
            os.makedirs(os.path.dirname(self.config_path), exist_ok=True)
            with open(self.config_path, 'w', encoding='utf-8') as f:
                json.dump(config, f, indent=2, ensure_ascii=False)
        except OSError as e:
            self.logger.error(f"Failed to save config file {self.config_path}: {e}")
            return False

        self._config_cache = None
        return True

    def get_option(self, path: str, default: Any = None) -> Any:
        """
        Get a configuration option using dot notation

        Args:
            path: Dot-separated path (e.g., 'analysis.max_workers')
            default: Default value if path not found

        Returns:
            Configuration value or default
        """
        value = self.load_config()
        try:
            for key in path.split('.'):
                value = value[key]
            return value
        except (KeyError, TypeError):
            return default

    def build_analysis_settings(self, overrides: Optional[Dict[str, Any]] = None) -> AnalysisSettings:
        """AnalysisSettings from the merged configuration plus CLI overrides"""
        config = self.load_config()
        data = dict(config['analysis'])
        data['thresholds'] = AnalysisThresholds.from_dict(config['thresholds'])
        for key, value in (overrides or {}).items():
            if value is not None:
                data[key] = value
        return AnalysisSettings.from_dict(data)

    def normalization_command(self, script: Optional[str] = None,
                              interpreter: Optional[str] = None) -> List[str]:
        """
        Interpreter and script of the normalization run

        Raises:
            ConfigurationError: If no script is configured or it does not exist
        """
        section = self.load_config()['normalization']
        script = script or section.get('script')
        interpreter = interpreter or section.get('interpreter')
        if not script:
            raise ConfigurationError(
                "No normalization script configured",
                details="Pass --script or set LOUDBATCH_NORMALIZE_SCRIPT"
            )
        script = os.path.abspath(os.path.expanduser(script))
        if not os.path.isfile(script):
            raise ConfigurationError("Normalization script not found", filepath=script)
        return [interpreter, script] if interpreter else [script]


def load_config_from_args(args) -> CLIConfig:
    """Create the configuration manager for parsed command line arguments"""
    return CLIConfig(getattr(args, 'config', None))
