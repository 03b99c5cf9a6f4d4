import os
import configparser
from pathlib import Path

# Written to settings.ini on first run; also the fallback for missing keys
DEFAULT_SETTINGS = {
    'LOGGING': {
        'level': 'INFO',
        'format': '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        'directory': 'logs',
        'max_size_mb': '10',
        'backup_count': '5',
        'console_output': 'True',
        'file_output': 'True'
    },
    'PLANNER': {
        'default_mode': 'budget',
        'default_role': 'commercial',
        'default_scan_factor': '12',
        'max_lift_pct': '0.10',
        'lift_per_dollar': '0.10',
        'weeks_per_month': '4',
        'planning_year': '2025',
        'random_seed': ''
    },
    'EXPORT': {
        'directory': 'exports',
        'currency_format': '"$"#,##0.00',
        'percent_format': '0.0%',
        'date_stamp_format': '%m/%d/%y'
    }
}

class Config:
    """Configuration manager for the Scan Planner.

    Settings live in ``$SCAN_PLANNER_CONFIG_DIR/settings.ini`` (``config/``
    by default), created from DEFAULT_SETTINGS when absent.
    """

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super(Config, cls).__new__(cls)
            cls._instance._initialized = False
        return cls._instance

    def __init__(self):
        if self._initialized:
            return

        self._config_dir = Path(os.environ.get('SCAN_PLANNER_CONFIG_DIR', 'config'))
        self._config_path = self._config_dir / 'settings.ini'
        self._config = configparser.ConfigParser(interpolation=None)

        if self._config_path.exists():
            self._config.read(self._config_path)
        else:
            self._config.read_dict(DEFAULT_SETTINGS)
            self._config_dir.mkdir(parents=True, exist_ok=True)
            with open(self._config_path, 'w') as configfile:
                self._config.write(configfile)

        self._initialized = True

    def get(self, section, key, default=None):
        """Get configuration value."""
        try:
            return self._config.get(section, key)
        except (configparser.NoSectionError, configparser.NoOptionError):
            return default

    def get_int(self, section, key, default=None):
        """Get configuration value as integer (default when blank or invalid)."""
        try:
            return self._config.getint(section, key)
        except (configparser.NoSectionError, configparser.NoOptionError, ValueError):
            return default

    def get_float(self, section, key, default=None):
        try:
            return self._config.getfloat(section, key)
        except (configparser.NoSectionError, configparser.NoOptionError, ValueError):
            return default

    def get_boolean(self, section, key, default=None):
        try:
            return self._config.getboolean(section, key)
        except (configparser.NoSectionError, configparser.NoOptionError, ValueError):
            return default

    @property
    def log_config(self):
        """Logging settings used by scan_planner.logging_setup."""
        return {
            'level': self.get('LOGGING', 'level', 'INFO'),
            'format': self.get('LOGGING', 'format', DEFAULT_SETTINGS['LOGGING']['format']),
            'directory': self.get('LOGGING', 'directory', 'logs'),
            'max_size_mb': self.get_int('LOGGING', 'max_size_mb', 10),
            'backup_count': self.get_int('LOGGING', 'backup_count', 5),
            'console_output': self.get_boolean('LOGGING', 'console_output', True),
            'file_output': self.get_boolean('LOGGING', 'file_output', True)
        }

    @property
    def planner_config(self):
        """Session defaults and projection constants."""
        return {
            'default_mode': self.get('PLANNER', 'default_mode', 'budget'),
            'default_role': self.get('PLANNER', 'default_role', 'commercial'),
            'default_scan_factor': self.get_float('PLANNER', 'default_scan_factor', 12.0),
            'max_lift_pct': self.get_float('PLANNER', 'max_lift_pct', 0.10),
            'lift_per_dollar': self.get_float('PLANNER', 'lift_per_dollar', 0.10),
            'weeks_per_month': self.get_float('PLANNER', 'weeks_per_month', 4.0),
            'planning_year': self.get_int('PLANNER', 'planning_year', 2025),
            # Blank means an unseeded generator
            'random_seed': self.get_int('PLANNER', 'random_seed', None)
        }

    @property
    def export_config(self):
        """Output directory and Excel number formats."""
        return {
            'directory': self.get('EXPORT', 'directory', 'exports'),
            'currency_format': self.get('EXPORT', 'currency_format', '"$"#,##0.00'),
            'percent_format': self.get('EXPORT', 'percent_format', '0.0%'),
            'date_stamp_format': self.get('EXPORT', 'date_stamp_format', '%m/%d/%y')
        }

# Global config instance
config = Config()
