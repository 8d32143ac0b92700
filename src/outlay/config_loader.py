"""
Configuration loader for Outlay.

Loads settings from a YAML config file.
"""

import os

import yaml

DEFAULTS = {
    'data_file': 'data/outlay.json',
    'currency_format': '${amount}',
    'recent_limit': 5,
    'vendor_rules': 'vendor_rules.csv',
}


def load_settings(config_dir, settings_file='settings.yaml'):
    """Load main settings from settings.yaml (or specified file)."""
    settings_path = os.path.join(config_dir, settings_file)

    if not os.path.exists(settings_path):
        raise FileNotFoundError(f"Settings file not found: {settings_path}")

    with open(settings_path, 'r', encoding='utf-8') as f:
        settings = yaml.safe_load(f)

    # An empty file loads as None
    if settings is None:
        return {}
    if not isinstance(settings, dict):
        raise ValueError(f"Settings file must contain key: value pairs: {settings_path}")
    return settings


def load_config(config_dir, settings_file='settings.yaml'):
    """Load all configuration values.

    Args:
        config_dir: Path to config directory containing settings.yaml and vendor_rules.csv
        settings_file: Name of the settings file to load (default: settings.yaml)

    Returns:
        dict with all configuration values. Paths are absolute:
        'data_file' is resolved against the parent of config_dir,
        'vendor_rules' against config_dir itself.
    """
    config_dir = os.path.abspath(config_dir)

    if not os.path.isdir(config_dir):
        raise FileNotFoundError(f"Config directory not found: {config_dir}")

    config = dict(DEFAULTS)
    config.update(load_settings(config_dir, settings_file))

    currency_format = config['currency_format']
    if not isinstance(currency_format, str) or '{amount}' not in currency_format:
        raise ValueError(
            f"currency_format must contain an {{amount}} placeholder, got: {currency_format!r}"
        )

    recent_limit = config['recent_limit']
    # bool is an int subclass; 'recent_limit: yes' is not a count
    if isinstance(recent_limit, bool) or not isinstance(recent_limit, int) or recent_limit < 1:
        raise ValueError(f"recent_limit must be a positive integer, got: {recent_limit!r}")

    # data/ sits beside config/ in an initialized workspace
    base_dir = os.path.dirname(config_dir)
    config['data_file'] = os.path.normpath(os.path.join(base_dir, str(config['data_file'])))

    if config.get('vendor_rules'):
        config['vendor_rules'] = os.path.normpath(os.path.join(config_dir, str(config['vendor_rules'])))
    else:
        config['vendor_rules'] = None

    # Store config dir for reference
    config['_config_dir'] = config_dir

    return config
