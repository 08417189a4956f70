import os
from typing import Any, Dict

import yaml

DEFAULT_CONFIG_PATH = os.path.join('~', '.config', 'iwd-gui', 'config.yaml')

DEFAULT_LOGGING = {
    'level': 'INFO',
    'file': None,
    'console': True,
}


def config_path(path: str | None = None) -> str:
    cfg_path = path or os.environ.get('IWDGUI_CONFIG') or DEFAULT_CONFIG_PATH
    return os.path.abspath(os.path.expanduser(cfg_path))


def load_config(path: str | None = None) -> dict:
    cfg_path = config_path(path)
    if not os.path.exists(cfg_path):
        return {}
    with open(cfg_path, 'r', encoding='utf-8') as fh:
        return yaml.safe_load(fh) or {}


def logging_settings(cfg: Dict[str, Any]) -> Dict[str, Any]:
    """Return the logging section merged over the defaults."""
    settings = dict(DEFAULT_LOGGING)
    settings.update(cfg.get('logging') or {})
    return settings
