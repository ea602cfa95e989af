"""
Numeric constants for the solvers.

Defaults live in defaults.yml next to this file. An override file only needs
the keys it changes, e.g.

xirr:
  max_iterations: 250
"""
import pathlib
import yaml


DEFAULTS_PATH = pathlib.Path(__file__).parent / 'defaults.yml'


def _merge(base: dict, override: dict) -> dict:
    for key, val in override.items():
        if isinstance(val, dict) and isinstance(base.get(key), dict):
            _merge(base[key], val)
        else:
            base[key] = val
    return base


def load_settings(path=None) -> dict:
    """
    Return the default settings, with the YAML file at `path` merged on top
    if given.
    """
    settings = yaml.safe_load(DEFAULTS_PATH.read_text()) or {}
    if path is not None:
        override = yaml.safe_load(pathlib.Path(path).read_text()) or {}
        if not isinstance(override, dict):
            raise ValueError(f"Settings file {path} must hold a mapping")
        settings = _merge(settings, override)
    return settings


SETTINGS = load_settings()
