"""Configuration loading exports."""

from modsync.config.loader import load_config
from modsync.config.scaffold import scaffold_config, write_config

__all__ = ["load_config", "scaffold_config", "write_config"]
