"""
regacl Configuration Module

Provides centralized configuration management for the reconciliation engine.
"""

from .schema import EngineConfig, PowerShellConfig, LoggingConfig
from .loader import load_config, load_config_from_file

__all__ = [
    "EngineConfig",
    "PowerShellConfig",
    "LoggingConfig",
    "load_config",
    "load_config_from_file",
]
