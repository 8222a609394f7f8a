"""Configuration management for the proof system."""

from .config import SystemConfig, load_config, save_config

__all__ = ['SystemConfig', 'load_config', 'save_config']
