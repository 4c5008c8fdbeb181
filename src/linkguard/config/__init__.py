"""Configuration loading for LinkGuard."""

from linkguard.config.loader import ConfigurationLoader, load_config

__all__ = ["ConfigurationLoader", "load_config"]
