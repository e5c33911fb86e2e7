from .config import ConfigError, load_config, resolve_data_dir, validate_config

__all__ = ["ConfigError", "load_config", "resolve_data_dir", "validate_config"]
