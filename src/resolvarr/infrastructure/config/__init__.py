from .load import load_config
from .schema import AppConfig, EnvOverrides

__all__ = ["AppConfig", "EnvOverrides", "load_config"]
