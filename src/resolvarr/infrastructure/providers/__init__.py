from .loader import load_providers, parse_providers
from .registry import ProviderRegistry

__all__ = ["ProviderRegistry", "load_providers", "parse_providers"]
