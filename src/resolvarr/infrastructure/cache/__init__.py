from .cache_factory import create_backend
from .result_cache import ResultCache

__all__ = ["ResultCache", "create_backend"]
