from .browser import BrowserAdapterPort, BrowserSessionPort
from .cache import CachePort
from .decoder import DecodeStrategy, DecoderRegistryPort, ReversibleStrategy
from .events import ResolutionEventSink
from .navigator import NavigatorPort
from .provider_registry import ProviderRegistryPort
from .result_cache import ResultCachePort
from .stream_validator import StreamValidatorPort
from .title_lookup import TitleLookupPort

__all__ = [
    "BrowserAdapterPort",
    "BrowserSessionPort",
    "CachePort",
    "DecodeStrategy",
    "DecoderRegistryPort",
    "NavigatorPort",
    "ProviderRegistryPort",
    "ResultCachePort",
    "ResolutionEventSink",
    "ReversibleStrategy",
    "StreamValidatorPort",
    "TitleLookupPort",
]
