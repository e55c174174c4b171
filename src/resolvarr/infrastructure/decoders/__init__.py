from .registry import DecoderRegistry, default_decoder_registry

__all__ = ["DecoderRegistry", "default_decoder_registry"]
