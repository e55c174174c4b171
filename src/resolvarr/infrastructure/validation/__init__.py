from .stream_validator import StreamValidator, check_shape

__all__ = ["StreamValidator", "check_shape"]
