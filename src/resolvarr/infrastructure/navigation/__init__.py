from .navigator import ChainNavigator

__all__ = ["ChainNavigator"]
