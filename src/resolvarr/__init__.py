"""resolvarr: resolve content ids into playable stream URLs."""

__version__ = "0.1.0"
