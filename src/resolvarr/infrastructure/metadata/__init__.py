from .title_lookup import MappingTitleLookup, load_titles

__all__ = ["MappingTitleLookup", "load_titles"]
