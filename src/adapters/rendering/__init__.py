from .in_memory_map_renderer import InMemoryMapRenderer, RenderedMarker

__all__ = ["InMemoryMapRenderer", "RenderedMarker"]
