"""Services that consume the load engine: page discovery and static builds."""

from presta.services.page_loader import load_pages
from presta.services.static_builder import StaticBuilder, embed_data, output_path_for

__all__ = ["StaticBuilder", "embed_data", "load_pages", "output_path_for"]
