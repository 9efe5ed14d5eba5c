from .price_loader import MappingPriceLoader, ParquetPriceLoader

__all__ = ["MappingPriceLoader", "ParquetPriceLoader"]
