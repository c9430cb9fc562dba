from .product_repository import ProductRepository
from .product_type_repository import ProductTypeRepository
from .provider_repository import ProviderRepository
from .warehouse_repository import WarehouseRepository

__all__ = [
    "ProductRepository",
    "ProductTypeRepository",
    "ProviderRepository",
    "WarehouseRepository",
]
