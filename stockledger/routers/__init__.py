# stockledger/routers/__init__.py

from .inventory.product_router import router as product_router
from .inventory.movement_router import router as movement_router
from .inventory.stock_summary_router import router as stock_summary_router

from .sales.sale_router import router as sale_router


__all__ = [
"product_router",
"movement_router",
"stock_summary_router",

"sale_router",
]
