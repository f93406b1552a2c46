# Reference data
from stockledger.models.inventory.inventory_location_models import InventoryLocation
from stockledger.models.inventory.import_origin_models import ImportOrigin

# Inventory
from stockledger.models.inventory.product_models import Product, StockEntry, PriceComparison
from stockledger.models.inventory.movement_models import Movement

# Sales
from stockledger.models.sales.sale_models import Sale, SaleItem
