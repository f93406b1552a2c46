# stockledger/constants/error_codes.py

from enum import Enum


class ErrorCode(str, Enum):
    # generic
    VALIDATION_ERROR = "VALIDATION_ERROR"
    UNAUTHORIZED = "UNAUTHORIZED"
    PERMISSION_DENIED = "PERMISSION_DENIED"
    NOT_FOUND = "NOT_FOUND"
    CONFLICT = "CONFLICT"
    INTERNAL_ERROR = "INTERNAL_ERROR"

    # products / stock
    PRODUCT_NOT_FOUND = "PRODUCT_NOT_FOUND"
    PRODUCT_PARTS_NUMBER_EXISTS = "PRODUCT_PARTS_NUMBER_EXISTS"
    PRODUCT_DUPLICATE_PRICE_ORIGIN = "PRODUCT_DUPLICATE_PRICE_ORIGIN"
    STOCK_ENTRY_NOT_FOUND = "STOCK_ENTRY_NOT_FOUND"
    STOCK_INSUFFICIENT = "STOCK_INSUFFICIENT"
    STOCK_INVALID_OPERATION = "STOCK_INVALID_OPERATION"
    STOCK_CONCURRENT_UPDATE = "STOCK_CONCURRENT_UPDATE"
    STOCK_TRANSFER_SAME_LOCATION = "STOCK_TRANSFER_SAME_LOCATION"

    # reference data
    LOCATION_NOT_FOUND = "LOCATION_NOT_FOUND"
    IMPORT_ORIGIN_NOT_FOUND = "IMPORT_ORIGIN_NOT_FOUND"

    # movements
    MOVEMENT_INVALID_SHAPE = "MOVEMENT_INVALID_SHAPE"

    # sales
    SALE_NOT_FOUND = "SALE_NOT_FOUND"
    SALE_EMPTY_ITEMS = "SALE_EMPTY_ITEMS"
    SALE_INVALID_ITEM = "SALE_INVALID_ITEM"
