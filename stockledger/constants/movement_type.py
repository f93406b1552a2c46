# stockledger/constants/movement_type.py

from enum import Enum


class MovementType(str, Enum):
    IMPORT = "IMPORT"
    TRANSFER = "TRANSFER"
    EXPORT = "EXPORT"


class StockUpdateMode(str, Enum):
    INCREMENT = "INCREMENT"
    SET = "SET"
