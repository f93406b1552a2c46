from fastapi import HTTPException
from stockledger.constants.error_codes import ErrorCode


class AppException(HTTPException):
    def __init__(
        self,
        status_code: int,
        message: str,
        error_code: ErrorCode,
        details: dict | None = None,
    ):
        super().__init__(status_code=status_code, detail=message)
        self.error_code = error_code
        self.details = details

    @property
    def message(self) -> str:
        return self.detail


# -------------------------
# LEDGER ERROR KINDS
# -------------------------
class NotFoundError(AppException):
    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.NOT_FOUND,
        details: dict | None = None,
    ):
        super().__init__(404, message, error_code, details)


class ValidationFailedError(AppException):
    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.VALIDATION_ERROR,
        details: dict | None = None,
        status_code: int = 400,
    ):
        super().__init__(status_code, message, error_code, details)


class InsufficientStockError(ValidationFailedError):
    """Deduction exceeds the quantity held at the source location."""

    def __init__(
        self,
        *,
        product_id: int | None,
        location_id: int,
        requested: int,
        available: int,
        item_index: int | None = None,
    ):
        details = {
            "product_id": product_id,
            "location_id": location_id,
            "requested": requested,
            "available": available,
        }
        if item_index is not None:
            details["item_index"] = item_index

        super().__init__(
            f"Insufficient stock. Available: {available}",
            ErrorCode.STOCK_INSUFFICIENT,
            details,
            status_code=409,
        )
        self.product_id = product_id
        self.location_id = location_id
        self.requested = requested
        self.available = available
        self.item_index = item_index


class InvalidOperationError(AppException):
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(400, message, ErrorCode.STOCK_INVALID_OPERATION, details)


class ConflictError(AppException):
    """Concurrent mutation on the same product; safe for the caller to retry."""

    def __init__(
        self,
        message: str = "Concurrent inventory update detected",
        error_code: ErrorCode = ErrorCode.STOCK_CONCURRENT_UPDATE,
        details: dict | None = None,
    ):
        super().__init__(409, message, error_code, details)
