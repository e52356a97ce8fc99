# marketplace/domain/errors.py
"""
Bledy domenowe. Kazdy ma staly `kind` (zwracany klientowi) i status HTTP,
router nie musi niczego mapowac recznie.
"""
from typing import Iterable


class MarketplaceError(Exception):
    kind = "MarketplaceError"
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"error": self.kind, "detail": self.message}


class ValidationError(MarketplaceError):
    kind = "ValidationError"
    status_code = 422

    def __init__(self, message: str, fields: Iterable[str] = ()):
        super().__init__(message)
        self.fields = list(fields)

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["fields"] = self.fields
        return data


class NotFound(MarketplaceError):
    kind = "NotFound"
    status_code = 404


class ItemNotFound(NotFound):
    kind = "ItemNotFound"


class Unauthorized(MarketplaceError):
    kind = "Unauthorized"
    status_code = 403


class InvalidTransition(MarketplaceError):
    kind = "InvalidTransition"
    status_code = 409


class InsufficientStock(MarketplaceError):
    kind = "InsufficientStock"
    status_code = 409

    def __init__(self, message: str, product_id: int | None = None, selection_key: str = ""):
        super().__init__(message)
        self.product_id = product_id
        self.selection_key = selection_key

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["product_id"] = self.product_id
        data["selection_key"] = self.selection_key
        return data


class ProductUnavailable(MarketplaceError):
    kind = "ProductUnavailable"
    status_code = 409


class ProductInUse(MarketplaceError):
    kind = "ProductInUse"
    status_code = 409


class EmptyCartError(MarketplaceError):
    kind = "EmptyCartError"
    status_code = 400


class CheckoutInProgress(MarketplaceError):
    kind = "CheckoutInProgress"
    status_code = 409
