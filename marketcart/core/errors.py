from __future__ import annotations

DIFFERENT_SELLER = "different_seller"


class MarketcartError(Exception):
    """Base class for errors raised by the cart client."""


class ApiError(MarketcartError):
    """A remote call failed, either in transport or with a non-2xx response."""

    def __init__(self, message: str, *, status_code: int | None = None, error_type: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.error_type = error_type

    @property
    def is_different_seller(self) -> bool:
        return self.error_type == DIFFERENT_SELLER

    def __repr__(self) -> str:
        return f"ApiError({self.message!r}, status_code={self.status_code!r}, error_type={self.error_type!r})"


class CheckoutValidationError(MarketcartError):
    def __init__(self, missing: list[str]) -> None:
        super().__init__("Missing shipping details: " + ", ".join(missing))
        self.missing = missing


class EmptyCartError(MarketcartError):
    def __init__(self) -> None:
        super().__init__("Cart is empty")
