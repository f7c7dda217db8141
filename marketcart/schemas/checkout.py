from decimal import Decimal

from pydantic import BaseModel, ConfigDict

from marketcart.schemas.cart import CartItem, Seller

REQUIRED_SHIPPING_FIELDS = (
    "shipping_address",
    "shipping_city",
    "shipping_province",
    "shipping_postal_code",
)


class CheckoutRequest(BaseModel):
    shipping_address: str = ""
    shipping_city: str = ""
    shipping_province: str = ""
    shipping_postal_code: str = ""
    payment_method: str = "bank_transfer"
    notes: str = ""

    def missing_fields(self) -> list[str]:
        return [name for name in REQUIRED_SHIPPING_FIELDS if not getattr(self, name).strip()]


class CheckoutResponse(BaseModel):
    model_config = ConfigDict(extra="allow")

    order_ids: list[int] = []
    midtrans_redirect_url: str | None = None


class SellerGroup(BaseModel):
    seller: Seller
    items: list[CartItem] = []
    subtotal: Decimal = Decimal("0")
    shipping: Decimal = Decimal("0")

    @property
    def total(self) -> Decimal:
        return self.subtotal + self.shipping
