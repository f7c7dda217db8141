from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field


class Seller(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    shop_name: str


class Category(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    name: str


class CartItemDraft(BaseModel):
    """A cart line without its quantity, as handed to ``CartStore.add_item``."""

    model_config = ConfigDict(frozen=True)

    id: int
    name: str
    description: str | None = None
    price: Decimal = Field(ge=0)
    image_url: str = ""
    stock: int = Field(default=0, ge=0)
    seller: Seller
    category: Category | None = None
    product_id: int | None = None

    @property
    def product_key(self) -> int:
        return self.product_id if self.product_id is not None else self.id

    def as_draft(self) -> "CartItemDraft":
        if type(self) is CartItemDraft:
            return self
        return CartItemDraft(**self.model_dump(exclude={"quantity"}))

    def with_quantity(self, quantity: int) -> "CartItem":
        return CartItem(**self.model_dump(exclude={"quantity"}), quantity=quantity)


class CartItem(CartItemDraft):
    quantity: int = Field(ge=1)

    @property
    def line_total(self) -> Decimal:
        return self.price * self.quantity


class CartState(BaseModel):
    model_config = ConfigDict(frozen=True)

    items: tuple[CartItem, ...] = ()
    is_loading: bool = False
    show_confirm_dialog: bool = False
    pending_item: CartItemDraft | None = None
