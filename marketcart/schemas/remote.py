from decimal import Decimal

from pydantic import BaseModel, Field

from marketcart.schemas.cart import CartItem, CartItemDraft, Category, Seller

UNKNOWN_SELLER_NAME = "Unknown Seller"


class RemoteSeller(BaseModel):
    id: int | None = None
    shop_name: str | None = None
    shop_url: str | None = None


class RemoteProduct(BaseModel):
    id: int
    name: str
    description: str | None = None
    price: Decimal = Field(default=Decimal("0"), ge=0)
    image_url: str | None = None
    stock: int = 0
    seller_id: int | None = None
    seller: RemoteSeller | None = None
    category: Category | None = None

    def resolved_seller(self) -> Seller:
        seller_id = self.seller.id if self.seller and self.seller.id is not None else self.seller_id
        shop_name = self.seller.shop_name if self.seller and self.seller.shop_name else None
        return Seller(id=seller_id or 0, shop_name=shop_name or UNKNOWN_SELLER_NAME)

    def to_cart_draft(self) -> CartItemDraft:
        return CartItemDraft(
            id=self.id,
            name=self.name,
            description=self.description,
            price=self.price,
            image_url=self.image_url or "",
            stock=max(0, self.stock),
            seller=self.resolved_seller(),
            category=self.category,
        )


class RemoteCartEntry(BaseModel):
    id: int
    product_id: int | None = None
    quantity: int = Field(ge=1)
    product: RemoteProduct

    def to_cart_item(self) -> CartItem:
        product = self.product
        return CartItem(
            id=self.id,
            product_id=self.product_id if self.product_id is not None else product.id,
            name=product.name,
            description=product.description,
            price=product.price,
            image_url=product.image_url or "",
            stock=max(0, product.stock),
            seller=product.resolved_seller(),
            category=product.category,
            quantity=self.quantity,
        )
