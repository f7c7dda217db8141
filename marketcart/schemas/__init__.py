from marketcart.schemas.cart import CartItem, CartItemDraft, CartState, Category, Seller  # noqa: F401
from marketcart.schemas.checkout import CheckoutRequest, CheckoutResponse, SellerGroup  # noqa: F401
from marketcart.schemas.remote import RemoteCartEntry, RemoteProduct, RemoteSeller  # noqa: F401
