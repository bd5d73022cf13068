"""
Cart store.

Keeps one shopping cart per session and notifies subscribers synchronously,
in registration order, after every mutation.
"""

import logging
from typing import Callable, List, Optional

from retail_assistant import config
from retail_assistant.models import Cart, CartItem, Product

logger = logging.getLogger(__name__)

CartListener = Callable[[Cart], None]


class CartStore:
    """
    Mutable cart state for a single session with an observer registry.

    Stock is not validated or reserved here; callers such as the tool
    dispatcher check availability before adding.
    """

    def __init__(self, session_id: str = "default", checkout_base_url: Optional[str] = None):
        """
        Initialize an empty cart.

        Args:
            session_id: Session the cart belongs to
            checkout_base_url: Base of the checkout link. Uses config if not provided.
        """
        self.session_id = session_id
        self.checkout_base_url = checkout_base_url or config.CHECKOUT_BASE_URL
        self._items: List[CartItem] = []
        self._total = 0.0
        self._listeners: List[CartListener] = []

    def add_to_cart(self, product: Product, quantity: int) -> Cart:
        """
        Add units of a product, merging with an existing line for the same SKU.

        Args:
            product: Product to add (fields are copied)
            quantity: Units to add (positive integer)

        Returns:
            Snapshot of the updated cart

        Raises:
            ValueError: If quantity is not a positive integer
        """
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
            raise ValueError(f"Quantity must be a positive integer, got {quantity!r}")

        logger.info("Adding %d of %s to cart %s", quantity, product.sku, self.session_id)

        for item in self._items:
            if item.sku == product.sku:
                item.quantity += quantity
                break
        else:
            self._items.append(CartItem(**product.model_dump(), quantity=quantity))

        return self._commit()

    def clear_cart(self) -> Cart:
        """Remove every item and publish the empty cart."""
        self._items = []
        return self._commit()

    def get_cart(self) -> Cart:
        """Return a defensive copy of the cart."""
        return Cart(
            session_id=self.session_id,
            items=[item.model_copy(deep=True) for item in self._items],
        )

    @property
    def total(self) -> float:
        return self._total

    def subscribe(self, listener: CartListener) -> Callable[[], None]:
        """
        Register a listener for cart changes.

        The listener is called once right away with the current cart, then
        after every mutation.

        Returns:
            A callable that removes the listener
        """
        self._listeners.append(listener)
        listener(self.get_cart())

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def get_checkout_url(self) -> str:
        """Checkout link for this session. No payment is taken."""
        return f"{self.checkout_base_url}?session_id={self.session_id}"

    def _commit(self) -> Cart:
        self._total = sum(item.price * item.quantity for item in self._items)
        snapshot = self.get_cart()
        for listener in list(self._listeners):
            listener(snapshot.model_copy(deep=True))
        return snapshot
