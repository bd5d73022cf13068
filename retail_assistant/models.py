"""
Pydantic models for the Retail Assistant.

Defines validation schemas for catalog products, cart state, chat messages
and the typed tool calls the shopping agent may request.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, List, Literal, Union
from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator, model_validator
import uuid


# Products with fewer units than this count as low stock
LOW_STOCK_THRESHOLD = 5


class StockStatus(str, Enum):
    """Enumeration for product stock status."""
    IN_STOCK = "In Stock"
    LOW_STOCK = "Low Stock"
    OUT_OF_STOCK = "Out of Stock"


class ChatRole(str, Enum):
    """Enumeration for chat message authors."""
    USER = "user"
    MODEL = "model"
    SYSTEM = "system"


class Product(BaseModel):
    """
    Catalog product keyed by SKU.

    Attributes:
        sku: Stable stock-keeping unit, unique within the catalog
        name: Display name
        description: Free-text description
        category: Product category
        price: Unit price (must be >= 0)
        stock_quantity: Units on hand (must be >= 0)
        image_url: Product image location
        serial_numbers: Serial numbers / IMEIs of units on hand, in import order
    """
    model_config = ConfigDict(validate_assignment=True)

    sku: str = Field(..., min_length=1, description="Stock-keeping unit")
    name: str = Field(..., min_length=1, description="Product name")
    description: str = Field("", description="Product description")
    category: str = Field("", description="Product category")
    price: float = Field(0.0, ge=0, description="Unit price")
    stock_quantity: int = Field(0, ge=0, description="Quantity in stock")
    image_url: str = Field("", description="Product image URL")
    serial_numbers: List[str] = Field(default_factory=list, description="Tracked serial numbers")

    @field_validator('price')
    @classmethod
    def validate_price(cls, v: float) -> float:
        """Ensure price has at most 2 decimal places."""
        return round(v, 2)

    @property
    def stock_status(self) -> StockStatus:
        if self.stock_quantity == 0:
            return StockStatus.OUT_OF_STOCK
        if self.stock_quantity < LOW_STOCK_THRESHOLD:
            return StockStatus.LOW_STOCK
        return StockStatus.IN_STOCK


class AggregatedRow(BaseModel):
    """
    One parsed data row of a bulk inventory upload.

    Only lives for the duration of a single upload.
    """
    name: str = Field(..., min_length=1)
    category: str = ""
    status: str = ""
    identifier: str = ""
    quantity: int = Field(0, ge=0)
    price: float = Field(0.0, ge=0)

    @property
    def is_available(self) -> bool:
        return "available" in self.status.lower()


class CartItem(Product):
    """
    Snapshot of a product at add-to-cart time plus the requested quantity.

    Fields are copied, so later catalog edits do not change items already
    in the cart.
    """
    quantity: int = Field(..., ge=1, description="Units in the cart")

    @property
    def subtotal(self) -> float:
        return self.price * self.quantity


class Cart(BaseModel):
    """
    Shopping cart for a single session.

    Attributes:
        session_id: Session the cart belongs to
        items: Cart lines in insertion order
        total: Sum of price * quantity over items
    """
    session_id: str = Field("default", min_length=1, description="Owning session")
    items: List[CartItem] = Field(default_factory=list, description="Cart lines")
    total: float = Field(0.0, ge=0, description="Cart total")

    @model_validator(mode='after')
    def calculate_total(self) -> 'Cart':
        """Recompute total from the current items."""
        self.total = sum(item.price * item.quantity for item in self.items)
        return self


class ChatMessage(BaseModel):
    """
    Model for individual chat messages in the conversation transcript.
    """
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: str(uuid.uuid4()), description="Message ID")
    role: ChatRole = Field(..., description="Message author")
    content: str = Field(..., description="Message content")
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc), description="Message timestamp")


class InventoryStats(BaseModel):
    """Aggregate figures over the whole catalog."""
    total_products: int = 0
    total_stock: int = 0
    low_stock_count: int = 0
    categories: int = 0


# =============================================================================
# Tool Calls
# =============================================================================

class SearchProductsCall(BaseModel):
    """Substring search over the catalog."""
    name: Literal["search_products"] = "search_products"
    query: str


class CheckInventoryCall(BaseModel):
    """Stock lookup for one SKU."""
    name: Literal["check_inventory"] = "check_inventory"
    sku: str


class AddToCartCall(BaseModel):
    """Add units of a SKU to the session cart."""
    name: Literal["add_to_cart"] = "add_to_cart"
    sku: str
    quantity: int = Field(1, ge=1)


class InitiateCheckoutCall(BaseModel):
    """Request a checkout link."""
    name: Literal["initiate_checkout"] = "initiate_checkout"
    ready: str = "yes"


ToolCall = Annotated[
    Union[SearchProductsCall, CheckInventoryCall, AddToCartCall, InitiateCheckoutCall],
    Field(discriminator="name"),
]

TOOL_CALL_ADAPTER: TypeAdapter = TypeAdapter(ToolCall)
