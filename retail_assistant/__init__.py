"""
Retail Assistant

Inventory store fed by bulk CSV uploads, plus a tool-calling shopping agent
that can query and update that store on a customer's behalf.
"""

from retail_assistant.models import (
    Product,
    CartItem,
    Cart,
    ChatMessage,
    ChatRole,
    StockStatus,
    InventoryStats,
    ToolCall,
)
from retail_assistant.database import CatalogDatabase
from retail_assistant.catalog import CatalogStore, SEED_PRODUCTS, create_catalog
from retail_assistant.ingestion import CsvAggregator, generate_sku
from retail_assistant.cart import CartStore
from retail_assistant.retry import RetryPolicy, RateLimitExceeded
from retail_assistant.tools import TOOLS, ToolDispatcher
from retail_assistant.agent import ShoppingAgent, ChatSession

__version__ = "1.0.0"
__all__ = [
    "Product",
    "CartItem",
    "Cart",
    "ChatMessage",
    "ChatRole",
    "StockStatus",
    "InventoryStats",
    "ToolCall",
    "CatalogDatabase",
    "CatalogStore",
    "SEED_PRODUCTS",
    "create_catalog",
    "CsvAggregator",
    "generate_sku",
    "CartStore",
    "RetryPolicy",
    "RateLimitExceeded",
    "TOOLS",
    "ToolDispatcher",
    "ShoppingAgent",
    "ChatSession",
]
