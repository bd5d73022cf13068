"""
Function-calling tools for the shopping agent.

Holds the tool declarations sent to the model on every call and the
dispatcher that executes a requested call against the catalog and cart.
"""

import json
import logging
from typing import Any, Dict, List, Mapping, Union

from pydantic import ValidationError

from retail_assistant.cart import CartStore
from retail_assistant.catalog import CatalogStore
from retail_assistant.models import (
    TOOL_CALL_ADAPTER, AddToCartCall, CheckInventoryCall, InitiateCheckoutCall,
    SearchProductsCall, StockStatus, ToolCall
)

logger = logging.getLogger(__name__)

ToolResult = Union[Dict[str, Any], List[Dict[str, Any]]]


# =============================================================================
# Function Calling Tool Definitions
# =============================================================================

TOOLS = [
    {
        "type": "function",
        "function": {
            "name": "search_products",
            "description": "Search for products by name or category to see details and stock levels.",
            "parameters": {
                "type": "object",
                "properties": {
                    "query": {
                        "type": "string",
                        "description": "The search term (e.g., \"headphones\", \"laptop\", \"wireless mouse\")."
                    }
                },
                "required": ["query"]
            }
        }
    },
    {
        "type": "function",
        "function": {
            "name": "check_inventory",
            "description": "Get precise stock quantity for a specific SKU.",
            "parameters": {
                "type": "object",
                "properties": {
                    "sku": {
                        "type": "string",
                        "description": "The exact product SKU."
                    }
                },
                "required": ["sku"]
            }
        }
    },
    {
        "type": "function",
        "function": {
            "name": "add_to_cart",
            "description": "Add a product to the user shopping cart.",
            "parameters": {
                "type": "object",
                "properties": {
                    "sku": {
                        "type": "string",
                        "description": "The SKU of the product to add."
                    },
                    "quantity": {
                        "type": "number",
                        "description": "The number of items to add. Default is 1."
                    }
                },
                "required": ["sku", "quantity"]
            }
        }
    },
    {
        "type": "function",
        "function": {
            "name": "initiate_checkout",
            "description": "Generate a checkout link for the customer when they are ready to buy.",
            "parameters": {
                "type": "object",
                "properties": {
                    "ready": {
                        "type": "string",
                        "description": "User confirmation to proceed to checkout (e.g., 'yes')."
                    }
                },
                "required": ["ready"]
            }
        }
    }
]


class ToolDispatcher:
    """
    Executes model-requested tool calls against the catalog and cart.

    Never raises: every failure comes back as an {"error": ...} payload so
    the agent always has something to hand back to the model.
    """

    def __init__(self, catalog: CatalogStore, cart: CartStore):
        self.catalog = catalog
        self.cart = cart

    def dispatch(self, name: str, arguments: Union[str, Mapping[str, Any], None]) -> ToolResult:
        """
        Parse a raw tool call from the model and execute it.

        Args:
            name: Tool name as sent by the model
            arguments: Argument object, or its JSON encoding

        Returns:
            JSON-serializable result or error payload
        """
        try:
            if isinstance(arguments, str):
                arguments = json.loads(arguments) if arguments.strip() else {}
            call = TOOL_CALL_ADAPTER.validate_python({**(arguments or {}), "name": name})
        except (ValueError, TypeError) as e:
            if isinstance(e, ValidationError) and _is_unknown_tool(e):
                logger.warning("Model requested unknown tool %r", name)
                return {"error": f"Unknown tool: {name}"}
            logger.warning("Invalid arguments for %s: %s", name, e)
            return {"error": f"Invalid arguments for {name}: {e}"}

        return self.execute(call)

    def execute(self, call: ToolCall) -> ToolResult:
        """
        Execute a validated tool call.

        Args:
            call: One of the four tool call variants

        Returns:
            JSON-serializable result or error payload
        """
        logger.info("Executing tool %s", call.model_dump())
        try:
            if isinstance(call, SearchProductsCall):
                return self._search_products(call)
            elif isinstance(call, CheckInventoryCall):
                return self._check_inventory(call)
            elif isinstance(call, AddToCartCall):
                return self._add_to_cart(call)
            elif isinstance(call, InitiateCheckoutCall):
                return self._initiate_checkout(call)
            return {"error": f"Unknown tool: {getattr(call, 'name', call)}"}

        except Exception as e:
            logger.exception("Tool %s failed", getattr(call, "name", call))
            return {"error": str(e)}

    def _search_products(self, call: SearchProductsCall) -> ToolResult:
        return [
            {
                "sku": product.sku,
                "name": product.name,
                "stock": product.stock_quantity,
                "price": product.price
            }
            for product in self.catalog.search(call.query)
        ]

    def _check_inventory(self, call: CheckInventoryCall) -> ToolResult:
        product = self.catalog.find_by_sku(call.sku)
        if not product:
            return {"error": "Product not found"}

        in_stock = product.stock_quantity > 0
        return {
            "sku": product.sku,
            "stock_quantity": product.stock_quantity,
            "status": StockStatus.IN_STOCK.value if in_stock else StockStatus.OUT_OF_STOCK.value
        }

    def _add_to_cart(self, call: AddToCartCall) -> ToolResult:
        product = self.catalog.find_by_sku(call.sku)
        if not product:
            return {"error": "Invalid SKU"}

        # Reject before touching the cart so there is never a partial add
        if product.stock_quantity < call.quantity:
            return {"error": f"Insufficient stock. Only {product.stock_quantity} available."}

        cart = self.cart.add_to_cart(product, call.quantity)
        return {
            "success": True,
            "cart_total": cart.total,
            "message": "Item added to cart."
        }

    def _initiate_checkout(self, call: InitiateCheckoutCall) -> ToolResult:
        return {
            "checkout_url": self.cart.get_checkout_url(),
            "message": "Checkout link generated."
        }


def _is_unknown_tool(error: ValidationError) -> bool:
    return any(err.get("type") == "union_tag_invalid" for err in error.errors())
