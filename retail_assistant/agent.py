"""
Retail Assistant Shopping Agent - Main Application

Drives one request/response turn with the remote model:
1. Send the conversation plus tool declarations
2. Execute at most one requested tool against the catalog/cart
3. Send the tool result back and return the model's final reply

Uses an OpenAI-compatible chat completions endpoint (OpenRouter by default).
"""

import json
import logging
from typing import Any, Dict, List, Optional, Sequence

import openai

from retail_assistant import config
from retail_assistant.cart import CartStore
from retail_assistant.catalog import CatalogStore, create_catalog
from retail_assistant.ingestion import CsvAggregator
from retail_assistant.models import ChatMessage, ChatRole
from retail_assistant.retry import RateLimitExceeded, RetryPolicy
from retail_assistant.tools import TOOLS, ToolDispatcher

logger = logging.getLogger(__name__)


# =============================================================================
# System Prompt
# =============================================================================

SYSTEM_INSTRUCTION = """You are 'WooBot', an intelligent sales and inventory assistant for a high-end electronics store.

YOUR RESPONSIBILITIES:
1. Help customers find products based on their needs.
2. Check real-time stock availability using the 'check_inventory' or 'search_products' tools.
3. Add items to the customer's cart using 'add_to_cart'.
4. Guide customers to checkout.

CRITICAL RULES (DO NOT BREAK):
- NEVER guess stock levels. You MUST use 'check_inventory' or 'search_products' to get the current quantity.
- If a user asks for a product, ALWAYS search for it first to confirm existence and stock.
- If stock is 0, explicitly say "We are currently out of stock" and suggest an alternative from the database if available.
- If the user wants to buy, check stock first. If available, use 'add_to_cart'.
- Be polite, professional, and concise.

Refuse to answer questions unrelated to electronics, shopping, or order support.
"""


# =============================================================================
# User-facing replies
# =============================================================================

WELCOME_MESSAGE_ID = "init"
WELCOME_TEXT = "Hi! I can help you check stock, find products, and place orders. What are you looking for?"

CONFIG_ERROR_REPLY = (
    "Configuration error: the AI service API key is missing. "
    "Set OPENAI_API_KEY in your environment or .env file."
)
RATE_LIMIT_REPLY = "I'm getting too many requests right now. Please wait a moment and try again."
SERVICE_ERROR_REPLY = "Sorry, I encountered an error communicating with the AI. Please try again."
NO_CANDIDATES_REPLY = "I'm having trouble connecting right now."
TOOL_FALLBACK_REPLY = "I processed that request."
EMPTY_REPLY = "I didn't understand that."


def build_history(messages: Sequence[ChatMessage]) -> List[Dict[str, Any]]:
    """
    Convert transcript messages to chat completion messages.

    The welcome message is dropped; model turns become assistant turns and
    everything else is sent as user input.
    """
    return [
        {
            "role": "assistant" if m.role == ChatRole.MODEL else "user",
            "content": m.content
        }
        for m in messages
        if m.id != WELCOME_MESSAGE_ID
    ]


class ShoppingAgent:
    """
    Tool-calling orchestration loop over the catalog and cart.

    Each turn makes one model call, optionally one tool execution and a
    follow-up model call. Both model calls go through the retry policy.
    Failures are turned into plain-language replies, never raised.
    """

    def __init__(
        self,
        catalog: CatalogStore,
        cart: CartStore,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        chat_model: Optional[str] = None,
        client: Optional[Any] = None,
        retry_policy: Optional[RetryPolicy] = None
    ):
        """
        Initialize the agent with its stores and API configuration.

        Args:
            catalog: Catalog the tools read and update
            cart: Session cart the tools add to
            api_key: OpenAI/OpenRouter API key
            base_url: API base URL
            chat_model: Model to use for chat completion
            client: Pre-built OpenAI-compatible client
            retry_policy: Retry strategy for model calls
        """
        self.api_key = api_key or config.OPENAI_API_KEY
        self.base_url = base_url or config.OPENAI_BASE_URL
        self.chat_model = chat_model or config.CHAT_MODEL
        self.dispatcher = ToolDispatcher(catalog, cart)
        self.retry_policy = retry_policy or RetryPolicy()

        if client is not None:
            self.client = client
        elif self.api_key:
            # RetryPolicy is the only retry layer
            self.client = openai.OpenAI(api_key=self.api_key, base_url=self.base_url, max_retries=0)
        else:
            self.client = None
            logger.error("OPENAI_API_KEY is not set; the assistant will only report a configuration error")

    def send_message(self, history: Sequence[ChatMessage], user_text: str) -> str:
        """
        Run one conversational turn.

        Args:
            history: Prior transcript (the welcome message is ignored)
            user_text: The new user message

        Returns:
            Reply text for the user
        """
        if self.client is None:
            return CONFIG_ERROR_REPLY

        messages = build_history(history)
        messages.append({"role": "user", "content": user_text})

        try:
            return self._run_turn(messages)
        except RateLimitExceeded as e:
            logger.error("Giving up after rate limiting: %s", e)
            return RATE_LIMIT_REPLY
        except Exception:
            logger.exception("Model call failed")
            return SERVICE_ERROR_REPLY

    def _run_turn(self, messages: List[Dict[str, Any]]) -> str:
        response = self._generate(messages)

        if not response.choices:
            logger.warning("Model returned no choices")
            return NO_CANDIDATES_REPLY

        assistant_message = response.choices[0].message

        # Only the first requested call is serviced
        if not assistant_message.tool_calls:
            return assistant_message.content or EMPTY_REPLY

        tool_call = assistant_message.tool_calls[0]
        result = self.dispatcher.dispatch(tool_call.function.name, tool_call.function.arguments)

        follow_up = messages + [
            {
                "role": "assistant",
                "content": assistant_message.content,
                "tool_calls": [
                    {
                        "id": tool_call.id,
                        "type": "function",
                        "function": {
                            "name": tool_call.function.name,
                            "arguments": tool_call.function.arguments
                        }
                    }
                ]
            },
            {
                "role": "tool",
                "tool_call_id": tool_call.id,
                "content": json.dumps({"result": result})
            }
        ]

        final = self._generate(follow_up)
        if not final.choices:
            return TOOL_FALLBACK_REPLY
        return final.choices[0].message.content or TOOL_FALLBACK_REPLY

    def _generate(self, messages: List[Dict[str, Any]]) -> Any:
        """Retry-wrapped chat completion with the system prompt and tools."""
        return self.retry_policy.call(
            lambda: self.client.chat.completions.create(
                model=self.chat_model,
                messages=[{"role": "system", "content": SYSTEM_INSTRUCTION}] + messages,
                tools=TOOLS,
                tool_choice="auto"
            )
        )


class ChatSession:
    """
    Append-only chat transcript for one UI session.

    Starts with the welcome message, which is shown to the user but never
    sent to the model.
    """

    def __init__(self, agent: ShoppingAgent):
        self.agent = agent
        self._messages: List[ChatMessage] = [self._welcome()]

    @property
    def messages(self) -> List[ChatMessage]:
        return list(self._messages)

    def send(self, user_text: str) -> str:
        """Record a user message, get the agent's reply and record it."""
        prior = [m for m in self._messages if m.id != WELCOME_MESSAGE_ID]
        self._messages.append(ChatMessage(role=ChatRole.USER, content=user_text))

        reply = self.agent.send_message(prior, user_text)
        self._messages.append(ChatMessage(role=ChatRole.MODEL, content=reply))
        return reply

    def reset(self) -> None:
        """Reset the transcript to just the welcome message."""
        self._messages = [self._welcome()]

    @staticmethod
    def _welcome() -> ChatMessage:
        return ChatMessage(id=WELCOME_MESSAGE_ID, role=ChatRole.MODEL, content=WELCOME_TEXT)


# =============================================================================
# CLI Interface
# =============================================================================

def run_cli():
    """Run the assistant in command-line interface mode."""
    config.configure_logging()

    print("=" * 60)
    print("Welcome to the Retail Assistant!")
    print("=" * 60)
    print("\nType 'quit' or 'exit' to end the conversation.")
    print("Type 'reset' to start a new conversation.")
    print("Type 'cart' to view your cart, 'stats' for inventory figures.")
    print("Type 'upload <file.csv>' to import inventory, 'reset-catalog' to restore demo data.")
    print("-" * 60)

    catalog = create_catalog()
    cart = CartStore()
    aggregator = CsvAggregator(catalog)
    session = ChatSession(ShoppingAgent(catalog, cart))

    print(f"\nAssistant: {WELCOME_TEXT}")

    while True:
        try:
            user_input = input("\nYou: ").strip()

            if not user_input:
                continue

            command = user_input.lower()

            if command in ['quit', 'exit']:
                print("\nThank you for shopping with us! Goodbye!")
                break

            if command == 'reset':
                session.reset()
                print(f"\nConversation reset. {WELCOME_TEXT}")
                continue

            if command == 'cart':
                current = cart.get_cart()
                if not current.items:
                    print("\nYour cart is empty.")
                else:
                    print("\n--- Cart ---")
                    for item in current.items:
                        print(f"  {item.name} ({item.sku}) x{item.quantity}  ${item.subtotal:.2f}")
                    print(f"  Total: ${current.total:.2f}")
                continue

            if command == 'stats':
                stats = catalog.get_stats()
                print(f"\nProducts: {stats.total_products}  Units: {stats.total_stock}  "
                      f"Low stock: {stats.low_stock_count}  Categories: {stats.categories}")
                continue

            if command == 'reset-catalog':
                catalog.reset()
                print("\nCatalog has been reset to the demo data.")
                continue

            if command.startswith('upload '):
                path = user_input.split(maxsplit=1)[1]
                try:
                    count = aggregator.process_file(path)
                except OSError as e:
                    print(f"\nCould not read {path}: {e}")
                else:
                    print(f"\nProcessed {count} items from CSV.")
                continue

            # Get assistant response
            print("\nAssistant: ", end="")
            print(session.send(user_input))

        except (KeyboardInterrupt, EOFError):
            print("\n\nThank you for shopping with us! Goodbye!")
            break


if __name__ == "__main__":
    run_cli()
