"""
Shared fixtures and fake model responses for the Retail Assistant tests.
"""

import json
import os
import sys
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

# Add project root to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from retail_assistant.cart import CartStore
from retail_assistant.catalog import CatalogStore
from retail_assistant.retry import RetryPolicy
from retail_assistant.tools import ToolDispatcher


# =============================================================================
# Store Fixtures
# =============================================================================

@pytest.fixture
def catalog():
    """Fresh catalog seeded with the demo products."""
    return CatalogStore(snapshot_delay=0)


@pytest.fixture
def cart():
    """Empty cart for the default session."""
    return CartStore(checkout_base_url="https://shop.test/checkout")


@pytest.fixture
def dispatcher(catalog, cart):
    """Tool dispatcher over the seeded catalog and empty cart."""
    return ToolDispatcher(catalog, cart)


@pytest.fixture
def sleeps():
    """Records requested sleep durations instead of sleeping."""
    return []


@pytest.fixture
def fast_retry(sleeps):
    """Retry policy that never really sleeps."""
    return RetryPolicy(
        base_delay=1.0,
        multiplier=2.0,
        max_delay=30.0,
        max_retries=3,
        safety_margin=1.0,
        sleep=sleeps.append
    )


# =============================================================================
# Fake Model Responses
# =============================================================================

def text_response(text):
    """Chat completion carrying a plain text reply."""
    message = SimpleNamespace(content=text, tool_calls=None)
    return SimpleNamespace(choices=[SimpleNamespace(message=message)])


def tool_response(name, arguments, call_id="call_1"):
    """Chat completion requesting a single tool call."""
    tool_call = SimpleNamespace(
        id=call_id,
        type="function",
        function=SimpleNamespace(name=name, arguments=json.dumps(arguments))
    )
    message = SimpleNamespace(content=None, tool_calls=[tool_call])
    return SimpleNamespace(choices=[SimpleNamespace(message=message)])


def empty_response():
    """Chat completion with no choices at all."""
    return SimpleNamespace(choices=[])


def fake_client(*responses):
    """OpenAI-like client whose completions return or raise the given items in order."""
    client = MagicMock()
    client.chat.completions.create.side_effect = list(responses)
    return client


class FakeRateLimitError(Exception):
    """Provider error that reads like an HTTP 429."""
