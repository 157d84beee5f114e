"""
Token counting and budget management for bundle packing.

This module provides the tokenizer oracle used everywhere a token count is
needed, plus the running budget the packer spends from during greedy
admission. It includes the production implementation using tiktoken, test
doubles, and protocols for dependency injection.

Encoders are process-wide state: they are created lazily on first use, cached
per encoding name, and released explicitly with `dispose_token_counters()`.
"""

import threading
from typing import Callable, Protocol

import tiktoken

from constants import DEFAULT_ENCODING
from core.exceptions import TokenizerInitError


class TokenCounter(Protocol):
    """Protocol for counting tokens in text."""

    def count(self, text: str | None) -> int:
        """Count tokens in the given text."""


def default_encoding_for_model(model: str | None) -> str:
    """
    Map a model name to a reasonable default encoding.

    The match is a substring heuristic over known model family names, so it
    may not be exact for every vendor.

    Args:
        model: Model name such as "gpt-4o-mini" or "gpt-3.5-turbo".

    Returns:
        "o200k_base" for the 4o / 4.1 / o1 / o3 families and unknown models,
        "cl100k_base" for the gpt-4 and gpt-3.5 families.
    """
    if not model:
        return DEFAULT_ENCODING
    m = model.lower()
    if "4o" in m or "4.1" in m or m.startswith("o3") or m.startswith("o1"):
        return "o200k_base"
    if "gpt-4" in m or "gpt-3.5" in m:
        return "cl100k_base"
    return DEFAULT_ENCODING


class TiktokenCounter:
    """
    Production implementation of TokenCounter using tiktoken.

    Wraps a single tiktoken encoding. Prefer `get_token_counter()`, which
    shares one instance per encoding across the process.
    """

    def __init__(self, encoding_name: str = DEFAULT_ENCODING):
        """
        Initialize the token counter for the specified encoding.

        Args:
            encoding_name: The tiktoken encoding to load, e.g. "o200k_base".

        Raises:
            TokenizerInitError: If the encoding is unknown or its data cannot
                be loaded.
        """
        try:
            self.encoder = tiktoken.get_encoding(encoding_name)
        except (ValueError, KeyError, OSError) as e:
            raise TokenizerInitError(
                encoding=encoding_name, original_exception=e
            ) from e
        self.encoding_name = encoding_name

    def count(self, text: str | None) -> int:
        """
        Count tokens in the given text.

        Args:
            text: The text to count tokens for. If None or empty, returns 0.

        Returns:
            The number of tokens in the text.
        """
        if not text:
            return 0
        # Special-token markers in user files are counted as plain text.
        return len(self.encoder.encode(text, disallowed_special=()))


class NoOpTokenCounter:
    """
    No-op implementation of TokenCounter for testing.

    Returns configurable token counts, allowing tests to control token counting
    behavior without requiring tiktoken dependencies or actual token encoding.
    """

    def __init__(
        self,
        return_value: int | None = None,
        count_fn: Callable[[str | None], int] | None = None,
    ):
        """
        Initialize NoOpTokenCounter with configurable counting behavior.

        Args:
            return_value: If provided, always returns this value regardless of input.
                Takes precedence over count_fn if both are provided.
            count_fn: Optional callable that takes text and returns a token count.
                If return_value is None, this will be used. If both are None,
                defaults to returning 0.

        Attributes (for test inspection):
            count_calls: List of texts passed to count()
        """
        self.return_value = return_value
        self.count_fn = count_fn
        self.count_calls: list[str | None] = []

    def count(self, text: str | None) -> int:
        """Count tokens in the given text (returns configured value)."""
        self.count_calls.append(text)
        if self.return_value is not None:
            return self.return_value
        if self.count_fn is not None:
            return self.count_fn(text)
        return 0


_counters: dict[str, TiktokenCounter] = {}
_counters_lock = threading.Lock()


def get_token_counter(
    model: str | None = None, encoding: str | None = None
) -> TiktokenCounter:
    """
    Return the process-wide counter for a model/encoding pair.

    An explicit encoding wins; otherwise the encoding is derived from the
    model name. Counters are created once per encoding name and reused, so a
    scan never sees its encoder replaced halfway through.

    Args:
        model: Model name used for the encoding heuristic.
        encoding: Explicit tiktoken encoding name.

    Returns:
        The shared TiktokenCounter for the resolved encoding.

    Raises:
        TokenizerInitError: If the encoding cannot be loaded.
    """
    encoding_name = encoding or default_encoding_for_model(model)
    with _counters_lock:
        counter = _counters.get(encoding_name)
        if counter is None:
            counter = TiktokenCounter(encoding_name)
            _counters[encoding_name] = counter
        return counter


def dispose_token_counters() -> None:
    """Release every cached encoder. Safe to call more than once."""
    with _counters_lock:
        _counters.clear()


class TokenBudget(Protocol):
    """Protocol for managing token budgets."""

    def can_afford(self, count: int) -> bool:
        """Check if budget can afford the given token count."""

    def spend(self, count: int) -> None:
        """Spend tokens from the budget."""


class FixedTokenBudget:
    """
    A token budget with a fixed cap.

    Tracks the running total of a single packing pass. Admission is inclusive:
    a cost that brings the total exactly to the cap is affordable.
    """

    def __init__(self, max_tokens: int):
        """
        Initialize the budget with a cap.

        Args:
            max_tokens: Maximum tokens allowed for this pass.
        """
        self.max = max_tokens
        self.spent = 0

    @property
    def remaining(self) -> int:
        """Tokens left before the cap is reached (negative once overspent)."""
        return self.max - self.spent

    def can_afford(self, count: int) -> bool:
        """Return True if spending count keeps the total within the cap."""
        return self.spent + count <= self.max

    def spend(self, count: int) -> None:
        """Increase the running total by count."""
        self.spent += count


class MockTokenBudget:
    """
    Mock implementation of TokenBudget for testing.

    Tracks all method calls and provides configurable behavior, allowing tests
    to verify budget interactions and control budget state without complex setup.
    """

    def __init__(
        self,
        can_afford_return: bool | None = None,
        can_afford_fn: Callable[[int], bool] | None = None,
    ):
        """
        Initialize MockTokenBudget with configurable behavior.

        Args:
            can_afford_return: If provided, always returns this value for can_afford().
                Takes precedence over can_afford_fn if both are provided.
            can_afford_fn: Optional callable that takes a count and returns bool.
                If can_afford_return is None, this will be used. If both are None,
                defaults to always returning True.

        Attributes (for test inspection):
            can_afford_calls: List of counts passed to can_afford()
            spend_calls: List of counts passed to spend()
        """
        self.can_afford_return = can_afford_return
        self.can_afford_fn = can_afford_fn

        self.can_afford_calls: list[int] = []
        self.spend_calls: list[int] = []

    def can_afford(self, count: int) -> bool:
        """Check if budget can afford the given token count (tracks call, returns configured value)."""
        self.can_afford_calls.append(count)
        if self.can_afford_return is not None:
            return self.can_afford_return
        if self.can_afford_fn is not None:
            return self.can_afford_fn(count)
        return True

    def spend(self, count: int) -> None:
        """Spend tokens from the budget (tracks call)."""
        self.spend_calls.append(count)
