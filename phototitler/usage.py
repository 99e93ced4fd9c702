"""
Token bookkeeping for model calls.

Usage counters on a photo only ever grow: every generation or theme
assignment adds to them, so a record holds the total spend attributed to
that photo rather than the cost of its latest call.
"""

import os

from phototitler.errors import InvalidInputError

TOKENS_PER_MILLION = 1_000_000

# Claude Sonnet list prices in USD per million tokens
DEFAULT_PRICE_INPUT_PER_MTOK = 3.0
DEFAULT_PRICE_OUTPUT_PER_MTOK = 15.0
DEFAULT_USD_TO_EUR_RATE = 0.92


def check_delta(delta_input: int, delta_output: int) -> None:
    if delta_input < 0 or delta_output < 0:
        msg = f"Token deltas must be non-negative, got {delta_input}/{delta_output}"
        raise InvalidInputError(msg)


def record_usage(
    existing_input: int,
    existing_output: int,
    delta_input: int,
    delta_output: int,
) -> tuple[int, int]:
    """Return the counters after adding one call's usage."""
    check_delta(delta_input, delta_output)
    return existing_input + delta_input, existing_output + delta_output


def amortize(total_input: int, total_output: int, item_count: int) -> tuple[int, int]:
    """
    Split one batched call's usage evenly across item_count records.

    Ceiling division: the summed share may exceed the real total by at most
    item_count - 1 tokens, but never falls below it.
    """
    if item_count < 1:
        msg = f"Cannot amortize usage over {item_count} items"
        raise InvalidInputError(msg)
    return (
        -(-total_input // item_count),
        -(-total_output // item_count),
    )


def estimate_cost(
    input_tokens: int,
    output_tokens: int,
    price_input_per_million: float,
    price_output_per_million: float,
    fx_rate: float,
) -> float:
    return (
        (input_tokens * price_input_per_million + output_tokens * price_output_per_million)
        / TOKENS_PER_MILLION
        * fx_rate
    )


def estimate_cost_eur(input_tokens: int, output_tokens: int) -> float:
    """Estimated cost in euros using the configured prices and exchange rate."""
    return estimate_cost(
        input_tokens,
        output_tokens,
        float(os.getenv("PRICE_INPUT_PER_MTOK", str(DEFAULT_PRICE_INPUT_PER_MTOK))),
        float(os.getenv("PRICE_OUTPUT_PER_MTOK", str(DEFAULT_PRICE_OUTPUT_PER_MTOK))),
        float(os.getenv("USD_TO_EUR_RATE", str(DEFAULT_USD_TO_EUR_RATE))),
    )
