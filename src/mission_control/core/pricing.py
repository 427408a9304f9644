"""Model pricing catalog and token cost calculation.

All prices are USD per million tokens. Costs are plain float dollars;
rounding to cents is left to the caller.
"""

from dataclasses import dataclass

from mission_control.observability import get_logger

logger = get_logger(__name__)

# Unknown models are priced at the mid tier (Sonnet) rather than rejected.
DEFAULT_INPUT_PRICE_PER_MILLION = 3.0
DEFAULT_OUTPUT_PRICE_PER_MILLION = 15.0


@dataclass(frozen=True)
class ModelPricing:
    """Per-token pricing for one catalog model."""

    id: str
    name: str
    input_price_per_million: float
    output_price_per_million: float
    context_window: int
    alias: str | None = None


MODEL_PRICING: tuple[ModelPricing, ...] = (
    # Anthropic
    ModelPricing("anthropic/claude-opus-4-6", "Opus 4.6", 15.00, 75.00, 200_000, alias="opus"),
    ModelPricing("anthropic/claude-sonnet-4-5", "Sonnet 4.5", 3.00, 15.00, 200_000, alias="sonnet"),
    ModelPricing("anthropic/claude-haiku-3-5", "Haiku 3.5", 0.80, 4.00, 200_000, alias="haiku"),
    # Google
    ModelPricing("google/gemini-2.5-flash", "Gemini Flash", 0.15, 0.60, 1_000_000, alias="gemini-flash"),
    ModelPricing("google/gemini-2.5-pro", "Gemini Pro", 1.25, 5.00, 2_000_000, alias="gemini-pro"),
    # xAI
    ModelPricing("x-ai/grok-4-1-fast", "Grok 4.1 Fast", 2.00, 10.00, 128_000),
    # OpenAI
    ModelPricing("openai-codex/gpt-5.3-codex", "GPT-5.3 Codex", 3.00, 15.00, 272_000, alias="gpt-5.3-codex"),
    ModelPricing("openai/gpt-5-mini", "GPT-5 Mini", 0.25, 2.00, 128_000, alias="gpt-mini"),
    # MiniMax
    ModelPricing("minimax/minimax-m2.5", "MiniMax M2.5", 0.30, 1.10, 1_000_000, alias="minimax"),
)

# Short aliases and provider-less runtime names -> catalog ids.
_ALIAS_MAP: dict[str, str] = {
    "opus": "anthropic/claude-opus-4-6",
    "sonnet": "anthropic/claude-sonnet-4-5",
    "haiku": "anthropic/claude-haiku-3-5",
    "gemini-flash": "google/gemini-2.5-flash",
    "gemini-pro": "google/gemini-2.5-pro",
    "claude-opus-4-6": "anthropic/claude-opus-4-6",
    "claude-sonnet-4-5": "anthropic/claude-sonnet-4-5",
    "claude-haiku-3-5": "anthropic/claude-haiku-3-5",
    "gemini-2.5-flash": "google/gemini-2.5-flash",
    "gemini-2.5-pro": "google/gemini-2.5-pro",
    "gpt-5.3-codex": "openai-codex/gpt-5.3-codex",
    "gpt-mini": "openai/gpt-5-mini",
    "minimax": "minimax/minimax-m2.5",
    "minimax-m2.5": "minimax/minimax-m2.5",
}

_BY_KEY: dict[str, ModelPricing] = {}
for _entry in MODEL_PRICING:
    _BY_KEY[_entry.id] = _entry
    if _entry.alias:
        _BY_KEY.setdefault(_entry.alias, _entry)


def find_pricing(model_id: str) -> ModelPricing | None:
    """Look up a catalog entry by id or alias."""
    return _BY_KEY.get(model_id)


def catalog_ids() -> frozenset[str]:
    return frozenset(entry.id for entry in MODEL_PRICING)


def normalize_model_id(model_id: str) -> str:
    """Resolve aliases to fully qualified catalog ids; unknown ids pass through."""
    return _ALIAS_MAP.get(model_id, model_id)


def get_model_name(model_id: str) -> str:
    """Human-readable model name, or the id itself when not in the catalog."""
    pricing = find_pricing(model_id)
    return pricing.name if pricing else model_id


def calculate_cost(model_id: str, input_tokens: int, output_tokens: int) -> float:
    """Compute the USD cost of a usage tuple.

    Unknown models fall back to the default (Sonnet) price tier and log a
    warning instead of failing.

    Args:
        model_id: Catalog id or alias.
        input_tokens: Prompt tokens consumed.
        output_tokens: Completion tokens generated.

    Returns:
        Cost in float dollars, unrounded.
    """
    pricing = find_pricing(model_id)
    if pricing is None:
        logger.warning("unknown_model_pricing", model_id=model_id)
        input_price = DEFAULT_INPUT_PRICE_PER_MILLION
        output_price = DEFAULT_OUTPUT_PRICE_PER_MILLION
    else:
        input_price = pricing.input_price_per_million
        output_price = pricing.output_price_per_million

    input_cost = (input_tokens / 1_000_000) * input_price
    output_cost = (output_tokens / 1_000_000) * output_price
    return input_cost + output_cost
