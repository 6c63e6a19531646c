"""
Model capability resolution.

Capabilities are a pure function of the model identifier: no lookups, no
per-client state.
"""

from dataclasses import dataclass


SEARCH_MODEL_PATTERN = "-search"
O1_PREFIX = "o1"
O1_PRO_PATTERN = "o1-pro"
GPT5_PATTERN = "gpt-5"


@dataclass(frozen=True)
class CapabilityFlags:
    """
    Feature set of a model.

    Attributes:
        supports_temperature: Classic requests may carry temperature and top_p.
        supports_streaming: The model can answer with an event stream.
        uses_alternate_api: Requests go to the responses endpoint instead of
            chat completions.
        omit_first_system_message: The anchor system turn is not sent.
    """
    supports_temperature: bool
    supports_streaming: bool
    uses_alternate_api: bool
    omit_first_system_message: bool


def get_capabilities(model: str) -> CapabilityFlags:
    """
    Resolve the capability flags of a model identifier.

    Args:
        model: Model identifier, e.g. 'gpt-4o' or 'o1-mini'.

    Returns:
        CapabilityFlags for the model. Never fails.
    """
    return CapabilityFlags(
        supports_temperature=SEARCH_MODEL_PATTERN not in model,
        supports_streaming=O1_PRO_PATTERN not in model,
        uses_alternate_api=O1_PRO_PATTERN in model or GPT5_PATTERN in model,
        omit_first_system_message=model.startswith(O1_PREFIX) and O1_PRO_PATTERN not in model,
    )
