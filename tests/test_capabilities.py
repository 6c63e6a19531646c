"""
Tests for model capability resolution.
"""

import pytest
from chatcontext.capabilities import CapabilityFlags, get_capabilities


class TestGetCapabilities:

    @pytest.mark.parametrize("model,expected", [
        ("gpt-4o", CapabilityFlags(True, True, False, False)),
        ("gpt-4o-search-preview", CapabilityFlags(False, True, False, False)),
        ("o1-mini", CapabilityFlags(True, True, False, True)),
        ("o1-pro", CapabilityFlags(True, False, True, False)),
        ("gpt-5", CapabilityFlags(True, True, True, False)),
        ("gpt-5-search", CapabilityFlags(False, True, True, False)),
    ])
    def test_known_models(self, model, expected):
        assert get_capabilities(model) == expected

    def test_o1_pro_keeps_anchor(self):
        """o1-pro starts with o1 but still receives the system message."""
        caps = get_capabilities("o1-pro-2025")
        assert caps.omit_first_system_message is False
        assert caps.uses_alternate_api is True

    def test_o1_prefix_only_at_start(self):
        caps = get_capabilities("my-o1-model")
        assert caps.omit_first_system_message is False

    def test_unknown_model_defaults(self):
        caps = get_capabilities("")
        assert caps == CapabilityFlags(
            supports_temperature=True,
            supports_streaming=True,
            uses_alternate_api=False,
            omit_first_system_message=False,
        )

    def test_deterministic(self):
        assert get_capabilities("gpt-5-mini") == get_capabilities("gpt-5-mini")
