"""
Unit tests for persona prompts.
"""

from persephone.core.persona import CHAT_MODES, build_system_prompt
from persephone.models import ChatMode


def test_every_mode_has_a_definition():
    assert set(CHAT_MODES) == set(ChatMode)


def test_prompt_includes_base_and_mode_addition():
    prompt = build_system_prompt(ChatMode.CI_LEV)
    assert prompt.startswith("You are Persephone")
    assert "CURRENT MODE: CI Lev" in prompt
    assert "Focus heavily on CI/CD" in prompt


def test_prompts_differ_per_mode():
    assert build_system_prompt(ChatMode.SWEET) != build_system_prompt(ChatMode.QUEEN)
