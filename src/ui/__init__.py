"""
UI package - Interactive terminal components.

Contains:
- Theme: Terminal colors and message styling
- WalletShell: Command loop over the keyring
"""

from .theme import Theme, styled, prompt_message
from .shell import WalletShell, PromptAborted

__all__ = [
    # Theme
    "Theme",
    "styled",
    "prompt_message",
    # Shell
    "WalletShell",
    "PromptAborted",
]
