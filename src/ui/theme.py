"""
UI Theme - Terminal colors and message styling.
"""

from prompt_toolkit.formatted_text import FormattedText
from prompt_toolkit.styles import Style


class Theme:
    """Helix terminal colors."""

    # Brand colors
    LIME = "#baea2a"

    # Status colors
    INFO = "#3b82f6"
    SUCCESS = "#22c55e"
    ERROR = "#ef4444"
    WARNING = "#f59e0b"
    DEBUG = "#d946ef"


# Message kinds -> style class
KINDS = ("default", "info", "success", "error", "warning", "debug")

STYLE = Style.from_dict({
    "default": "",
    "info": Theme.INFO,
    "success": Theme.SUCCESS,
    "error": Theme.ERROR,
    "warning": Theme.WARNING,
    "debug": Theme.DEBUG,
    "prompt": f"{Theme.LIME} bold",
    "namespace": Theme.INFO,
})


def styled(text: str, kind: str = "default", bold: bool = False) -> FormattedText:
    """Wrap text in a style class for print_formatted_text."""
    if kind not in KINDS:
        kind = "default"
    style = f"class:{kind}"
    if bold:
        style += " bold"
    return FormattedText([(style, text)])


def prompt_message(namespaces: list[str]) -> FormattedText:
    """Prompt prefix: '# Helix wallet > ns > '"""
    parts = [("class:prompt", "# Helix wallet "), ("", ">")]
    for namespace in namespaces:
        parts.append(("", " "))
        parts.append(("class:namespace", namespace))
        parts.append(("", " >"))
    parts.append(("", " "))
    return FormattedText(parts)
