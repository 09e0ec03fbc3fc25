"""
used to load the bundled system prompt (mansplain_system.txt) and wrap the man page into the user message
"""
from pathlib import Path
from typing import Optional

USER_TEMPLATE = (
    "Here is a man page for the user to understand:\n\n"
    "{man_page}\n\n"
    "Please mansplain this to them."
)


def load_system_prompt() -> str:
    p = Path(__file__).resolve().parents[1] / "prompts" / "mansplain_system.txt"
    return p.read_text(encoding="utf-8").strip()


def resolve_system_prompt(custom: Optional[str] = None) -> str:
    # a custom prompt replaces the bundled one entirely
    if custom and custom.strip():
        return custom
    return load_system_prompt()


def build_user_content(man_page: str) -> str:
    return USER_TEMPLATE.format(man_page=man_page)
