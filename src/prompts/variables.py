"""
Discover the arguments a prompt note declares through ``{{name}}`` placeholders.
"""

from typing import Dict, List

from models.prompt import PromptArgument
from prompts.scanner import VARIABLE_PATTERN


def extract_variables(content: str) -> List[PromptArgument]:
    """
    One PromptArgument per distinct variable name, in first-seen order.

    A ``{{name|default}}`` placeholder makes the argument optional. When a
    name appears several times the first occurrence decides.
    """
    found: Dict[str, PromptArgument] = {}
    for m in VARIABLE_PATTERN.finditer(content):
        name, default = m.group(1), m.group(2)
        if name in found:
            continue
        found[name] = PromptArgument(
            name=name,
            description=f"Variable: {name}",
            required=default is None,
            default=default,
        )
    return list(found.values())
