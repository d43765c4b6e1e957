from .note_tools import register_note_tools
from .prompt_tools import register_prompt_tools
from .task_tools import register_task_tools

__all__ = [
    "register_note_tools",
    "register_prompt_tools",
    "register_task_tools",
]
