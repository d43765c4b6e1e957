from .compiler import PromptCompiler, compile_prompt
from .merger import merge_segments
from .registry import PromptRegistry
from .scanner import scan_segments
from .variables import extract_variables

__all__ = [
    "PromptCompiler",
    "PromptRegistry",
    "compile_prompt",
    "extract_variables",
    "merge_segments",
    "scan_segments",
]
