"""
Exception hierarchy shared by the vault, task and prompt layers.

Core functions raise these to their immediate caller. Tool handlers are the
outer boundary and turn them into ``{"error": ...}`` dicts.
"""


class VaultError(Exception):
    """Base class for document store failures."""


class NoteNotFoundError(VaultError):
    def __init__(self, path: str) -> None:
        super().__init__(f"Note not found: {path}")
        self.path = path


class NoteExistsError(VaultError):
    def __init__(self, path: str) -> None:
        super().__init__(f"Note already exists: {path}")
        self.path = path


class VaultPathError(VaultError):
    """A path that resolves outside the vault root."""

    def __init__(self, path: str) -> None:
        super().__init__(f"Path escapes the vault: {path}")
        self.path = path


class TaskError(ValueError):
    """Base class for task parse/format failures."""


class TaskParseError(TaskError):
    pass


class LineOutOfRangeError(TaskError):
    def __init__(self, line_number: int, line_count: int) -> None:
        super().__init__(
            f"Invalid line number: {line_number} (document has {line_count} lines)"
        )
        self.line_number = line_number
        self.line_count = line_count


class HeadingNotFoundError(TaskError):
    def __init__(self, heading: str) -> None:
        super().__init__(f"Heading not found: {heading}")
        self.heading = heading


class InvalidUpdateError(TaskError):
    pass


class PromptNotFoundError(VaultError):
    def __init__(self, name: str) -> None:
        super().__init__(f"Prompt not found: {name}")
        self.name = name


# ---------------------------------------------------------------------------
# Handler boundary
# ---------------------------------------------------------------------------

_NOT_FOUND = (NoteNotFoundError, PromptNotFoundError)


def error_result(exc: Exception) -> dict:
    """
    Dict form of a core failure, as returned by tool handlers.

    ``code`` is "not_found", "exists" or "invalid"; the REST layer maps it to
    404, 409 and 400.
    """
    if isinstance(exc, _NOT_FOUND):
        code = "not_found"
    elif isinstance(exc, NoteExistsError):
        code = "exists"
    else:
        code = "invalid"
    return {"error": str(exc), "code": code}


# Failures a handler reports instead of raising
HANDLED_ERRORS = (VaultError, ValueError, OSError)
