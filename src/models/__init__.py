from .task import Task, TaskFilter, TaskLocation
from .note import CachedFile, NoteMetadata, PluginInfo

__all__ = [
    "Task",
    "TaskFilter",
    "TaskLocation",
    "CachedFile",
    "NoteMetadata",
    "PluginInfo",
]
