"""Interactive prompt for telety.

Public API:
    HistoryStore -- process-scoped history shared by every prompt
    LinePrompt -- multi-line prompt with history recall
    SecurePrompt -- one-shot masked question
    LineSurface -- abstract line-editing surface
    PromptToolkitSurface -- prompt_toolkit surface
"""

from telety.prompt.history import HistoryStore
from telety.prompt.line import LinePrompt, SecurePrompt
from telety.prompt.surface import LineSurface, PromptToolkitSurface

__all__ = [
    "HistoryStore",
    "LinePrompt",
    "LineSurface",
    "PromptToolkitSurface",
    "SecurePrompt",
]
