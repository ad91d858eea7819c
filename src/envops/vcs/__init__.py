"""
Version-control package - subprocess runner and git facade.
"""
from .git import GIT_DIR, NO_DIRECTORY, GitFacade
from .outcome import Empty, Outcome, Text
from .process import OutputObserver, OutputStream, ProcessResult, ProcessRunner

__all__ = [
    "GitFacade",
    "NO_DIRECTORY",
    "GIT_DIR",
    "Empty",
    "Text",
    "Outcome",
    "OutputObserver",
    "OutputStream",
    "ProcessResult",
    "ProcessRunner",
]
