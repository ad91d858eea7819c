"""
Typed outcomes for version-control commands.

A successful command either printed something (``Text``) or printed nothing
(``Empty``). A soft failure is represented by ``None`` at the call site, so
``Optional[Outcome]`` covers every non-raising result of ``GitFacade.execute``.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Union

__all__ = ["Empty", "Text", "Outcome", "outcome_from_output", "text_of"]


@dataclass(frozen=True)
class Empty:
    """The command succeeded and produced no output."""


@dataclass(frozen=True)
class Text:
    """The command succeeded and produced output (trailing whitespace trimmed)."""
    value: str


Outcome = Union[Empty, Text]


def outcome_from_output(output: str) -> Outcome:
    """Wrap captured stdout in the matching outcome."""
    return Text(output) if output else Empty()


def text_of(outcome: Optional[Outcome]) -> Optional[str]:
    """Return the text of a ``Text`` outcome, else None."""
    if isinstance(outcome, Text):
        return outcome.value
    return None
