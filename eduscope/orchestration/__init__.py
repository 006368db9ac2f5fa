"""
Orchestration - the moderation workflow and its change kinds.
"""

from eduscope.orchestration.change_kinds import (
    CHANGE_KINDS,
    DEGREE_CHANGE,
    PAPER_DELETE,
    PAPER_UPDATE,
    YEAR_CHANGE,
    ChangeKind,
    kind_for,
)
from eduscope.orchestration.moderation import (
    ModerationWorkflow,
    can_transition,
    valid_transitions,
)

__all__ = [
    "ChangeKind",
    "CHANGE_KINDS",
    "PAPER_UPDATE",
    "PAPER_DELETE",
    "YEAR_CHANGE",
    "DEGREE_CHANGE",
    "kind_for",
    "ModerationWorkflow",
    "can_transition",
    "valid_transitions",
]
