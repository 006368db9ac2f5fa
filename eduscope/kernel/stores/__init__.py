"""
Entity stores for host collections.
"""

from eduscope.kernel.stores.entity_store import (
    DegreeStore,
    EntityStore,
    IdeaStore,
    ResearchPaperStore,
    UserStore,
)

__all__ = [
    "EntityStore",
    "UserStore",
    "ResearchPaperStore",
    "DegreeStore",
    "IdeaStore",
]
