"""
Point editing

- Point types: tags and line attachment of simple points
- Snap: create / modify vertex / insert vertex decision
- Change set: upload orchestration and line cache refresh
"""

from .point_types import needs_line_attachment, point_type_tags
from .snap import CreatePoint, ModifyVertex, InsertVertex, EditDecision, LineSnapInserter
from .locks import KeyedLocks
from .changeset import ChangeSetOrchestrator, AddPointResult

__all__ = [
    "needs_line_attachment",
    "point_type_tags",
    "CreatePoint",
    "ModifyVertex",
    "InsertVertex",
    "EditDecision",
    "LineSnapInserter",
    "KeyedLocks",
    "ChangeSetOrchestrator",
    "AddPointResult",
]
