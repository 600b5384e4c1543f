"""
Query specification accepted by repositories.
"""

from dataclasses import dataclass
from typing import Any, Callable, List, Optional

from framework.database.query import EntityQuery

OrderBy = Callable[[EntityQuery], EntityQuery]


@dataclass(frozen=True)
class QuerySpec:
    """
    What to read from an entity set.

    Attributes:
        filter: SQLAlchemy boolean clause (e.g. ``Student.last_name == "Ann"``); None reads all rows
        order_by: callable receiving the composed query and returning it ordered,
            e.g. ``lambda q: q.order_by(Student.last_name.desc())``; None keeps store order
        include_properties: comma separated navigation paths to eager-load
            (``"enrollments.course,other"``); blank segments are ignored
        as_no_tracking: return detached entities the change tracker never sees
    """
    filter: Optional[Any] = None
    order_by: Optional[OrderBy] = None
    include_properties: str = ""
    as_no_tracking: bool = False

    @property
    def include_paths(self) -> List[str]:
        segments = (segment.strip() for segment in (self.include_properties or "").split(","))
        return [segment for segment in segments if segment]

    def apply(self, query: EntityQuery) -> EntityQuery:
        """Compose filter, includes, tracking mode, then ordering, in that order."""
        if self.filter is not None:
            query = query.where(self.filter)

        for path in self.include_paths:
            query = query.include(path)

        if self.as_no_tracking:
            query = query.as_no_tracking()

        if self.order_by is not None:
            return self.order_by(query)
        return query
