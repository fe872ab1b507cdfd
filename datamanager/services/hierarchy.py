"""
Hierarchy resolution

A data set's hierarchy is the data set itself followed by everything it
includes, directly or transitively, in breadth-first order. Position in
the list is precedence: earlier entries win when the same translation key
appears more than once.

Include edges may form cycles or diamonds; every data set appears once.
"""

from collections import deque
from collections.abc import Hashable, Iterable, Mapping
from typing import TypeVar

K = TypeVar("K", bound=Hashable)


def resolve_hierarchy(root_id: K, graph: Mapping[K, Iterable[K]]) -> list[K]:
    """
    Breadth-first walk of the include graph starting at root_id.

    Args:
        root_id: Data set to start from.
        graph: Every known data set id mapped to its included ids, in edge
            order. Ids that are not keys of the mapping are unknown (deleted
            or not visible) and are skipped along with what they include.

    Returns:
        Ordered, duplicate-free ids; empty when the root itself is unknown.
    """
    if root_id not in graph:
        return []

    ordered: list[K] = []
    visited: set[K] = {root_id}
    queue: deque[K] = deque([root_id])

    while queue:
        current = queue.popleft()
        ordered.append(current)
        for included_id in graph[current]:
            if included_id in visited or included_id not in graph:
                continue
            visited.add(included_id)
            queue.append(included_id)

    return ordered

