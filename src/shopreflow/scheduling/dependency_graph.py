"""Dependency ordering for work orders.

Builds the ``dependency -> dependent`` graph and produces the processing
order for the placer using Kahn's algorithm.
"""

import heapq
import logging
from typing import Sequence

from shopreflow.domain.errors import CycleDetectedError
from shopreflow.domain.models import WorkOrder

logger = logging.getLogger(__name__)


class DependencyGraph:
    """Directed graph of work order dependencies.

    Ids in ``depends_on`` that match no known order do not become edges;
    they are collected in ``unresolved`` so callers can decide how to treat
    them.

    Attributes:
        order_ids: Order ids in input sequence.
        children: Maps an order id to the ids of orders that depend on it.
        in_degree: Number of resolved dependencies per order id.
        unresolved: Maps an order id to dependency ids that matched no order.
    """

    def __init__(self, work_orders: Sequence[WorkOrder]):
        self.order_ids: list[str] = [order.id for order in work_orders]
        self._position = {order_id: i for i, order_id in enumerate(self.order_ids)}
        if len(self._position) != len(self.order_ids):
            dupes = sorted({oid for oid in self.order_ids if self.order_ids.count(oid) > 1})
            raise ValueError(f"Duplicate work order id(s): {', '.join(dupes)}")
        self.children: dict[str, list[str]] = {oid: [] for oid in self.order_ids}
        self.in_degree: dict[str, int] = {oid: 0 for oid in self.order_ids}
        self.unresolved: dict[str, list[str]] = {}

        for order in work_orders:
            for dep_id in order.depends_on:
                if dep_id not in self._position:
                    self.unresolved.setdefault(order.id, []).append(dep_id)
                    continue
                self.children[dep_id].append(order.id)
                self.in_degree[order.id] += 1

        if self.unresolved:
            logger.debug("Unresolved dependencies skipped: %s", self.unresolved)

    def topological_order(self) -> list[str]:
        """Order ids such that every dependency precedes its dependents.

        Among orders that are ready at the same time, the one appearing
        earliest in the input sequence goes first, so the result is
        deterministic.

        Raises:
            CycleDetectedError: If some orders never become ready. The error
                names every such order, in input order.
        """
        in_degree = dict(self.in_degree)
        ready = [self._position[oid] for oid in self.order_ids if in_degree[oid] == 0]
        heapq.heapify(ready)

        result: list[str] = []
        while ready:
            order_id = self.order_ids[heapq.heappop(ready)]
            result.append(order_id)
            for child in self.children[order_id]:
                in_degree[child] -= 1
                if in_degree[child] == 0:
                    heapq.heappush(ready, self._position[child])

        if len(result) < len(self.order_ids):
            placed = set(result)
            stuck = [oid for oid in self.order_ids if oid not in placed]
            raise CycleDetectedError(stuck)

        return result


def topological_order(work_orders: Sequence[WorkOrder]) -> list[str]:
    """Topologically ordered work order ids. See DependencyGraph."""
    return DependencyGraph(work_orders).topological_order()
