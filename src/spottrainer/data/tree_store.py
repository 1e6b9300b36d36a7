"""Lazily populated decision trees keyed by solution id.

Nodes arrive through an external loader and are merged into the owning
:class:`~spottrainer.core.models.Solution` in place.  The store never evicts a
node and never asks the loader for an id it already holds or is already
waiting on.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterable, Sequence

from ..core.errors import DataUnavailableError, StructuralInvariantError
from ..core.models import DecisionNode, Solution

__all__ = ["DecisionTreeStore", "NodeLoader"]

logger = logging.getLogger(__name__)

NodeLoader = Callable[[str, Sequence[int]], Awaitable[Solution | None]]


class DecisionTreeStore:
    def __init__(self, solutions: Iterable[Solution], loader: NodeLoader) -> None:
        self._solutions: dict[str, Solution] = {solution.id: solution for solution in solutions}
        self._loader = loader
        self._inflight: dict[tuple[str, int], asyncio.Future[None]] = {}

    @property
    def solutions(self) -> list[Solution]:
        return list(self._solutions.values())

    def solution(self, solution_id: str) -> Solution:
        solution = self._solutions.get(solution_id)
        if solution is None:
            raise KeyError(f"solution '{solution_id}' not found")
        return solution

    def get_node(self, solution_id: str, node_id: int) -> DecisionNode | None:
        return self.solution(solution_id).get(node_id)

    async def ensure_nodes(self, solution_id: str, node_ids: Iterable[int]) -> Solution:
        """Load whatever of ``node_ids`` is missing and return the updated solution.

        Ids the loader does not deliver stay absent; callers decide whether
        that is fatal.
        """

        solution = self.solution(solution_id)
        missing = [node_id for node_id in dict.fromkeys(node_ids) if not solution.has(node_id)]
        if not missing:
            return solution

        pending = [self._inflight[(solution_id, node_id)] for node_id in missing if (solution_id, node_id) in self._inflight]
        to_fetch = [node_id for node_id in missing if (solution_id, node_id) not in self._inflight]

        if to_fetch:
            done: asyncio.Future[None] = asyncio.get_running_loop().create_future()
            for node_id in to_fetch:
                self._inflight[(solution_id, node_id)] = done
            try:
                await self._fetch(solution, to_fetch)
            except StructuralInvariantError as exc:
                # waiters on these ids re-raise it; there may be none, so mark it retrieved
                done.set_exception(exc)
                done.exception()
                raise
            finally:
                for node_id in to_fetch:
                    self._inflight.pop((solution_id, node_id), None)
                if not done.done():
                    done.set_result(None)

        if pending:
            await asyncio.gather(*set(pending))
        return solution

    async def require_node(self, solution_id: str, node_id: int) -> DecisionNode:
        solution = await self.ensure_nodes(solution_id, [node_id])
        node = solution.get(node_id)
        if node is None:
            raise DataUnavailableError(f"node {node_id} unavailable after load")
        return node

    async def _fetch(self, solution: Solution, node_ids: list[int]) -> None:
        logger.debug("Loading nodes", extra={"solution_id": solution.id, "node_ids": node_ids})
        try:
            loaded = await self._loader(solution.id, node_ids)
        except StructuralInvariantError:
            raise
        except Exception:  # noqa: BLE001
            logger.warning("Node loader raised for %s %s", solution.id, node_ids, exc_info=True)
            return
        if loaded is None:
            logger.info("Node loader returned nothing for %s %s", solution.id, node_ids)
            return
        written = solution.merge_nodes(loaded.nodes, requested=node_ids)
        absent = [node_id for node_id in node_ids if not solution.has(node_id)]
        if absent:
            logger.info("Loader did not deliver nodes %s for %s", absent, solution.id)
        logger.debug("Merged nodes", extra={"solution_id": solution.id, "written": written})
