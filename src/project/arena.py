"""Arena holding the real/mirror state of package nodes for one command run."""

import logging
from dataclasses import dataclass
from typing import Dict, List, Union

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Real:
    """The node owns its install data."""


@dataclass(frozen=True)
class Mirror:
    """The node duplicates the node stored at ``target``."""
    target: int


NodeState = Union[Real, Mirror]


class NodeArena:
    """Indexes package nodes by id and records which ones are mirrors.

    Nodes join the arena on demand, the first time they are mirrored or
    mirrored to. Resolving a mirror is an index lookup per hop.
    """

    def __init__(self):
        self._nodes: List = []
        self._states: List[NodeState] = []

    def __len__(self) -> int:
        return len(self._nodes)

    def register(self, node) -> int:
        """Add ``node`` as a real node unless it already belongs to this arena."""
        if node.arena is self and node.node_id is not None:
            return node.node_id
        node.node_id = len(self._nodes)
        node.arena = self
        self._nodes.append(node)
        self._states.append(Real())
        return node.node_id

    def state(self, node) -> NodeState:
        if node.arena is not self or node.node_id is None:
            return Real()
        return self._states[node.node_id]

    def set_mirror(self, node, target) -> None:
        """Mark ``node`` as a mirror of ``target``."""
        target_id = self.register(target)
        node_id = self.register(node)
        if node_id == target_id:
            return
        self._states[node_id] = Mirror(target_id)
        logger.debug("add mirror: %s -> %s", node, target)

    def set_real(self, node) -> None:
        node_id = self.register(node)
        self._states[node_id] = Real()

    def is_mirror(self, node) -> bool:
        return isinstance(self.state(node), Mirror)

    def resolve(self, node):
        """Follow mirror links from ``node`` to the node that is not a mirror.

        A cycle stops at the last node reached before it repeats.
        """
        if node.arena is not self or node.node_id is None:
            return node
        current = node.node_id
        visited: Dict[int, bool] = {}
        while True:
            state = self._states[current]
            if not isinstance(state, Mirror):
                return self._nodes[current]
            visited[current] = True
            if state.target in visited:
                logger.warning("mirror cycle detected at %s", self._nodes[current])
                return self._nodes[current]
            current = state.target
