"""
In-memory traceability graph.

LinkGraph is a plain adjacency structure (id → set of ids, both
directions) loaded from DocumentLink rows. Closures are iterative BFS
guarded by a visited set; trees are an iterative depth-first walk guarded
by the current path. Both terminate on any input, including legacy data
that already contains a cycle, and neither recurses.

No database access here; see services/relationship_service.py.
"""

from __future__ import annotations

from collections import deque


class LinkGraph:
    """Directed parent → child graph keyed by document id."""

    def __init__(self, edges=()):
        self._children: dict[str, set[str]] = {}
        self._parents: dict[str, set[str]] = {}
        for parent_id, child_id in edges:
            self.add_edge(parent_id, child_id)

    @classmethod
    def from_links(cls, links) -> LinkGraph:
        """Build from objects exposing ``parent_id`` / ``child_id``."""
        return cls((link.parent_id, link.child_id) for link in links)

    # ── Mutation ─────────────────────────────────────────────────────────

    def add_edge(self, parent_id: str, child_id: str) -> None:
        self._children.setdefault(parent_id, set()).add(child_id)
        self._parents.setdefault(child_id, set()).add(parent_id)

    def remove_edge(self, parent_id: str, child_id: str) -> bool:
        kids = self._children.get(parent_id)
        if not kids or child_id not in kids:
            return False
        kids.discard(child_id)
        self._parents.get(child_id, set()).discard(parent_id)
        return True

    # ── One hop ──────────────────────────────────────────────────────────

    def has_edge(self, parent_id: str, child_id: str) -> bool:
        return child_id in self._children.get(parent_id, ())

    def children(self, node_id: str) -> set[str]:
        return set(self._children.get(node_id, ()))

    def parents(self, node_id: str) -> set[str]:
        return set(self._parents.get(node_id, ()))

    # ── Transitive closure ───────────────────────────────────────────────

    def _walk(self, start: str, adjacency: dict[str, set[str]]) -> list[str]:
        visited = {start}
        order: list[str] = []
        queue = deque([start])
        while queue:
            current = queue.popleft()
            for nxt in sorted(adjacency.get(current, ())):
                if nxt in visited:
                    continue
                visited.add(nxt)
                order.append(nxt)
                queue.append(nxt)
        return order

    def descendants(self, node_id: str) -> list[str]:
        """All ids reachable via child edges, BFS order, start excluded."""
        return self._walk(node_id, self._children)

    def ancestors(self, node_id: str) -> list[str]:
        """All ids reachable via parent edges, BFS order, start excluded."""
        return self._walk(node_id, self._parents)

    def would_create_cycle(self, parent_id: str, child_id: str) -> bool:
        """True if adding parent → child would close a cycle.

        That is the case exactly when ``child_id`` is already an ancestor
        of ``parent_id`` (or the two are the same node).
        """
        if parent_id == child_id:
            return True
        return child_id in set(self.ancestors(parent_id))

    # ── Trees ────────────────────────────────────────────────────────────

    def build_tree(self, root_id: str, describe) -> dict | None:
        """
        Materialize the subtree under ``root_id``.

        ``describe(id)`` returns the node payload (a dict without
        ``children``) or None when the document no longer exists; such
        nodes and everything beneath them are omitted.

        Shared descendants (diamonds) appear under every parent. A child
        that is already on the current root→node path is skipped, which
        cuts cycles in corrupted data. The walk uses an explicit stack, so
        depth is bounded by memory, not by the interpreter recursion limit.
        """
        payloads: dict[str, dict | None] = {}

        def _payload(node_id):
            if node_id not in payloads:
                payloads[node_id] = describe(node_id)
            return payloads[node_id]

        def _kids(node_id):
            return iter(sorted(self._children.get(node_id, ())))

        root_payload = _payload(root_id)
        if root_payload is None:
            return None
        root = {**root_payload, "children": []}

        # Frames: (node id, materialized node, iterator over its child ids)
        path = {root_id}
        stack = [(root_id, root, _kids(root_id))]
        while stack:
            node_id, node, pending = stack[-1]
            child_id = next(pending, None)
            if child_id is None:
                stack.pop()
                path.discard(node_id)
                continue
            if child_id in path:
                continue
            payload = _payload(child_id)
            if payload is None:
                continue
            child = {**payload, "children": []}
            node["children"].append(child)
            path.add(child_id)
            stack.append((child_id, child, _kids(child_id)))

        return root

    def __len__(self):
        return sum(len(kids) for kids in self._children.values())

    def __repr__(self):
        return f"<LinkGraph edges={len(self)}>"
