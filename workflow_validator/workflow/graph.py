"""Graph helpers over an n8n ``connections`` map.

``connections`` maps a source node *name* to ``{port: [[{node, type, index}]]}``
where the outer list is indexed by output slot.  All traversals here are
iterative and track visited nodes, so malformed or cyclic graphs cannot cause
unbounded recursion.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator
from typing import Any

DEFAULT_REACH_DEPTH = 50


def iter_edges(connections: dict[str, Any]) -> Iterator[tuple[str, str, int, dict[str, Any]]]:
    """Yield ``(source, port, output_index, target)`` for every well-formed edge."""
    for source, outputs in connections.items():
        if not isinstance(outputs, dict):
            continue
        for port, slots in outputs.items():
            if not isinstance(slots, list):
                continue
            for output_index, slot in enumerate(slots):
                if not isinstance(slot, list):
                    continue
                for target in slot:
                    if isinstance(target, dict):
                        yield source, port, output_index, target


def successors(connections: dict[str, Any], name: str, ports: tuple[str, ...] | None = None) -> list[str]:
    outputs = connections.get(name)
    if not isinstance(outputs, dict):
        return []
    targets: list[str] = []
    for port, slots in outputs.items():
        if ports is not None and port not in ports:
            continue
        if not isinstance(slots, list):
            continue
        for slot in slots:
            for target in slot if isinstance(slot, list) else []:
                if isinstance(target, dict) and isinstance(target.get("node"), str):
                    targets.append(target["node"])
    return targets


def output_targets(connections: dict[str, Any], name: str, port: str, output_index: int) -> list[str]:
    slots = (connections.get(name) or {}).get(port)
    if not isinstance(slots, list) or output_index >= len(slots) or not isinstance(slots[output_index], list):
        return []
    return [t["node"] for t in slots[output_index] if isinstance(t, dict) and isinstance(t.get("node"), str)]


def has_main_input(connections: dict[str, Any], name: str) -> bool:
    return any(port == "main" and target.get("node") == name for _, port, _, target in iter_edges(connections))


def connected_names(connections: dict[str, Any]) -> set[str]:
    names = set(connections)
    names.update(t.get("node") for _, _, _, t in iter_edges(connections) if isinstance(t.get("node"), str))
    return names


def find_illegal_cycle(
    names: list[str],
    connections: dict[str, Any],
    is_loop_node: Callable[[str], bool],
) -> list[str] | None:
    """Return the first cycle that passes through no loop construct, or None.

    Loop-construct nodes are removed from the graph first, so every cycle left
    is illegal and every illegal cycle survives.  The remainder is searched
    depth-first with an explicit stack; a back edge closes the cycle
    ``path[target:] + [target]``.
    """

    def _next(name: str) -> Iterator[str]:
        return (t for t in successors(connections, name) if not is_loop_node(t))

    visited: set[str] = set()
    for root in names:
        if root in visited or is_loop_node(root):
            continue
        path: list[str] = [root]
        on_path: dict[str, int] = {root: 0}
        iterators = [_next(root)]
        visited.add(root)

        while iterators:
            nxt = next(iterators[-1], None)
            if nxt is None:
                iterators.pop()
                on_path.pop(path.pop(), None)
                continue
            if nxt in on_path:
                return path[on_path[nxt]:] + [nxt]
            if nxt in visited:
                continue
            visited.add(nxt)
            on_path[nxt] = len(path)
            path.append(nxt)
            iterators.append(_next(nxt))
    return None


def longest_linear_chain(names: list[str], connections: dict[str, Any]) -> int:
    """Length of the longest ``main`` path starting at a node with no main input.

    Memoized; nodes reached again while on the current path contribute 0.
    """
    memo: dict[str, int] = {}

    def _length(start: str) -> int:
        stack: list[tuple[str, list[str]]] = [(start, successors(connections, start, ("main",)))]
        visiting = {start}
        while stack:
            node, pending = stack[-1]
            while pending and (pending[-1] in memo or pending[-1] in visiting):
                pending.pop()
            if pending:
                child = pending.pop()
                visiting.add(child)
                stack.append((child, successors(connections, child, ("main",))))
                continue
            best = 0
            for child in successors(connections, node, ("main",)):
                best = max(best, memo.get(child, 0))
            memo[node] = best + 1
            visiting.discard(node)
            stack.pop()
        return memo[start]

    longest = 0
    for name in names:
        if not has_main_input(connections, name):
            longest = max(longest, memo.get(name) or _length(name))
    return longest


def can_reach(
    connections: dict[str, Any],
    start: str,
    goal: str,
    max_depth: int = DEFAULT_REACH_DEPTH,
) -> bool:
    """Bounded breadth-first reachability from *start* to *goal*."""
    frontier = [start]
    seen = {start}
    for _ in range(max_depth):
        next_frontier: list[str] = []
        for name in frontier:
            for target in successors(connections, name):
                if target == goal:
                    return True
                if target not in seen:
                    seen.add(target)
                    next_frontier.append(target)
        if not next_frontier:
            return False
        frontier = next_frontier
    return False


def loop_body(connections: dict[str, Any], loop_node: str, max_depth: int = DEFAULT_REACH_DEPTH) -> set[str]:
    """Names reachable from *loop_node*'s loop output (main index 1) before returning to it."""
    body: set[str] = set()
    frontier = [t for t in output_targets(connections, loop_node, "main", 1) if t != loop_node]
    body.update(frontier)
    for _ in range(max_depth):
        next_frontier: list[str] = []
        for name in frontier:
            for target in successors(connections, name, ("main",)):
                if target != loop_node and target not in body:
                    body.add(target)
                    next_frontier.append(target)
        if not next_frontier:
            break
        frontier = next_frontier
    return body
