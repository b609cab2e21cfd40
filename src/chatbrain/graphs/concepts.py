"""
Concept and association graphs.

The concept graph counts how often each concept has been seen. The
association graph counts co-occurrence of concept pairs within one text;
it is symmetric: graph[a][b] == graph[b][a] after every update.
"""

from typing import Dict, List, Sequence

from chatbrain.state import now_iso


class ConceptGraph:
    """Per-concept occurrence counts with a last-seen timestamp."""

    def __init__(self, graph: Dict[str, dict]):
        self._graph = graph

    def update(self, concepts: Sequence[str]) -> None:
        stamp = now_iso()
        for concept in concepts:
            node = self._graph.setdefault(concept, {"count": 0, "last_seen": None})
            node["count"] = int(node.get("count") or 0) + 1
            node["last_seen"] = stamp

    def count(self, concept: str) -> int:
        node = self._graph.get(concept)
        return int(node.get("count") or 0) if isinstance(node, dict) else 0

    def __contains__(self, concept: object) -> bool:
        return concept in self._graph

    def __len__(self) -> int:
        return len(self._graph)


class AssociationGraph:
    """
    Symmetric weighted co-occurrence graph.

    Example:
        >>> graph = AssociationGraph({})
        >>> graph.update(["plants", "light", "water"])
        >>> graph.weight("light", "plants") == graph.weight("plants", "light") == 1
        True
    """

    def __init__(self, graph: Dict[str, Dict[str, int]]):
        self._graph = graph

    def update(self, concepts: Sequence[str]) -> None:
        """Increment every pair of concepts in both directions."""
        if len(concepts) < 2:
            return

        for left_index, left in enumerate(concepts):
            for right in concepts[left_index + 1:]:
                left_edges = self._graph.setdefault(left, {})
                right_edges = self._graph.setdefault(right, {})
                left_edges[right] = left_edges.get(right, 0) + 1
                right_edges[left] = right_edges.get(left, 0) + 1

    def weight(self, left: str, right: str) -> int:
        return self._graph.get(left, {}).get(right, 0)

    def associated(self, concepts: Sequence[str], limit: int = 3) -> List[str]:
        """
        Rank neighbours of `concepts` by summed edge weight, excluding the
        query concepts themselves.
        """
        scored: Dict[str, int] = {}
        for concept in concepts:
            for candidate, weight in self._graph.get(concept, {}).items():
                if candidate in concepts:
                    continue
                scored[candidate] = scored.get(candidate, 0) + weight

        ranked = sorted(scored.items(), key=lambda item: item[1], reverse=True)
        return [concept for concept, _ in ranked[:limit]]

    def __len__(self) -> int:
        return len(self._graph)
