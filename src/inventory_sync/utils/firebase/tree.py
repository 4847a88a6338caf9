import copy
from typing import Any, Dict, List


def _segments(path: str) -> List[str]:
    return [segment for segment in path.split("/") if segment]


def _normalize(data: Any) -> Any:
    """Firebase returns arrays for collections with sequential integer keys."""
    if isinstance(data, list):
        return {str(index): value for index, value in enumerate(data) if value is not None}
    return data


class CollectionTree:
    """Local mirror of a streamed location.

    Firebase streams `put` (replace at path) and `patch` (merge children at
    path) diffs. Applying them here lets the adapter hand out a full copy of
    the collection after every change.
    """

    def __init__(self):
        self._root: Dict[str, Any] = {}

    def put(self, path: str, data: Any) -> None:
        segments = _segments(path)
        data = _normalize(data)

        if not segments:
            self._root = data if isinstance(data, dict) else {}
            return

        parents = [self._root]
        node = self._root
        for segment in segments[:-1]:
            child = node.get(segment)
            if not isinstance(child, dict):
                if data is None:
                    return
                child = {}
                node[segment] = child
            node = child
            parents.append(node)

        if data is None:
            node.pop(segments[-1], None)
            self._prune(parents, segments)
        else:
            node[segments[-1]] = data

    def patch(self, path: str, data: Dict[str, Any]) -> None:
        prefix = "/".join(_segments(path))
        for key, value in (data or {}).items():
            self.put(f"{prefix}/{key}", value)

    def snapshot(self) -> Dict[str, Any]:
        return copy.deepcopy(self._root)

    @staticmethod
    def _prune(parents: List[Dict[str, Any]], segments: List[str]) -> None:
        # Empty nodes do not exist in the store
        for depth in range(len(parents) - 1, 0, -1):
            if parents[depth]:
                break
            parents[depth - 1].pop(segments[depth - 1], None)
