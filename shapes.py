# shapes.py: named chip footprints and the rotation-cache registry
from __future__ import annotations

from typing import Dict, Iterator, Optional, Tuple

from matrix import Matrix, RotationCache

# Footprints in their natural orientation, top row first.
CATALOG: Dict[str, Tuple[str, ...]] = {
    # 1 = A
    "1": ("#",),
    # 2 = B
    "2": ("#", "#"),
    # 3 = C
    "3I": ("#", "#", "#"),
    "3L": ("#.", "##"),
    # 4 = D
    "4I": ("####",),
    "4O": ("##", "##"),
    "4Lm": ("#..", "###"),
    "4L": ("#.", "#.", "##"),
    "4Zm": (".##", "##."),
    "4Z": ("##.", ".##"),
    "4T": (".#.", "###"),
    # 5A = E
    "5Pm": ("#.", "##", "##"),
    "5P": (".#", "##", "##"),
    "5I": ("#####",),
    "5C": ("###", "#.#"),
    "5Z": ("..#", "###", "#.."),
    "5Zm": ("#..", "###", "..#"),
    "5V": ("#..", "#..", "###"),
    "5L": ("#.", "#.", "#.", "##"),
    "5Lm": (".#", ".#", ".#", "##"),
    # 5B = F
    "5W": (".##", "##.", "#.."),
    "5Nm": ("#.", "##", ".#", ".#"),
    "5N": (".#", "##", "#.", "#."),
    "5Ym": ("#.", "##", "#.", "#."),
    "5Y": (".#", "##", ".#", ".#"),
    "5X": (".#.", "###", ".#."),
    "5T": (".#.", ".#.", "###"),
    "5F": ("#..", "###", ".#."),
    "5Fm": ("..#", "###", ".#."),
    # 6 = G
    "6O": ("##", "##", "##"),
    "6A": ("#..", "##.", "###"),
    "6D": (".##.", "####"),
    "6Z": ("###.", ".###"),
    "6Zm": (".###", "###."),
    "6Y": (".#.", "###", "#.#"),
    "6T": ("..#.", "####", "..#."),
    "6I": ("######",),
    "6C": ("#..#", "####"),
    "6R": (".#.", "###", "##."),
}

TYPE_GROUPS: Dict[str, Tuple[str, ...]] = {
    "1": ("1",),
    "2": ("2",),
    "3": ("3I", "3L"),
    "4": ("4I", "4O", "4Lm", "4L", "4Zm", "4Z", "4T"),
    "5A": ("5Pm", "5P", "5I", "5C", "5Z", "5Zm", "5V", "5L", "5Lm"),
    "5B": ("5W", "5Nm", "5N", "5Ym", "5Y", "5X", "5T", "5F", "5Fm"),
    "6": ("6O", "6A", "6D", "6Z", "6Zm", "6Y", "6T", "6I", "6C", "6R"),
}

_TYPE_OF: Dict[str, str] = {
    name: group for group, names in TYPE_GROUPS.items() for name in names
}
_CANONICAL: Dict[str, str] = {name.lower(): name for name in CATALOG}


def canonical_name(name: str) -> Optional[str]:
    """Map user input such as ``"4lm"`` onto the catalog key, or None."""
    if name is None:
        return None
    return _CANONICAL.get(str(name).strip().lower())


def shape_type(name: str) -> Optional[str]:
    key = canonical_name(name)
    return _TYPE_OF.get(key) if key else None


def shapes_of_type(group: str) -> Tuple[str, ...]:
    return TYPE_GROUPS.get(str(group).strip().upper(), ())


def shape_matrix(name: str) -> Matrix:
    key = canonical_name(name)
    if key is None:
        raise KeyError(f"Unknown shape: {name!r}")
    return Matrix.from_strings(CATALOG[key])


def shape_size(name: str) -> int:
    return shape_matrix(name).cell_count


class ShapeRegistry:
    """Rotation caches keyed by shape id, computed once per footprint.

    Build one per run (or per worker process) and pass it into the search;
    nothing here is global.
    """

    def __init__(self, shapes: Optional[Dict[str, Matrix]] = None) -> None:
        self._base: Dict[str, Matrix] = {}
        self._caches: Dict[str, RotationCache] = {}
        for shape_id, matrix in (shapes or {}).items():
            self.register(shape_id, matrix)

    @classmethod
    def default(cls) -> "ShapeRegistry":
        return cls({name: shape_matrix(name) for name in CATALOG})

    def _key(self, shape_id: str) -> str:
        if shape_id in self._base:
            return shape_id
        return canonical_name(shape_id) or shape_id

    def register(self, shape_id: str, matrix: Matrix) -> RotationCache:
        existing = self._base.get(shape_id)
        if existing is not None and existing != matrix:
            raise ValueError(f"Shape {shape_id!r} is already registered with a different footprint")
        if existing is None:
            self._base[shape_id] = matrix
            self._caches[shape_id] = RotationCache.build(matrix)
        return self._caches[shape_id]

    def __contains__(self, shape_id: str) -> bool:
        return self._key(shape_id) in self._base

    def __iter__(self) -> Iterator[str]:
        return iter(self._base)

    def __len__(self) -> int:
        return len(self._base)

    def matrix(self, shape_id: str) -> Matrix:
        try:
            return self._base[self._key(shape_id)]
        except KeyError:
            raise KeyError(f"Unknown shape: {shape_id!r}") from None

    def cache_for(self, shape_id: str) -> RotationCache:
        try:
            return self._caches[self._key(shape_id)]
        except KeyError:
            raise KeyError(f"Unknown shape: {shape_id!r}") from None

    def symmetry_degree(self, shape_id: str) -> int:
        return self.cache_for(shape_id).symmetry_degree

    def __getstate__(self):
        # Caches are rebuilt on unpickle; only footprints cross process boundaries.
        return {"shapes": dict(self._base)}

    def __setstate__(self, state) -> None:
        self.__init__(state.get("shapes"))
