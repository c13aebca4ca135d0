from dataclasses import dataclass
from enum import IntEnum
from typing import Any, Dict, FrozenSet, Tuple

from config import CFG


class Rotation(IntEnum):
    """Clockwise quarter turns applied to a shape footprint."""

    CW0 = 0
    CW90 = 1
    CW180 = 2
    CW270 = 3

    @property
    def degrees(self) -> int:
        return int(self) * 90

    @classmethod
    def parse(cls, value: Any) -> "Rotation":
        """Accept 0..3, 0/90/180/270 or names like ``"cw90"``."""
        if isinstance(value, Rotation):
            return value
        if isinstance(value, str):
            text = value.strip().lower()
            if text.startswith("cw"):
                text = text[2:]
            value = text
        n = int(value)
        if 0 <= n <= 3:
            return cls(n)
        if n % 90 == 0 and 0 <= n < 360:
            return cls(n // 90)
        raise ValueError(f"Not a rotation: {value!r}")


@dataclass(frozen=True)
class Position:
    x: int
    y: int


@dataclass(frozen=True)
class Placement:
    piece_index: int
    position: Position
    rotation: Rotation

    def to_dict(self) -> Dict[str, int]:
        return {
            "piece": self.piece_index,
            "x": self.position.x,
            "y": self.position.y,
            "rotation": int(self.rotation),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Placement":
        return cls(
            int(data["piece"]),
            Position(int(data["x"]), int(data["y"])),
            Rotation.parse(data["rotation"]),
        )


@dataclass(frozen=True)
class Chip:
    """A piece the player owns: a footprint plus the rotation it comes in."""

    shape: str
    natural_rotation: Rotation = Rotation.CW0
    correction_cost: int = 0

    def cost_for(self, rotation: Rotation) -> int:
        return 0 if rotation == self.natural_rotation else self.correction_cost


@dataclass(frozen=True)
class CalculationResult:
    """Placements committed along one search path.

    Values are never mutated; ``extend`` hands back a new result so sibling
    branches never see each other's placements.
    """

    placements: Tuple[Placement, ...] = ()
    correction_cost: int = 0

    @property
    def used(self) -> FrozenSet[int]:
        return frozenset(p.piece_index for p in self.placements)

    def extend(self, placement: Placement, cost: int = 0) -> "CalculationResult":
        return CalculationResult(self.placements + (placement,), self.correction_cost + int(cost))

    def __len__(self) -> int:
        return len(self.placements)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "placements": [p.to_dict() for p in self.placements],
            "correction_cost": self.correction_cost,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CalculationResult":
        placements = tuple(Placement.from_dict(p) for p in data.get("placements") or ())
        return cls(placements, int(data.get("correction_cost") or 0))


@dataclass(frozen=True)
class SearchConfig:
    allow_rotation: bool = True
    # A branch whose free cell count drops below this value is reported as a leaf.
    prune_threshold: int = 0
    first_fit: bool = False
    ascending_pieces: bool = False

    @classmethod
    def from_cfg(cls, cfg=CFG, **overrides: Any) -> "SearchConfig":
        values = dict(
            allow_rotation=bool(cfg.ALLOW_ROTATION),
            prune_threshold=int(cfg.PRUNE_THRESHOLD),
            first_fit=bool(cfg.FIRST_FIT),
            ascending_pieces=bool(cfg.ASCENDING_PIECES),
        )
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "allow_rotation": self.allow_rotation,
            "prune_threshold": self.prune_threshold,
            "first_fit": self.first_fit,
            "ascending_pieces": self.ascending_pieces,
        }
