"""
Directions and Neighbourhood Records

Directions carry their unit offset in map coordinates. North is toward
smaller y, east toward larger x, above toward larger z.

The ``Neighbouring*`` records hold one value per direction. They are built
from a function of the direction and can be OR-ed together when they hold
booleans, which is how connectivity from several sources is merged.
"""

from dataclasses import dataclass, fields
from enum import Enum
from typing import Callable, List, Tuple


class Direction(Enum):
    """The six axis-aligned directions."""
    ABOVE = (0, 0, 1)
    BELOW = (0, 0, -1)
    NORTH = (0, -1, 0)
    EAST = (1, 0, 0)
    SOUTH = (0, 1, 0)
    WEST = (-1, 0, 0)

    @property
    def offset(self) -> Tuple[int, int, int]:
        return self.value


class DirectionFlat(Enum):
    """The four cardinal directions on a level."""
    NORTH = (0, -1, 0)
    EAST = (1, 0, 0)
    SOUTH = (0, 1, 0)
    WEST = (-1, 0, 0)

    @property
    def offset(self) -> Tuple[int, int, int]:
        return self.value

    @property
    def opposite(self) -> "DirectionFlat":
        return _OPPOSITES[self]

    @property
    def quarter_turns(self) -> int:
        """Clockwise quarter turns from north."""
        return _QUARTER_TURNS[self]

    @classmethod
    def from_source(cls, value) -> "DirectionFlat":
        """
        Decode a building direction coming from the game.

        Accepts the integer code (0=N, 1=E, 2=S, 3=W, anything else none)
        or the enum name. Returns None for "no direction".
        """
        if value is None:
            return None
        if isinstance(value, str):
            return _BY_NAME.get(value.upper())
        if 0 <= int(value) < 4:
            return _ORDERED[int(value)]
        return None


_ORDERED = [DirectionFlat.NORTH, DirectionFlat.EAST, DirectionFlat.SOUTH, DirectionFlat.WEST]
_OPPOSITES = {
    DirectionFlat.NORTH: DirectionFlat.SOUTH,
    DirectionFlat.EAST: DirectionFlat.WEST,
    DirectionFlat.SOUTH: DirectionFlat.NORTH,
    DirectionFlat.WEST: DirectionFlat.EAST,
}
_QUARTER_TURNS = {d: i for i, d in enumerate(_ORDERED)}
_BY_NAME = {d.name: d for d in _ORDERED}


class Direction8Flat(Enum):
    """Cardinal and diagonal directions on a level."""
    NORTH = (0, -1, 0)
    NORTH_EAST = (1, -1, 0)
    EAST = (1, 0, 0)
    SOUTH_EAST = (1, 1, 0)
    SOUTH = (0, 1, 0)
    SOUTH_WEST = (-1, 1, 0)
    WEST = (-1, 0, 0)
    NORTH_WEST = (-1, -1, 0)

    @property
    def offset(self) -> Tuple[int, int, int]:
        return self.value


class _BoolOr:
    """Component-wise OR for neighbourhood records of booleans."""

    def __or__(self, other):
        return type(self)(**{
            f.name: bool(getattr(self, f.name)) or bool(getattr(other, f.name))
            for f in fields(self)
        })

    def values(self) -> list:
        return [getattr(self, f.name) for f in fields(self)]


@dataclass(frozen=True)
class Neighbouring(_BoolOr):
    """One value for each of the six directions (a = above, b = below)."""
    a: object
    b: object
    n: object
    e: object
    s: object
    w: object

    @classmethod
    def from_fn(cls, func: Callable[[Direction], object]) -> "Neighbouring":
        return cls(
            a=func(Direction.ABOVE),
            b=func(Direction.BELOW),
            n=func(Direction.NORTH),
            e=func(Direction.EAST),
            s=func(Direction.SOUTH),
            w=func(Direction.WEST),
        )


@dataclass(frozen=True)
class NeighbouringFlat(_BoolOr):
    """One value for each cardinal direction."""
    n: object
    e: object
    s: object
    w: object

    @classmethod
    def from_fn(cls, func: Callable[[DirectionFlat], object]) -> "NeighbouringFlat":
        return cls(
            n=func(DirectionFlat.NORTH),
            e=func(DirectionFlat.EAST),
            s=func(DirectionFlat.SOUTH),
            w=func(DirectionFlat.WEST),
        )

    @classmethod
    def from_direction_string(cls, direction: str) -> "NeighbouringFlat":
        """Direct connectivity: each letter of ``NESW`` present is connected."""
        direction = direction or ""
        return cls(n="N" in direction, e="E" in direction, s="S" in direction, w="W" in direction)

    def directions(self) -> List[DirectionFlat]:
        """The directions holding a truthy value, in N, E, S, W order."""
        return [d for d, v in zip(_ORDERED, (self.n, self.e, self.s, self.w)) if v]


@dataclass(frozen=True)
class Neighbouring8Flat(_BoolOr):
    """One value for each of the eight flat directions."""
    n: object
    ne: object
    e: object
    se: object
    s: object
    sw: object
    w: object
    nw: object

    @classmethod
    def from_fn(cls, func: Callable[[Direction8Flat], object]) -> "Neighbouring8Flat":
        return cls(
            n=func(Direction8Flat.NORTH),
            ne=func(Direction8Flat.NORTH_EAST),
            e=func(Direction8Flat.EAST),
            se=func(Direction8Flat.SOUTH_EAST),
            s=func(Direction8Flat.SOUTH),
            sw=func(Direction8Flat.SOUTH_WEST),
            w=func(Direction8Flat.WEST),
            nw=func(Direction8Flat.NORTH_WEST),
        )


def connectivity_from_direction_string(direction: str) -> NeighbouringFlat:
    """
    Connectivity encoded in a branch direction string.

    A single letter tells where the branch is heading, so it is connected
    on the opposite side. Several letters list the connected sides directly.
    """
    letters = [c for c in (direction or "") if c in "NESW"]
    if len(letters) <= 1:
        return NeighbouringFlat(
            n="S" in letters,
            e="W" in letters,
            s="N" in letters,
            w="E" in letters,
        )
    return NeighbouringFlat(
        n="N" in letters,
        e="E" in letters,
        s="S" in letters,
        w="W" in letters,
    )
