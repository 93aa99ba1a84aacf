#!/usr/bin/env python3
"""
Tile position allocation.

Every tile in a family owns one cell (x, y) on one layer z of the tilesheets.
New tiles are placed by walking a growing square outwards from the top-left
corner, so the sheets stay roughly square as tiles accumulate:

    ring 0:  (0,0)
    ring 1:  (1,0) (0,1) (1,1)
    ring 2:  (2,0) (2,1) (0,2) (1,2) (2,2)
    ...

Once a layer has been filled up to LAYER_CAPACITY rings the walk continues on
the next layer. Positions that already belong to a tile are never handed out.
"""

from dataclasses import dataclass
from typing import Dict, Iterable, List, NamedTuple, Optional, Set

LAYER_CAPACITY = 64


class TilePos(NamedTuple):
    x: int
    y: int
    z: int = 0


@dataclass
class Tile:
    name: str
    position: TilePos
    registry_id: Optional[int] = None


class TileAllocator:
    """Hands out free positions in spiral order.

    The cursor only moves forward. Given the same set of occupied positions
    the same sequence of positions comes out.
    """

    def __init__(self, occupied: Iterable[TilePos] = (), layer_capacity: int = LAYER_CAPACITY):
        if layer_capacity < 1:
            raise ValueError(f'layer capacity must be positive, got {layer_capacity}')
        self.layer_capacity = layer_capacity
        self.occupied: Set[TilePos] = set(occupied)
        self.ring = 0
        self.offset = 0
        self.layer = 0

    def candidate(self) -> TilePos:
        if self.offset < self.ring:
            return TilePos(self.ring, self.offset, self.layer)
        return TilePos(self.offset - self.ring, self.ring, self.layer)

    def advance(self):
        self.offset += 1
        if self.offset > 2 * self.ring:
            self.offset = 0
            self.ring += 1
            if self.ring >= self.layer_capacity:
                self.ring = 0
                self.layer += 1

    def allocate(self) -> TilePos:
        while True:
            pos = self.candidate()
            if pos not in self.occupied:
                self.occupied.add(pos)
                return pos
            self.advance()

    def occupy(self, pos: TilePos):
        self.occupied.add(pos)

    def release(self, pos: TilePos):
        self.occupied.discard(pos)

    def is_occupied(self, pos: TilePos) -> bool:
        return pos in self.occupied


class TileTable:
    """Live tiles of one family, indexed by name and by position."""

    def __init__(self, layer_capacity: int = LAYER_CAPACITY):
        self.tiles: Dict[str, Tile] = {}
        self.positions: Dict[TilePos, str] = {}
        self.allocator = TileAllocator(layer_capacity=layer_capacity)

    def __contains__(self, name: str) -> bool:
        return name in self.tiles

    def __len__(self) -> int:
        return len(self.tiles)

    def __iter__(self):
        return iter(self.tiles.values())

    def add_existing(self, name: str, pos: TilePos, registry_id: Optional[int] = None) -> Tile:
        """Record a tile that already has a position (e.g. from the registry)."""
        pos = TilePos(*pos)
        if name in self.tiles:
            raise ValueError(f'Duplicate tile name {name!r}')
        if pos in self.positions:
            raise ValueError(
                f'Tiles {self.positions[pos]!r} and {name!r} share position {tuple(pos)}'
            )
        tile = Tile(name, pos, registry_id)
        self.tiles[name] = tile
        self.positions[pos] = name
        self.allocator.occupy(pos)
        return tile

    def lookup(self, name: str) -> TilePos:
        """Return the position of a tile, allocating one for unknown names."""
        tile = self.tiles.get(name)
        if tile is not None:
            return tile.position
        pos = self.allocator.allocate()
        tile = Tile(name, pos)
        self.tiles[name] = tile
        self.positions[pos] = name
        return pos

    def remove(self, name: str) -> Tile:
        """Remove a tile and free its position. Raises KeyError if unknown."""
        tile = self.tiles.pop(name)
        del self.positions[tile.position]
        self.allocator.release(tile.position)
        return tile

    def new_tiles(self) -> List[Tile]:
        """Tiles allocated this run that the registry does not know yet."""
        return [tile for tile in self.tiles.values() if tile.registry_id is None]
