"""COLREGS whiteboard: lay out vessel light diagrams on a sea board.

Cadets pick diagrams from a filtered ship library, drop them on the board,
drag them about and explain the encounter. Board coordinates are pixels with
the origin at the top-left of the board area.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import StrEnum

from .logger import get_logger

log = get_logger(__name__)

SHIP_W = 300
SHIP_H = 100
DOUBLE_CLICK_S = 0.4


class ShipType(StrEnum):
    PDV = "pdv"
    TANKER = "tanker"
    PASSENGER = "passenger"
    FISHING = "fishing"


class ShipLength(StrEnum):
    UNKNOWN = "unknown"
    UNDER_50 = "under50"
    OVER_50 = "over50"


class ShipStatus(StrEnum):
    UNDERWAY = "underway"
    ANCHORED = "anchored"


class Aspect(StrEnum):
    PORT = "port"
    STARBOARD = "starboard"
    BOW = "bow"
    STERN = "stern"


@dataclass(frozen=True, slots=True)
class ShipDiagram:
    ship_id: int
    name: str
    ship_type: ShipType
    length: ShipLength
    status: ShipStatus
    aspect: Aspect
    day_image: str
    night_image: str

    def image(self, *, night: bool) -> str:
        return self.night_image if night else self.day_image


def _diagram(ship_id: int, name: str, length: ShipLength, aspect: Aspect) -> ShipDiagram:
    size = "over50m" if length is ShipLength.OVER_50 else "under50m"
    side = "stbd" if aspect is Aspect.STARBOARD else aspect.value
    stem = f"pdv_{side}_{size}_underway"
    return ShipDiagram(
        ship_id=ship_id,
        name=name,
        ship_type=ShipType.PDV,
        length=length,
        status=ShipStatus.UNDERWAY,
        aspect=aspect,
        day_image=f"{stem}_day.png",
        night_image=f"{stem}_night.png",
    )


SHIP_CATALOG: tuple[ShipDiagram, ...] = (
    _diagram(1, "PDV >50m SB", ShipLength.OVER_50, Aspect.STARBOARD),
    _diagram(2, "PDV >50m PS", ShipLength.OVER_50, Aspect.PORT),
    _diagram(3, "PDV >50m BOW", ShipLength.OVER_50, Aspect.BOW),
    _diagram(4, "PDV >50m STERN", ShipLength.OVER_50, Aspect.STERN),
    _diagram(5, "PDV <50m STERN", ShipLength.UNDER_50, Aspect.STERN),
    _diagram(6, "PDV <50m BOW", ShipLength.UNDER_50, Aspect.BOW),
    _diagram(7, "PDV <50m PS", ShipLength.UNDER_50, Aspect.PORT),
    _diagram(8, "PDV <50m SB", ShipLength.UNDER_50, Aspect.STARBOARD),
)


@dataclass(frozen=True, slots=True)
class ShipFilter:
    """Library filter; None in a field means "all"."""

    ship_type: ShipType | None = None
    length: ShipLength | None = None
    status: ShipStatus | None = None
    aspect: Aspect | None = None

    def matches(self, ship: ShipDiagram) -> bool:
        return (
            (self.ship_type is None or ship.ship_type is self.ship_type)
            and (self.length is None or ship.length is self.length)
            and (self.status is None or ship.status is self.status)
            and (self.aspect is None or ship.aspect is self.aspect)
        )


def filter_ships(catalog: tuple[ShipDiagram, ...], flt: ShipFilter) -> tuple[ShipDiagram, ...]:
    return tuple(ship for ship in catalog if flt.matches(ship))


@dataclass(frozen=True, slots=True)
class PlacedShip:
    placement_id: int
    ship: ShipDiagram
    x: float
    y: float

    def contains(self, x: float, y: float) -> bool:
        return self.x <= x <= self.x + SHIP_W and self.y <= y <= self.y + SHIP_H


class Whiteboard:
    """Placed diagrams, drag state and the day/night toggle.

    ``press`` on a diagram starts dragging it; a second press on the same
    diagram within ``DOUBLE_CLICK_S`` removes it instead.
    """

    def __init__(self) -> None:
        self._placed: list[PlacedShip] = []
        self._next_id = 1
        self._night = False
        self._filter = ShipFilter()

        self._drag_id: int | None = None
        self._drag_offset = (0.0, 0.0)
        self._last_press: tuple[int, float] | None = None

    @property
    def placed(self) -> tuple[PlacedShip, ...]:
        return tuple(self._placed)

    @property
    def night(self) -> bool:
        return self._night

    @property
    def filter(self) -> ShipFilter:
        return self._filter

    @property
    def dragging(self) -> PlacedShip | None:
        if self._drag_id is None:
            return None
        return self._find(self._drag_id)

    def set_filter(self, flt: ShipFilter) -> None:
        self._filter = flt

    def library(self, catalog: tuple[ShipDiagram, ...] = SHIP_CATALOG) -> tuple[ShipDiagram, ...]:
        return filter_ships(catalog, self._filter)

    def toggle_night(self) -> bool:
        self._night = not self._night
        return self._night

    def image_for(self, placed: PlacedShip) -> str:
        return placed.ship.image(night=self._night)

    def place(self, ship: ShipDiagram, x: float, y: float) -> PlacedShip:
        """Drop a diagram centred on (x, y)."""
        placed = PlacedShip(
            placement_id=self._next_id,
            ship=ship,
            x=float(x) - SHIP_W / 2,
            y=float(y) - SHIP_H / 2,
        )
        self._next_id += 1
        self._placed.append(placed)
        log.debug("placed %s as #%d", ship.name, placed.placement_id)
        return placed

    def move(self, placement_id: int, x: float, y: float) -> bool:
        for idx, placed in enumerate(self._placed):
            if placed.placement_id == placement_id:
                self._placed[idx] = replace(placed, x=float(x), y=float(y))
                return True
        return False

    def remove(self, placement_id: int) -> bool:
        before = len(self._placed)
        self._placed = [p for p in self._placed if p.placement_id != placement_id]
        if self._drag_id == placement_id:
            self._drag_id = None
        return len(self._placed) != before

    def clear(self) -> int:
        count = len(self._placed)
        self._placed.clear()
        self._drag_id = None
        self._last_press = None
        return count

    def ship_at(self, x: float, y: float) -> PlacedShip | None:
        """Topmost (last placed) diagram under the point."""
        for placed in reversed(self._placed):
            if placed.contains(x, y):
                return placed
        return None

    def press(self, x: float, y: float, *, now_s: float) -> PlacedShip | None:
        """Mouse down on the board. Returns the diagram now being dragged."""
        hit = self.ship_at(x, y)
        if hit is None:
            self._last_press = None
            return None

        last = self._last_press
        if last is not None and last[0] == hit.placement_id and now_s - last[1] <= DOUBLE_CLICK_S:
            self._last_press = None
            self.remove(hit.placement_id)
            return None

        self._last_press = (hit.placement_id, now_s)
        self._drag_id = hit.placement_id
        self._drag_offset = (x - hit.x, y - hit.y)
        return hit

    def drag_to(self, x: float, y: float) -> bool:
        if self._drag_id is None:
            return False
        dx, dy = self._drag_offset
        return self.move(self._drag_id, x - dx, y - dy)

    def release(self) -> None:
        self._drag_id = None

    def _find(self, placement_id: int) -> PlacedShip | None:
        for placed in self._placed:
            if placed.placement_id == placement_id:
                return placed
        return None
