from __future__ import annotations

import pytest

from bridge_trainer.colregs import (
    DOUBLE_CLICK_S,
    SHIP_CATALOG,
    SHIP_H,
    SHIP_W,
    Aspect,
    ShipFilter,
    ShipLength,
    ShipStatus,
    ShipType,
    Whiteboard,
    filter_ships,
)


def _by_name(name: str):
    return next(s for s in SHIP_CATALOG if s.name == name)


def test_catalog_holds_the_eight_pdv_diagrams() -> None:
    assert [s.ship_id for s in SHIP_CATALOG] == list(range(1, 9))
    assert {s.ship_type for s in SHIP_CATALOG} == {ShipType.PDV}
    assert {s.status for s in SHIP_CATALOG} == {ShipStatus.UNDERWAY}

    sb = _by_name("PDV >50m SB")
    assert sb.day_image == "pdv_stbd_over50m_underway_day.png"
    assert sb.night_image == "pdv_stbd_over50m_underway_night.png"
    assert _by_name("PDV <50m BOW").day_image == "pdv_bow_under50m_underway_day.png"


def test_filters_combine_and_none_means_all() -> None:
    assert filter_ships(SHIP_CATALOG, ShipFilter()) == SHIP_CATALOG

    port = filter_ships(SHIP_CATALOG, ShipFilter(aspect=Aspect.PORT))
    assert [s.name for s in port] == ["PDV >50m PS", "PDV <50m PS"]

    small_stern = filter_ships(SHIP_CATALOG, ShipFilter(length=ShipLength.UNDER_50, aspect=Aspect.STERN))
    assert [s.ship_id for s in small_stern] == [5]

    assert filter_ships(SHIP_CATALOG, ShipFilter(ship_type=ShipType.TANKER)) == ()
    assert filter_ships(SHIP_CATALOG, ShipFilter(status=ShipStatus.ANCHORED)) == ()
    assert filter_ships(SHIP_CATALOG, ShipFilter(length=ShipLength.UNKNOWN)) == ()


def test_board_library_follows_the_active_filter() -> None:
    board = Whiteboard()
    assert board.library() == SHIP_CATALOG
    board.set_filter(ShipFilter(length=ShipLength.OVER_50))
    assert [s.ship_id for s in board.library()] == [1, 2, 3, 4]


def test_place_move_remove_clear() -> None:
    board = Whiteboard()
    first = board.place(SHIP_CATALOG[0], 400, 300)
    second = board.place(SHIP_CATALOG[0], 400, 300)

    assert (first.x, first.y) == (400 - SHIP_W / 2, 300 - SHIP_H / 2)
    assert first.placement_id != second.placement_id
    assert board.ship_at(400, 300) == second

    assert board.move(first.placement_id, 10, 20) is True
    assert board.placed[0].x == 10.0 and board.placed[0].y == 20.0
    assert board.move(999, 0, 0) is False

    assert board.remove(second.placement_id) is True
    assert board.remove(second.placement_id) is False
    assert len(board.placed) == 1

    board.place(SHIP_CATALOG[3], 50, 50)
    assert board.clear() == 2
    assert board.placed == ()
    assert board.ship_at(20, 30) is None


def test_drag_keeps_the_grab_offset() -> None:
    board = Whiteboard()
    placed = board.place(SHIP_CATALOG[1], 200, 200)  # top-left at (50, 150)

    grabbed = board.press(60, 160, now_s=0.0)
    assert grabbed is not None and grabbed.placement_id == placed.placement_id
    assert board.drag_to(110, 260) is True
    moved = board.dragging
    assert moved is not None
    assert (moved.x, moved.y) == (100.0, 250.0)

    board.release()
    assert board.dragging is None
    assert board.drag_to(0, 0) is False
    assert board.placed[0].x == 100.0


def test_double_press_removes_but_slow_presses_do_not() -> None:
    board = Whiteboard()
    board.place(SHIP_CATALOG[2], 200, 200)

    board.press(200, 200, now_s=1.0)
    board.release()
    assert board.press(200, 200, now_s=1.0 + DOUBLE_CLICK_S + 0.1) is not None
    board.release()
    assert len(board.placed) == 1

    assert board.press(200, 200, now_s=5.0) is not None
    board.release()
    assert board.press(200, 200, now_s=5.2) is None
    assert board.placed == ()
    assert board.dragging is None


def test_press_on_empty_water_grabs_nothing() -> None:
    board = Whiteboard()
    board.place(SHIP_CATALOG[0], 500, 500)
    assert board.press(5, 5, now_s=0.0) is None
    assert board.dragging is None


@pytest.mark.parametrize(("night", "suffix"), [(False, "_day.png"), (True, "_night.png")])
def test_image_follows_day_night_mode(night: bool, suffix: str) -> None:
    board = Whiteboard()
    placed = board.place(SHIP_CATALOG[4], 100, 100)
    if night:
        assert board.toggle_night() is True
    assert board.night is night
    assert board.image_for(placed).endswith(suffix)
