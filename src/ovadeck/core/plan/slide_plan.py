"""
slide_plan.py — Slide numbering and hyperlink graph, computed before drawing.

Numbering (1-based, contiguous):
  1               cover
  2               menu
  3 .. 2+N        unit slides, document order
  3+N .. total    popup slides, grouped by unit, parse order inside a unit

Links:
  cover          -> menu
  menu           -> every unit
  unit i         -> menu, previous unit (menu for the first), next unit (menu for the last)
  unit i button  -> its popup
  popup          -> menu, owning unit
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Sequence

COVER_SLIDE = 1
MENU_SLIDE = 2


class LinkRole(str, Enum):
    START = "start"
    UNIT = "unit"
    MENU = "menu"
    PREVIOUS = "previous"
    NEXT = "next"
    POPUP = "popup"
    BACK = "back"


@dataclass(frozen=True)
class Link:
    source: int
    target: int
    role: LinkRole


@dataclass(frozen=True)
class UnitSlots:
    unit_index: int
    unit_id: str
    slide_no: int
    popup_slide_nos: tuple[int, ...] = ()


@dataclass(frozen=True)
class SlidePlan:
    units: tuple[UnitSlots, ...]
    total: int

    def __post_init__(self) -> None:
        for link in self.links():
            if not (1 <= link.source <= self.total and 1 <= link.target <= self.total):
                raise AssertionError(
                    f"slide plan link {link.role.value} {link.source}->{link.target} outside 1..{self.total}"
                )

    @property
    def cover(self) -> int:
        return COVER_SLIDE

    @property
    def menu(self) -> int:
        return MENU_SLIDE

    def unit_slide(self, unit_index: int) -> int:
        return self.units[unit_index].slide_no

    def popup_slide(self, unit_index: int, popup_index: int) -> int:
        return self.units[unit_index].popup_slide_nos[popup_index]

    def previous_target(self, unit_index: int) -> int:
        return self.units[unit_index - 1].slide_no if unit_index > 0 else MENU_SLIDE

    def next_target(self, unit_index: int) -> int:
        return self.units[unit_index + 1].slide_no if unit_index + 1 < len(self.units) else MENU_SLIDE

    def links(self) -> list[Link]:
        out = [Link(COVER_SLIDE, MENU_SLIDE, LinkRole.START)]
        out.extend(Link(MENU_SLIDE, u.slide_no, LinkRole.UNIT) for u in self.units)
        for i, u in enumerate(self.units):
            out.append(Link(u.slide_no, MENU_SLIDE, LinkRole.MENU))
            out.append(Link(u.slide_no, self.previous_target(i), LinkRole.PREVIOUS))
            out.append(Link(u.slide_no, self.next_target(i), LinkRole.NEXT))
            for p in u.popup_slide_nos:
                out.append(Link(u.slide_no, p, LinkRole.POPUP))
                out.append(Link(p, MENU_SLIDE, LinkRole.MENU))
                out.append(Link(p, u.slide_no, LinkRole.BACK))
        return out


def build_slide_plan(popup_counts: Sequence[int], unit_ids: Sequence[str] | None = None) -> SlidePlan:
    """Number every slide for N units with the given popup counts."""
    n = len(popup_counts)
    if unit_ids is not None and len(unit_ids) != n:
        raise ValueError("unit_ids and popup_counts must have the same length")

    next_popup = MENU_SLIDE + n + 1
    units: list[UnitSlots] = []
    for i, count in enumerate(popup_counts):
        count = max(0, int(count))
        popups = tuple(range(next_popup, next_popup + count))
        next_popup += count
        units.append(
            UnitSlots(
                unit_index=i,
                unit_id=unit_ids[i] if unit_ids is not None else f"U{i + 1}",
                slide_no=MENU_SLIDE + 1 + i,
                popup_slide_nos=popups,
            )
        )
    return SlidePlan(units=tuple(units), total=next_popup - 1)
