"""Parse reservation rows scraped from the host's reservations listing."""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping, Sequence
from typing import Any

from ..models.reservation import ReservationCandidate

CODE_PATTERN = re.compile(r"^HM[A-Z0-9]{6,}$")
CHECKIN_CELL_INDEX = 3


def parse_reservation_row(
    cells: Sequence[Mapping[str, Any]],
    first_link_text: str | None = None,
) -> ReservationCandidate | None:
    """
    Turn one listing row into a reservation candidate.

    Each cell snapshot is a mapping with ``text`` and, when the cell holds an
    anchor, ``link_text`` and ``link_href``.

    Args:
        cells: Cell snapshots in column order
        first_link_text: Text of the first anchor anywhere in the row, used
            when no cell yields a guest name

    Returns:
        ReservationCandidate, or None if the row has fewer than two cells or
        no confirmation code
    """
    if len(cells) < 2:
        return None

    code: str | None = None
    guest: str | None = None
    amount: str | None = None

    for cell in cells:
        text = (cell.get("text") or "").strip()
        if CODE_PATTERN.match(text):
            code = text
        elif text.startswith("€"):
            amount = text
        elif cell.get("link_href") is not None and not guest:
            if "airbnb" not in cell["link_href"]:
                guest = (cell.get("link_text") or "").strip()

    checkin = None
    if len(cells) > CHECKIN_CELL_INDEX:
        checkin = (cells[CHECKIN_CELL_INDEX].get("text") or "").strip()

    if not guest and first_link_text:
        guest = first_link_text.strip()

    if code is None:
        return None
    return ReservationCandidate(code=code, guest=guest or None, amount=amount, checkin=checkin or None)


def parse_reservation_rows(rows: Iterable[Mapping[str, Any]]) -> list[ReservationCandidate]:
    """
    Parse every row snapshot (``{"cells": [...], "first_link_text": ...}``),
    skipping rows without a confirmation code. Page order is preserved.
    """
    candidates: list[ReservationCandidate] = []
    for row in rows:
        candidate = parse_reservation_row(row.get("cells") or [], row.get("first_link_text"))
        if candidate is not None:
            candidates.append(candidate)
    return candidates
