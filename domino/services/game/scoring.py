from typing import Dict, List, Optional, Sequence, Tuple

from domino.models import Tile, WinType
from .deck import pip_total


def open_ends(table: Sequence[Tile]) -> Optional[Tuple[int, int]]:
    if not table:
        return None
    return table[0].left, table[-1].right


def classify_win(table: Sequence[Tile], winning_tile: Optional[Tile]) -> WinType:
    """Classify a round won by emptying a hand.

    cruzada: the closing tile is a double and both open ends are equal.
    lá e lô: a non-double closing tile touching both (different) open ends.
    carroça: any other double.
    Everything else is a simple win.
    """
    ends = open_ends(table)
    if winning_tile is None or ends is None:
        return WinType.SIMPLE
    left, right = ends
    if winning_tile.is_double and left == right:
        return WinType.CRUZADA
    if not winning_tile.is_double and left != right and winning_tile.has(left) and winning_tile.has(right):
        return WinType.LA_E_LO
    if winning_tile.is_double:
        return WinType.CARROCA
    return WinType.SIMPLE


def resolve_locked(hands: Dict[str, List[Tile]], order: Sequence[str], teams: Dict[str, Optional[int]]):
    """Pick the winner of a locked round.

    The lowest pip total wins. Every hand sitting at that minimum is
    compared: if they belong to more than one team the round is a draw.
    Returns ``(player_id, team)`` for a decisive round, ``(None, None)`` for
    a draw. Among same-team holders the first in ``order`` is reported.
    """
    totals = [(pid, pip_total(hands.get(pid, []))) for pid in order]
    if not totals:
        return None, None
    lowest = min(total for _, total in totals)
    holders = [pid for pid, total in totals if total == lowest]
    holder_teams = {teams.get(pid) for pid in holders}
    if len(holder_teams) > 1:
        return None, None
    return holders[0], teams.get(holders[0])
