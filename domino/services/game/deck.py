import random
from typing import Dict, List, Sequence, Tuple

from domino.models import Tile

MAX_PIP = 6
HAND_SIZE = 6
DECK_SIZE = 28


def initialize_deck() -> List[Tile]:
    """All 28 tiles in a fixed order: 0-0, 0-1, ... 0-6, 1-1, ... 6-6."""
    return [Tile(i, j) for i in range(MAX_PIP + 1) for j in range(i, MAX_PIP + 1)]


def shuffle(items: List, rng: random.Random) -> None:
    """In-place Fisher-Yates, walking down from the last index to 1."""
    for i in range(len(items) - 1, 0, -1):
        j = rng.randint(0, i)
        items[i], items[j] = items[j], items[i]


def deal(tiles: Sequence[Tile], player_ids: Sequence[str]) -> Tuple[Dict[str, List[Tile]], List[Tile]]:
    """Hand out contiguous slices of HAND_SIZE in seat order.

    Returns the hands keyed by player id and the undealt boneyard.
    """
    if len(tiles) != DECK_SIZE:
        raise ValueError(f"Expected a full deck of {DECK_SIZE} tiles, got {len(tiles)}")
    hands: Dict[str, List[Tile]] = {}
    for seat, player_id in enumerate(player_ids):
        hands[player_id] = list(tiles[seat * HAND_SIZE:(seat + 1) * HAND_SIZE])
    boneyard = list(tiles[len(player_ids) * HAND_SIZE:])
    return hands, boneyard


def pip_total(hand: Sequence[Tile]) -> int:
    return sum(t.pips for t in hand)
