import random

import pytest

from domino.models import Tile
from domino.services.game.deck import DECK_SIZE, HAND_SIZE, deal, initialize_deck, pip_total, shuffle


class RecordingRng:
    """Always swaps with index 0 and remembers the bounds it was asked for."""

    def __init__(self):
        self.calls = []

    def randint(self, a, b):
        self.calls.append((a, b))
        return 0


def test_deck_has_every_tile_once():
    deck = initialize_deck()
    assert len(deck) == DECK_SIZE
    assert len({(t.left, t.right) for t in deck}) == DECK_SIZE
    assert all(t.left <= t.right for t in deck)
    assert sum(1 for t in deck if t.is_double) == 7
    assert deck[0] == Tile(0, 0)
    assert deck[-1] == Tile(6, 6)
    assert initialize_deck() == deck


def test_shuffle_walks_down_from_the_last_index():
    rng = RecordingRng()
    items = [0, 1, 2, 3]
    shuffle(items, rng)
    assert rng.calls == [(0, 3), (0, 2), (0, 1)]
    assert items == [1, 2, 3, 0]


def test_shuffle_is_a_seeded_permutation():
    first = initialize_deck()
    second = initialize_deck()
    shuffle(first, random.Random(3))
    shuffle(second, random.Random(3))
    assert first == second
    assert sorted(first, key=lambda t: (t.left, t.right)) == initialize_deck()


def test_deal_hands_out_contiguous_slices():
    deck = initialize_deck()
    hands, boneyard = deal(deck, ['a', 'b', 'c', 'd'])
    assert list(hands) == ['a', 'b', 'c', 'd']
    assert all(len(h) == HAND_SIZE for h in hands.values())
    assert hands['b'] == deck[6:12]
    assert boneyard == deck[24:]
    assert len(boneyard) == 4


def test_tile_helpers():
    tile = Tile(2, 5)
    assert not tile.is_double
    assert tile.flipped() == Tile(5, 2)
    assert tile.has(5) and not tile.has(3)
    assert tile.to_dict() == {'left': 2, 'right': 5, 'isDouble': False}
    assert Tile(4, 4).is_double
    assert pip_total([Tile(1, 2), Tile(6, 6)]) == 15


def test_tile_rejects_out_of_range_pips():
    with pytest.raises(ValueError):
        Tile(0, 7)


def test_deal_refuses_a_short_deck():
    with pytest.raises(ValueError):
        deal(initialize_deck()[:-1], ['a', 'b', 'c', 'd'])
