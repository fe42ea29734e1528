import itertools
import logging
import random
import uuid
from dataclasses import replace
from typing import Dict, List, Optional, Tuple

from domino.models import (
    ENDS,
    LEFT,
    WIN_POINTS,
    ActionResult,
    GameError,
    Move,
    Phase,
    Player,
    RoundResult,
    TeamAssignment,
    Tile,
    WinType,
)
from . import deck
from .scoring import classify_win, open_ends, resolve_locked

logger = logging.getLogger(__name__)

MAX_PLAYERS = 4
MIN_NAME_LENGTH = 2
MAX_NAME_LENGTH = 20
MATCH_TARGET = 6

_generations = itertools.count(1)


class GameSession:
    """Authoritative state for one table of four players split into two teams.

    Every command returns a result object instead of raising; the caller is
    expected to serialize commands for a given session. Query methods hand
    out copies, never the live engine state.
    """

    def __init__(self, table_id: str = 'main', rng: Optional[random.Random] = None):
        self.table_id = table_id
        # distinguishes sessions that reuse a table id
        self.generation = next(_generations)
        self._rng = rng if rng is not None else random.Random()
        self._players: List[Player] = []
        self._teams: Dict[int, List[Player]] = {1: [], 2: []}
        self._deck: List[Tile] = deck.initialize_deck()
        self._hands: Dict[str, List[Tile]] = {}
        self._boneyard: List[Tile] = []
        self._table: List[Tile] = []
        self._last_placed: Optional[Tile] = None
        self._current_index = 0
        self._started = False
        self._round_number = 1
        self._scores: Dict[int, int] = {1: 0, 2: 0}
        self._pass_count = 0
        self._last_winning_team: Optional[int] = None
        self._consecutive_draws = 0
        self._point_multiplier = 1
        # bumped on every turn change so timers can tell a stale turn apart
        self.turn_serial = 0

    # ---- players & teams ----

    def add_player(self, connection_handle: str, name: str) -> ActionResult:
        trimmed = (name or '').strip()
        if len(trimmed) < MIN_NAME_LENGTH:
            return ActionResult.fail(GameError.NAME_TOO_SHORT, 'Name too short. Use at least 2 characters.')
        if len(trimmed) > MAX_NAME_LENGTH:
            return ActionResult.fail(GameError.NAME_TOO_LONG, 'Name too long. Use at most 20 characters.')
        if len(self._players) >= MAX_PLAYERS:
            return ActionResult.fail(GameError.ROOM_FULL, 'Room is full. Try again later.')
        if self._find_by_handle(connection_handle) is not None:
            return ActionResult.fail(GameError.ALREADY_CONNECTED, 'You are already connected under another name.')
        if any(p.name.lower() == trimmed.lower() for p in self._players):
            return ActionResult.fail(GameError.NAME_TAKEN, 'This name is already taken. Choose another.')

        player = Player(id=self._new_player_id(), connection_handle=connection_handle, name=trimmed)
        self._players.append(player)
        logger.info("[join] table=%s player=%s name=%s seated=%d", self.table_id, player.id, trimmed, len(self._players))

        if len(self._players) == MAX_PLAYERS:
            self._assign_teams()
            self._scores = {1: 0, 2: 0}

        return ActionResult.ok(player=replace(player))

    def _new_player_id(self) -> str:
        while True:
            candidate = str(uuid.UUID(int=self._rng.getrandbits(128), version=4))
            if self._find_by_id(candidate) is None:
                return candidate

    def _assign_teams(self) -> None:
        shuffled = list(self._players)
        deck.shuffle(shuffled, self._rng)
        self._teams = {1: shuffled[:2], 2: shuffled[2:]}
        for team, members in self._teams.items():
            for player in members:
                player.team = team
        logger.info(
            "[teams] table=%s team1=%s team2=%s",
            self.table_id,
            [p.name for p in self._teams[1]],
            [p.name for p in self._teams[2]],
        )

    def remove_player(self, connection_handle: str) -> bool:
        """Drop the player bound to ``connection_handle``.

        Teams only exist at a full table, so every remaining player loses
        their team. Losing a player mid-match abandons the match entirely.
        """
        player = self._find_by_handle(connection_handle)
        if player is None:
            return False

        self._players.remove(player)
        self._hands.pop(player.id, None)
        for remaining in self._players:
            remaining.team = None
        self._teams = {1: [], 2: []}
        self._current_index = 0

        if self._started:
            logger.info("[reset] table=%s player=%s left mid-match", self.table_id, player.id)
            self._started = False
            self._scores = {1: 0, 2: 0}
            self._round_number = 1
            self._hands = {}
            self._table = []
            self._boneyard = []
            self._last_placed = None
            self._pass_count = 0
            self._last_winning_team = None
            self._consecutive_draws = 0
            self._point_multiplier = 1
        self.turn_serial += 1
        return True

    def update_connection_handle(self, player_id: str, new_handle: str) -> bool:
        player = self._find_by_id(player_id)
        if player is None:
            return False
        player.connection_handle = new_handle
        return True

    # ---- round setup ----

    def start_game(self) -> ActionResult:
        if len(self._players) != MAX_PLAYERS:
            return ActionResult.fail(GameError.NOT_ENOUGH_PLAYERS, 'Need 4 players to start')
        if self._started and not self.is_game_ended():
            return ActionResult.fail(GameError.ALREADY_STARTED, 'Game already started')

        self._started = True
        self._scores = {1: 0, 2: 0}
        self._round_number = 1
        self._last_winning_team = None
        self._consecutive_draws = 0
        self._point_multiplier = 1
        self._begin_round()
        logger.info("[start] table=%s opener=%s", self.table_id, self._players[self._current_index].name)
        return ActionResult.ok()

    def start_new_round(self) -> ActionResult:
        if not self._started:
            return ActionResult.fail(GameError.NOT_STARTED, 'Game not started')
        if self.is_game_ended():
            return ActionResult.fail(GameError.MATCH_OVER, 'Match is over')
        self._round_number += 1
        self._begin_round()
        logger.info(
            "[round] table=%s round=%d opener=%s multiplier=%d",
            self.table_id,
            self._round_number,
            self._players[self._current_index].name,
            self._point_multiplier,
        )
        return ActionResult.ok()

    def _begin_round(self) -> None:
        self._pass_count = 0
        self._last_placed = None
        self.initialize_deck()
        self.deal_tiles()
        self.determine_first_player()
        self.turn_serial += 1

    def initialize_deck(self) -> None:
        self._deck = deck.initialize_deck()

    def shuffle(self) -> None:
        deck.shuffle(self._deck, self._rng)

    def deal_tiles(self) -> None:
        self._hands = {}
        self.shuffle()
        self._hands, self._boneyard = deck.deal(self._deck, [p.id for p in self._players])

    def determine_first_player(self) -> None:
        """Seat the opener and clear the table.

        After a decisive round one of the winning pair opens, picked at
        random. Otherwise the highest double opens, falling back to the
        highest pip total; ties go to the first tile found scanning seats
        in join order, then hand order.
        """
        self._table = []

        if self._round_number > 1 and self._last_winning_team is not None and self._consecutive_draws == 0:
            members = self._teams.get(self._last_winning_team) or []
            if members:
                chosen = members[self._rng.randrange(len(members))]
                self._current_index = self._index_of(chosen.id)
                return

        highest_double, double_seat = -1, -1
        highest_sum, sum_seat = -1, -1
        for seat, player in enumerate(self._players):
            for tile in self._hands.get(player.id, []):
                if tile.is_double and tile.left > highest_double:
                    highest_double, double_seat = tile.left, seat
                if tile.pips > highest_sum:
                    highest_sum, sum_seat = tile.pips, seat

        if double_seat != -1:
            self._current_index = double_seat
        else:
            self._current_index = max(sum_seat, 0)

    # ---- moves ----

    def _check_turn(self, player_id: str) -> Optional[ActionResult]:
        if not self._started:
            return ActionResult.fail(GameError.NOT_STARTED, 'Game not started')
        if self.is_round_ended() or self.is_game_locked():
            return ActionResult.fail(GameError.ROUND_OVER, 'Round is over')
        if self._players[self._current_index].id != player_id:
            return ActionResult.fail(GameError.NOT_YOUR_TURN, 'Not your turn')
        return None

    def _fits(self, tile: Tile, end: str) -> bool:
        ends = open_ends(self._table)
        if ends is None:
            return True
        left, right = ends
        return tile.has(left) if end == LEFT else tile.has(right)

    def legal_moves(self, player_id: str) -> List[Tuple[int, str]]:
        """Every (tile index, end) the player could play right now."""
        options = []
        for index, tile in enumerate(self._hands.get(player_id, [])):
            for end in ENDS:
                if self._fits(tile, end):
                    options.append((index, end))
        return options

    def make_move(self, player_id: str, tile_index: int, end: str) -> ActionResult:
        failure = self._check_turn(player_id)
        if failure is not None:
            return failure

        hand = self._hands[player_id]
        if isinstance(tile_index, bool) or not isinstance(tile_index, int) or not 0 <= tile_index < len(hand):
            return ActionResult.fail(GameError.INVALID_INDEX, 'Invalid tile index')
        if end not in ENDS:
            return ActionResult.fail(GameError.INVALID_MOVE, 'Invalid move')

        tile = hand[tile_index]
        if not self._fits(tile, end):
            return ActionResult.fail(GameError.INVALID_MOVE, 'Invalid move')

        placed = self._place(tile, end)
        del hand[tile_index]
        self._last_placed = placed
        self._pass_count = 0
        move = Move(player_id=player_id, tile=placed, end=end)
        logger.debug("[move] table=%s player=%s tile=%s end=%s", self.table_id, player_id, placed, end)
        self._advance_turn()
        return ActionResult.ok(move=move, moved=True)

    def _place(self, tile: Tile, end: str) -> Tile:
        # matching pip always faces the tile already on the table
        if not self._table:
            self._table.append(tile)
            return tile
        if end == LEFT:
            placed = tile if tile.right == self._table[0].left else tile.flipped()
            self._table.insert(0, placed)
        else:
            placed = tile if tile.left == self._table[-1].right else tile.flipped()
            self._table.append(placed)
        return placed

    def pass_turn(self, player_id: str) -> ActionResult:
        failure = self._check_turn(player_id)
        if failure is not None:
            return failure
        if self.legal_moves(player_id):
            return ActionResult.fail(GameError.MOVE_AVAILABLE, 'You have a valid move available')

        self._pass_count += 1
        logger.debug("[pass] table=%s player=%s passes=%d", self.table_id, player_id, self._pass_count)
        self._advance_turn()
        return ActionResult.ok()

    def make_auto_move(self, player_id: str) -> ActionResult:
        """Play a random legal tile for a player who ran out of time, or pass."""
        failure = self._check_turn(player_id)
        if failure is not None:
            return failure
        options = self.legal_moves(player_id)
        if options:
            index, end = options[self._rng.randrange(len(options))]
            return self.make_move(player_id, index, end)
        return self.pass_turn(player_id)

    def _advance_turn(self) -> None:
        self._current_index = (self._current_index + 1) % len(self._players)
        self.turn_serial += 1

    # ---- scoring ----

    def is_round_ended(self) -> bool:
        if not self._hands:
            return False
        return any(len(self._hands.get(p.id, [])) == 0 for p in self._players)

    def is_game_locked(self) -> bool:
        return self._started and self._pass_count >= len(self._players)

    def end_round(self, winning_player_id: Optional[str] = None) -> RoundResult:
        if winning_player_id is not None:
            winner = self._find_by_id(winning_player_id)
        else:
            winner = self._players[self._current_index] if self._players else None
        if winner is None or winner.team is None:
            raise ValueError(f"No seated winner for table {self.table_id}: {winning_player_id}")

        if not self._hands.get(winner.id):
            win_type = classify_win(self._table, self._last_placed)
        else:
            win_type = WinType.SIMPLE
        points = WIN_POINTS[win_type] * self._point_multiplier
        self._award(winner.team, points)
        logger.info(
            "[round-end] table=%s round=%d winner=%s team=%d type=%s points=%d",
            self.table_id, self._round_number, winner.name, winner.team, win_type.value, points,
        )
        return RoundResult(winner=winner.team, points=points, win_type=win_type, winning_player_id=winner.id)

    def handle_locked_game(self) -> RoundResult:
        order = [p.id for p in self._players]
        teams = {p.id: p.team for p in self._players}
        player_id, team = resolve_locked(self._hands, order, teams)

        if team is None:
            self._consecutive_draws += 1
            self._point_multiplier = 2 ** self._consecutive_draws
            logger.info(
                "[locked-draw] table=%s round=%d draws=%d next_multiplier=%d",
                self.table_id, self._round_number, self._consecutive_draws, self._point_multiplier,
            )
            return RoundResult(winner=None, points=0, is_draw=True)

        points = WIN_POINTS[WinType.LOCKED] * self._point_multiplier
        self._award(team, points)
        logger.info("[locked-win] table=%s round=%d team=%d points=%d", self.table_id, self._round_number, team, points)
        return RoundResult(winner=team, points=points, win_type=WinType.LOCKED, winning_player_id=player_id)

    def _award(self, team: int, points: int) -> None:
        self._scores[team] += points
        self._last_winning_team = team
        self._consecutive_draws = 0
        self._point_multiplier = 1

    def is_game_ended(self) -> bool:
        return self.get_game_winner() is not None

    def get_game_winner(self) -> Optional[int]:
        if self._scores[1] >= MATCH_TARGET:
            return 1
        if self._scores[2] >= MATCH_TARGET:
            return 2
        return None

    # ---- queries ----

    @property
    def phase(self) -> Phase:
        if not self._started:
            return Phase.NOT_STARTED
        if self.is_game_ended():
            return Phase.MATCH_ENDED
        if self.is_round_ended():
            return Phase.ROUND_ENDED
        if self.is_game_locked():
            return Phase.LOCKED
        return Phase.IN_PROGRESS

    @property
    def pass_count(self) -> int:
        return self._pass_count

    @property
    def point_multiplier(self) -> int:
        return self._point_multiplier

    @property
    def consecutive_draws(self) -> int:
        return self._consecutive_draws

    @property
    def last_winning_team(self) -> Optional[int]:
        return self._last_winning_team

    def is_game_started(self) -> bool:
        return self._started

    def get_players(self) -> List[Player]:
        return [replace(p) for p in self._players]

    def get_player(self, player_id: str) -> Optional[Player]:
        player = self._find_by_id(player_id)
        return replace(player) if player else None

    def get_player_id_by_connection_handle(self, connection_handle: str) -> Optional[str]:
        player = self._find_by_handle(connection_handle)
        return player.id if player else None

    def get_team_assignments(self) -> TeamAssignment:
        return TeamAssignment(
            team1=[replace(p) for p in self._teams.get(1, [])],
            team2=[replace(p) for p in self._teams.get(2, [])],
        )

    def get_current_player(self) -> Optional[Player]:
        if not self._players:
            return None
        return replace(self._players[self._current_index])

    def get_table(self) -> Tuple[Tile, ...]:
        return tuple(self._table)

    def get_open_ends(self) -> Optional[Tuple[int, int]]:
        return open_ends(self._table)

    def get_boneyard(self) -> Tuple[Tile, ...]:
        return tuple(self._boneyard)

    def get_player_hand(self, player_id: str) -> Tuple[Tile, ...]:
        return tuple(self._hands.get(player_id, []))

    def get_all_player_tiles(self) -> Dict[str, Tuple[Tile, ...]]:
        return {p.id: tuple(self._hands.get(p.id, [])) for p in self._players}

    def get_player_tiles_count(self) -> Dict[str, int]:
        return {p.id: len(self._hands.get(p.id, [])) for p in self._players}

    def get_scores(self) -> Dict[int, int]:
        return dict(self._scores)

    def get_round_number(self) -> int:
        return self._round_number

    def _find_by_id(self, player_id: str) -> Optional[Player]:
        return next((p for p in self._players if p.id == player_id), None)

    def _find_by_handle(self, connection_handle: str) -> Optional[Player]:
        return next((p for p in self._players if p.connection_handle == connection_handle), None)

    def _index_of(self, player_id: str) -> int:
        return next(i for i, p in enumerate(self._players) if p.id == player_id)
