from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

LEFT = 'left'
RIGHT = 'right'
ENDS = (LEFT, RIGHT)


@dataclass(frozen=True)
class Tile:
    left: int
    right: int

    def __post_init__(self):
        for pip in (self.left, self.right):
            if not 0 <= pip <= 6:
                raise ValueError(f"Tile out of range: {self.left}-{self.right}")

    @property
    def is_double(self) -> bool:
        return self.left == self.right

    @property
    def pips(self) -> int:
        return self.left + self.right

    def has(self, value: int) -> bool:
        return self.left == value or self.right == value

    def flipped(self) -> 'Tile':
        return Tile(self.right, self.left)

    def to_dict(self):
        return {
            'left': self.left,
            'right': self.right,
            'isDouble': self.is_double,
        }

    def __str__(self):
        return f"{self.left}-{self.right}"


@dataclass
class Player:
    id: str
    connection_handle: str
    name: str
    team: Optional[int] = None

    def to_dict(self):
        return {
            'id': self.id,
            'socketId': self.connection_handle,
            'name': self.name,
            'team': self.team,
        }


@dataclass(frozen=True)
class Move:
    player_id: str
    tile: Tile
    end: str

    def to_dict(self):
        return {
            'playerId': self.player_id,
            'tile': self.tile.to_dict(),
            'end': self.end,
        }


@dataclass
class TeamAssignment:
    team1: List[Player] = field(default_factory=list)
    team2: List[Player] = field(default_factory=list)

    def to_dict(self):
        return {
            'team1': [p.to_dict() for p in self.team1],
            'team2': [p.to_dict() for p in self.team2],
        }


class GameError(str, Enum):
    """Failure codes surfaced to the caller of a session command."""

    NAME_TOO_SHORT = 'name_too_short'
    NAME_TOO_LONG = 'name_too_long'
    ROOM_FULL = 'room_full'
    ALREADY_CONNECTED = 'already_connected'
    NAME_TAKEN = 'name_taken'
    NOT_ENOUGH_PLAYERS = 'not_enough_players'
    ALREADY_STARTED = 'already_started'
    NOT_STARTED = 'not_started'
    NOT_YOUR_TURN = 'not_your_turn'
    INVALID_INDEX = 'invalid_index'
    INVALID_MOVE = 'invalid_move'
    MOVE_AVAILABLE = 'move_available'
    ROUND_OVER = 'round_over'
    MATCH_OVER = 'match_over'


class Phase(str, Enum):
    NOT_STARTED = 'not_started'
    IN_PROGRESS = 'in_progress'
    ROUND_ENDED = 'round_ended'
    LOCKED = 'locked'
    MATCH_ENDED = 'match_ended'


class WinType(str, Enum):
    CRUZADA = 'cruzada'
    LA_E_LO = 'la_e_lo'
    CARROCA = 'carroca'
    SIMPLE = 'simple'
    LOCKED = 'locked'


WIN_POINTS = {
    WinType.CRUZADA: 4,
    WinType.LA_E_LO: 3,
    WinType.CARROCA: 2,
    WinType.SIMPLE: 1,
    WinType.LOCKED: 1,
}


@dataclass
class ActionResult:
    success: bool
    error: Optional[GameError] = None
    message: Optional[str] = None
    player: Optional[Player] = None
    move: Optional[Move] = None
    moved: bool = False

    @classmethod
    def ok(cls, **kwargs) -> 'ActionResult':
        return cls(success=True, **kwargs)

    @classmethod
    def fail(cls, error: GameError, message: str) -> 'ActionResult':
        return cls(success=False, error=error, message=message)


@dataclass
class RoundResult:
    """Outcome of a finished round. ``winner`` is a team number, None on a draw."""

    winner: Optional[int]
    points: int
    win_type: Optional[WinType] = None
    winning_player_id: Optional[str] = None
    is_draw: bool = False

    def to_dict(self):
        return {
            'winner': self.winner,
            'points': self.points,
            'winType': self.win_type.value if self.win_type else None,
            'winningPlayerId': self.winning_player_id,
            'isDraw': self.is_draw,
        }
