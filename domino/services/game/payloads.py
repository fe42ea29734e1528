"""Plain-dict views of a session, shaped the way the table client reads them."""

from typing import Any, Dict, Optional

from domino.models import RoundResult
from .session import GameSession


def _player(session: GameSession, player_id: Optional[str]):
    player = session.get_player(player_id) if player_id else None
    return player.to_dict() if player else None


def current_player(session: GameSession):
    player = session.get_current_player()
    return player.to_dict() if player else None


def table(session: GameSession):
    return [t.to_dict() for t in session.get_table()]


def scores(session: GameSession) -> Dict[str, int]:
    # JSON object keys are strings on the wire
    return {str(team): points for team, points in session.get_scores().items()}


def players_update(session: GameSession) -> Dict[str, Any]:
    return {
        'players': [p.to_dict() for p in session.get_players()],
        'teamAssignment': session.get_team_assignments().to_dict(),
    }


def game_started(session: GameSession) -> Dict[str, Any]:
    return {
        'teams': session.get_team_assignments().to_dict(),
        'currentPlayer': current_player(session),
        'table': table(session),
    }


def private_state(session: GameSession, player_id: str) -> Dict[str, Any]:
    return {
        'hand': [t.to_dict() for t in session.get_player_hand(player_id)],
        'currentPlayer': current_player(session),
        'table': table(session),
        'scores': scores(session),
        'roundNumber': session.get_round_number(),
        'tilesLeft': session.get_player_tiles_count(),
    }


def public_state(session: GameSession) -> Dict[str, Any]:
    payload = players_update(session)
    payload.update({
        'tableId': session.table_id,
        'phase': session.phase.value,
        'currentPlayer': current_player(session) if session.is_game_started() else None,
        'table': table(session),
        'tilesLeft': session.get_player_tiles_count(),
        'scores': scores(session),
        'roundNumber': session.get_round_number(),
        'pointMultiplier': session.point_multiplier,
        'winner': session.get_game_winner(),
    })
    return payload


def round_ended(session: GameSession, result: RoundResult) -> Dict[str, Any]:
    payload = result.to_dict()
    payload['winningPlayer'] = _player(session, result.winning_player_id)
    payload['scores'] = scores(session)
    return payload


def game_locked(session: GameSession, result: RoundResult) -> Dict[str, Any]:
    payload = round_ended(session, result)
    payload['playerTiles'] = {
        pid: [t.to_dict() for t in hand] for pid, hand in session.get_all_player_tiles().items()
    }
    return payload


def game_ended(session: GameSession) -> Dict[str, Any]:
    return {
        'winner': session.get_game_winner(),
        'scores': scores(session),
    }
