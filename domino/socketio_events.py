from flask import current_app, request
from flask_socketio import emit, join_room, leave_room

from domino import socketio
from domino.services.game import payloads
from domino.services.game.registry import registry
from domino.services.game.scheduler import (
    NAMESPACE,
    room_for,
    schedule_next_round,
    schedule_player_removal,
    schedule_state_delivery,
    schedule_turn_timer,
)
from domino.services.game.session import MAX_PLAYERS, GameSession


def _get_sid() -> str:
    # type: ignore: request.sid exists in Socket.IO context
    return request.sid  # type: ignore


def _table_id(data) -> str:
    table_id = (data or {}).get('tableId') or current_app.config.get('DEFAULT_TABLE_ID', 'main')
    return str(table_id).strip() or 'main'


def _broadcast(event: str, payload, table_id: str) -> None:
    socketio.emit(event, payload, to=room_for(table_id), namespace=NAMESPACE)


def _app():
    # the real app object, safe to hand to background workers
    return current_app._get_current_object()


# ---- round bookkeeping shared by moves, passes and timeouts ----

def _after_move(app, session: GameSession, player_id: str, result, auto: bool = False) -> None:
    table_id = session.table_id
    payload = {
        'table': payloads.table(session),
        'currentPlayer': payloads.current_player(session),
        'lastMove': result.move.to_dict(),
        'tilesLeft': session.get_player_tiles_count(),
    }
    if auto:
        payload['autoMove'] = True
    _broadcast('tableUpdated', payload, table_id)

    player = session.get_player(player_id)
    if player is not None:
        socketio.emit('handUpdated', {
            'hand': [t.to_dict() for t in session.get_player_hand(player_id)],
        }, to=player.connection_handle, namespace=NAMESPACE)

    if session.is_round_ended():
        round_result = session.end_round(player_id)
        _broadcast('roundEnded', payloads.round_ended(session, round_result), table_id)
        _finish_round(app, session, int(app.config.get('ROUND_RESULT_DELAY_SEC', 3)))
    else:
        schedule_turn_timer(app, table_id)


def _after_pass(app, session: GameSession, player_id: str, auto: bool = False) -> None:
    table_id = session.table_id
    payload = {
        'currentPlayer': payloads.current_player(session),
        'passedBy': player_id,
    }
    if auto:
        payload['autoPass'] = True
    _broadcast('turnPassed', payload, table_id)

    if session.is_game_locked():
        round_result = session.handle_locked_game()
        _broadcast('gameLocked', payloads.game_locked(session, round_result), table_id)
        _finish_round(app, session, int(app.config.get('LOCKED_RESULT_DELAY_SEC', 5)))
    else:
        schedule_turn_timer(app, table_id)


def _finish_round(app, session: GameSession, delay: int) -> None:
    if session.is_game_ended():
        app.logger.info(f"[match-end] table={session.table_id} winner={session.get_game_winner()}")
        _broadcast('gameEnded', payloads.game_ended(session), session.table_id)
        return
    schedule_next_round(app, session.table_id, delay)


def apply_auto_move(app, session: GameSession, player_id: str) -> None:
    """Play or pass on behalf of a player whose turn timed out."""
    result = session.make_auto_move(player_id)
    if not result.success:
        app.logger.info(f"[auto-move] table={session.table_id} player={player_id} rejected={result.message}")
        return
    if result.moved:
        _after_move(app, session, player_id, result, auto=True)
    else:
        _after_pass(app, session, player_id, auto=True)


def _start_match(app, session: GameSession) -> None:
    result = session.start_game()
    if not result.success:
        app.logger.info(f"[start-skip] table={session.table_id} reason={result.message}")
        return
    app.logger.info(f"[start] table={session.table_id} starting match with {MAX_PLAYERS} players")
    _broadcast('gameStarted', payloads.game_started(session), session.table_id)
    schedule_state_delivery(app, session.table_id, int(app.config.get('STATE_DELIVERY_DELAY_SEC', 1)))
    schedule_turn_timer(app, session.table_id)


def remove_from_table(app, session: GameSession, handle: str) -> None:
    """Unseat a connection; caller holds the table lock."""
    table_id = session.table_id
    player_id = session.get_player_id_by_connection_handle(handle)
    if not session.remove_player(handle):
        return
    app.logger.info(f"[leave] table={table_id} player={player_id}")
    _broadcast('playersUpdated', payloads.players_update(session), table_id)
    registry.discard(table_id)


# ---- handlers ----

def handle_connect():
    emit('connected', {'socketId': _get_sid()})


def handle_disconnect(*args):
    sid = _get_sid()
    table_id = registry.unbind(sid)
    if not table_id:
        return
    # a reconnecting client gets a grace period to rejoinGame under a new handle
    schedule_player_removal(_app(), table_id, sid, float(current_app.config.get('DISCONNECT_GRACE_SEC', 0.5)))


def handle_join_game(data):
    player_name = (data or {}).get('playerName')
    table_id = _table_id(data)
    sid = _get_sid()
    app = _app()

    seated_at = registry.table_for(sid)
    if seated_at and seated_at != table_id:
        emit('joinError', {'message': 'You are already seated at another table.'})
        return

    with registry.lock_for(table_id):
        session = registry.get_or_create(table_id)
        result = session.add_player(sid, player_name)
        if not result.success:
            app.logger.info(f"[join-fail] table={table_id} reason={result.error.value}")
            emit('joinError', {'message': result.message, 'error': result.error.value})
            registry.discard(table_id)
            return

        registry.bind(sid, table_id)
        join_room(room_for(table_id))
        app.logger.info(f"[join] table={table_id} player={result.player.id} name={result.player.name}")

        update = payloads.players_update(session)
        emit('joinedGame', {'player': result.player.to_dict(), 'tableId': table_id, **update})
        _broadcast('playersUpdated', update, table_id)

        if len(session.get_players()) == MAX_PLAYERS and not session.is_game_started():
            _start_match(app, session)


def handle_rejoin_game(data):
    player_id = (data or {}).get('playerId')
    table_id = _table_id(data)
    sid = _get_sid()
    with registry.lock_for(table_id):
        session = registry.get(table_id)
        player = session.get_player(player_id) if session is not None and player_id else None
        if player is None:
            emit('joinError', {'message': 'Unknown table or player'})
            return
        session.update_connection_handle(player_id, sid)
        if player.connection_handle != sid:
            registry.unbind(player.connection_handle)
        registry.bind(sid, table_id)
        join_room(room_for(table_id))
        current_app.logger.info(f"[rejoin] table={table_id} player={player_id}")
        emit('joinedGame', {'player': session.get_player(player_id).to_dict(), 'tableId': table_id,
                            **payloads.players_update(session)})
        if session.is_game_started():
            emit('gameState', payloads.private_state(session, player_id))


def handle_leave_game(data=None):
    sid = _get_sid()
    table_id = registry.unbind(sid)
    if table_id:
        leave_room(room_for(table_id))
        with registry.lock_for(table_id):
            session = registry.get(table_id)
            if session is not None:
                remove_from_table(_app(), session, sid)
    emit('left', {'tableId': table_id})


def _seated(sid: str):
    table_id = registry.table_for(sid)
    if not table_id:
        return None, None
    session = registry.get(table_id)
    if session is None:
        return None, None
    return session, session.get_player_id_by_connection_handle(sid)


def handle_make_move(data):
    sid = _get_sid()
    session, player_id = _seated(sid)
    if not player_id:
        return
    app = _app()
    with registry.lock_for(session.table_id):
        result = session.make_move(player_id, (data or {}).get('tileIndex'), (data or {}).get('tableEnd'))
        if not result.success:
            emit('moveError', {'message': result.message, 'error': result.error.value})
            return
        _after_move(app, session, player_id, result)


def handle_pass_turn(data=None):
    sid = _get_sid()
    session, player_id = _seated(sid)
    if not player_id:
        return
    app = _app()
    with registry.lock_for(session.table_id):
        result = session.pass_turn(player_id)
        if not result.success:
            emit('passTurnError', {'message': result.message, 'error': result.error.value})
            return
        _after_pass(app, session, player_id)


def handle_player_timeout(data=None):
    sid = _get_sid()
    session, player_id = _seated(sid)
    if not player_id:
        return
    app = _app()
    with registry.lock_for(session.table_id):
        current = session.get_current_player()
        if current is None or current.id != player_id:
            return
        apply_auto_move(app, session, player_id)


def handle_request_state(data=None):
    session, player_id = _seated(_get_sid())
    if not player_id:
        emit('error', {'message': 'You are not seated at a table'})
        return
    with registry.lock_for(session.table_id):
        emit('gameState', payloads.private_state(session, player_id))


def handle_ping(data):
    emit('pong', data or {})


def register_socketio_handlers() -> None:
    """Register Socket.IO event handlers on namespace '/ws'."""
    socketio.on_event('connect', handle_connect, namespace=NAMESPACE)
    socketio.on_event('disconnect', handle_disconnect, namespace=NAMESPACE)
    socketio.on_event('joinGame', handle_join_game, namespace=NAMESPACE)
    socketio.on_event('rejoinGame', handle_rejoin_game, namespace=NAMESPACE)
    socketio.on_event('leaveGame', handle_leave_game, namespace=NAMESPACE)
    socketio.on_event('makeMove', handle_make_move, namespace=NAMESPACE)
    socketio.on_event('passTurn', handle_pass_turn, namespace=NAMESPACE)
    socketio.on_event('playerTimeout', handle_player_timeout, namespace=NAMESPACE)
    socketio.on_event('requestState', handle_request_state, namespace=NAMESPACE)
    socketio.on_event('ping', handle_ping, namespace=NAMESPACE)
