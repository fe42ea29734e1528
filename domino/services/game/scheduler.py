from typing import Set, Tuple

from domino import socketio
from domino.models import Phase
from . import payloads
from .registry import registry

NAMESPACE = '/ws'

TurnKey = Tuple[str, int, int, int]

_scheduled_turn_keys: Set[TurnKey] = set()


def room_for(table_id: str) -> str:
    return f"table:{table_id}"


def emit_private_states(table_id: str) -> None:
    """Send every seated player their own hand plus the shared state."""
    session = registry.get(table_id)
    if session is None:
        return
    for player in session.get_players():
        socketio.emit(
            'gameState',
            payloads.private_state(session, player.id),
            to=player.connection_handle,
            namespace=NAMESPACE,
        )


def _sleep(app, delay: float, label: str, table_id: str) -> None:
    # heartbeat sleep loop if enabled
    try:
        hb = int(app.config.get('TIMER_HEARTBEAT_SEC', 0))
    except (TypeError, ValueError):
        hb = 0
    if hb <= 0:
        socketio.sleep(delay)
        return
    slept = 0
    while slept < delay:
        step = min(hb, delay - slept)
        socketio.sleep(step)
        slept += step
        app.logger.info(f"[timer-heartbeat] table={table_id} timer={label} remaining={max(0, delay - slept)}s")


def _run(app, worker, delay: float, *args) -> None:
    # Zero-delay work in TESTING runs inline so tests observe it synchronously
    if app.config.get('TESTING') and not delay:
        worker(*args)
    else:
        socketio.start_background_task(worker, *args)


def _turn_key(session) -> TurnKey:
    return (session.table_id, session.generation, session.get_round_number(), session.turn_serial)


def schedule_turn_timer(app, table_id: str) -> None:
    """Auto-play the current turn once TURN_TIMEOUT_SEC elapses.

    - No-ops in TESTING mode unless ENABLE_SCHEDULER_IN_TESTS is set
    - Ensures a single timer per (session, round, turn)
    - A timer whose turn has already moved on aborts without acting
    """
    if app.config.get('TESTING') and not app.config.get('ENABLE_SCHEDULER_IN_TESTS'):
        return
    duration = int(app.config.get('TURN_TIMEOUT_SEC', 30))
    if duration <= 0:
        return

    session = registry.get(table_id)
    if session is None or session.phase != Phase.IN_PROGRESS:
        return

    key = _turn_key(session)
    if key in _scheduled_turn_keys:
        app.logger.info(f"[timer-skip] table={table_id} round={key[2]} turn={key[3]} already scheduled")
        return
    _scheduled_turn_keys.add(key)
    app.logger.info(f"[timer-set] table={table_id} round={key[2]} turn={key[3]} duration={duration}s")

    def _worker(expected_key: TurnKey, delay: int):
        _sleep(app, delay, 'turn', table_id)
        with app.app_context():
            _scheduled_turn_keys.discard(expected_key)
            with registry.lock_for(table_id):
                current = registry.get(table_id)
                if (
                    current is None
                    or current.phase != Phase.IN_PROGRESS
                    or _turn_key(current) != expected_key
                ):
                    app.logger.info(f"[timer-abort] table={table_id} turn moved on")
                    return
                player = current.get_current_player()
                app.logger.info(f"[timer-fire] table={table_id} round={expected_key[2]} player={player.id}")
                from domino.socketio_events import apply_auto_move
                apply_auto_move(app, current, player.id)

    _run(app, _worker, duration, key, duration)


def schedule_next_round(app, table_id: str, delay: int) -> None:
    """Deal the next round after the result screen has been shown."""
    session = registry.get(table_id)
    if session is None:
        return
    expected_round = session.get_round_number()
    generation = session.generation
    app.logger.info(f"[next-round-set] table={table_id} after_round={expected_round} delay={delay}s")

    def _worker(expected: int, wait: int):
        if wait:
            _sleep(app, wait, 'next-round', table_id)
        with app.app_context():
            with registry.lock_for(table_id):
                current = registry.get(table_id)
                if (
                    current is None
                    or current.generation != generation
                    or not current.is_game_started()
                    or current.get_round_number() != expected
                    or current.phase not in (Phase.ROUND_ENDED, Phase.LOCKED)
                ):
                    app.logger.info(f"[next-round-abort] table={table_id} expected_round={expected}")
                    return
                result = current.start_new_round()
                if not result.success:
                    app.logger.info(f"[next-round-abort] table={table_id} reason={result.message}")
                    return
                socketio.emit('newRoundStarted', {
                    'currentPlayer': payloads.current_player(current),
                    'roundNumber': current.get_round_number(),
                    'table': payloads.table(current),
                    'pointMultiplier': current.point_multiplier,
                }, to=room_for(table_id), namespace=NAMESPACE)
                emit_private_states(table_id)
                schedule_turn_timer(app, table_id)

    _run(app, _worker, delay, expected_round, delay)


def schedule_state_delivery(app, table_id: str, delay: int) -> None:
    """Send private hands shortly after a match starts."""

    def _worker(wait: int):
        if wait:
            _sleep(app, wait, 'state-delivery', table_id)
        with app.app_context():
            with registry.lock_for(table_id):
                emit_private_states(table_id)

    _run(app, _worker, delay, delay)


def schedule_player_removal(app, table_id: str, handle: str, delay: float) -> None:
    """Unseat a dropped connection unless it comes back within the grace period.

    A player who rejoined in the meantime holds a new connection handle, so
    the stale handle no longer resolves and the removal is skipped.
    """
    app.logger.info(f"[drop-set] table={table_id} handle={handle} grace={delay}s")

    def _worker(wait: float):
        if wait:
            _sleep(app, wait, 'drop', table_id)
        with app.app_context():
            with registry.lock_for(table_id):
                session = registry.get(table_id)
                if session is None or session.get_player_id_by_connection_handle(handle) is None:
                    app.logger.info(f"[drop-abort] table={table_id} handle={handle} reconnected or gone")
                    return
                from domino.socketio_events import remove_from_table
                remove_from_table(app, session, handle)

    _run(app, _worker, delay, delay)
