from conftest import NAMES, run_deferred
from domino.services.game import scheduler
from domino.services.game.registry import registry


def _fill(table_id):
    with registry.lock_for(table_id):
        session = registry.get_or_create(table_id)
        for i, name in enumerate(NAMES):
            assert session.add_player(f'{table_id}-{i}', name).success
        assert session.start_game().success
    return session


def test_refilled_table_gets_its_own_turn_timer(flask_app, monkeypatch, deferred):
    monkeypatch.setitem(flask_app.config, 'ENABLE_SCHEDULER_IN_TESTS', True)
    monkeypatch.setitem(flask_app.config, 'TURN_TIMEOUT_SEC', 5)

    first = _fill('mesa')
    first_turn = (first.get_round_number(), first.turn_serial)
    scheduler.schedule_turn_timer(flask_app, 'mesa')
    with registry.lock_for('mesa'):
        for i in range(len(NAMES)):
            first.remove_player(f'mesa-{i}')
        assert registry.discard('mesa')

    second = _fill('mesa')
    assert (second.get_round_number(), second.turn_serial) == first_turn
    scheduler.schedule_turn_timer(flask_app, 'mesa')
    assert len(deferred) == 2

    stale, fresh = list(deferred)
    deferred.clear()
    stale[0](*stale[1])
    assert second.turn_serial == first_turn[1]
    assert second.get_table() == ()

    fresh[0](*fresh[1])
    assert second.turn_serial == first_turn[1] + 1
    assert len(second.get_table()) == 1


def test_turn_timer_is_set_once_per_turn(flask_app, monkeypatch, deferred):
    monkeypatch.setitem(flask_app.config, 'ENABLE_SCHEDULER_IN_TESTS', True)
    monkeypatch.setitem(flask_app.config, 'TURN_TIMEOUT_SEC', 5)
    session = _fill('mesa')
    scheduler.schedule_turn_timer(flask_app, 'mesa')
    scheduler.schedule_turn_timer(flask_app, 'mesa')
    assert len(deferred) == 1

    opener = session.get_current_player().id
    run_deferred(deferred)
    assert session.get_current_player().id != opener
    # the follow-up turn got a timer of its own
    assert len(deferred) == 1
