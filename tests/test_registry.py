import random
import threading

from domino.services.game.registry import SessionRegistry


def test_emptied_tables_leave_no_locks_behind():
    reg = SessionRegistry(rng_factory=lambda: random.Random(0))
    for i in range(1000):
        table_id = f'table-{i}'
        with reg.lock_for(table_id):
            reg.get_or_create(table_id)
            assert reg.discard(table_id)
    assert reg._locks == {}
    assert reg.get('table-0') is None


def test_seated_table_is_kept():
    reg = SessionRegistry(rng_factory=lambda: random.Random(0))
    with reg.lock_for('main'):
        session = reg.get_or_create('main')
        session.add_player('sid-0', 'Ana')
        assert not reg.discard('main')
    assert reg.get('main') is session
    assert reg._locks == {}


def test_table_lock_is_reentrant_and_exclusive():
    reg = SessionRegistry()
    order = []

    def contender():
        with reg.lock_for('main'):
            order.append('contender')

    with reg.lock_for('main'):
        with reg.lock_for('main'):
            order.append('nested')
        worker = threading.Thread(target=contender)
        worker.start()
        worker.join(0.1)
        order.append('holder')
    worker.join()

    assert order == ['nested', 'holder', 'contender']
    assert reg._locks == {}
