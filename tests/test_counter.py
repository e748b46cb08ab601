import threading

from orderflow.config.database import SessionLocal
from orderflow.repositories.counter_repo import CounterRepository


def test_ids_are_sequential(db):
    counter = CounterRepository()
    assert counter.next_order_id(db) == "PMTO1"
    assert counter.next_order_id(db) == "PMTO2"
    assert counter.reserve_order_ids(db, 3) == ["PMTO3", "PMTO4", "PMTO5"]
    db.commit()
    assert counter.current(db) == 5


def test_rollback_releases_reservation(db):
    counter = CounterRepository()
    counter.ensure(db)
    counter.reserve_order_ids(db, 4)
    db.rollback()
    assert counter.current(db) == 0


def test_concurrent_allocations_never_collide(db):
    counter = CounterRepository()
    counter.ensure(db)
    allocated, errors = [], []
    lock = threading.Lock()

    def worker():
        session = SessionLocal()
        try:
            for _ in range(5):
                order_id = counter.next_order_id(session)
                session.commit()
                with lock:
                    allocated.append(order_id)
        except Exception as e:
            errors.append(e)
        finally:
            session.close()

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert errors == []
    assert len(allocated) == 40
    assert len(set(allocated)) == 40
    assert sorted(int(order_id[4:]) for order_id in allocated) == list(range(1, 41))
