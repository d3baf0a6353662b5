import gc
import threading

from models import db, COAttainment
from attainment.engine import compute_course_outcome_attainment
from attainment.locks import ScopeLockRegistry, scope_locks


def _run_in_thread(registry, scope, entered):
    def worker():
        with registry.hold(scope):
            entered.set()
    thread = threading.Thread(target=worker)
    thread.start()
    return thread


def test_same_scope_runs_one_at_a_time():
    registry = ScopeLockRegistry()
    entered = threading.Event()

    with registry.hold(('course', 1)):
        thread = _run_in_thread(registry, ('course', 1), entered)
        assert not entered.wait(0.2)

    thread.join(timeout=5)
    assert entered.is_set()


def test_different_scopes_do_not_block_each_other():
    registry = ScopeLockRegistry()
    entered = threading.Event()

    with registry.hold(('course', 1)):
        thread = _run_in_thread(registry, ('course', 2), entered)
        assert entered.wait(5)

    thread.join(timeout=5)


def test_hold_is_reentrant_in_one_thread():
    registry = ScopeLockRegistry()

    with registry.hold(('program', 3)):
        with registry.hold(('program', 3)):
            pass

    assert registry.lock_for(('program', 3)) is registry.lock_for(('program', 3))


def test_released_scopes_leave_the_registry():
    registry = ScopeLockRegistry()

    for course_id in range(50):
        with registry.hold(('course', course_id)):
            assert len(registry) >= 1
    gc.collect()

    assert len(registry) == 0


def test_course_recalculation_waits_for_running_one(app, factory):
    program = factory.program()
    course = factory.course(program, factory.semester())
    co1 = factory.course_outcome(course, 'CO1')
    factory.co_survey(co1, 10, '2')
    course_id, co1_id = course.id, co1.id
    db.session.commit()

    finished = threading.Event()
    errors = []

    def recalculate():
        with app.app_context():
            try:
                compute_course_outcome_attainment(course_id)
            except Exception as e:
                errors.append(e)
            finally:
                db.session.remove()
                finished.set()

    with scope_locks.hold(('course', course_id)):
        worker = threading.Thread(target=recalculate)
        worker.start()
        assert not finished.wait(0.3)

    worker.join(timeout=10)
    assert finished.is_set()
    assert errors == []
    assert COAttainment.query.filter_by(course_outcome_id=co1_id).count() == 1
