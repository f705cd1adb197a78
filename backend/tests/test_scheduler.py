import time

from chase.services.games.scheduler import RevealScheduler, TaskScheduler
from conftest import ManualTasks


def manual_scheduler():
    tasks = ManualTasks()
    return TaskScheduler(start_task=tasks.start, sleep=lambda s: None), tasks


def test_scheduled_task_fires_once():
    scheduler, tasks = manual_scheduler()
    fired = []
    scheduler.schedule('ROOM01', 5, lambda: fired.append('ROOM01'))
    assert scheduler.is_scheduled('ROOM01')
    tasks.run_all()
    assert fired == ['ROOM01']
    assert not scheduler.is_scheduled('ROOM01')


def test_cancelled_task_never_fires():
    scheduler, tasks = manual_scheduler()
    fired = []
    scheduler.schedule('ROOM01', 5, lambda: fired.append(1))
    assert scheduler.cancel('ROOM01')
    tasks.run_all()
    assert fired == []
    assert not scheduler.cancel('ROOM01')


def test_rescheduling_replaces_previous_timer():
    scheduler, tasks = manual_scheduler()
    fired = []
    scheduler.schedule('ROOM01', 5, lambda: fired.append('old'))
    scheduler.schedule('ROOM01', 5, lambda: fired.append('new'))
    tasks.run_all()
    assert fired == ['new']


def test_keys_are_independent():
    scheduler, tasks = manual_scheduler()
    fired = []
    scheduler.schedule('A', 1, lambda: fired.append('A'))
    scheduler.schedule('B', 1, lambda: fired.append('B'))
    scheduler.cancel('A')
    tasks.run_all()
    assert fired == ['B']


def test_callback_error_is_contained():
    scheduler, tasks = manual_scheduler()

    def boom():
        raise RuntimeError('boom')

    scheduler.schedule('ROOM01', 0, boom)
    tasks.run_all()
    assert not scheduler.is_scheduled('ROOM01')


def test_real_thread_timer_fires():
    scheduler = TaskScheduler()
    fired = []
    scheduler.schedule('ROOM01', 0.05, lambda: fired.append(1))
    deadline = time.time() + 2.0
    while time.time() < deadline and not fired:
        time.sleep(0.01)
    assert fired == [1]


def test_reveal_loop_ticks_until_stopped():
    tasks = ManualTasks()
    ticks = []
    loop = None

    def tick():
        ticks.append(1)
        if len(ticks) == 3:
            loop.stop()

    loop = RevealScheduler(tick, interval_sec=1.0, start_task=tasks.start, sleep=lambda s: None)
    assert loop.start()
    assert not loop.start()
    tasks.run_all()
    assert len(ticks) == 3
    assert not loop.running


def test_reveal_loop_survives_tick_errors():
    tasks = ManualTasks()
    calls = []
    loop = None

    def tick():
        calls.append(1)
        if len(calls) == 2:
            loop.stop()
        raise ValueError('bad room')

    loop = RevealScheduler(tick, start_task=tasks.start, sleep=lambda s: None)
    loop.start()
    tasks.run_all()
    assert len(calls) == 2
