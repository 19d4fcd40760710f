from __future__ import annotations

import threading

import pytest

from exponent_crawler.engine.frontier import Frontier, InvalidRange, TaskStatus, build_page_url

BASE = "https://www.tryexponent.com/questions"


def test_page_urls() -> None:
    assert build_page_url(BASE, 1) == BASE
    assert build_page_url(BASE, 7) == f"{BASE}?page=7"
    assert build_page_url(f"{BASE}?sort=new", 2) == f"{BASE}?sort=new&page=2"


def test_enumerate_creates_one_pending_task_per_page() -> None:
    frontier = Frontier(BASE)
    tasks = frontier.enumerate(2, 5)
    assert [task.page_number for task in tasks] == [2, 3, 4, 5]
    assert all(task.attempt == 0 for task in tasks)
    assert len(frontier) == 4
    assert frontier.counts()["pending"] == 4


def test_single_page_range() -> None:
    frontier = Frontier(BASE)
    assert [task.url for task in frontier.enumerate(1, 1)] == [BASE]


@pytest.mark.parametrize(("start", "end"), [(0, 3), (-1, 2), (5, 4)])
def test_invalid_ranges(start: int, end: int) -> None:
    with pytest.raises(InvalidRange):
        Frontier(BASE).enumerate(start, end)


def test_enumerate_is_idempotent_per_page() -> None:
    frontier = Frontier(BASE)
    frontier.enumerate(1, 3)
    assert [task.page_number for task in frontier.enumerate(2, 4)] == [4]
    assert len(frontier) == 4


def test_tasks_are_handed_out_in_order_and_drain() -> None:
    frontier = Frontier(BASE)
    frontier.enumerate(1, 2)
    first = frontier.next_task()
    second = frontier.next_task()
    assert (first.page_number, second.page_number) == (1, 2)
    assert frontier.status(1) is TaskStatus.IN_FLIGHT
    frontier.mark_done(first)
    frontier.mark_failed(second)
    assert frontier.next_task() is None
    assert not frontier.has_work
    assert frontier.counts() == {"pending": 0, "in_flight": 0, "done": 1, "failed": 1}


def test_requeue_goes_to_the_back_and_bumps_attempt() -> None:
    frontier = Frontier(BASE)
    frontier.enumerate(1, 3)
    task = frontier.next_task()
    requeued = frontier.requeue(task)
    assert requeued.attempt == 1
    order = [frontier.next_task().page_number for _ in range(3)]
    assert order == [2, 3, 1]


def test_requeue_never_duplicates_a_pending_page() -> None:
    frontier = Frontier(BASE)
    frontier.enumerate(1, 1)
    task = frontier.next_task()
    frontier.requeue(task)
    frontier.requeue(task)
    assert frontier.counts()["pending"] == 1
    assert frontier.next_task().attempt == 2
    assert frontier.next_task(timeout=0.01) is None


def test_next_task_waits_for_in_flight_requeue() -> None:
    frontier = Frontier(BASE)
    frontier.enumerate(1, 1)
    task = frontier.next_task()
    received = []

    def consumer() -> None:
        received.append(frontier.next_task(timeout=2))

    thread = threading.Thread(target=consumer)
    thread.start()
    frontier.requeue(task)
    thread.join(timeout=2)
    assert received and received[0].page_number == 1


def test_close_wakes_waiting_workers() -> None:
    frontier = Frontier(BASE)
    frontier.enumerate(1, 2)
    frontier.next_task()
    result = []
    thread = threading.Thread(target=lambda: result.append(frontier.next_task()))
    frontier.next_task()
    thread.start()
    frontier.close()
    thread.join(timeout=2)
    assert result == [None]


def test_unknown_task_is_rejected() -> None:
    frontier = Frontier(BASE)
    other = Frontier(BASE)
    other.enumerate(9, 9)
    with pytest.raises(KeyError):
        frontier.mark_done(other.next_task())
