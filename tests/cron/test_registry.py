"""
Tests for the cron job registry.
"""
import asyncio

import pytest

from patient_api.config import settings
from patient_api.cron.registry import CronJobDefinition, CronJobRegistry


def make_definition(name="job", handler=None, schedule="*/5 * * * *"):
    async def noop():
        return None

    return CronJobDefinition(name=name, schedule=schedule, description=f"{name} job", handler=handler or noop)


def test_register_all_keeps_order():
    registry = CronJobRegistry()
    registry.register_all([make_definition("b"), make_definition("a")])
    assert registry.job_names() == ["b", "a"]
    assert [d.name for d in registry.definitions] == ["b", "a"]


def test_duplicate_names_rejected():
    registry = CronJobRegistry()
    registry.register_job(make_definition("job"))
    with pytest.raises(ValueError):
        registry.register_job(make_definition("job"))


def test_invalid_schedule_rejected():
    registry = CronJobRegistry()
    with pytest.raises(ValueError):
        registry.register_job(make_definition("job", schedule="every day"))
    assert registry.job_names() == []


def test_run_job_invokes_handler():
    calls = []

    async def handler():
        calls.append("ran")

    registry = CronJobRegistry()
    registry.register_job(make_definition("job", handler))

    assert asyncio.run(registry.run_job("job")) is True
    assert calls == ["ran"]
    assert not registry.is_running("job")


def test_overlapping_run_is_skipped():
    registry = CronJobRegistry()
    calls = []

    async def slow_handler():
        calls.append("start")
        await asyncio.sleep(0.05)
        calls.append("end")

    registry.register_job(make_definition("slow", slow_handler))

    async def scenario():
        first = asyncio.create_task(registry.run_job("slow"))
        await asyncio.sleep(0)
        assert registry.is_running("slow")
        second = await registry.run_job("slow", trigger="manual")
        return await first, second

    first_result, second_result = asyncio.run(scenario())

    assert first_result is True
    assert second_result is False
    assert calls == ["start", "end"]
    assert not registry.is_running("slow")


def test_different_jobs_may_run_together():
    registry = CronJobRegistry()

    async def wait():
        await asyncio.sleep(0.01)

    registry.register_all([make_definition("one", wait), make_definition("two", wait)])

    async def scenario():
        return await asyncio.gather(registry.run_job("one"), registry.run_job("two"))

    assert asyncio.run(scenario()) == [True, True]


def test_failure_is_contained_and_flag_cleared():
    async def broken():
        raise RuntimeError("boom")

    registry = CronJobRegistry()
    registry.register_job(make_definition("broken", broken))

    assert asyncio.run(registry.run_job("broken")) is True
    assert not registry.is_running("broken")


def test_unknown_job_raises():
    with pytest.raises(KeyError):
        asyncio.run(CronJobRegistry().run_job("missing"))


def test_start_schedules_jobs_and_stop_unschedules():
    registry = CronJobRegistry()
    registry.register_all([make_definition("one"), make_definition("two")])

    async def scenario():
        registry.start()
        try:
            scheduled = sorted(job.id for job in registry._scheduler.get_jobs())
            stopped = registry.stop("one")
            remaining = [job.id for job in registry._scheduler.get_jobs()]
            missing = registry.stop("nope")
        finally:
            registry.stop_all()
        return scheduled, stopped, remaining, missing

    scheduled, stopped, remaining, missing = asyncio.run(scenario())

    assert scheduled == ["one", "two"]
    assert stopped is True
    assert remaining == ["two"]
    assert missing is False
    assert not registry.started
    assert registry.job_names() == ["one", "two"]


def scheduled_ids(registry):
    async def scenario():
        registry.start()
        try:
            return sorted(job.id for job in registry._scheduler.get_jobs())
        finally:
            registry.stop_all()

    return asyncio.run(scenario())


@pytest.mark.parametrize("environment, expected", [
    ("development", ["daily", "daily:startup", "hourly"]),
    ("production", ["daily", "hourly"]),
])
def test_startup_run_only_in_development(monkeypatch, environment, expected):
    monkeypatch.setattr(settings, "environment", environment)
    registry = CronJobRegistry()
    daily = make_definition("daily", schedule="0 9 * * *")
    daily.run_on_startup = True
    registry.register_all([daily, make_definition("hourly", schedule="0 * * * *")])

    assert scheduled_ids(registry) == expected
