from __future__ import annotations

import pytest
from fakes import FakeCompletion, FakeGateway

from animedi_services.completion import HEALTH_SCORE, CompletionError
from animedi_services.health_score import (
    HealthScoreParseError,
    HealthScoreService,
    build_score_scheduler,
    parse_health_score,
)


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("87% healthy", 87),
        ("150", 100),
        ("Score: 0", 0),
        ("  42 ", 42),
        ("1000", 100),
        ("no idea", None),
        ("", None),
    ],
)
def test_parse_health_score(text, expected):
    assert parse_health_score(text) == expected


class _CompletionStub:
    def __init__(self, fake: FakeCompletion) -> None:
        self.complete = fake

    def complete_system_prompt(self, prompt, profile):
        return self.complete([{"role": "system", "content": prompt}], profile)


def _service(gateway: FakeGateway, *replies) -> tuple[HealthScoreService, FakeCompletion]:
    fake = FakeCompletion().queue(*replies)
    return HealthScoreService(gateway, _CompletionStub(fake)), fake


def _seed(gateway: FakeGateway, pet_id: str) -> None:
    gateway.pets[pet_id] = {"id": pet_id, "name": f"Pet {pet_id}"}
    gateway.reminders[pet_id] = [{"title": f"r{i}"} for i in range(5)]
    gateway.logs[pet_id] = [{"action": f"l{i}"} for i in range(5)]
    gateway.records[pet_id] = [{"title": f"m{i}"} for i in range(5)]


def test_score_pet_builds_compact_prompt():
    gateway = FakeGateway()
    _seed(gateway, "p1")
    service, fake = _service(gateway, "87% healthy")

    assert service.score_pet("p1") == 87

    call = fake.calls[0]
    assert call["profile"] is HEALTH_SCORE
    prompt = call["messages"][0]["content"]
    assert "return ONLY a health score" in prompt
    assert '"r2"' in prompt and '"r3"' not in prompt
    assert '"l2"' in prompt and '"l3"' not in prompt
    assert '"m0"' in prompt and '"m1"' not in prompt


def test_score_pet_unparsable_raises():
    gateway = FakeGateway()
    _seed(gateway, "p1")
    service, _ = _service(gateway, "no idea")

    with pytest.raises(HealthScoreParseError):
        service.score_pet("p1")


def test_run_daily_skips_and_continues_past_failures():
    gateway = FakeGateway()
    for pet_id in ("a", "b", "c", "d"):
        _seed(gateway, pet_id)
    gateway.fail_update_for.add("d")
    service, fake = _service(gateway, "91", "not sure", CompletionError("boom"), "150")

    run = service.run_daily()

    assert run.updated == {"a": 91}
    assert run.skipped == ["b"]
    assert run.failed == ["c", "d"]
    assert gateway.updates == [("a", {"health_score": 91})]
    assert len(fake.calls) == 4


def test_scheduler_registers_daily_job():
    gateway = FakeGateway()
    service, _ = _service(gateway)

    scheduler = build_score_scheduler(service, cron="0 2 * * *", timezone="UTC")

    job = scheduler.get_job("daily_health_score")
    assert job is not None
    assert "hour='2'" in str(job.trigger)
    assert "minute='0'" in str(job.trigger)
