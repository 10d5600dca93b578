from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger

from .completion import HEALTH_SCORE, CompletionClient
from .gateway import SupabaseGateway

logger = logging.getLogger(__name__)

DEFAULT_SCORE_CRON = "0 2 * * *"
_SCORE_RE = re.compile(r"\d{1,3}")


class HealthScoreParseError(ValueError):
    pass


def parse_health_score(text: str) -> int | None:
    match = _SCORE_RE.search(text or "")
    if not match:
        return None
    return min(100, max(0, int(match.group(0))))


def health_score_prompt(
    pet: Any,
    reminders: list[dict[str, Any]],
    logs: list[dict[str, Any]],
    records: list[dict[str, Any]],
) -> str:
    def dump(value: Any) -> str:
        return json.dumps(value, ensure_ascii=False, default=str)

    return (
        "Based on the following pet profile, recent reminders, logs, and medical record, return ONLY a "
        "health score as a percentage (0-100) for this pet. Consider if vaccines are up to date, reminders "
        "are completed on time, and general health maintenance. Do not return any explanation or text, "
        "only the number.\n\n"
        f"Pet: {dump(pet)}\nReminders: {dump(reminders)}\nLogs: {dump(logs)}\nMedicalRecord: {dump(records)}"
    )


@dataclass
class DailyScoreRun:
    updated: dict[str, int] = field(default_factory=dict)
    skipped: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)

    def as_dict(self) -> dict[str, Any]:
        return {"updated": dict(self.updated), "skipped": list(self.skipped), "failed": list(self.failed)}


class HealthScoreService:
    def __init__(self, gateway: SupabaseGateway, completion: CompletionClient) -> None:
        self.gateway = gateway
        self.completion = completion

    def score_pet(self, pet_id: str) -> int:
        pet = self.gateway.get_pet(pet_id)
        reminders = self.gateway.recent_reminders(pet_id, 3)
        logs = self.gateway.recent_logs(pet_id, 3)
        records = self.gateway.recent_medical_records(pet_id, 1)
        text = self.completion.complete_system_prompt(
            health_score_prompt(pet, reminders, logs, records),
            HEALTH_SCORE,
        )
        score = parse_health_score(text)
        if score is None:
            raise HealthScoreParseError(f"Could not parse health score from {text!r}.")
        return score

    def run_daily(self) -> DailyScoreRun:
        run = DailyScoreRun()
        logger.info("running daily health score update")
        for pet_id in self.gateway.list_pet_ids():
            try:
                score = self.score_pet(pet_id)
            except HealthScoreParseError:
                logger.warning("could not parse health score for pet %s", pet_id)
                run.skipped.append(pet_id)
                continue
            except Exception:
                logger.exception("error scoring pet %s", pet_id)
                run.failed.append(pet_id)
                continue
            try:
                self.gateway.update_pet(pet_id, {"health_score": score})
            except Exception:
                logger.exception("error saving health score for pet %s", pet_id)
                run.failed.append(pet_id)
                continue
            run.updated[pet_id] = score
            logger.info("updated health score for pet %s: %d", pet_id, score)
        logger.info(
            "daily health score update complete: %d updated, %d skipped, %d failed",
            len(run.updated),
            len(run.skipped),
            len(run.failed),
        )
        return run


def build_score_scheduler(
    service: HealthScoreService,
    *,
    cron: str = DEFAULT_SCORE_CRON,
    timezone: str = "UTC",
) -> BackgroundScheduler:
    scheduler = BackgroundScheduler(timezone=timezone)

    def job() -> None:
        try:
            service.run_daily()
        except Exception:
            logger.exception("daily health score job failed")

    scheduler.add_job(
        job,
        CronTrigger.from_crontab(cron, timezone=timezone),
        id="daily_health_score",
        max_instances=1,
        coalesce=True,
        replace_existing=True,
    )
    return scheduler
