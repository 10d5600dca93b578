from __future__ import annotations

import logging
import re
import unicodedata
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any
from urllib.parse import quote

from fastapi import FastAPI, Header, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response
from pydantic import BaseModel

from animedi_chat import ChatHistoryStore, DirectAnswer, IntentRouter, PromptAssembler, summarize_context
from animedi_chat.prompts import DEFAULT_PROMPT_CHAR_BUDGET
from animedi_services import (
    AuthError,
    CompletionClient,
    CompletionError,
    GatewayError,
    HealthScoreParseError,
    HealthScoreService,
    SupabaseGateway,
    build_report_layout,
    build_score_scheduler,
    render_report_pdf,
)
from animedi_services.completion import CARE_GUIDE, CHAT, HEALTH_REPORT, TIP
from animedi_services.config import bootstrap_local_env, configure_logging, env_flag, env_int, env_str
from animedi_services.features import (
    care_guide_prompt,
    finalize_tip,
    health_report_prompt,
    parse_model_json,
    tip_prompt,
)
from animedi_services.health_score import DEFAULT_SCORE_CRON

bootstrap_local_env()
configure_logging()
logger = logging.getLogger("animedi")

_FILENAME_UNSAFE_RE = re.compile(r'["\\/\r\n]+')


class ChatRequest(BaseModel):
    message: str | None = None
    context: dict[str, Any] | None = None
    attachment: str | None = None


class TipRequest(BaseModel):
    species: str | None = None
    petName: str | None = None
    ownerName: str | None = None


class CareGuideRequest(BaseModel):
    petId: str | int | None = None
    petInfo: Any = None


class HealthReportRequest(BaseModel):
    pet: dict[str, Any] | None = None
    records: list[Any] | None = None
    reminders: list[Any] | None = None
    logs: list[Any] | None = None


class HealthScoreRequest(BaseModel):
    petId: str | int | None = None


class AniMediApp:
    def __init__(self) -> None:
        self.gateway = SupabaseGateway()
        self.completion = CompletionClient()
        self.history = ChatHistoryStore()
        self.router = IntentRouter()
        self.prompts = PromptAssembler(env_int("ANIMEDI_PROMPT_CHAR_BUDGET", DEFAULT_PROMPT_CHAR_BUDGET))
        self.health_scores = HealthScoreService(self.gateway, self.completion)
        default_logo = Path(__file__).resolve().parents[1] / "assets/images/icon.png"
        self.logo_path = Path(env_str("ANIMEDI_LOGO_PATH", default=str(default_logo)))

    def start_scheduler(self):
        scheduler = build_score_scheduler(
            self.health_scores,
            cron=env_str("ANIMEDI_HEALTH_SCORE_CRON", default=DEFAULT_SCORE_CRON),
            timezone=env_str("ANIMEDI_SCHEDULER_TIMEZONE", default="UTC"),
        )
        scheduler.start()
        logger.info("daily health score job scheduled")
        return scheduler


container = AniMediApp()


@asynccontextmanager
async def lifespan(app: FastAPI):
    scheduler = container.start_scheduler() if env_flag("ANIMEDI_ENABLE_SCHEDULER", True) else None
    logger.info("AniMedi API starting up")
    yield
    if scheduler is not None:
        scheduler.shutdown(wait=False)
    logger.info("AniMedi API shutting down")


app = FastAPI(title="AniMedi Backend", lifespan=lifespan)

allowed_origins = env_str("ALLOWED_ORIGINS", default="*").split(",")
app.add_middleware(
    CORSMiddleware,
    allow_origins=[origin.strip() for origin in allowed_origins],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _bearer_token(auth_header: str | None) -> str:
    parts = (auth_header or "").split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise HTTPException(status_code=401, detail="Authentication token not provided.")
    return parts[1]


def _as_dict(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _report_disposition(pet: dict[str, Any]) -> str:
    """Attachment header with an ASCII filename and an RFC 5987 UTF-8 one."""
    name = _FILENAME_UNSAFE_RE.sub("", str(pet.get("name") or "").strip()) or "pet"
    folded = unicodedata.normalize("NFKD", name).encode("ascii", "ignore").decode("ascii")
    folded = "".join(ch for ch in folded if ch.isprintable())
    ascii_name = _FILENAME_UNSAFE_RE.sub("", folded).strip() or "pet"
    return (
        f'attachment; filename="{ascii_name}-medical-report.pdf"; '
        f"filename*=UTF-8''{quote(name, safe='')}-medical-report.pdf"
    )


@app.get("/health")
def health_check():
    return {"status": "ok"}


@app.delete("/api/delete-account")
def delete_account(authorization: str | None = Header(default=None)):
    token = _bearer_token(authorization)
    try:
        user = container.gateway.get_user(token)
    except AuthError as exc:
        raise HTTPException(status_code=401, detail=str(exc)) from exc
    except GatewayError as exc:
        logger.warning("token verification failed: %s", exc)
        raise HTTPException(status_code=401, detail="Invalid or expired token.") from exc

    user_id = str(user["id"])
    logger.info("deleting account for user %s", user_id)
    try:
        container.gateway.delete_user(user_id)
    except GatewayError as exc:
        logger.exception("failed to delete account for user %s", user_id)
        raise HTTPException(
            status_code=500,
            detail=f"An error occurred during account deletion: {exc}",
        ) from exc
    logger.info("deleted account for user %s", user_id)
    return {"message": "Account deleted successfully."}


@app.get("/api/chat/history")
def chat_history(user_id: str | None = None, pet_id: str | None = None):
    return {"history": container.history.history(user_id=user_id, pet_id=pet_id)}


@app.post("/api/chat")
def chat(payload: ChatRequest):
    message = payload.message or ""
    if not message.strip():
        raise HTTPException(status_code=400, detail="message is required.")
    context = payload.context or {}
    user = _as_dict(context.get("user"))
    pet = _as_dict(context.get("pet"))

    routed = container.router.route(message, context.get("medical_records"))
    if isinstance(routed, DirectAnswer):
        reply = routed.text
        logger.info("chat answered directly (%s)", routed.intent.value)
    else:
        summary = summarize_context(
            pet=pet,
            reminders=context.get("reminders"),
            records=context.get("medical_records"),
            logs=context.get("logs"),
        )
        messages = container.prompts.build_messages(
            message=message,
            summary=summary,
            user_name=user.get("name"),
            attachment=payload.attachment,
        )
        try:
            reply = container.completion.complete(messages, CHAT)
        except CompletionError as exc:
            logger.exception("chat completion failed")
            raise HTTPException(
                status_code=500,
                detail="An error occurred while processing your request.",
            ) from exc

    container.history.record_exchange(
        user_id=user.get("id"),
        pet_id=pet.get("id"),
        message=message,
        reply=reply,
    )
    return {"response": reply}


@app.post("/api/generate-tip")
def generate_tip(payload: TipRequest):
    if not payload.species or not payload.petName or not payload.ownerName:
        raise HTTPException(status_code=400, detail="Species, petName, and ownerName are required.")
    try:
        text = container.completion.complete_system_prompt(tip_prompt(payload.petName, payload.ownerName), TIP)
    except CompletionError as exc:
        logger.exception("tip generation failed")
        raise HTTPException(status_code=500, detail="Failed to generate tip.") from exc
    tip = finalize_tip(text, payload.petName, payload.ownerName)
    return {"tip": tip}


@app.post("/api/generate-care-guide")
def generate_care_guide(payload: CareGuideRequest):
    if payload.petId in (None, "") or not payload.petInfo:
        raise HTTPException(status_code=400, detail="petId and petInfo are required.")
    pet_id = str(payload.petId)
    try:
        text = container.completion.complete_system_prompt(care_guide_prompt(payload.petInfo), CARE_GUIDE)
        guide = parse_model_json(text)
        container.gateway.update_pet(pet_id, {"care_guide": guide})
    except (CompletionError, GatewayError) as exc:
        logger.exception("care guide generation failed for pet %s", pet_id)
        raise HTTPException(status_code=500, detail="Failed to generate care guide.") from exc
    return {"care_guide": guide}


@app.post("/api/generate-health-report")
def generate_health_report(payload: HealthReportRequest):
    if not payload.pet or payload.records is None or payload.reminders is None or payload.logs is None:
        raise HTTPException(status_code=400, detail="pet, records, reminders, and logs are required.")
    try:
        text = container.completion.complete_system_prompt(
            health_report_prompt(payload.pet, payload.records, payload.reminders, payload.logs),
            HEALTH_REPORT,
        )
    except CompletionError as exc:
        logger.exception("health report generation failed")
        raise HTTPException(status_code=500, detail="Failed to generate health report.") from exc

    report = parse_model_json(text)
    if report.get("error"):
        logger.warning("health report JSON could not be parsed: %s", report.get("parseError"))
    layout = build_report_layout(
        report,
        pet=payload.pet,
        reminders=payload.reminders,
        records=payload.records,
        logs=payload.logs,
    )
    pdf_bytes = render_report_pdf(layout, logo_path=container.logo_path)
    return Response(
        content=pdf_bytes,
        media_type="application/pdf",
        headers={"Content-Disposition": _report_disposition(payload.pet)},
    )


@app.post("/api/health-score")
def health_score(payload: HealthScoreRequest):
    if payload.petId in (None, ""):
        raise HTTPException(status_code=400, detail="petId is required.")
    try:
        score = container.health_scores.score_pet(str(payload.petId))
    except HealthScoreParseError as exc:
        logger.warning("%s", exc)
        raise HTTPException(status_code=500, detail="Could not parse health score.") from exc
    except (CompletionError, GatewayError) as exc:
        logger.exception("health score generation failed for pet %s", payload.petId)
        raise HTTPException(status_code=500, detail="Failed to generate health score.") from exc
    return {"score": score}
