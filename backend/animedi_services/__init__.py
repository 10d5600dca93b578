from .completion import CompletionClient, CompletionError, CompletionProfile
from .gateway import AuthError, GatewayError, SupabaseGateway
from .health_score import HealthScoreParseError, HealthScoreService, build_score_scheduler, parse_health_score
from .report import build_report_layout, render_report_pdf

__all__ = [
    "AuthError",
    "CompletionClient",
    "CompletionError",
    "CompletionProfile",
    "GatewayError",
    "HealthScoreParseError",
    "HealthScoreService",
    "SupabaseGateway",
    "build_report_layout",
    "build_score_scheduler",
    "parse_health_score",
    "render_report_pdf",
]
