from .context import summarize_context
from .history import ChatHistoryStore
from .intents import IntentRouter
from .models import ChatIntent, ContextSummary, Defer, DirectAnswer, RouteResult
from .prompts import PromptAssembler

__all__ = [
    "ChatHistoryStore",
    "ChatIntent",
    "ContextSummary",
    "Defer",
    "DirectAnswer",
    "IntentRouter",
    "PromptAssembler",
    "RouteResult",
    "summarize_context",
]
