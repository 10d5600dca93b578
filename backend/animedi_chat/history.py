from __future__ import annotations

import threading
from typing import Any

from .models import ChatTurn
from .time_utils import to_iso, utc_now

ANONYMOUS_USER = "anonymous"
UNSCOPED_PET = "unscoped"


def history_key(user_id: Any, pet_id: Any) -> tuple[str, str]:
    user = str(user_id).strip() if user_id not in (None, "") else ""
    pet = str(pet_id).strip() if pet_id not in (None, "") else ""
    return (user or ANONYMOUS_USER, pet or UNSCOPED_PET)


class ChatHistoryStore:
    """In-process chat log keyed by (user, pet).

    Turns are kept per key and in one global arrival order. Nothing is
    persisted; the log is lost on restart.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._turns: list[ChatTurn] = []
        self._by_key: dict[tuple[str, str], list[ChatTurn]] = {}

    def record_exchange(self, *, user_id: Any, pet_id: Any, message: str, reply: str) -> None:
        user, pet = history_key(user_id, pet_id)
        now = to_iso(utc_now())
        turns = [
            ChatTurn(user_id=user, pet_id=pet, role="user", content=message, created_at=now),
            ChatTurn(user_id=user, pet_id=pet, role="assistant", content=reply, created_at=now),
        ]
        with self._lock:
            self._turns.extend(turns)
            self._by_key.setdefault((user, pet), []).extend(turns)

    def history(self, *, user_id: str | None = None, pet_id: str | None = None) -> list[dict[str, str]]:
        with self._lock:
            if user_id and pet_id:
                selected = list(self._by_key.get((user_id, pet_id), []))
            elif user_id or pet_id:
                selected = [
                    turn
                    for turn in self._turns
                    if (not user_id or turn.user_id == user_id) and (not pet_id or turn.pet_id == pet_id)
                ]
            else:
                selected = list(self._turns)
        return [turn.as_message() for turn in selected]

    def __len__(self) -> int:
        with self._lock:
            return len(self._turns)
