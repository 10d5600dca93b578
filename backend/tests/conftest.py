from __future__ import annotations

import importlib
import sys
from pathlib import Path
from typing import Callable

import pytest
from fastapi.testclient import TestClient

BACKEND_DIR = Path(__file__).resolve().parents[1]
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

from fakes import FakeCompletion, FakeGateway  # noqa: E402


@pytest.fixture
def backend_module(monkeypatch):
    monkeypatch.setenv("ANIMEDI_ENABLE_SCHEDULER", "false")
    monkeypatch.setenv("OPENAI_API_KEY", "test-openai-key")
    monkeypatch.setenv("SUPABASE_URL", "https://animedi-test.supabase.co")
    monkeypatch.setenv("SUPABASE_SERVICE_KEY", "test-service-key")
    monkeypatch.setenv("SUPABASE_SERVICE_ROLE_KEY", "test-role-key")
    monkeypatch.setenv("ANIMEDI_LOGO_PATH", str(BACKEND_DIR / "tests" / "missing-logo.png"))

    if "main" in sys.modules:
        module = importlib.reload(sys.modules["main"])
    else:
        module = importlib.import_module("main")
    return module


@pytest.fixture
def fake_completion(backend_module, monkeypatch) -> FakeCompletion:
    fake = FakeCompletion()
    monkeypatch.setattr(backend_module.container.completion, "complete", fake)
    return fake


@pytest.fixture
def fake_gateway(backend_module, monkeypatch) -> FakeGateway:
    fake = FakeGateway()
    monkeypatch.setattr(backend_module.container, "gateway", fake)
    monkeypatch.setattr(backend_module.container.health_scores, "gateway", fake)
    return fake


@pytest.fixture
def client(backend_module):
    with TestClient(backend_module.app) as test_client:
        yield test_client


@pytest.fixture
def auth_headers() -> Callable[[str], dict[str, str]]:
    def _make(token: str) -> dict[str, str]:
        return {"Authorization": f"Bearer {token}"}

    return _make
