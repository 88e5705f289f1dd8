from __future__ import annotations

from typing import Iterable, List

import httpx
import pytest
from pydantic_ai import models

from gatekeeper_ai.agent_core.approvals.ui import ApprovalUI

# Never let a test reach a real model provider.
models.ALLOW_MODEL_REQUESTS = False


class ScriptedApprovalUI(ApprovalUI):
    """Approval UI that replays canned answers and records everything shown."""

    def __init__(self, answers: Iterable[str] = ()) -> None:
        self.answers: List[str] = list(answers)
        self.questions: List[str] = []
        self.displayed: List[str] = []

    def display(self, text: str) -> None:
        self.displayed.append(text)

    async def ask(self, question: str) -> str:
        self.questions.append(question)
        if not self.answers:
            raise AssertionError(f"unexpected approval question: {question!r}")
        return self.answers.pop(0)

    @property
    def transcript(self) -> str:
        return "\n".join(self.displayed)


@pytest.fixture
def scripted_ui():
    """Factory fixture: ``scripted_ui("y")`` returns a UI answering ``y`` once."""

    def _make(*answers: str) -> ScriptedApprovalUI:
        return ScriptedApprovalUI(answers)

    return _make


@pytest.fixture(autouse=True)
def _global_offline_http_guard(monkeypatch: pytest.MonkeyPatch):
    allowed_prefixes: Iterable[str] = (
        "http://mock",
        "https://mock",
        "http://localhost",
        "http://127.0.0.1",
        "/",
    )

    orig_sync = httpx._client.Client.request
    orig_async = httpx._client.AsyncClient.request

    def _is_allowed(url_str: str) -> bool:
        return any(url_str.startswith(p) for p in allowed_prefixes)

    def offline_sync(self, method, url, *args, **kwargs):
        url_str = str(url)
        if _is_allowed(url_str):
            return orig_sync(self, method, url, *args, **kwargs)
        raise RuntimeError(f"External HTTP blocked by global offline guard: {url_str}")

    async def offline_async(self, method, url, *args, **kwargs):
        url_str = str(url)
        if _is_allowed(url_str):
            return await orig_async(self, method, url, *args, **kwargs)
        raise RuntimeError(f"External HTTP blocked by global offline guard (async): {url_str}")

    monkeypatch.setattr(httpx._client.Client, "request", offline_sync, raising=True)
    monkeypatch.setattr(httpx._client.AsyncClient, "request", offline_async, raising=True)
