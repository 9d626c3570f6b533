from __future__ import annotations

from contextlib import asynccontextmanager
from types import SimpleNamespace

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from backend.app.main import create_app
from backend.app.config import AppConfig
from backend.app.dependencies import get_answer_service
from backend.app.services.answer_service import AnswerService

from scholargy.config.settings import ContextConfig
from scholargy.rag.evidence import SearchOrigin, SourceKind

from fakes import FakeBackend, FakeEncoder, FakeSource, article, make_service, record


@pytest.fixture()
def fakes():
    return SimpleNamespace(
        encoder=FakeEncoder(),
        articles=FakeSource(
            "articles",
            [article("admissions-guide.pdf", "Apply early to improve your odds.")],
            kind=SourceKind.ARTICLE,
        ),
        vector=FakeSource("vector", [record("243744", "Stanford vector text")]),
        keyword=FakeSource(
            "keyword",
            [
                record("243744", "Stanford keyword text", origin=SearchOrigin.KEYWORD_SEARCH),
                record("236948", "UW keyword text", origin=SearchOrigin.KEYWORD_SEARCH),
            ],
            origin=SearchOrigin.KEYWORD_SEARCH,
            uses_embedding=False,
        ),
        backend=FakeBackend(),
        policy="strict",
        context=ContextConfig(max_context_chars=0),
    )


@pytest.fixture()
def rag_url() -> str:
    return f"{AppConfig().api_prefix}/rag"


@pytest.fixture()
def client(fakes):
    @asynccontextmanager
    async def _no_lifespan(_: FastAPI):
        yield

    app = create_app(AppConfig())
    app.router.lifespan_context = _no_lifespan

    def _service_override() -> AnswerService:
        return make_service(fakes)

    app.dependency_overrides[get_answer_service] = _service_override
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
