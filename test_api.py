"""
HTTP API tests using FastAPI's TestClient with an injected orchestrator.

Usage:
    pytest test_api.py -v
"""

import asyncio

import httpx
import pytest
from fastapi.testclient import TestClient

from advisory.main import create_app
from advisory.tools.provider_registry import FALLBACK_PROVIDER
from conftest import (
    OPENAI_HOST,
    PROBE_OK,
    WELL_FORMED_RESPONSE,
    by_budget,
    make_orchestrator,
    openai_reply,
    respond,
)

ANALYSIS_BODY = {
    "data": {
        "industry_answers": {
            "1": {"question_text": "行业趋势？", "answer_text": "智能化", "key_points": ["智能化"]},
        },
        "company_answers": {},
        "company_info": {"name": "测试遮阳公司", "industry": "遮阳蓬", "size": "50人", "location": "浙江"},
    },
}


@pytest.fixture
def demo_client(backend):
    with TestClient(create_app(make_orchestrator(backend))) as client:
        yield client


@pytest.fixture
def openai_client(backend):
    backend.route(OPENAI_HOST, by_budget(
        respond(200, openai_reply(PROBE_OK)),
        respond(200, openai_reply(WELL_FORMED_RESPONSE)),
    ))
    with TestClient(create_app(make_orchestrator(backend, {"openai": "sk-test"}))) as client:
        yield client


def test_root_and_health(demo_client):
    assert demo_client.get("/").json()["service"] == "R&D Advisory API"

    health = demo_client.get("/health").json()
    assert health["status"] == "healthy"
    assert health["service"]["current_provider"] == FALLBACK_PROVIDER
    assert health["config"]["demo_mode"] is False


def test_status_and_usage(openai_client):
    status = openai_client.get("/api/v1/status").json()
    assert status["current_provider"] == "openai"
    assert status["is_online"] is True

    usage = openai_client.get("/api/v1/usage").json()
    assert usage["total_requests"] == 0
    assert usage["total_tokens"] > 0


def test_provider_table_hides_secrets(openai_client):
    providers = openai_client.get("/api/v1/providers").json()
    assert [p["name"] for p in providers][0] == "openai"
    openai = providers[0]
    assert openai["has_credential"] is True
    assert openai["is_available"] is True
    assert "sk-test" not in str(providers)


def test_analysis_returns_full_report(openai_client):
    response = openai_client.post("/api/v1/analysis", json=ANALYSIS_BODY)
    assert response.status_code == 200
    report = response.json()
    assert set(report) == {
        "executive_summary", "industry_insights", "company_assessment", "recommendations",
        "implementation_plan", "risk_assessment", "cost_estimation",
    }
    assert report["recommendations"][0]["priority"] == "high"
    assert openai_client.get("/api/v1/usage").json()["total_requests"] == 1


def test_analysis_with_fallback(demo_client):
    response = demo_client.post("/api/v1/analysis", json=ANALYSIS_BODY)
    assert response.status_code == 200
    assert "测试遮阳公司" in response.json()["executive_summary"]


def test_analysis_deadline_returns_504(backend):
    async def slow(request):
        await asyncio.sleep(5)
        return httpx.Response(200, json=openai_reply(WELL_FORMED_RESPONSE))

    backend.route(OPENAI_HOST, by_budget(respond(200, openai_reply(PROBE_OK)), slow))
    with TestClient(create_app(make_orchestrator(backend, {"openai": "sk-test"}))) as client:
        response = client.post("/api/v1/analysis", json={**ANALYSIS_BODY, "timeout": 0.05})
    assert response.status_code == 504


def test_configure_keyless_provider(demo_client):
    response = demo_client.post("/api/v1/providers/ollama/configure", json={"api_key": ""})
    assert response.status_code == 200
    assert response.json() == {"provider": "ollama", "configured": True, "active_provider": "ollama"}


def test_configure_unknown_provider_404(demo_client):
    response = demo_client.post("/api/v1/providers/gemini/configure", json={"api_key": "x"})
    assert response.status_code == 404


def test_configure_rejected_credential_400(backend):
    backend.route(OPENAI_HOST, respond(401, {"error": {"message": "invalid"}}))
    with TestClient(create_app(make_orchestrator(backend))) as client:
        response = client.post("/api/v1/providers/openai/configure", json={"api_key": "sk-bad"})
        assert response.status_code == 400
        assert client.get("/api/v1/status").json()["current_provider"] == FALLBACK_PROVIDER


def test_answer_analysis_from_provider(backend):
    backend.route(OPENAI_HOST, by_budget(
        respond(200, openai_reply(PROBE_OK)),
        respond(200, openai_reply("关键要点：成本控制能力强。")),
    ))
    with TestClient(create_app(make_orchestrator(backend, {"openai": "sk-test"}))) as client:
        response = client.post("/api/v1/analysis/answer", json={
            "question": "公司的核心竞争力？",
            "answer": "成本控制和交付速度",
            "context": "企业：测试遮阳公司",
        })
    assert response.status_code == 200
    assert response.json() == {"analysis": "关键要点：成本控制能力强。"}


def test_answer_analysis_offline(demo_client):
    response = demo_client.post("/api/v1/analysis/answer", json={"question": "优势？", "answer": "交付快"})
    assert response.status_code == 200
    assert "交付快" in response.json()["analysis"]


def test_answer_analysis_requires_answer(demo_client):
    response = demo_client.post("/api/v1/analysis/answer", json={"question": "优势？", "answer": ""})
    assert response.status_code == 422
