"""
Shared fixtures for the advisory test suite.

Providers are faked with httpx.MockTransport: FakeBackend routes each request
by host to a per-provider handler, so a test can make OpenAI answer and
Claude fail (or vice versa) without touching the network.
"""

import json
from typing import Callable, Dict, List, Optional

import httpx
import pytest

from advisory.agents.orchestrator import AdvisoryOrchestrator
from advisory.config import Settings
from advisory.schemas import AnalysisData, AnswerRecord, CompanyInfo
from advisory.tools.provider_registry import CredentialStore

OPENAI_HOST = "api.openai.com"
ANTHROPIC_HOST = "api.anthropic.com"
OPENROUTER_HOST = "openrouter.ai"
OLLAMA_HOST = "localhost"
PROBE_MAX_TOKENS = 10


# ─── Provider replies ───────────────────────────────────────────────────────

def openai_reply(text: str, prompt_tokens: int = 100, completion_tokens: int = 50) -> dict:
    return {
        "id": "chatcmpl-test",
        "model": "gpt-3.5-turbo",
        "choices": [{"index": 0, "message": {"role": "assistant", "content": text}}],
        "usage": {
            "prompt_tokens": prompt_tokens,
            "completion_tokens": completion_tokens,
            "total_tokens": prompt_tokens + completion_tokens,
        },
    }


def anthropic_reply(text: str, input_tokens: int = 80, output_tokens: int = 40) -> dict:
    return {
        "id": "msg_test",
        "type": "message",
        "model": "claude-3-haiku-20240307",
        "content": [{"type": "text", "text": text}],
        "usage": {"input_tokens": input_tokens, "output_tokens": output_tokens},
    }


def respond(status: int, body: dict) -> Callable[[httpx.Request], httpx.Response]:
    return lambda request: httpx.Response(status, json=body)


def is_probe(request: httpx.Request) -> bool:
    return json.loads(request.content).get("max_tokens") == PROBE_MAX_TOKENS


def by_budget(probe: Callable, analysis: Callable) -> Callable:
    """Answer probes (10-token budget) and full analyses differently."""
    def handler(request: httpx.Request):
        return (probe if is_probe(request) else analysis)(request)
    return handler


class FakeBackend:
    """Host-routed fake for every provider endpoint."""

    def __init__(self):
        self.routes: Dict[str, Callable] = {}
        self.calls: List[httpx.Request] = []

    def route(self, host: str, handler: Callable) -> None:
        self.routes[host] = handler

    def calls_to(self, host: str) -> List[httpx.Request]:
        return [r for r in self.calls if r.url.host == host]

    def handler(self, request: httpx.Request):
        self.calls.append(request)
        handler = self.routes.get(request.url.host)
        if handler is None:
            return httpx.Response(503, json={"error": {"message": "no route"}})
        return handler(request)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))


# ─── Sample completions ─────────────────────────────────────────────────────

WELL_FORMED_RESPONSE = """以下是为贵公司准备的分析报告。

## 1. 执行摘要
示例公司应聚焦智能遮阳控制系统研发，并拓展商业建筑节能改造市场。

## 2. 行业洞察分析
**市场趋势**：
1. 智能家居集成需求增长
2. 建筑节能政策推动
**机会**：
- 商业建筑改造市场
- 政府节能补贴
**挑战**：
- 同质化竞争
- 原材料成本上涨
**建议**：
- 加大智能化研发投入
- 建立示范项目

## 3. 企业现状评估
**优势**：
- 制造成本控制能力强
- 交付速度快
**劣势**：
- 研发团队规模小
- 品牌知名度低
**市场地位**：区域市场中上游水平
**竞争优势**：成本与交付速度

## 4. 具体研发建议
### 建议1：智能遮阳控制系统
- 描述：开发基于传感器和算法的自动调节遮阳系统
- 优先级：高
- 可行性评分：80
- 影响度评分：90
- 时间规划：12-18个月
- 所需资源：研发团队8人、硬件采购预算
- 主要风险：技术复杂度高、市场教育成本
- 成功指标：产品按期上市、毛利率>40%
- 实施步骤：
  1. 技术调研
  2. 原型开发
  3. 试点验证

### 建议2：商业建筑市场拓展
- 描述：面向写字楼和商场提供节能改造整体方案
- 优先级：中
- 可行性评分：85
- 影响度评分：75
- 时间规划：6-12个月
- 所需资源：销售团队5人
- 主要风险：回款周期长
- 成功指标：新增大客户5家
- 实施步骤：
  1. 客户调研
  2. 样板工程

## 5. 实施计划
### 第一阶段：基础建设（1-3个月）
- 主要任务：
  - 组建研发团队
  - 完成技术调研
- 交付成果：
  - 技术方案
### 第二阶段：产品开发（4-9个月）
- 主要任务：原型开发、试点项目
- 交付成果：产品原型、测试报告
**总时间**：9-12个月
**总投资**：300万元

## 6. 风险评估
**技术风险**：
- 算法稳定性不足
**市场风险**：
- 客户接受度低
**财务风险**：
- 研发投入超预算
**缓解策略**：
- 分阶段投入
- 与高校合作

## 7. 成本效益分析
- 开发成本：200万元
- 实施成本：80万元
- 维护成本：每年20万元
- 投资回报：预计24个月回收投资
"""

PROBE_OK = "连接正常"


# ─── Fixtures ───────────────────────────────────────────────────────────────

def make_settings(**overrides) -> Settings:
    """Settings isolated from the developer's environment and .env file.

    Every field is pinned to its declared default (keys empty, stock base
    URLs and models), so exported variables such as ANTHROPIC_BASE_URL
    cannot redirect requests away from the fake hosts.
    """
    values = {name: info.default for name, info in Settings.model_fields.items()}
    values.update(overrides)
    return Settings(_env_file=None, **values)


def make_orchestrator(
    backend: FakeBackend,
    credentials: Optional[Dict[str, str]] = None,
    **settings_overrides,
) -> AdvisoryOrchestrator:
    return AdvisoryOrchestrator(
        settings=make_settings(**settings_overrides),
        credentials=CredentialStore(credentials or {}),
        client=backend.client(),
    )


@pytest.fixture
def settings() -> Settings:
    return make_settings()


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def analysis_data() -> AnalysisData:
    return AnalysisData(
        industry_answers={
            2: AnswerRecord(question_text="行业面临的主要挑战？", answer_text="同质化竞争严重"),
            1: AnswerRecord(
                question_text="行业未来的发展趋势？",
                answer_text="智能化和节能环保",
                key_points=["智能化", "节能"],
                follow_up="商业建筑需求增长快",
            ),
        },
        company_answers={
            1: AnswerRecord(question_text="公司的核心竞争力？", answer_text="成本控制和交付速度"),
        },
        company_info=CompanyInfo(name="阳光遮阳有限公司", industry="遮阳蓬", size="150人", location="广东佛山"),
    )
