"""
R&D Advisory Service - Main Entry Point.
FastAPI server and CLI interface.
"""

import asyncio
import json
import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from . import __version__
from .agents.orchestrator import AdvisoryOrchestrator
from .api import analysis, health, providers
from .config import get_settings
from .schemas import AnalysisData, AnswerRecord, CompanyInfo

logger = logging.getLogger(__name__)


def setup_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    # Suppress noisy loggers
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


setup_logging(get_settings().log_level)


def create_app(orchestrator: Optional[AdvisoryOrchestrator] = None) -> FastAPI:
    """Build the API. The orchestrator is created at startup unless one is injected."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if orchestrator is not None:
            app.state.orchestrator = orchestrator
        else:
            app.state.orchestrator = AdvisoryOrchestrator(get_settings())
        logger.info("Starting R&D Advisory API...")
        await app.state.orchestrator.initialize()
        yield
        logger.info("R&D Advisory API stopped")

    app = FastAPI(
        title="R&D Advisory API",
        description="AI-generated R&D recommendation reports from industry and company questionnaires",
        version=__version__,
        lifespan=lifespan,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.include_router(health.router, tags=["health"])
    app.include_router(providers.router, prefix="/api/v1", tags=["providers"])
    app.include_router(analysis.router, prefix="/api/v1", tags=["analysis"])
    return app


app = create_app()


def sample_analysis_data() -> AnalysisData:
    """Small built-in questionnaire used when the CLI gets no --input file."""
    return AnalysisData(
        industry_answers={
            1: AnswerRecord(
                question_text="您认为行业未来3-5年的主要发展趋势是什么？",
                answer_text="智能化和节能环保是主要方向，商业建筑改造需求增长明显。",
                key_points=["智能化", "节能环保"],
            ),
            2: AnswerRecord(
                question_text="行业面临的最大挑战是什么？",
                answer_text="同质化竞争严重，价格战压缩利润空间。",
            ),
        },
        company_answers={
            1: AnswerRecord(
                question_text="公司目前的核心竞争力是什么？",
                answer_text="制造成本控制和交付速度。",
                follow_up="研发团队规模较小，约10人。",
            ),
        },
        company_info=CompanyInfo(name="示例遮阳科技有限公司", industry="遮阳蓬", size="100-200人", location="广东佛山"),
    )


async def run_cli_analysis(input_path: Optional[str], demo: bool) -> None:
    settings = get_settings()
    if demo:
        settings = settings.model_copy(update={"demo_mode": True})

    if input_path:
        data = AnalysisData.model_validate_json(Path(input_path).read_text(encoding="utf-8"))
    else:
        data = sample_analysis_data()

    orchestrator = AdvisoryOrchestrator(settings)
    await orchestrator.initialize()

    print("\n" + "=" * 60)
    print("R&D ADVISORY ANALYSIS")
    print("=" * 60 + "\n")

    report = await orchestrator.generate_analysis(data)
    print(json.dumps(report.model_dump(mode="json"), ensure_ascii=False, indent=2))

    status = orchestrator.get_service_status()
    usage = orchestrator.get_usage_stats()
    print("\n" + "=" * 60)
    print(f"Provider: {status.current_provider} (online: {status.is_online})")
    print(f"Recommendations: {len(report.recommendations)}")
    print(f"Tokens: {usage.total_tokens} | Cost: ${usage.total_cost:.4f}")
    print(f"Runtime: {usage.average_response_time:.2f}s")
    if status.last_error:
        print(f"Last error: {status.last_error}")
    print("=" * 60 + "\n")


def main():
    """Entry point for CLI."""
    import argparse

    parser = argparse.ArgumentParser(description="R&D Advisory Service")
    parser.add_argument("--server", action="store_true", help="Start the FastAPI server")
    parser.add_argument("--port", type=int, default=8000, help="Server port (default: 8000)")
    parser.add_argument("--input", help="AnalysisData JSON file to analyse")
    parser.add_argument("--demo", action="store_true", help="Use the offline demo provider only")
    args = parser.parse_args()

    if args.server:
        import uvicorn
        logger.info(f"Starting server on port {args.port}...")
        uvicorn.run(app, host="0.0.0.0", port=args.port)
    else:
        asyncio.run(run_cli_analysis(args.input, args.demo))


if __name__ == "__main__":
    main()
