"""Analysis router -- full reports and single-answer commentary."""

import logging

from fastapi import APIRouter, HTTPException

from advisory.api.dependencies import Orchestrator
from advisory.api.schemas import AnalysisRequest, AnswerAnalysisRequest, AnswerAnalysisResponse
from advisory.errors import AnalysisCancelled
from advisory.schemas import AnalysisReport

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/analysis", response_model=AnalysisReport)
async def generate_analysis(body: AnalysisRequest, orchestrator: Orchestrator):
    """Generate an R&D advisory report.

    Provider and parse failures are absorbed by the orchestrator, so this
    always answers 200 with a complete report unless the deadline expires.
    """
    company = body.data.company_info.name or "(unnamed)"
    logger.info(f"Analysis requested for {company}")
    try:
        return await orchestrator.generate_analysis(body.data, body.extras, timeout=body.timeout)
    except AnalysisCancelled as e:
        raise HTTPException(504, str(e))


@router.post("/analysis/answer", response_model=AnswerAnalysisResponse)
async def analyze_answer(body: AnswerAnalysisRequest, orchestrator: Orchestrator):
    """Expert commentary on a single questionnaire answer."""
    try:
        text = await orchestrator.enhance_answer(body.question, body.answer, body.context, timeout=body.timeout)
    except AnalysisCancelled as e:
        raise HTTPException(504, str(e))
    return AnswerAnalysisResponse(analysis=text)
