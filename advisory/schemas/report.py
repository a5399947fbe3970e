"""
AnalysisReport: the fixed output schema of the advisory core.

Every field has a default, and validators coerce None into an empty
list/string, so any instance is schema-valid by construction. Absence is
represented by an empty list or placeholder string, never by omission.
"""

from typing import Annotated, List

from pydantic import BaseModel, BeforeValidator, Field

from .base import Priority, RecommendationCategory, SafeStr, Score, StrList


def _coerce_priority(v) -> Priority:
    if isinstance(v, Priority):
        return v
    text = str(v or "").strip().lower()
    if text in ("high", "高", "最高") or text.startswith("高"):
        return Priority.HIGH
    if text in ("low", "低") or text.startswith("低"):
        return Priority.LOW
    return Priority.MEDIUM


def _coerce_category(v) -> RecommendationCategory:
    if isinstance(v, RecommendationCategory):
        return v
    try:
        return RecommendationCategory(str(v or "").strip().lower())
    except ValueError:
        return RecommendationCategory.STRATEGY


class Recommendation(BaseModel):
    """One R&D recommendation with all ten sub-fields populated."""
    id: SafeStr = ""
    title: SafeStr = ""
    description: SafeStr = ""
    category: Annotated[RecommendationCategory, BeforeValidator(_coerce_category)] = RecommendationCategory.STRATEGY
    priority: Annotated[Priority, BeforeValidator(_coerce_priority)] = Priority.MEDIUM
    feasibility: Score = 70
    impact: Score = 70
    timeline: SafeStr = ""
    resources: StrList = Field(default_factory=list)
    risks: StrList = Field(default_factory=list)
    success_metrics: StrList = Field(default_factory=list)
    implementation_steps: StrList = Field(default_factory=list)


class IndustryInsights(BaseModel):
    market_trends: StrList = Field(default_factory=list)
    opportunities: StrList = Field(default_factory=list)
    challenges: StrList = Field(default_factory=list)
    recommendations: StrList = Field(default_factory=list)


class CompanyAssessment(BaseModel):
    strengths: StrList = Field(default_factory=list)
    weaknesses: StrList = Field(default_factory=list)
    current_position: SafeStr = ""
    competitive_advantage: SafeStr = ""


class ImplementationPhase(BaseModel):
    name: SafeStr = ""
    duration: SafeStr = ""
    tasks: StrList = Field(default_factory=list)
    deliverables: StrList = Field(default_factory=list)


class ImplementationPlan(BaseModel):
    phases: List[ImplementationPhase] = Field(default_factory=list)
    total_timeline: SafeStr = ""
    total_investment: SafeStr = ""


class RiskAssessment(BaseModel):
    technical_risks: StrList = Field(default_factory=list)
    market_risks: StrList = Field(default_factory=list)
    financial_risks: StrList = Field(default_factory=list)
    mitigation_strategies: StrList = Field(default_factory=list)


class CostEstimation(BaseModel):
    development: SafeStr = ""
    implementation: SafeStr = ""
    maintenance: SafeStr = ""
    roi: SafeStr = ""


class AnalysisReport(BaseModel):
    executive_summary: SafeStr = ""
    industry_insights: IndustryInsights = Field(default_factory=IndustryInsights)
    company_assessment: CompanyAssessment = Field(default_factory=CompanyAssessment)
    recommendations: List[Recommendation] = Field(default_factory=list)
    implementation_plan: ImplementationPlan = Field(default_factory=ImplementationPlan)
    risk_assessment: RiskAssessment = Field(default_factory=RiskAssessment)
    cost_estimation: CostEstimation = Field(default_factory=CostEstimation)
