"""
Schemas package: all data models for the advisory service.

Models are organized by concern in submodules:
  - base.py: enums and coercion helpers
  - analysis.py: AnswerRecord, CompanyInfo, AnalysisData, AnalysisExtras
  - report.py: AnalysisReport and its nested sections
  - providers.py: Provider, Completion, UsageStats, ServiceStatus
"""

from advisory.schemas.base import ApiStyle, Priority, RecommendationCategory
from advisory.schemas.analysis import AnalysisData, AnalysisExtras, AnswerRecord, CompanyInfo
from advisory.schemas.report import (
    AnalysisReport, CompanyAssessment, CostEstimation, ImplementationPhase,
    ImplementationPlan, IndustryInsights, Recommendation, RiskAssessment,
)
from advisory.schemas.providers import Completion, Provider, ServiceStatus, UsageStats

__all__ = [
    # base
    "ApiStyle", "Priority", "RecommendationCategory",
    # analysis
    "AnalysisData", "AnalysisExtras", "AnswerRecord", "CompanyInfo",
    # report
    "AnalysisReport", "CompanyAssessment", "CostEstimation", "ImplementationPhase",
    "ImplementationPlan", "IndustryInsights", "Recommendation", "RiskAssessment",
    # providers
    "Completion", "Provider", "ServiceStatus", "UsageStats",
]
