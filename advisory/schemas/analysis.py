"""Input models: questionnaire answers, company profile and auxiliary extracts."""

from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

from .base import SafeStr, StrList


class AnswerRecord(BaseModel):
    """One answered questionnaire item."""
    model_config = ConfigDict(frozen=True)

    question_text: SafeStr = ""
    answer_text: SafeStr = ""
    key_points: StrList = Field(default_factory=list)
    follow_up: Optional[str] = None
    timestamp: Optional[str] = None


class CompanyInfo(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: SafeStr = ""
    industry: SafeStr = ""
    size: SafeStr = ""
    location: SafeStr = ""


class AnalysisData(BaseModel):
    """Everything the questionnaire UI collected for one analysis run."""
    model_config = ConfigDict(frozen=True)

    industry_answers: Dict[int, AnswerRecord] = Field(default_factory=dict)
    company_answers: Dict[int, AnswerRecord] = Field(default_factory=dict)
    company_info: CompanyInfo = Field(default_factory=CompanyInfo)


class AnalysisExtras(BaseModel):
    """Summaries produced by document upload and search, folded into the prompt."""
    model_config = ConfigDict(frozen=True)

    document_extracts: StrList = Field(default_factory=list)
    search_extracts: StrList = Field(default_factory=list)
