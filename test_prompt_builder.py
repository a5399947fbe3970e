"""
Prompt builder tests.

Usage:
    pytest test_prompt_builder.py -v
"""

from advisory.analysis.prompt_builder import (
    PHASE_FIELDS,
    PLAN_TOTALS,
    RECOMMENDATION_FIELDS,
    SECTION_TITLES,
    build_prompt,
)
from advisory.analysis.response_parser import (
    PHASE_LABELS,
    REC_LABELS,
    SECTION_ALIASES,
    TOTAL_INVESTMENT_LABELS,
    TOTAL_TIMELINE_LABELS,
    parse_phases,
)
from advisory.schemas import AnalysisData, AnalysisExtras, CompanyInfo


def test_prompt_is_deterministic(analysis_data):
    assert build_prompt(analysis_data) == build_prompt(analysis_data)


def test_prompt_contains_company_block(analysis_data):
    prompt = build_prompt(analysis_data)
    assert "公司名称：阳光遮阳有限公司" in prompt
    assert "所属行业：遮阳蓬" in prompt
    assert "公司规模：150人" in prompt
    assert "所在地区：广东佛山" in prompt


def test_answers_rendered_in_question_order(analysis_data):
    prompt = build_prompt(analysis_data)
    assert prompt.index("问题1: 行业未来的发展趋势？") < prompt.index("问题2: 行业面临的主要挑战？")
    assert "要点: 智能化；节能" in prompt
    assert "补充说明: 商业建筑需求增长快" in prompt


def test_prompt_requests_every_section_in_order(analysis_data):
    prompt = build_prompt(analysis_data)
    positions = [prompt.index(title) for _, title, _ in SECTION_TITLES]
    assert positions == sorted(positions)


def test_requested_labels_are_parser_labels():
    for key, title, _ in SECTION_TITLES:
        assert title in SECTION_ALIASES[key]
    known = {label for labels in REC_LABELS.values() for label in labels}
    assert set(RECOMMENDATION_FIELDS) <= known
    phase_known = {label for labels in PHASE_LABELS.values() for label in labels}
    assert set(PHASE_FIELDS) <= phase_known
    assert PLAN_TOTALS[0] in TOTAL_TIMELINE_LABELS
    assert PLAN_TOTALS[1] in TOTAL_INVESTMENT_LABELS


def test_section_aliases_cover_exactly_the_requested_sections():
    assert set(SECTION_ALIASES) == {key for key, _, _ in SECTION_TITLES}


def test_prompt_names_plan_labels(analysis_data):
    prompt = build_prompt(analysis_data)
    for label in PHASE_FIELDS + PLAN_TOTALS:
        assert label in prompt
    assert "### 第序号阶段：阶段名称（持续时间）" in prompt


def test_requested_phase_format_parses():
    body = "\n".join([
        "### 第一阶段：技术预研（1-3个月）",
        "- 持续时间：3个月",
        "- 主要任务：需求调研、技术选型",
        "- 交付成果：技术方案",
        "- 总时间：9个月",
        "- 总投资：200万元",
    ])
    phases = parse_phases(body)
    assert len(phases) == 1
    assert phases[0].name == "第一阶段：技术预研"
    assert phases[0].duration == "3个月"
    assert phases[0].tasks == ["需求调研", "技术选型"]
    assert phases[0].deliverables == ["技术方案"]


def test_blank_industry_uses_default_role_framing():
    data = AnalysisData(company_info=CompanyInfo(name="某公司"))
    assert "专门为遮阳蓬行业提供战略建议" in build_prompt(data)
    assert "专门为门窗行业提供战略建议" in build_prompt(data, default_industry="门窗")


def test_empty_answers_still_render():
    prompt = build_prompt(AnalysisData())
    assert "（暂无回答）" in prompt


def test_extracts_appended_as_reference_material(analysis_data):
    extras = AnalysisExtras(document_extracts=["年报：营收增长12%"], search_extracts=["  ", "政策：节能补贴延续"])
    prompt = build_prompt(analysis_data, extras)
    assert "年报：营收增长12%" in prompt
    assert "政策：节能补贴延续" in prompt
    assert "参考资料" in prompt
    assert "参考资料" not in build_prompt(analysis_data)
