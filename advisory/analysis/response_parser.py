"""
Response parsing: free-text model output → AnalysisReport.

LLM output format is not guaranteed even with explicit instructions, so
parsing is total and degrades in three tiers:

  StructuredParse      every section and field was found
  PartialParse         some headings found; missing fields get generic defaults
  UnparseableResponse  no recognisable heading; a synthetic report is built
                       around the first characters of the raw text

Each variant converts to a schema-valid AnalysisReport via ``to_report()``.
Heading and field labels mirror prompt_builder.SECTION_TITLES and
RECOMMENDATION_FIELDS.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, List, Optional, Sequence, Tuple, Union

from ..schemas import (
    AnalysisReport, CompanyAssessment, CostEstimation, ImplementationPhase,
    ImplementationPlan, IndustryInsights, Priority, Recommendation,
    RecommendationCategory, RiskAssessment,
)
from . import fallback_report

logger = logging.getLogger(__name__)

# Canonical section key → accepted titles (longest first wins on ties)
SECTION_ALIASES: Dict[str, Tuple[str, ...]] = {
    "executive_summary": ("执行摘要", "摘要", "概述"),
    "industry_insights": ("行业洞察分析", "行业洞察", "行业分析"),
    "company_assessment": ("企业现状评估", "企业现状", "企业评估", "企业分析"),
    "recommendations": ("具体研发建议", "研发建议"),
    "implementation_plan": ("实施计划", "实施规划"),
    "risk_assessment": ("风险评估和缓解策略", "风险评估", "风险分析"),
    "cost_estimation": ("成本效益分析", "成本效益", "成本估算"),
}

# Recommendation sub-field labels, preferred label first
REC_LABELS: Dict[str, Tuple[str, ...]] = {
    "title": ("标题", "名称"),
    "description": ("描述", "详细描述", "说明"),
    "category": ("类别", "类型", "分类"),
    "priority": ("优先级",),
    "feasibility": ("可行性评分", "可行性"),
    "impact": ("影响度评分", "影响度", "影响力评分", "影响力"),
    "timeline": ("时间规划", "预计时间", "时间周期", "时间"),
    "resources": ("所需资源", "资源需求", "资源"),
    "risks": ("主要风险", "风险评估", "风险"),
    "success_metrics": ("成功指标", "关键指标", "指标"),
    "implementation_steps": ("实施步骤", "执行步骤", "步骤"),
}
_ALL_REC_LABELS = tuple(label for labels in REC_LABELS.values() for label in labels)

PHASE_LABELS: Dict[str, Tuple[str, ...]] = {
    "duration": ("持续时间", "时间周期", "周期", "时长", "时间"),
    "tasks": ("主要任务", "关键任务", "工作内容", "任务"),
    "deliverables": ("交付成果", "交付物", "产出", "成果"),
}
_ALL_PHASE_LABELS = tuple(label for labels in PHASE_LABELS.values() for label in labels)

TOTAL_TIMELINE_LABELS = ("总时间", "总周期")
TOTAL_INVESTMENT_LABELS = ("总投资", "投资估算")

DEFAULT_FEASIBILITY = 70
DEFAULT_IMPACT = 70
DESCRIPTION_PLACEHOLDER = "暂无详细描述"
TIMELINE_PLACEHOLDER = "待评估"
DURATION_PLACEHOLDER = "待定"

_MD_HEADING = re.compile(r"^(#{1,6})\s*(.*?)\s*#*\s*$")
_ITEM = re.compile(r"^(\s*)(?:\d+[.、．)）](?!\d)|[-•·](?!-)|\*(?!\*))\s*(.*)$")
_NUMBER_PREFIX = re.compile(
    r"^(?:第?[一二三四五六七八九十]+[、.．)）]|\d+[.、．)）](?!\d)|[（(][一二三四五六七八九十\d]+[)）])\s*"
)
_PARENTHETICAL = re.compile(r"[（(][^（）()]*[)）]")
_REC_PREFIX = re.compile(r"^(?:研发建议|建议|推荐|方案)\s*[一二三四五六七八九十\d]+\s*[:：.、．]?\s*")
_PHASE_START = re.compile(r"^(?:第[一二三四五六七八九十\d]+阶段|阶段\s*[一二三四五六七八九十\d]+|phase\s*\d+)", re.IGNORECASE)
_DURATION = re.compile(
    r"\d+(?:\.\d+)?\s*(?:[-~～至到]\s*\d+(?:\.\d+)?\s*)?(?:个月|月|周|年|天)"
)
_INLINE_SPLIT = re.compile(r"[、，,；;]")
_NUMBER = re.compile(r"\d+(?:\.\d+)?")


# ─── Line helpers ────────────────────────────────────────────────────────────

def _indent(line: str) -> int:
    return len(line) - len(line.lstrip(" \t"))


def _strip_emphasis(text: str) -> str:
    return text.replace("**", "").replace("__", "")


def _clean_line(line: str) -> str:
    """Drop emphasis, a leading list/number marker and surrounding whitespace."""
    text = _strip_emphasis(line).strip()
    match = _ITEM.match(text)
    if match:
        text = match.group(2)
    text = _NUMBER_PREFIX.sub("", text)
    return text.strip()


def _field_label_of(line: str, labels: Sequence[str]) -> Optional[str]:
    """Return the label this line introduces ("- **优先级**：高" → 优先级), if any."""
    cleaned = _clean_line(line)
    for label in sorted(labels, key=len, reverse=True):
        if cleaned.startswith(label):
            rest = cleaned[len(label):].lstrip()
            if not rest or rest[0] in ":：":
                return label
    return None


def _find_label_line(lines: List[str], label: str, strict: bool = False) -> Optional[int]:
    for i, line in enumerate(lines):
        if _field_label_of(line, [label]):
            return i
    if strict:
        return None
    for i, line in enumerate(lines):
        if label in line:
            return i
    return None


def _value_after_label(line: str, label: str) -> str:
    text = _strip_emphasis(line)
    pos = text.find(label)
    if pos == -1:
        return ""
    return text[pos + len(label):].strip().lstrip(":：").strip()


def _clean_item(text: str) -> str:
    return _strip_emphasis(text).strip()


def _marker_kind(line: str) -> str:
    return "number" if re.match(r"^\s*\d+[.、．)）](?!\d)", line) else "bullet"


# ─── Field extraction ────────────────────────────────────────────────────────

def extract_list_items(
    body: str,
    label: str,
    stop_labels: Sequence[str] = (),
    strict: bool = False,
) -> List[str]:
    """Collect the list that follows the first line naming ``label``.

    Items are lines starting with ``1.``, ``-`` or ``*`` (marker stripped).
    Deeper-indented lines are treated as detail of the previous item; a
    non-indented, non-marker line ends the run. When no item lines follow,
    an inline value ("所需资源：团队、资金") is split into items instead.
    """
    lines = body.splitlines()
    idx = _find_label_line(lines, label, strict=strict)
    if idx is None:
        return []

    label_line = lines[idx]
    base = _indent(label_line)
    label_is_item = _ITEM.match(label_line) is not None
    label_kind = _marker_kind(label_line)
    stops = [s for s in stop_labels if s != label and s not in label]

    items: List[str] = []
    item_indent: Optional[int] = None
    for line in lines[idx + 1:]:
        if not line.strip():
            continue
        if stops and _field_label_of(line, stops):
            break
        indent = _indent(line)
        match = _ITEM.match(line)
        if match:
            # a sibling of the label line ends the run; "- 步骤：" may still own "1. …" at its indent
            if label_is_item and (indent < base or (indent == base and _marker_kind(line) == label_kind)):
                break
            if item_indent is None:
                item_indent = indent
            elif indent < item_indent:
                break
            elif indent > item_indent:
                continue
            item = _clean_item(match.group(2))
            if item:
                items.append(item)
            continue
        if indent > base:
            continue
        break

    if not items:
        inline = _value_after_label(label_line, label)
        items = [part.strip() for part in _INLINE_SPLIT.split(inline) if part.strip()]
    return items


def extract_text(body: str, label: str, strict: bool = False) -> str:
    """Value of the first line naming ``label``; "" when absent. Never raises."""
    lines = body.splitlines()
    idx = _find_label_line(lines, label, strict=strict)
    if idx is None:
        return ""
    value = _value_after_label(lines[idx], label)
    if value:
        return value
    # "**市场地位**" on its own line, value on the next one
    for line in lines[idx + 1:]:
        if line.strip():
            return _clean_line(line)
    return ""


def _first_text(body: str, labels: Sequence[str], strict: bool = True) -> str:
    for label in labels:
        value = extract_text(body, label, strict=strict)
        if value:
            return value
    return ""


def _first_list(body: str, labels: Sequence[str], stop_labels: Sequence[str], strict: bool = True) -> List[str]:
    for label in labels:
        items = extract_list_items(body, label, stop_labels=stop_labels, strict=strict)
        if items:
            return items
    return []


# ─── Sectionizing ────────────────────────────────────────────────────────────

def _match_section(title: str, prefix: bool) -> Optional[str]:
    best: Optional[Tuple[int, str]] = None
    for key, aliases in SECTION_ALIASES.items():
        for alias in aliases:
            hit = title.startswith(alias) if prefix else title == alias
            if hit and (best is None or len(alias) > best[0]):
                best = (len(alias), key)
    return best[1] if best else None


def _heading_title(text: str) -> str:
    title = _strip_emphasis(text).strip().strip("【】[] ")
    title = _NUMBER_PREFIX.sub("", title)
    title = _PARENTHETICAL.sub("", title)
    return title.strip().rstrip(":：").strip()


def _detect_heading(line: str) -> Optional[Tuple[Optional[str], int, bool]]:
    """Return (section key or None, level, exact title match) when ``line`` is a heading."""
    md = _MD_HEADING.match(line)
    if md:
        title = _heading_title(md.group(2))
        exact = _match_section(title, prefix=False) is not None
        return _match_section(title, prefix=True), len(md.group(1)), exact

    if not line.strip() or _indent(line) > 0:
        return None
    stripped = line.strip()
    # "- 风险评估：" is a list field, not a heading
    if _ITEM.match(stripped) and not _NUMBER_PREFIX.match(stripped):
        return None
    decorated = stripped.startswith("**") or stripped.startswith("【") or _NUMBER_PREFIX.match(stripped)
    if stripped.rstrip("*").endswith((":", "：")) and not decorated:
        return None
    key = _match_section(_heading_title(stripped), prefix=False)
    if key is None:
        return None
    return key, 1, True


def sectionize(text: str) -> Dict[str, str]:
    """Split a completion into canonical sections. Text before the first heading is dropped.

    Markdown headings nested below a known section stay in its body
    (recommendation and phase sub-headings), including ones that merely start
    with that section's own title; at the same or a higher level they close it.
    """
    sections: Dict[str, str] = {}
    current: Optional[str] = None
    level = 0
    buffer: List[str] = []

    def flush():
        if current is None:
            return
        body = "\n".join(buffer).strip("\n")
        if current in sections and body:
            sections[current] = f"{sections[current]}\n{body}"
        elif current not in sections:
            sections[current] = body

    for line in text.splitlines():
        heading = _detect_heading(line)
        if heading is not None:
            key, heading_level, exact = heading
            # "### 研发建议1：…" under 具体研发建议 is a sub-heading, not a restart
            if key == current and heading_level > level and not exact:
                key = None
            if key is not None or current is None or heading_level <= level:
                flush()
                current, level, buffer = key, heading_level, []
                continue
        buffer.append(line)
    flush()
    return {key: body.strip() for key, body in sections.items()}


# ─── Recommendations ─────────────────────────────────────────────────────────

_LIST_REC_FIELDS = {"resources", "risks", "success_metrics", "implementation_steps"}
_LIST_REC_LABELS = tuple(label for key in _LIST_REC_FIELDS for label in REC_LABELS[key])

_CATEGORY_KEYWORDS = [
    (RecommendationCategory.MARKET, ("市场", "营销", "渠道", "客户", "品牌", "销售")),
    (RecommendationCategory.TECHNOLOGY, ("技术", "智能", "算法", "材料", "系统", "研发平台", "IoT")),
    (RecommendationCategory.PRODUCT, ("产品", "设计", "功能")),
    (RecommendationCategory.STRATEGY, ("战略", "合作", "组织", "人才", "管理")),
]
_CATEGORY_NAMES = {
    "市场": RecommendationCategory.MARKET,
    "技术": RecommendationCategory.TECHNOLOGY,
    "产品": RecommendationCategory.PRODUCT,
    "战略": RecommendationCategory.STRATEGY,
}


def _is_block_start(line: str, numbered: bool) -> bool:
    if _MD_HEADING.match(line):
        return True
    cleaned = _strip_emphasis(line).strip()
    if _indent(line) == 0 and _REC_PREFIX.match(cleaned):
        return True
    if numbered and _indent(line) == 0 and re.match(r"^\d+[.、．)）](?!\d)", line.strip()):
        return _field_label_of(line, _ALL_REC_LABELS) is None
    return False


def _split_recommendation_blocks(body: str) -> List[Tuple[str, List[str]]]:
    lines = body.splitlines()
    explicit = any(
        _MD_HEADING.match(line) or (_indent(line) == 0 and _REC_PREFIX.match(_strip_emphasis(line).strip()))
        for line in lines
    )
    numbered = not explicit

    blocks: List[Tuple[str, List[str]]] = []
    in_list_field = False
    for line in lines:
        if not line.strip():
            if blocks:
                blocks[-1][1].append(line)
            continue
        if _is_block_start(line, numbered):
            bold_title = line.strip().split(" ", 1)[-1].startswith("**")
            if not (numbered and in_list_field and not bold_title):
                blocks.append((line, []))
                in_list_field = False
                continue
        if not blocks:
            continue
        label = _field_label_of(line, _ALL_REC_LABELS)
        if label is not None:
            in_list_field = label in _LIST_REC_LABELS and not _value_after_label(line, label)
        elif not _ITEM.match(line):
            in_list_field = False
        blocks[-1][1].append(line)
    return blocks


def _block_title(header: str) -> str:
    md = _MD_HEADING.match(header)
    text = md.group(2) if md else header
    text = _strip_emphasis(text).strip()
    text = _NUMBER_PREFIX.sub("", text.lstrip("-*• "))
    text = _REC_PREFIX.sub("", text)
    return text.strip().rstrip(":：").strip()


def _infer_category(explicit: str, text: str) -> RecommendationCategory:
    for name, category in _CATEGORY_NAMES.items():
        if name in explicit:
            return category
    try:
        return RecommendationCategory(explicit.strip().lower())
    except ValueError:
        pass
    for category, keywords in _CATEGORY_KEYWORDS:
        if any(keyword in text for keyword in keywords):
            return category
    return RecommendationCategory.STRATEGY


def _score(text: str, default: int) -> int:
    match = _NUMBER.search(text)
    if not match:
        return default
    value = float(match.group())
    # "8/10" or "0.8" style scores
    if "/10" in text.replace(" ", "") and value <= 10:
        value *= 10
    elif value <= 1 and "." in match.group():
        value *= 100
    return max(0, min(100, int(round(value))))


def _parse_recommendation(index: int, header: str, lines: List[str]) -> Tuple[Recommendation, List[str]]:
    body = "\n".join(lines)
    defaulted: List[str] = []

    def text_field(key: str) -> str:
        return _first_text(body, REC_LABELS[key])

    def list_field(key: str) -> List[str]:
        items = _first_list(body, REC_LABELS[key], stop_labels=_ALL_REC_LABELS)
        if not items:
            defaulted.append(key)
        return items

    title = text_field("title") or _block_title(header)
    if not title:
        title = f"研发建议{index}"
        defaulted.append("title")

    description = text_field("description")
    if not description:
        prose = [
            _clean_line(line) for line in lines
            if line.strip() and _field_label_of(line, _ALL_REC_LABELS) is None and not _ITEM.match(line)
        ]
        description = prose[0] if prose else ""
    if not description:
        description = DESCRIPTION_PLACEHOLDER
        defaulted.append("description")

    priority_text = text_field("priority")
    if not priority_text:
        defaulted.append("priority")

    feasibility_text = text_field("feasibility")
    impact_text = text_field("impact")
    if not feasibility_text:
        defaulted.append("feasibility")
    if not impact_text:
        defaulted.append("impact")

    timeline = text_field("timeline")
    if not timeline:
        timeline = TIMELINE_PLACEHOLDER
        defaulted.append("timeline")

    recommendation = Recommendation(
        id=str(index),
        title=title,
        description=description,
        category=_infer_category(text_field("category"), f"{title}{description}"),
        priority=priority_text or Priority.MEDIUM,
        feasibility=_score(feasibility_text, DEFAULT_FEASIBILITY),
        impact=_score(impact_text, DEFAULT_IMPACT),
        timeline=timeline,
        resources=list_field("resources"),
        risks=list_field("risks"),
        success_metrics=list_field("success_metrics"),
        implementation_steps=list_field("implementation_steps"),
    )
    return recommendation, defaulted


def parse_recommendations(body: str) -> List[Recommendation]:
    """One Recommendation per block; unresolved sub-fields get benign defaults."""
    recommendations = []
    for index, (header, lines) in enumerate(_split_recommendation_blocks(body), start=1):
        recommendation, defaulted = _parse_recommendation(index, header, lines)
        if defaulted:
            logger.debug(f"Recommendation {index} defaulted fields: {', '.join(defaulted)}")
        recommendations.append(recommendation)
    return recommendations


# ─── Implementation phases ───────────────────────────────────────────────────

def _is_phase_start(line: str) -> bool:
    if _MD_HEADING.match(line):
        return True
    return bool(_PHASE_START.match(_clean_line(line)))


def parse_phases(body: str) -> List[ImplementationPhase]:
    phases = []
    blocks: List[Tuple[str, List[str]]] = []
    for line in body.splitlines():
        if line.strip() and _is_phase_start(line):
            blocks.append((line, []))
        elif blocks:
            blocks[-1][1].append(line)

    for header, lines in blocks:
        md = _MD_HEADING.match(header)
        name = _clean_line(md.group(2) if md else header)
        block = "\n".join(lines)

        duration = _first_text(block, PHASE_LABELS["duration"])
        if not duration:
            match = _DURATION.search(name)
            duration = match.group() if match else DURATION_PLACEHOLDER
        name = _PARENTHETICAL.sub("", name).strip().rstrip(":：").strip()

        phases.append(ImplementationPhase(
            name=name,
            duration=duration,
            tasks=_first_list(block, PHASE_LABELS["tasks"], stop_labels=_ALL_PHASE_LABELS),
            deliverables=_first_list(block, PHASE_LABELS["deliverables"], stop_labels=_ALL_PHASE_LABELS),
        ))
    return phases


# ─── Parse results ───────────────────────────────────────────────────────────

@dataclass(frozen=True)
class StructuredParse:
    """Every section and field resolved."""
    report: AnalysisReport

    def to_report(self) -> AnalysisReport:
        return self.report


@dataclass(frozen=True)
class PartialParse:
    """Headings found but some fields missing; ``missing_fields`` are dotted report paths."""
    report: AnalysisReport
    missing_fields: FrozenSet[str] = field(default_factory=frozenset)

    def to_report(self) -> AnalysisReport:
        report = self.report.model_copy(deep=True)
        generic = fallback_report.generic_report()
        for path in sorted(self.missing_fields):
            section, _, name = path.partition(".")
            if not name:
                setattr(report, section, getattr(generic, section))
            else:
                setattr(getattr(report, section), name, getattr(getattr(generic, section), name))
        return report


@dataclass(frozen=True)
class UnparseableResponse:
    """No recognisable heading at all."""
    raw: str
    summary_chars: int = 500

    def to_report(self) -> AnalysisReport:
        return fallback_report.synthetic_report(self.raw, self.summary_chars)


ParseResult = Union[StructuredParse, PartialParse, UnparseableResponse]


def _missing_paths(report: AnalysisReport) -> FrozenSet[str]:
    missing = set()
    for section in ("industry_insights", "company_assessment", "implementation_plan",
                    "risk_assessment", "cost_estimation"):
        model = getattr(report, section)
        for name, value in model:
            if value in ("", [], None):
                missing.add(f"{section}.{name}")
    if not report.executive_summary.strip():
        missing.add("executive_summary")
    if not report.recommendations:
        missing.add("recommendations")
    return frozenset(missing)


def parse_response(text: str, summary_chars: int = 500) -> ParseResult:
    """Classify and structure a completion into one of the three parse tiers."""
    text = text or ""
    sections = sectionize(text)
    if not sections:
        return UnparseableResponse(raw=text, summary_chars=summary_chars)

    insights = sections.get("industry_insights", "")
    company = sections.get("company_assessment", "")
    plan = sections.get("implementation_plan", "")
    risks = sections.get("risk_assessment", "")
    costs = sections.get("cost_estimation", "")

    report = AnalysisReport(
        executive_summary=sections.get("executive_summary", ""),
        industry_insights=IndustryInsights(
            market_trends=extract_list_items(insights, "市场趋势"),
            opportunities=extract_list_items(insights, "机会"),
            challenges=extract_list_items(insights, "挑战"),
            recommendations=extract_list_items(insights, "建议"),
        ),
        company_assessment=CompanyAssessment(
            strengths=extract_list_items(company, "优势"),
            weaknesses=extract_list_items(company, "劣势"),
            current_position=extract_text(company, "市场地位"),
            competitive_advantage=extract_text(company, "竞争优势"),
        ),
        recommendations=parse_recommendations(sections.get("recommendations", "")),
        implementation_plan=ImplementationPlan(
            phases=parse_phases(plan),
            total_timeline=_first_text(plan, TOTAL_TIMELINE_LABELS, strict=False),
            total_investment=_first_text(plan, TOTAL_INVESTMENT_LABELS, strict=False),
        ),
        risk_assessment=RiskAssessment(
            technical_risks=extract_list_items(risks, "技术风险"),
            market_risks=extract_list_items(risks, "市场风险"),
            financial_risks=extract_list_items(risks, "财务风险"),
            mitigation_strategies=extract_list_items(risks, "缓解策略"),
        ),
        cost_estimation=CostEstimation(
            development=extract_text(costs, "开发成本"),
            implementation=extract_text(costs, "实施成本"),
            maintenance=extract_text(costs, "维护成本"),
            roi=extract_text(costs, "投资回报"),
        ),
    )

    missing = _missing_paths(report)
    if missing:
        return PartialParse(report=report, missing_fields=missing)
    return StructuredParse(report=report)


def parse_analysis_response(text: str, summary_chars: int = 500) -> AnalysisReport:
    """Total parse: any input string yields a schema-valid report."""
    try:
        result = parse_response(text, summary_chars=summary_chars)
    except Exception as e:
        logger.warning(f"Structured parse failed, using synthetic report: {e}", exc_info=True)
        result = UnparseableResponse(raw=text or "", summary_chars=summary_chars)
    return result.to_report()
