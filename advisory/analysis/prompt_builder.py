"""
Analysis prompt construction.

The prompt and the response parser are a matched pair: SECTION_TITLES,
RECOMMENDATION_FIELDS, PHASE_FIELDS and PLAN_TOTALS below are exactly what
response_parser looks for, so a change to any list must be mirrored there.
"""

from typing import Dict, List, Optional

from ..schemas import AnalysisData, AnalysisExtras, AnswerRecord

# (canonical key, title demanded in the prompt, detail requested)
SECTION_TITLES = [
    ("executive_summary", "执行摘要", "200字以内"),
    ("industry_insights", "行业洞察分析", "市场趋势、机会、挑战、建议"),
    ("company_assessment", "企业现状评估", "优势、劣势、市场地位、竞争优势"),
    ("recommendations", "具体研发建议", None),
    ("implementation_plan", "实施计划", None),
    ("risk_assessment", "风险评估", "技术风险、市场风险、财务风险、缓解策略"),
    ("cost_estimation", "成本效益分析", "开发成本、实施成本、维护成本、投资回报"),
]

RECOMMENDATION_FIELDS = [
    "标题", "描述", "优先级", "可行性评分", "影响度评分",
    "时间规划", "所需资源", "主要风险", "成功指标", "实施步骤",
]

PHASE_FIELDS = ["持续时间", "主要任务", "交付成果"]

PLAN_TOTALS = ["总时间", "总投资"]

MIN_RECOMMENDATIONS = 5


def _format_answers(answers: Dict[int, AnswerRecord]) -> str:
    blocks = []
    for qid in sorted(answers):
        record = answers[qid]
        lines = [f"问题{qid}: {record.question_text}", f"回答: {record.answer_text}"]
        if record.key_points:
            lines.append(f"要点: {'；'.join(record.key_points)}")
        if record.follow_up:
            lines.append(f"补充说明: {record.follow_up}")
        blocks.append("\n".join(lines))
    return "\n\n".join(blocks) if blocks else "（暂无回答）"


def _format_extracts(title: str, extracts: List[str]) -> str:
    items = "\n".join(f"- {text.strip()}" for text in extracts if text.strip())
    return f"{title}：\n{items}" if items else ""


def _format_instructions() -> str:
    lines = []
    for number, (key, title, detail) in enumerate(SECTION_TITLES, start=1):
        if key == "recommendations":
            detail = (
                f"至少{MIN_RECOMMENDATIONS}项，每项包含：{'、'.join(RECOMMENDATION_FIELDS)}"
            )
        elif key == "implementation_plan":
            detail = (
                f"分阶段规划，每个阶段包含：{'、'.join(PHASE_FIELDS)}；"
                f"最后给出{'、'.join(PLAN_TOTALS)}"
            )
        lines.append(f"{number}. {title}（{detail}）")
    return "\n".join(lines)


def build_prompt(
    data: AnalysisData,
    extras: Optional[AnalysisExtras] = None,
    default_industry: str = "遮阳蓬",
) -> str:
    """Render the analysis prompt. Pure and deterministic."""
    info = data.company_info
    industry = info.industry.strip() or default_industry
    company = info.name.strip() or "该企业"

    parts = [
        f"你是一位专业的产品研发顾问，专门为{industry}行业提供战略建议。"
        f"请基于以下信息为{company}生成一份详细的研发建议分析报告。",
        "\n".join([
            "公司信息：",
            f"- 公司名称：{info.name}",
            f"- 所属行业：{info.industry}",
            f"- 公司规模：{info.size}",
            f"- 所在地区：{info.location}",
        ]),
        f"行业分析回答：\n{_format_answers(data.industry_answers)}",
        f"企业分析回答：\n{_format_answers(data.company_answers)}",
    ]

    if extras is not None:
        references = [
            _format_extracts("文档资料摘要", extras.document_extracts),
            _format_extracts("搜索结果摘要", extras.search_extracts),
        ]
        references = [r for r in references if r]
        if references:
            parts.append("参考资料：\n" + "\n\n".join(references))

    parts.append(
        "请生成一份包含以下七个部分的专业分析报告（用中文回答），"
        "每个部分以“## 序号. 标题”作为单独一行的标题：\n" + _format_instructions()
    )
    parts.append("\n".join([
        "要求：",
        f"- 建议必须具体、可操作、符合{industry}行业特点",
        f"- 考虑{company}的实际情况和资源限制",
        "- 列表内容使用“- ”或“1. ”开头，每项单独一行",
        "- 每项建议以“### 建议序号：标题”开头，子项使用“- 字段名：内容”的格式",
        "- 每个实施阶段以“### 第序号阶段：阶段名称（持续时间）”开头，"
        f"{PLAN_TOTALS[0]}和{PLAN_TOTALS[1]}使用“- 字段名：内容”单独成行",
        "- 提供详细的投资回报分析，包含具体的技术方案和市场策略",
        "- 语言专业但易懂，适合企业决策者阅读",
    ]))
    return "\n\n".join(parts)


ANSWER_ANGLES = [
    "回答的关键要点提取",
    "潜在的机会和风险识别",
    "具体的行动建议",
    "需要进一步关注的方面",
]


def build_answer_prompt(question: str, answer: str, context: Optional[str] = None) -> str:
    """Prompt for a short expert commentary on one questionnaire answer."""
    lines = [
        "请基于以下问题和回答，提供专业的分析和建议：",
        "",
        f"问题：{question.strip()}",
        f"回答：{answer.strip()}",
    ]
    if context and context.strip():
        lines.append(f"背景信息：{context.strip()}")
    lines += ["", "请从以下角度进行分析："]
    lines += [f"{number}. {angle}" for number, angle in enumerate(ANSWER_ANGLES, start=1)]
    lines += ["", "请用专业、简洁的语言回答，重点突出可操作性。"]
    return "\n".join(lines)
