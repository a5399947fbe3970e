"""
Offline report content.

Three producers live here:
  - FallbackReportGenerator.build_report(): the full demo report served when
    no remote provider is available (or demo mode is forced); its
    build_answer_analysis() is the matching single-answer commentary.
  - generic_report(): labeled generic content used to fill fields a partial
    parse could not resolve.
  - synthetic_report(): the report built around raw text that had no
    recognisable structure.

All of it is deterministic and makes no network calls.
"""

import logging
from typing import List

from ..schemas import (
    AnalysisData, AnalysisReport, CompanyAssessment, CostEstimation,
    ImplementationPhase, ImplementationPlan, IndustryInsights, Recommendation,
    RiskAssessment,
)

logger = logging.getLogger(__name__)

GENERIC_LABEL = "【通用参考】"
DEFAULT_SUMMARY = "基于分析，为企业提供专业的研发建议。"


def _generic(items: List[str]) -> List[str]:
    return [f"{GENERIC_LABEL}{item}" for item in items]


def default_recommendations() -> List[Recommendation]:
    """Single generic recommendation used when none could be parsed."""
    return [Recommendation(
        id="1",
        title=f"{GENERIC_LABEL}智能化控制系统开发",
        description="开发基于IoT和AI的智能控制系统，提升产品附加值",
        category="technology",
        priority="high",
        feasibility=75,
        impact=85,
        timeline="12-18个月",
        resources=["研发团队", "技术投入"],
        risks=["技术风险", "市场风险"],
        success_metrics=["产品上市", "市场份额"],
        implementation_steps=["需求分析", "技术开发", "测试验证", "市场推广"],
    )]


def generic_report(executive_summary: str = "") -> AnalysisReport:
    """Generic, clearly labeled content for every report field."""
    return AnalysisReport(
        executive_summary=executive_summary or DEFAULT_SUMMARY,
        industry_insights=IndustryInsights(
            market_trends=_generic(["智能化趋势", "节能环保需求"]),
            opportunities=_generic(["市场扩张机会", "技术创新机会"]),
            challenges=_generic(["竞争加剧", "成本压力"]),
            recommendations=_generic(["加强研发投入", "拓展市场渠道"]),
        ),
        company_assessment=CompanyAssessment(
            strengths=_generic(["技术积累", "地理优势"]),
            weaknesses=_generic(["品牌知名度", "资金限制"]),
            current_position=f"{GENERIC_LABEL}行业中等水平",
            competitive_advantage=f"{GENERIC_LABEL}成本控制能力",
        ),
        recommendations=default_recommendations(),
        implementation_plan=ImplementationPlan(
            phases=[ImplementationPhase(
                name=f"{GENERIC_LABEL}第一阶段：基础建设",
                duration="3-6个月",
                tasks=["团队组建", "技术调研"],
                deliverables=["项目计划", "技术方案"],
            )],
            total_timeline="12-18个月",
            total_investment="100-200万元",
        ),
        risk_assessment=RiskAssessment(
            technical_risks=_generic(["技术实现难度"]),
            market_risks=_generic(["市场接受度"]),
            financial_risks=_generic(["资金回收周期"]),
            mitigation_strategies=_generic(["分阶段实施", "风险控制"]),
        ),
        cost_estimation=CostEstimation(
            development=f"{GENERIC_LABEL}50-100万",
            implementation=f"{GENERIC_LABEL}30-50万",
            maintenance=f"{GENERIC_LABEL}10-20万/年",
            roi=f"{GENERIC_LABEL}预期18个月回收",
        ),
    )


def synthetic_report(raw: str, summary_chars: int = 500) -> AnalysisReport:
    """Generic report whose summary is the first ``summary_chars`` characters of ``raw`` plus "..."."""
    if not raw or not raw.strip():
        return generic_report()
    return generic_report(executive_summary=raw[:summary_chars] + "...")


class FallbackReportGenerator:
    """Builds the offline demo report from the submitted company info."""

    def __init__(self, default_industry: str = "遮阳蓬"):
        self.default_industry = default_industry

    def build_report(self, data: AnalysisData) -> AnalysisReport:
        info = data.company_info
        company = info.name.strip() or "贵公司"
        industry = info.industry.strip() or self.default_industry
        location = info.location.strip()
        logger.info(f"Building offline report for {company} ({industry})")

        location_strength = (
            f"位于{location}，供应链和成本优势明显" if location
            else "区域供应链完善，成本优势明显"
        )

        return AnalysisReport(
            executive_summary=(
                f"基于对{company}的深入分析，我们识别出{industry}行业正处于智能化转型的关键时期。"
                f"建议公司重点投入智能控制系统研发，拓展商业建筑节能改造市场，"
                f"预期能够在18个月内实现显著的市场地位提升和投资回报。"
            ),
            industry_insights=IndustryInsights(
                market_trends=[
                    "智能家居集成需求快速增长，年增长率超过30%",
                    "建筑节能政策推动，商业建筑改造市场需求旺盛",
                    "新材料技术进步，轻量化高强度材料应用增加",
                    "定制化需求上升，个性化解决方案成为趋势",
                ],
                opportunities=[
                    "智能控制系统市场空白，先发优势明显",
                    "政府节能补贴政策支持，降低客户采购成本",
                    "5G和IoT技术成熟，为智能化提供技术基础",
                    "消费升级带动高端产品需求增长",
                ],
                challenges=[
                    "传统制造企业技术转型难度大",
                    "智能化产品开发周期长，资金压力大",
                    "市场教育成本高，用户接受度需要培养",
                    "竞争对手加速布局，时间窗口有限",
                ],
                recommendations=[
                    "建立专门的智能化研发团队，加快技术积累",
                    "与高校和科研院所合作，获得技术支持",
                    "重点开发商业建筑市场，避开激烈的家用市场竞争",
                    "建立示范项目，通过成功案例推动市场接受",
                ],
            ),
            company_assessment=CompanyAssessment(
                strengths=[
                    f"在{industry}制造领域有多年技术积累和经验",
                    location_strength,
                    "节能科技定位符合行业发展趋势和政策导向",
                    "团队执行力强，能够快速响应市场变化",
                ],
                weaknesses=[
                    "品牌知名度相对较低，市场影响力有限",
                    "研发投入不足，技术创新能力需要加强",
                    "销售渠道主要集中在传统市场，新兴渠道开拓不够",
                    "人才储备不足，特别是智能化技术人才缺乏",
                ],
                current_position=(
                    f"在{industry}行业处于中等水平，具备一定的技术基础和市场地位，"
                    "但在智能化转型方面起步较晚，需要加快追赶步伐。"
                ),
                competitive_advantage="成本控制能力强，能够在保证质量的前提下提供有竞争力的价格，便于快速响应区域客户需求。",
            ),
            recommendations=self._recommendations(),
            implementation_plan=ImplementationPlan(
                phases=[
                    ImplementationPhase(
                        name="第一阶段：基础建设",
                        duration="3-6个月",
                        tasks=["组建智能化研发团队", "建立产学研合作关系", "完成技术调研和方案设计", "启动商业建筑市场开发"],
                        deliverables=["研发团队组建完成", "技术方案和产品规划", "合作协议签署", "市场开发计划"],
                    ),
                    ImplementationPhase(
                        name="第二阶段：产品开发",
                        duration="6-12个月",
                        tasks=["智能控制系统核心技术开发", "新材料技术应用研发", "商业建筑解决方案定制", "试点项目实施"],
                        deliverables=["智能控制系统原型", "新材料产品样品", "商业客户试点项目", "产品测试报告"],
                    ),
                    ImplementationPhase(
                        name="第三阶段：市场推广",
                        duration="3-6个月",
                        tasks=["产品正式发布上市", "数字化营销体系建设", "成功案例推广", "规模化生产准备"],
                        deliverables=["产品正式上市", "营销体系建立", "客户成功案例", "生产能力提升"],
                    ),
                ],
                total_timeline="12-24个月",
                total_investment="300-500万元",
            ),
            risk_assessment=RiskAssessment(
                technical_risks=["智能控制算法开发难度超预期", "IoT设备兼容性和稳定性问题", "新材料技术成熟度不够", "系统集成复杂度高"],
                market_risks=["市场接受度低于预期", "竞争对手抢先布局", "政策变化影响需求", "经济环境变化影响投资"],
                financial_risks=["研发投入超预算", "市场推广成本过高", "资金回收周期延长", "汇率波动影响成本"],
                mitigation_strategies=[
                    "分阶段实施，控制风险敞口",
                    "建立技术储备和备选方案",
                    "加强市场调研和客户沟通",
                    "建立风险预警和应急机制",
                    "多元化融资渠道",
                    "建立战略合作伙伴关系",
                ],
            ),
            cost_estimation=CostEstimation(
                development="研发投入200-300万元，包括人员成本、设备采购、技术合作费用",
                implementation="实施成本100-150万元，包括生产线改造、市场推广、渠道建设",
                maintenance="年维护成本30-50万元，包括技术支持、系统升级、售后服务",
                roi="预期18-24个月收回投资，年化投资回报率25-35%，3年累计收益500-800万元",
            ),
        )

    def build_answer_analysis(self, question: str, answer: str) -> str:
        """Canned four-angle commentary on one questionnaire answer."""
        excerpt = answer.strip()[:100] or "（未提供回答）"
        topic = question.strip() or "该问题"
        return "\n".join([
            f"针对“{topic}”的回答，建议从以下几个方面进行深入分析：",
            "",
            f"1. **关键要点**：{excerpt}",
            "2. **机会与风险**：结合行业智能化和节能环保趋势识别市场空白，同时关注竞争加剧和成本压力",
            "3. **行动建议**：明确研发投入重点，合理配置资源，制定分阶段实施计划",
            "4. **持续关注**：跟踪政策变化、客户需求和竞争对手动向，定期复盘执行效果",
            "",
            "建议结合企业实际情况和行业特点，制定个性化的发展策略。",
        ])

    @staticmethod
    def _recommendations() -> List[Recommendation]:
        return [
            Recommendation(
                id="1",
                title="开发智能化遮阳控制系统",
                description="基于IoT技术和AI算法，开发能够自动感知环境变化并调节遮阳角度的智能控制系统，满足智能家居集成需求，提升产品附加值。",
                category="technology", priority="high", feasibility=78, impact=85,
                timeline="12-18个月",
                resources=["研发团队8-10人", "技术投入150-200万", "IoT设备和传感器采购", "软件开发平台"],
                risks=["技术实现复杂度高", "市场接受度不确定", "竞争对手抢先布局", "开发周期可能延长"],
                success_metrics=["产品按时上市", "客户满意度>85%", "市场份额提升15%", "产品毛利率>40%"],
                implementation_steps=[
                    "技术调研和方案设计（2个月）",
                    "核心算法开发和硬件选型（4个月）",
                    "系统集成和功能测试（3个月）",
                    "用户测试和产品优化（2个月）",
                    "产品发布和市场推广（1个月）",
                ],
            ),
            Recommendation(
                id="2",
                title="拓展商业建筑节能改造市场",
                description="抓住政策机遇，重点开发适用于商业建筑的大型遮阳系统，提供节能改造整体解决方案，开拓高价值客户群体。",
                category="market", priority="high", feasibility=85, impact=78,
                timeline="6-12个月",
                resources=["销售团队扩充5人", "市场推广费用80万", "技术支持团队3人", "样板工程投入"],
                risks=["政策变化风险", "项目周期长资金占用", "大客户开发难度大", "竞争激烈价格压力"],
                success_metrics=["新增大客户5家以上", "项目合同额>500万", "ROI>25%", "复购率>60%"],
                implementation_steps=[
                    "市场调研和客户开发（2个月）",
                    "产品方案定制化开发（2个月）",
                    "试点项目实施和验证（4个月）",
                    "成功案例推广和规模化（4个月）",
                ],
            ),
            Recommendation(
                id="3",
                title="建立产学研合作机制",
                description="与高校和科研院所建立长期合作关系，获得技术支持和人才储备，提升创新能力。",
                category="strategy", priority="medium", feasibility=90, impact=70,
                timeline="3-6个月",
                resources=["合作费用20-30万/年", "专门对接人员1人", "实验设备投入"],
                risks=["合作效果不确定", "知识产权归属问题", "人才流失风险"],
                success_metrics=["建立2-3个合作项目", "获得专利3-5项", "培养技术人才5人"],
                implementation_steps=["确定合作院校和专业方向", "签署合作协议和建立联合实验室", "启动具体研发项目", "建立人才培养和交流机制"],
            ),
            Recommendation(
                id="4",
                title="新材料技术应用研发",
                description="研发应用轻量化、高强度、环保型新材料，提升产品性能和环保特性，满足高端市场需求。",
                category="product", priority="medium", feasibility=70, impact=75,
                timeline="9-15个月",
                resources=["材料研发投入100万", "测试设备购置", "材料供应商合作"],
                risks=["材料成本上升", "技术成熟度不够", "供应链稳定性"],
                success_metrics=["开发新材料2-3种", "产品重量减轻20%", "强度提升15%"],
                implementation_steps=["材料技术调研和供应商评估", "小批量试制和性能测试", "工艺优化和成本控制", "批量生产和市场验证"],
            ),
            Recommendation(
                id="5",
                title="数字化营销体系建设",
                description="建立线上线下一体化的营销体系，通过数字化手段提升品牌影响力和客户获取效率。",
                category="market", priority="low", feasibility=85, impact=65,
                timeline="6-9个月",
                resources=["营销团队3人", "平台建设费用50万", "推广费用30万/年"],
                risks=["数字化转型适应期", "投入产出比不确定", "竞争对手模仿"],
                success_metrics=["线上询盘增长50%", "品牌知名度提升", "客户获取成本降低20%"],
                implementation_steps=["数字化营销策略制定", "官网和电商平台建设", "内容营销和SEO优化", "数据分析和效果优化"],
            ),
        ]
