"""
Reconciliation of the base report with an optional enhancement.
"""
import logging
from typing import Any, List, Optional, Sequence, TypeVar, Union

from protocol_analyzer.models.enhancement import (
    ArchitectureEnhancement,
    EnhancementReport,
    SecurityEnhancement,
    SummaryEnhancement,
)
from protocol_analyzer.models.protocol_report import (
    ArchitectureAnalysis,
    EconomicModel,
    GasAnalysis,
    ProtocolReport,
    ProtocolSummary,
    SecurityAnalysis,
    SecurityFinding,
    utc_timestamp,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

COERCED_MITIGATION = "Review and address this vulnerability"


def pick_text(base: T, override: Optional[str]) -> Union[T, str]:
    """Enhancement text when present and non-empty, else the base value."""
    if isinstance(override, str) and override.strip():
        return override
    return base


def union(base: Sequence[str], extra: Optional[Sequence[str]]) -> List[str]:
    """Base entries first, then enhancement-only entries, without duplicates."""
    merged = list(dict.fromkeys(base))
    for item in extra or ():
        if item not in merged:
            merged.append(item)
    return merged


def coerce_finding(finding: Union[SecurityFinding, str]) -> SecurityFinding:
    if isinstance(finding, SecurityFinding):
        return finding
    return SecurityFinding(
        name=finding,
        description=finding,
        severity="Medium",
        exploitability="Medium",
        category="General",
        mitigation=COERCED_MITIGATION,
    )


def pick_findings(
    base: Sequence[Union[SecurityFinding, str]],
    override: Optional[Sequence[SecurityFinding]],
) -> List[SecurityFinding]:
    """Structured enhancement findings replace the base; otherwise base findings become records."""
    if override:
        return list(override)
    return [coerce_finding(f) for f in base]


def merge_economic_model(base: EconomicModel, override: Optional[EconomicModel]) -> EconomicModel:
    if override is None:
        return base
    return EconomicModel(
        tokenomics=union(base.tokenomics, override.tokenomics),
        fee_structure=union(base.fee_structure, override.fee_structure),
        incentives=union(base.incentives, override.incentives),
        governance=pick_text(base.governance, override.governance),
    )


def merge_summary(base: ProtocolSummary, enhancement: Optional[SummaryEnhancement]) -> ProtocolSummary:
    if enhancement is None:
        return base
    return base.model_copy(update={
        "overview": pick_text(base.overview, enhancement.overview),
        "key_features": union(base.key_features, enhancement.key_features),
        "web3_fundamentals": pick_text(base.web3_fundamentals, enhancement.web3_fundamentals),
        "economic_model": merge_economic_model(base.economic_model, enhancement.economic_model),
        "risk_assessment": pick_text(base.risk_assessment, enhancement.risk_assessment),
    })


def merge_architecture(
    base: ArchitectureAnalysis,
    enhancement: Optional[ArchitectureEnhancement],
) -> ArchitectureAnalysis:
    if enhancement is None:
        return base
    gas = base.gas_optimization
    return base.model_copy(update={
        "data_flow": pick_text(base.data_flow, enhancement.data_flow),
        "interaction_diagram": pick_text(base.interaction_diagram, enhancement.interaction_diagram),
        "inheritance_diagram": pick_text(base.inheritance_diagram, enhancement.inheritance_diagram),
        "design_patterns": union(base.design_patterns, enhancement.design_patterns),
        "gas_optimization": GasAnalysis(
            efficiency=gas.efficiency,
            optimizations=union(gas.optimizations, enhancement.gas_optimizations),
            concerns=union(gas.concerns, enhancement.gas_concerns),
        ),
    })


def merge_security(base: SecurityAnalysis, enhancement: Optional[SecurityEnhancement]) -> SecurityAnalysis:
    if enhancement is None:
        return base.model_copy(update={"findings": pick_findings(base.findings, None)})
    return base.model_copy(update={
        "rating": pick_text(base.rating, enhancement.rating),
        "business_logic": pick_text(base.business_logic, enhancement.business_logic),
        "strengths": union(base.strengths, enhancement.strengths),
        "findings": pick_findings(base.findings, enhancement.findings),
        "recommendations": union(base.recommendations, enhancement.recommendations),
        "audit_status": pick_text(base.audit_status, enhancement.audit_status),
        "documentation_mismatches": union(
            base.documentation_mismatches, enhancement.documentation_mismatches
        ),
    })


def merge(base: ProtocolReport, enhancement: Any) -> ProtocolReport:
    """
    Merge an enhancement into the base report.

    Never raises. A missing or failed enhancement, or any error while
    merging, returns the base report unchanged. Raw decoded JSON is read
    through the enhancement field reducers first.

    Args:
        base: Deterministic report
        enhancement: EnhancementReport, raw dict, or None when the enhancer failed

    Returns:
        Merged report
    """
    try:
        if isinstance(enhancement, dict):
            enhancement = EnhancementReport.from_raw(
                enhancement.get("summary"),
                enhancement.get("architecture"),
                enhancement.get("security"),
            )

        if not isinstance(enhancement, EnhancementReport) or enhancement.is_empty():
            logger.info("No enhancement available, keeping base report")
            return base

        merged = ProtocolReport(
            summary=merge_summary(base.summary, enhancement.summary),
            architecture=merge_architecture(base.architecture, enhancement.architecture),
            security=merge_security(base.security, enhancement.security),
            timestamp=utc_timestamp(),
        )
        # model_copy(update=...) skips validation
        return ProtocolReport.model_validate(merged.model_dump())
    except Exception as e:
        logger.error(f"Error merging enhancement, falling back to base report: {str(e)}")
        return base
