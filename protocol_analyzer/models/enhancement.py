"""
Partial report produced by the external enhancer.

Every field is optional. Values arrive as untrusted JSON, so each field is
read by its own reducer and anything malformed is dropped rather than
failing the whole report.
"""
import logging
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, ValidationError

from protocol_analyzer.models.protocol_report import (
    SECURITY_GRADES,
    EconomicModel,
    SecurityFinding,
)

logger = logging.getLogger(__name__)

_SEVERITIES = {"critical": "Critical", "high": "High", "medium": "Medium", "low": "Low"}
_EXPLOITABILITY = {"high": "High", "medium": "Medium", "low": "Low"}


class SummaryEnhancement(BaseModel):
    overview: Optional[str] = None
    key_features: List[str] = Field(default_factory=list)
    web3_fundamentals: Optional[str] = None
    economic_model: Optional[EconomicModel] = None
    risk_assessment: Optional[str] = None


class ArchitectureEnhancement(BaseModel):
    data_flow: Optional[str] = None
    interaction_diagram: Optional[str] = None
    inheritance_diagram: Optional[str] = None
    design_patterns: List[str] = Field(default_factory=list)
    gas_optimizations: List[str] = Field(default_factory=list)
    gas_concerns: List[str] = Field(default_factory=list)


class SecurityEnhancement(BaseModel):
    rating: Optional[str] = None
    business_logic: Optional[str] = None
    strengths: List[str] = Field(default_factory=list)
    findings: List[SecurityFinding] = Field(default_factory=list)
    recommendations: List[str] = Field(default_factory=list)
    audit_status: Optional[str] = None
    documentation_mismatches: List[str] = Field(default_factory=list)


class EnhancementReport(BaseModel):
    """Model for an enhancement; any section may be missing."""
    summary: Optional[SummaryEnhancement] = None
    architecture: Optional[ArchitectureEnhancement] = None
    security: Optional[SecurityEnhancement] = None

    def is_empty(self) -> bool:
        return self.summary is None and self.architecture is None and self.security is None

    @classmethod
    def from_raw(
        cls,
        summary: Any = None,
        architecture: Any = None,
        security: Any = None,
    ) -> "EnhancementReport":
        """
        Build an enhancement from raw decoded JSON sections.

        Args:
            summary: Decoded summary object, or anything else
            architecture: Decoded architecture object, or anything else
            security: Decoded security object, or anything else

        Returns:
            EnhancementReport holding only the well-formed parts
        """
        return cls(
            summary=read_summary(summary),
            architecture=read_architecture(architecture),
            security=read_security(security),
        )


def _field(data: Dict[str, Any], *keys: str) -> Any:
    for key in keys:
        if key in data:
            return data[key]
    return None


def read_text(value: Any) -> Optional[str]:
    """Non-empty string or None."""
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def read_text_list(value: Any) -> List[str]:
    """Keep only the non-empty strings of a list."""
    if not isinstance(value, list):
        return []
    return [item.strip() for item in value if isinstance(item, str) and item.strip()]


def read_economic_model(value: Any) -> Optional[EconomicModel]:
    if not isinstance(value, dict):
        return None
    model = EconomicModel(
        tokenomics=read_text_list(value.get("tokenomics")),
        fee_structure=read_text_list(_field(value, "feeStructure", "fee_structure")),
        incentives=read_text_list(value.get("incentives")),
        governance=read_text(value.get("governance")) or "",
    )
    if not (model.tokenomics or model.fee_structure or model.incentives or model.governance):
        return None
    return model


def read_finding(value: Any) -> Optional[SecurityFinding]:
    """
    Read one structured finding.

    Plain strings are not structured findings and yield None.
    """
    if not isinstance(value, dict):
        return None
    name = read_text(value.get("name"))
    description = read_text(value.get("description")) or name
    if not name:
        return None
    severity = _SEVERITIES.get(str(value.get("severity", "")).strip().lower(), "Medium")
    exploitability = _EXPLOITABILITY.get(str(value.get("exploitability", "")).strip().lower(), "Medium")
    mismatch = _field(value, "docMismatch", "doc_mismatch")
    try:
        return SecurityFinding(
            name=name,
            description=description,
            severity=severity,
            exploitability=exploitability,
            category=read_text(value.get("category")) or "General",
            mitigation=read_text(value.get("mitigation")) or "Review and address this finding",
            code_reference=read_text(_field(value, "codeReference", "code_reference")),
            doc_mismatch=mismatch if isinstance(mismatch, bool) else None,
        )
    except ValidationError as e:
        logger.debug(f"Dropping malformed finding: {str(e)}")
        return None


def read_summary(data: Any) -> Optional[SummaryEnhancement]:
    if not isinstance(data, dict):
        return None
    return SummaryEnhancement(
        overview=read_text(data.get("overview")),
        key_features=read_text_list(_field(data, "keyFeatures", "key_features")),
        web3_fundamentals=read_text(_field(data, "web3Fundamentals", "web3_fundamentals")),
        economic_model=read_economic_model(_field(data, "economicModel", "economic_model")),
        risk_assessment=read_text(_field(data, "riskAssessment", "risk_assessment")),
    )


def read_architecture(data: Any) -> Optional[ArchitectureEnhancement]:
    if not isinstance(data, dict):
        return None
    gas = _field(data, "gasOptimization", "gas_optimization")
    if not isinstance(gas, dict):
        gas = {}
    return ArchitectureEnhancement(
        data_flow=read_text(_field(data, "dataFlow", "data_flow")),
        interaction_diagram=read_text(_field(data, "interactionDiagram", "interaction_diagram")),
        inheritance_diagram=read_text(_field(data, "inheritanceDiagram", "inheritance_diagram")),
        design_patterns=read_text_list(_field(data, "designPatterns", "design_patterns")),
        gas_optimizations=read_text_list(gas.get("optimizations")),
        gas_concerns=read_text_list(gas.get("concerns")),
    )


def read_security(data: Any) -> Optional[SecurityEnhancement]:
    if not isinstance(data, dict):
        return None
    rating = read_text(data.get("rating"))
    raw_findings = _field(data, "vulnerabilities", "findings")
    findings = []
    if isinstance(raw_findings, list):
        for item in raw_findings:
            finding = read_finding(item)
            if finding is not None:
                findings.append(finding)
    return SecurityEnhancement(
        rating=rating if rating in SECURITY_GRADES else None,
        business_logic=read_text(_field(data, "businessLogic", "business_logic")),
        strengths=read_text_list(data.get("strengths")),
        findings=findings,
        recommendations=read_text_list(data.get("recommendations")),
        audit_status=read_text(_field(data, "auditStatus", "audit_status")),
        documentation_mismatches=read_text_list(
            _field(data, "documentationCodeMismatches", "documentation_mismatches")
        ),
    )
