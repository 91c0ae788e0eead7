"""
Models for the synthesized protocol report.
"""
import datetime
from typing import List, Optional, Dict, Any, Literal, Union

from pydantic import BaseModel, Field

Severity = Literal["Critical", "High", "Medium", "Low"]
Exploitability = Literal["High", "Medium", "Low"]
SecurityGrade = Literal["A+", "A", "A-", "B+", "B", "B-", "C+", "C", "C-", "D", "F"]

SECURITY_GRADES = ("A+", "A", "A-", "B+", "B", "B-", "C+", "C", "C-", "D", "F")


def utc_timestamp() -> str:
    return datetime.datetime.now(datetime.timezone.utc).isoformat()


class EconomicModel(BaseModel):
    """Economic model details extracted from documentation."""
    tokenomics: List[str] = Field(default_factory=list)
    fee_structure: List[str] = Field(default_factory=list)
    incentives: List[str] = Field(default_factory=list)
    governance: str = ""


class ProtocolSummary(BaseModel):
    """High-level protocol summary."""
    name: str
    description: str = ""
    category: str
    complexity_score: float = Field(..., ge=0, le=10)
    overview: str
    key_features: List[str] = Field(default_factory=list)
    web3_fundamentals: str = ""
    economic_model: EconomicModel = Field(default_factory=EconomicModel)
    risk_assessment: Optional[str] = None


class ContractInfo(BaseModel):
    """One row of the contract listing."""
    name: str
    description: str
    functions: int
    complexity: float
    role: str


class GasAnalysis(BaseModel):
    """Gas optimization analysis."""
    efficiency: float = Field(5.0, ge=1, le=10)
    optimizations: List[str] = Field(default_factory=list)
    concerns: List[str] = Field(default_factory=list)


class ArchitectureAnalysis(BaseModel):
    """Contract architecture and design patterns."""
    core_contracts: List[ContractInfo] = Field(default_factory=list)
    dependencies: List[str] = Field(default_factory=list)
    data_flow: str
    interaction_diagram: str
    inheritance_diagram: str
    design_patterns: List[str] = Field(default_factory=list)
    gas_optimization: GasAnalysis = Field(default_factory=GasAnalysis)


class SecurityFinding(BaseModel):
    """Model for a security finding."""
    name: str
    description: str
    severity: Severity = "Medium"
    exploitability: Exploitability = "Medium"
    category: str = "General"
    mitigation: str
    code_reference: Optional[str] = None
    doc_mismatch: Optional[bool] = None


class SecurityAnalysis(BaseModel):
    """Security posture of the protocol."""
    rating: SecurityGrade
    business_logic: str
    strengths: List[str] = Field(default_factory=list)
    # Heuristic findings are plain text until reconciled into records.
    findings: List[Union[SecurityFinding, str]] = Field(default_factory=list)
    recommendations: List[str] = Field(default_factory=list)
    audit_status: str = ""
    documentation_mismatches: List[str] = Field(default_factory=list)


class ProtocolReport(BaseModel):
    """Model for the complete analysis result."""
    summary: ProtocolSummary
    architecture: ArchitectureAnalysis
    security: SecurityAnalysis
    timestamp: str = Field(default_factory=utc_timestamp)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return self.model_dump(mode="json")
