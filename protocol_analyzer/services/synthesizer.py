"""
Deterministic report synthesis from contract facts and documentation.
"""
import logging
from collections import Counter
from typing import List, Optional, Sequence

from protocol_analyzer.models.contract_facts import (
    ContractFacts,
    DocumentDigest,
    RepositorySnapshot,
)
from protocol_analyzer.models.protocol_report import (
    ArchitectureAnalysis,
    ContractInfo,
    EconomicModel,
    GasAnalysis,
    ProtocolReport,
    ProtocolSummary,
    SecurityAnalysis,
)
from protocol_analyzer.services import heuristics
from protocol_analyzer.services.diagram_generator import DiagramGenerator
from protocol_analyzer.services.heuristics import Rule, SynthesisContext, all_matches, first_match
from protocol_analyzer.services.security_rating import SecurityRatingCalculator

logger = logging.getLogger(__name__)

WEB3_FUNDAMENTALS = """Web3 applications run on blockchains that enable trustless interactions without intermediaries. This protocol operates on Ethereum or compatible chains through smart contracts: programs that enforce agreements and execute transactions automatically once their conditions are met.

In the context of {category}, a few concepts are central to understanding the protocol.

**Liquidity** is the availability of assets for trading or lending; providers deposit tokens into pools and earn fees. **Automated Market Makers (AMMs)** price assets with formulas over pool reserves instead of order books. **Yield farming** rewards users for providing liquidity or staking tokens.

**Token standards** such as ERC-20 (fungible tokens) and ERC-721 (NFTs) define how tokens behave. **Gas optimization** reduces transaction costs through batching and efficient storage layouts. **Consensus** gives transactions finality, and **interoperability** lets assets and messages move across chains.

These fundamentals frame the protocol's design decisions, security considerations and risks."""


class HeuristicSynthesizer:
    """Builds a ProtocolReport from contract facts and a document digest."""

    def __init__(
        self,
        facts: Sequence[ContractFacts],
        digest: DocumentDigest,
        repository: Optional[RepositorySnapshot] = None,
        dependencies: Sequence[str] = (),
    ):
        """
        Initialize the synthesizer.

        Args:
            facts: Contract facts in discovery order
            digest: Normalized documentation
            repository: Repository the facts were extracted from
            dependencies: External dependency names
        """
        self.repository = repository or RepositorySnapshot(name=digest.title or "Unknown Protocol")
        self.ctx = SynthesisContext(
            facts,
            digest,
            description=self.repository.description,
            dependencies=dependencies,
            files=self.repository.files,
        )
        self.diagrams = DiagramGenerator(facts)

    def synthesize(self) -> ProtocolReport:
        """Generate the base report."""
        logger.info(f"Synthesizing report for {self.repository.name} from {len(self.ctx.facts)} contracts")
        return ProtocolReport(
            summary=self.summary(),
            architecture=self.architecture(),
            security=self.security(),
        )

    # Summary

    def category(self) -> str:
        return first_match(heuristics.CATEGORY_RULES, self.ctx, heuristics.DEFAULT_CATEGORY)

    def summary(self) -> ProtocolSummary:
        category = self.category()
        logger.debug(f"Determined category: {category}")
        return ProtocolSummary(
            name=self.repository.name,
            description=self.repository.description,
            category=category,
            complexity_score=min(max(self.ctx.average_complexity, 0.0), 10.0),
            overview=self.overview(category),
            key_features=all_matches(heuristics.KEY_FEATURE_RULES, self.ctx, heuristics.DEFAULT_KEY_FEATURES),
            web3_fundamentals=WEB3_FUNDAMENTALS.format(category=category.lower()),
            economic_model=self.economic_model(),
        )

    def overview(self, category: str) -> str:
        contract_count = len(self.ctx.facts)
        complexity = self.ctx.average_complexity
        dependency_count = len(self.ctx.dependencies)
        level = "high" if complexity > 7 else "moderate" if complexity > 5 else "low"
        integration = "extensive" if dependency_count > 10 else "moderate"
        focus = heuristics.PRIMARY_FOCUS_RULES.get(category, "decentralized financial services")
        patterns = all_matches(heuristics.ARCHITECTURAL_PATTERN_RULES, self.ctx)
        use_cases = all_matches(heuristics.USE_CASE_RULES, self.ctx, ["general DeFi applications"])
        innovative = self.ctx.doc_mentions("innovative", "novel") or complexity > 7

        return "\n\n".join([
            f"{self.repository.name} is a {category.lower()} built on a smart contract "
            f"architecture with {contract_count} core contracts.",
            f"The protocol shows {level} complexity with an average complexity score of "
            f"{complexity}/10. It integrates {dependency_count} external dependencies, "
            f"indicating {integration} ecosystem integration.",
            f"Based on the documentation, the protocol focuses on {focus}. The contracts follow "
            f"{', '.join(patterns) if patterns else 'modular'} patterns, giving a "
            f"{self.security_posture()} security posture.",
            f"This is {'an innovative' if innovative else 'a conventional'} approach to "
            f"{category.lower()}, with applications in {', '.join(use_cases)}.",
        ])

    def security_posture(self) -> str:
        present = sum([self.ctx.has_reentrancy_guard, self.ctx.has_pause, self.ctx.has_access_control])
        if present >= 2:
            return "robust"
        if present == 1:
            return "moderate"
        return "basic"

    def economic_model(self) -> EconomicModel:
        return EconomicModel(
            tokenomics=all_matches(
                heuristics.TOKENOMICS_RULES, self.ctx, ["Standard token economics with utility functions"]
            ),
            fee_structure=all_matches(
                heuristics.FEE_RULES, self.ctx, ["Standard protocol fees for operations"]
            ),
            incentives=all_matches(
                heuristics.INCENTIVE_RULES, self.ctx, ["Participation incentives for protocol users"]
            ),
            governance=first_match(heuristics.GOVERNANCE_RULES, self.ctx, "Token-based governance system"),
        )

    # Architecture

    def architecture(self) -> ArchitectureAnalysis:
        return ArchitectureAnalysis(
            core_contracts=[self.contract_info(c) for c in self.ctx.facts],
            dependencies=list(self.ctx.dependencies),
            data_flow=self.diagrams.data_flow(),
            interaction_diagram=self.diagrams.interaction(),
            inheritance_diagram=self.diagrams.inheritance(),
            design_patterns=all_matches(
                heuristics.DESIGN_PATTERN_RULES, self.ctx, heuristics.DEFAULT_DESIGN_PATTERNS
            ),
            gas_optimization=self.gas_analysis(),
        )

    def contract_info(self, contract: ContractFacts) -> ContractInfo:
        return ContractInfo(
            name=contract.contract_name,
            description=describe_contract(contract),
            functions=len(contract.functions),
            complexity=contract.complexity_score,
            role=first_match(heuristics.ROLE_RULES, contract.contract_name.lower(), heuristics.DEFAULT_ROLE),
        )

    def gas_analysis(self) -> GasAnalysis:
        optimizations = all_matches(heuristics.GAS_OPTIMIZATION_RULES, self.ctx)
        concerns = all_matches(heuristics.GAS_CONCERN_RULES, self.ctx)

        optimization_score = min(len(optimizations) * 2, 6)
        concern_penalty = min(len(concerns) * 1.5, 4)
        efficiency = max(1.0, min(10.0, 5 + optimization_score - concern_penalty))

        return GasAnalysis(
            efficiency=round(efficiency, 1),
            optimizations=optimizations or list(heuristics.DEFAULT_GAS_OPTIMIZATIONS),
            concerns=concerns,
        )

    # Security

    def security(self) -> SecurityAnalysis:
        grade, score = SecurityRatingCalculator.rate(self.ctx)
        logger.debug(f"Security score {score} rated {grade}")
        return SecurityAnalysis(
            rating=grade,
            business_logic=self.business_logic(),
            strengths=all_matches(heuristics.STRENGTH_RULES, self.ctx, heuristics.DEFAULT_STRENGTHS),
            findings=all_matches(heuristics.FINDING_RULES, self.ctx, heuristics.DEFAULT_FINDINGS),
            recommendations=all_matches(heuristics.RECOMMENDATION_RULES, self.ctx),
            audit_status=first_match(heuristics.AUDIT_STATUS_RULES, self.ctx, heuristics.DEFAULT_AUDIT_STATUS),
        )

    def business_logic(self) -> str:
        complexity = self.ctx.average_complexity
        sophisticated = complexity > 7
        sentences = [
            f"The protocol's business logic centers around {len(self.ctx.facts)} smart contracts "
            f"with an average complexity of {complexity}/10."
        ]
        sentences.extend(all_matches(BUSINESS_LOGIC_RULES, self.ctx))
        sentences.append(
            f"The business logic emphasizes {'sophisticated' if sophisticated else 'straightforward'} "
            f"operations with "
            + (
                "multiple layers of validation and complex state management."
                if sophisticated
                else "clear execution paths and minimal state complexity."
            )
        )
        return " ".join(sentences)


BUSINESS_LOGIC_RULES = [
    Rule(
        lambda ctx: ctx.doc_mentions("governance") or ctx.any_contract_named("governance"),
        "The system incorporates governance mechanisms for decentralized decision-making, "
        "allowing token holders to take part in upgrades and parameter changes.",
    ),
    Rule(
        lambda ctx: len(ctx.facts) > 1,
        "Core business operations are distributed across multiple contracts for modularity.",
    ),
    Rule(
        lambda ctx: ctx.any_contract_named("vault"),
        "Asset management is handled through vault contracts that secure user funds and manage liquidity.",
    ),
    Rule(
        lambda ctx: ctx.doc_mentions("oracle") or ctx.any_contract_named("oracle"),
        "The protocol relies on external price feeds and oracles, introducing dependencies "
        "on third-party services.",
    ),
]


def describe_contract(contract: ContractFacts) -> str:
    """One-sentence description of a contract's shape."""
    visibility = Counter(f.visibility for f in contract.functions)
    description = f"{contract.contract_name} smart contract"

    if contract.inheritance:
        description += f" inheriting from {', '.join(contract.inheritance)}"

    parts: List[str] = [f"{len(contract.functions)} functions"]
    if contract.events:
        parts.append(f"{len(contract.events)} events")
    if contract.modifiers:
        parts.append(f"{len(contract.modifiers)} custom modifiers")
    description += " with " + ", ".join(parts)

    return (
        f"{description}. Exposes {visibility['external']} external "
        f"and {visibility['public']} public interfaces."
    )
