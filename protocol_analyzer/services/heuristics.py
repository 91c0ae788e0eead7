"""
Ordered (predicate, result) rule tables used by the synthesizer.

Each table is evaluated top to bottom. Classification tables stop at the
first match; extraction tables collect every match in table order.
"""
from typing import Any, Callable, List, NamedTuple, Optional, Sequence

from protocol_analyzer.models.contract_facts import ContractFacts, DocumentDigest, SourceFile

DEFAULT_COMPLEXITY = 5.0
DEFAULT_CATEGORY = "DeFi Protocol"

ACCESS_CONTROL_MARKERS = ("AccessControl", "Ownable")
ACCESS_CONTROL_MODIFIERS = ("onlyowner", "onlyrole", "onlyadmin", "onlygovernance", "auth")
PAUSE_FUNCTION_MARKERS = ("pause", "emergency", "circuitbreaker")


class SynthesisContext:
    """Aggregated view over all facts plus the documentation text."""

    def __init__(
        self,
        facts: Sequence[ContractFacts],
        digest: DocumentDigest,
        description: str = "",
        dependencies: Sequence[str] = (),
        files: Sequence[SourceFile] = (),
    ):
        self.facts = list(facts)
        self.digest = digest
        self.description = description or ""
        self.dependencies = list(dependencies)
        self.files = list(files)
        self.doc_text = digest.content.lower()
        self.classification_text = (digest.content + " " + self.description).lower()

    @property
    def average_complexity(self) -> float:
        if not self.facts:
            return DEFAULT_COMPLEXITY
        total = sum(c.complexity_score for c in self.facts)
        return round(total / len(self.facts), 1)

    def any_import(self, *needles: str) -> bool:
        return any(needle in imp for c in self.facts for imp in c.imports for needle in needles)

    def any_parent(self, *needles: str) -> bool:
        return any(needle in parent for c in self.facts for parent in c.inheritance for needle in needles)

    def any_contract_named(self, *needles: str) -> bool:
        return any(needle in c.contract_name.lower() for c in self.facts for needle in needles)

    def any_function_named(self, *needles: str) -> bool:
        return any(
            needle in f.name.lower() for c in self.facts for f in c.functions for needle in needles
        )

    def any_file_contains(self, *needles: str) -> bool:
        return any(needle in f.content for f in self.files if f.kind == "solidity" for needle in needles)

    def doc_mentions(self, *needles: str) -> bool:
        return any(needle in self.doc_text for needle in needles)

    @property
    def has_access_control(self) -> bool:
        if self.any_import(*ACCESS_CONTROL_MARKERS) or self.any_parent(*ACCESS_CONTROL_MARKERS):
            return True
        return any(
            m.name.lower().startswith(ACCESS_CONTROL_MODIFIERS)
            for c in self.facts for m in c.modifiers
        )

    @property
    def has_reentrancy_guard(self) -> bool:
        return self.any_import("ReentrancyGuard") or self.any_parent("ReentrancyGuard")

    @property
    def has_pause(self) -> bool:
        return (
            self.any_import("Pausable")
            or self.any_parent("Pausable")
            or self.any_function_named(*PAUSE_FUNCTION_MARKERS)
        )

    @property
    def has_events(self) -> bool:
        return any(c.events for c in self.facts)

    @property
    def has_proxy(self) -> bool:
        return self.any_contract_named("proxy") or self.any_import("proxy", "Proxy", "Upgradeable")

    @property
    def has_timelock(self) -> bool:
        return self.any_contract_named("timelock")

    @property
    def has_payable(self) -> bool:
        return any(f.mutability == "payable" for c in self.facts for f in c.functions)

    @property
    def unguarded_privileged_functions(self) -> List[str]:
        """State-changing admin-looking functions with no call-site modifier."""
        names = []
        for contract in self.facts:
            for func in contract.functions:
                lowered = func.name.lower()
                if (
                    func.visibility in ("public", "external")
                    and func.mutability in ("nonpayable", "payable")
                    and not func.modifiers
                    and lowered.startswith(("set", "mint", "upgrade", "withdrawall", "sweep", "rescue"))
                ):
                    names.append(f"{contract.contract_name}.{func.name}")
        return names


class Rule(NamedTuple):
    """A predicate and the text it contributes when it holds."""
    predicate: Callable[[Any], bool]
    result: str


def first_match(rules: Sequence[Rule], subject: Any, default: str) -> str:
    for rule in rules:
        if rule.predicate(subject):
            return rule.result
    return default


def all_matches(rules: Sequence[Rule], ctx: SynthesisContext, default: Optional[List[str]] = None) -> List[str]:
    matched = [rule.result for rule in rules if rule.predicate(ctx)]
    if not matched and default is not None:
        return list(default)
    return matched


def _text_has(*keywords: str) -> Callable[[SynthesisContext], bool]:
    return lambda ctx: any(k in ctx.classification_text for k in keywords)


def _doc_has(*keywords: str) -> Callable[[SynthesisContext], bool]:
    return lambda ctx: ctx.doc_mentions(*keywords)


def _name_has(*keywords: str) -> Callable[[SynthesisContext], bool]:
    return lambda ctx: ctx.any_contract_named(*keywords)


# Order matters: documents routinely mention several of these.
CATEGORY_RULES = [
    Rule(_text_has("exchange", "swap"), "Decentralized Exchange"),
    Rule(_text_has("lending", "borrow"), "Lending Protocol"),
    Rule(_text_has("derivative", "perpetual"), "Derivatives Trading"),
    Rule(_text_has("yield", "staking"), "Yield Farming"),
    Rule(_text_has("governance", "dao"), "Governance Protocol"),
    Rule(_text_has("bridge", "cross-chain"), "Cross-Chain Bridge"),
    Rule(_text_has("nft"), "NFT Protocol"),
]

PRIMARY_FOCUS_RULES = {
    "Decentralized Exchange": "decentralized trading and liquidity provision",
    "Lending Protocol": "collateralized lending and borrowing mechanisms",
    "Derivatives Trading": "perpetual contracts and derivatives trading",
    "Yield Farming": "yield generation and farming strategies",
    "Governance Protocol": "on-chain governance and collective decision-making",
    "Cross-Chain Bridge": "cross-chain asset transfers and message passing",
    "NFT Protocol": "non-fungible token issuance and trading",
}

USE_CASE_RULES = [
    Rule(_doc_has("institutional"), "institutional finance"),
    Rule(_doc_has("retail"), "retail trading"),
    Rule(_doc_has("dao"), "DAO treasury management"),
    Rule(_doc_has("yield"), "yield optimization"),
    Rule(_doc_has("hedge"), "risk hedging"),
]

ARCHITECTURAL_PATTERN_RULES = [
    Rule(lambda ctx: ctx.has_proxy, "upgradeable proxy"),
    Rule(_name_has("factory"), "factory"),
    Rule(lambda ctx: ctx.has_access_control, "access control"),
]

KEY_FEATURE_RULES = [
    Rule(_doc_has("liquidity"), "Liquidity management system"),
    Rule(_doc_has("governance"), "Decentralized governance mechanism"),
    Rule(_doc_has("yield"), "Yield generation and optimization"),
    Rule(_doc_has("stake", "staking"), "Staking and rewards system"),
    Rule(_doc_has("flash loan"), "Flash loan functionality"),
    Rule(_doc_has("oracle"), "Oracle price feed integration"),
    Rule(_name_has("multisig"), "Multi-signature wallet integration"),
    Rule(_name_has("timelock"), "Timelock security mechanism"),
    Rule(_name_has("vault"), "Vault-based asset management"),
]
DEFAULT_KEY_FEATURES = ["Smart contract automation", "Decentralized protocol architecture"]

TOKENOMICS_RULES = [
    Rule(_doc_has("utility token"), "Utility token for protocol access and governance"),
    Rule(_doc_has("governance token"), "Governance token for voting and protocol decisions"),
    Rule(_doc_has("reward token"), "Reward token for incentivizing participation"),
    Rule(_doc_has("burn", "deflationary"), "Token burning mechanism for deflationary pressure"),
]
FEE_RULES = [
    Rule(_doc_has("trading fee"), "Trading fees on transactions"),
    Rule(_doc_has("protocol fee"), "Protocol fees for system maintenance"),
    Rule(_doc_has("withdrawal fee"), "Withdrawal fees for liquidity management"),
    Rule(_doc_has("performance fee"), "Performance fees on generated yields"),
]
INCENTIVE_RULES = [
    Rule(_doc_has("liquidity mining"), "Liquidity mining rewards for providers"),
    Rule(_doc_has("staking reward"), "Staking rewards for token holders"),
    Rule(_doc_has("yield"), "Yield generation through protocol participation"),
    Rule(_doc_has("airdrop"), "Token airdrops for early adopters"),
]
# Strongest signal first.
GOVERNANCE_RULES = [
    Rule(_doc_has("timelock"), "Timelock-protected governance for security"),
    Rule(_doc_has("multisig"), "Multi-signature governance with elected representatives"),
    Rule(_doc_has("dao"), "Decentralized Autonomous Organization (DAO) governance"),
]

ROLE_RULES = [
    Rule(lambda name: "vault" in name or "pool" in name, "Asset Management Contract"),
    Rule(lambda name: "factory" in name, "Factory Contract"),
    Rule(lambda name: "router" in name or "gateway" in name, "Router/Gateway Contract"),
    Rule(lambda name: "governance" in name or "voting" in name, "Governance Contract"),
    Rule(lambda name: "token" in name or "erc20" in name, "Token Contract"),
    Rule(lambda name: "oracle" in name or "price" in name, "Oracle/Price Feed Contract"),
    Rule(lambda name: "timelock" in name, "Security/Timelock Contract"),
    Rule(lambda name: "proxy" in name or "implementation" in name, "Proxy/Implementation Contract"),
    Rule(lambda name: "staking" in name or "reward" in name, "Staking/Rewards Contract"),
]
DEFAULT_ROLE = "Core Protocol Contract"

DESIGN_PATTERN_RULES = [
    Rule(_name_has("factory"), "Factory Pattern"),
    Rule(lambda ctx: ctx.has_proxy, "Proxy Pattern"),
    Rule(lambda ctx: ctx.has_access_control, "Access Control Pattern"),
    Rule(lambda ctx: ctx.has_reentrancy_guard, "Reentrancy Guard Pattern"),
    Rule(lambda ctx: ctx.has_pause, "Circuit Breaker Pattern"),
    Rule(lambda ctx: ctx.has_timelock, "Timelock Pattern"),
]
DEFAULT_DESIGN_PATTERNS = ["Standard Contract Pattern"]

GAS_OPTIMIZATION_RULES = [
    Rule(lambda ctx: ctx.any_function_named("batch"), "Batch operations implemented"),
    Rule(lambda ctx: ctx.any_file_contains("packed", "uint128", "uint64"), "Storage packing utilized"),
    Rule(lambda ctx: ctx.any_file_contains("immutable"), "Immutable variables used"),
]
DEFAULT_GAS_OPTIMIZATIONS = ["Standard gas optimization practices"]

GAS_CONCERN_RULES = [
    Rule(lambda ctx: ctx.average_complexity > 7, "High contract complexity may increase gas costs"),
    Rule(lambda ctx: ctx.any_file_contains("for (", "while ("), "Loop operations detected - potential gas limit issues"),
    Rule(
        lambda ctx: any(
            sum(1 for f in c.functions if "call" in f.name.lower()) > 2 for c in ctx.facts
        ),
        "Multiple external calls may increase gas costs",
    ),
]

STRENGTH_RULES = [
    Rule(lambda ctx: ctx.has_access_control, "Comprehensive access control implementation with role-based permissions"),
    Rule(lambda ctx: ctx.has_reentrancy_guard, "Reentrancy protection implemented across critical functions"),
    Rule(lambda ctx: ctx.has_pause, "Emergency pause mechanisms for crisis management"),
    Rule(lambda ctx: ctx.has_timelock, "Timelock delays for critical administrative functions"),
    Rule(_name_has("multisig"), "Multi-signature wallet integration for enhanced security"),
    Rule(
        lambda ctx: any("openzeppelin" in dep.lower() for dep in ctx.dependencies),
        "Utilizes battle-tested OpenZeppelin security libraries",
    ),
    Rule(lambda ctx: ctx.has_events, "Comprehensive event logging for transparency and monitoring"),
]
DEFAULT_STRENGTHS = ["Basic security measures implemented"]

FINDING_RULES = [
    Rule(
        lambda ctx: ctx.has_payable and not ctx.has_reentrancy_guard,
        "Payable functions without a reentrancy guard may be exposed to reentrancy attacks",
    ),
    Rule(
        lambda ctx: bool(ctx.facts) and not ctx.has_access_control,
        "No access control markers detected; privileged operations may be callable by anyone",
    ),
    Rule(
        lambda ctx: bool(ctx.unguarded_privileged_functions),
        "Administrative-looking functions are declared without any access modifier",
    ),
    Rule(
        lambda ctx: ctx.has_proxy,
        "Upgradeable proxy introduces admin key and storage layout collision risks",
    ),
    Rule(
        lambda ctx: ctx.average_complexity > 7,
        "High contract complexity increases the likelihood of business logic errors",
    ),
    Rule(
        lambda ctx: ctx.doc_mentions("oracle"),
        "Oracle dependency may expose the protocol to price manipulation",
    ),
    Rule(
        lambda ctx: ctx.any_file_contains("delegatecall"),
        "Use of delegatecall can hand control of storage to external code",
    ),
]
DEFAULT_FINDINGS = [
    "No high-risk patterns detected by static heuristics; a manual review is still required",
]

RECOMMENDATION_RULES = [
    Rule(lambda ctx: not ctx.has_reentrancy_guard, "Implement reentrancy guards on all state-changing functions"),
    Rule(lambda ctx: not ctx.has_pause, "Add emergency pause functionality for crisis management"),
    Rule(lambda ctx: not ctx.has_timelock, "Implement timelock delays for administrative functions"),
    Rule(
        lambda ctx: ctx.average_complexity > 7,
        "Consider breaking down complex contracts into smaller, more manageable modules",
    ),
    Rule(lambda ctx: ctx.average_complexity > 7, "Conduct thorough testing of complex business logic paths"),
    Rule(lambda ctx: ctx.doc_mentions("oracle"), "Implement oracle price validation and circuit breakers"),
    Rule(
        lambda ctx: ctx.doc_mentions("oracle"),
        "Consider using multiple oracle sources for price feed redundancy",
    ),
    Rule(lambda ctx: True, "Conduct comprehensive security audit before mainnet deployment"),
    Rule(lambda ctx: True, "Implement comprehensive monitoring and alerting systems"),
]

AUDIT_STATUS_RULES = [
    Rule(_text_has("audited by", "audit report"), "Security audit completed - review audit reports for detailed findings"),
    Rule(lambda ctx: "audit" in ctx.classification_text and "pending" in ctx.classification_text,
         "Security audit in progress - awaiting completion"),
    Rule(lambda ctx: "audit" in ctx.classification_text and "planned" in ctx.classification_text,
         "Security audit planned but not yet initiated"),
]
DEFAULT_AUDIT_STATUS = "No public audit information available - recommend professional security review"
