"""
Tests for the rule tables and the synthesis context.
"""
from protocol_analyzer.models.contract_facts import ContractFacts, DocumentDigest, FunctionFact, ModifierFact
from protocol_analyzer.services import heuristics
from protocol_analyzer.services.heuristics import Rule, SynthesisContext, all_matches, first_match


def make_context(text="", facts=(), description=""):
    return SynthesisContext(list(facts), DocumentDigest(title="Docs", content=text), description=description)


def category_of(text, description=""):
    ctx = make_context(text, description=description)
    return first_match(heuristics.CATEGORY_RULES, ctx, heuristics.DEFAULT_CATEGORY)


class TestRuleEvaluation:

    def test_first_match_returns_first_hit(self):
        rules = [Rule(lambda x: x > 10, "big"), Rule(lambda x: x > 1, "medium"), Rule(lambda x: True, "any")]
        assert first_match(rules, 20, "none") == "big"
        assert first_match(rules, 5, "none") == "medium"

    def test_first_match_default(self):
        assert first_match([Rule(lambda x: False, "never")], 0, "fallback") == "fallback"

    def test_all_matches_keeps_table_order(self):
        rules = [Rule(lambda ctx: True, "a"), Rule(lambda ctx: False, "b"), Rule(lambda ctx: True, "c")]
        assert all_matches(rules, None) == ["a", "c"]

    def test_all_matches_default_only_when_empty(self):
        rules = [Rule(lambda ctx: False, "a")]
        assert all_matches(rules, None, ["default"]) == ["default"]
        assert all_matches(rules, None) == []


class TestCategory:

    def test_exchange_precedes_lending(self):
        text = "A lending market with an integrated swap router for borrow positions."
        assert category_of(text) == "Decentralized Exchange"

    def test_lending(self):
        assert category_of("Users can borrow against collateral.") == "Lending Protocol"

    def test_description_counts(self):
        assert category_of("", description="Perpetual futures venue") == "Derivatives Trading"

    def test_case_insensitive(self):
        assert category_of("Cross-Chain messaging") == "Cross-Chain Bridge"

    def test_default(self):
        assert category_of("A protocol.") == "DeFi Protocol"

    def test_every_category_has_a_focus(self):
        for rule in heuristics.CATEGORY_RULES:
            assert rule.result in heuristics.PRIMARY_FOCUS_RULES


class TestSynthesisContext:

    def test_average_complexity_default(self):
        assert make_context().average_complexity == 5.0

    def test_average_complexity_rounded(self):
        facts = [
            ContractFacts(file_name="A.sol", contract_name="A", complexity_score=3.0),
            ContractFacts(file_name="B.sol", contract_name="B", complexity_score=3.5),
            ContractFacts(file_name="C.sol", contract_name="C", complexity_score=3.5),
        ]
        assert make_context(facts=facts).average_complexity == 3.3

    def test_access_control_from_modifier(self):
        facts = [ContractFacts(
            file_name="A.sol", contract_name="A", modifiers=[ModifierFact(name="onlyAdmin")],
        )]
        assert make_context(facts=facts).has_access_control

    def test_pause_from_function_name(self):
        facts = [ContractFacts(
            file_name="A.sol", contract_name="A", functions=[FunctionFact(name="emergencyStop")],
        )]
        assert make_context(facts=facts).has_pause

    def test_unguarded_privileged_functions(self):
        facts = [ContractFacts(
            file_name="A.sol",
            contract_name="A",
            functions=[
                FunctionFact(name="setFee"),
                FunctionFact(name="setOwner", modifiers=["onlyOwner"]),
                FunctionFact(name="mintInternal", visibility="internal"),
                FunctionFact(name="setterView", mutability="view"),
            ],
        )]
        assert make_context(facts=facts).unguarded_privileged_functions == ["A.setFee"]


class TestRoles:

    def role_of(self, name):
        return first_match(heuristics.ROLE_RULES, name.lower(), heuristics.DEFAULT_ROLE)

    def test_roles(self):
        assert self.role_of("LiquidityPool") == "Asset Management Contract"
        assert self.role_of("PairFactory") == "Factory Contract"
        assert self.role_of("PriceOracle") == "Oracle/Price Feed Contract"
        assert self.role_of("Engine") == "Core Protocol Contract"


class TestDefaults:

    def test_strengths_and_findings_never_empty(self):
        ctx = make_context()
        assert all_matches(heuristics.STRENGTH_RULES, ctx, heuristics.DEFAULT_STRENGTHS)
        assert all_matches(heuristics.FINDING_RULES, ctx, heuristics.DEFAULT_FINDINGS)

    def test_recommendations_always_include_audit(self):
        recommendations = all_matches(heuristics.RECOMMENDATION_RULES, make_context())
        assert "Conduct comprehensive security audit before mainnet deployment" in recommendations
