"""
Tests for the Mermaid diagram generator.
"""
from protocol_analyzer.models.contract_facts import ContractFacts, FunctionFact, ModifierFact
from protocol_analyzer.services.diagram_generator import (
    EMPTY_DATA_FLOW,
    EMPTY_INHERITANCE,
    EMPTY_INTERACTION,
    DiagramGenerator,
    node_id,
)


def contract(name, functions=0, modifiers=0, inheritance=(), function_names=None):
    names = function_names or [f"fn{i}" for i in range(functions)]
    return ContractFacts(
        file_name=f"{name}.sol",
        contract_name=name,
        functions=[FunctionFact(name=n) for n in names],
        modifiers=[ModifierFact(name=f"mod{i}") for i in range(modifiers)],
        inheritance=list(inheritance),
    )


class TestEmptyInput:

    def test_default_templates(self):
        generator = DiagramGenerator([])
        assert generator.data_flow() == EMPTY_DATA_FLOW
        assert generator.interaction() == EMPTY_INTERACTION
        assert generator.inheritance() == EMPTY_INHERITANCE

    def test_template_headers(self):
        assert EMPTY_DATA_FLOW.startswith("flowchart TD")
        assert EMPTY_INTERACTION.startswith("sequenceDiagram")
        assert EMPTY_INHERITANCE.startswith("classDiagram")


class TestDataFlow:

    def test_logic_chain_only_above_five_functions(self):
        diagram = DiagramGenerator([contract("Vault", functions=6), contract("Helper", functions=5)]).data_flow()
        assert "C0 --> C0_Logic[Business Logic]" in diagram
        assert "C0_Logic --> C0_State[State Updates]" in diagram
        assert "C1_Logic" not in diagram
        assert "Entry --> C1[Helper]" in diagram
        assert diagram.endswith("External --> Events[Event Emission]")


class TestInteraction:

    def test_first_three_contracts_only(self):
        contracts = [contract(name) for name in ("A", "B", "C", "D")]
        diagram = DiagramGenerator(contracts).interaction()
        assert "participant C2 as C" in diagram
        assert "participant C3" not in diagram
        assert "C0->>C1: Call" in diagram
        assert "C1->>C2: Call" in diagram
        assert "C2->>Storage: Read State" in diagram
        assert "participant Storage" in diagram

    def test_single_contract(self):
        diagram = DiagramGenerator([contract("Solo")]).interaction()
        assert "User->>C0: Initialize Transaction" in diagram
        assert "C0->>Storage: Update State" in diagram
        assert "->>C1" not in diagram


class TestInheritance:

    def test_member_caps(self):
        diagram = DiagramGenerator([contract("Big", functions=9, modifiers=6)]).inheritance()
        assert diagram.count("~fn") == 5
        assert diagram.count("+modifier") == 3

    def test_interface_placeholder_deduplicated(self):
        contracts = [contract("A", inheritance=["Ownable"]), contract("B", inheritance=["Ownable", "A"])]
        diagram = DiagramGenerator(contracts).inheritance()
        assert diagram.count("class Ownable {") == 1
        assert diagram.count("<<interface>>") == 1
        assert "Ownable <|-- A" in diagram
        assert "Ownable <|-- B" in diagram
        assert "A <|-- B" in diagram

    def test_uses_edges(self):
        contracts = [
            contract("Router", function_names=["callVault"]),
            contract("Vault", function_names=["deposit"]),
            contract("PoolFactory", function_names=["create"]),
        ]
        diagram = DiagramGenerator(contracts).inheritance()
        assert "Router --> Vault : uses" in diagram
        assert "Router --> PoolFactory : uses" in diagram
        assert "Vault --> PoolFactory : uses" in diagram
        assert "Vault --> Router : uses" not in diagram

    def test_node_ids_strip_punctuation(self):
        assert node_id("My_Token$") == "MyToken"

    def test_contract_without_functions_uses_nothing(self):
        contracts = [contract("Registry"), contract("PoolManager", function_names=["register"])]
        diagram = DiagramGenerator(contracts).inheritance()
        assert "Registry --> PoolManager : uses" not in diagram
        assert ": uses" not in diagram
