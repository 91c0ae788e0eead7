"""
Mermaid diagram generator for contract architecture.
"""
import re
from typing import List, Sequence

from protocol_analyzer.models.contract_facts import ContractFacts

EMPTY_DATA_FLOW = "\n".join([
    "flowchart TD",
    "    User[User] --> Entry[Entry Point]",
    "    Entry --> Contract[Protocol Contract]",
    "    Contract --> External[External Calls]",
    "    External --> Events[Event Emission]",
])

EMPTY_INTERACTION = "\n".join([
    "sequenceDiagram",
    "    participant User",
    "    participant Contract",
    "    participant Storage",
    "    User->>Contract: Function Call",
    "    Contract->>Storage: Read State",
    "    Storage-->>Contract: Current State",
    "    Contract->>Storage: Update State",
    "    Contract-->>User: Return Result",
])

EMPTY_INHERITANCE = "\n".join([
    "classDiagram",
    "    class BaseContract {",
    "        +modifier onlyOwner()",
    "        +pause()",
    "        +unpause()",
    "    }",
    "    class MainContract {",
    "        +execute()",
    "        +validate()",
    "    }",
    "    BaseContract <|-- MainContract",
])

LOGIC_CHAIN_THRESHOLD = 5
MAX_SEQUENCE_CONTRACTS = 3
MAX_CLASS_FUNCTIONS = 5
MAX_CLASS_MODIFIERS = 3

VISIBILITY_MARKERS = {
    "public": "+",
    "private": "-",
    "internal": "#",
    "external": "~",
}

_NON_ALPHANUMERIC = re.compile(r'[^a-zA-Z0-9]')


def node_id(name: str) -> str:
    """
    Diagram identifier for a contract name.

    Names that differ only in punctuation collapse to the same identifier.
    """
    return _NON_ALPHANUMERIC.sub("", name)


class DiagramGenerator:
    """Renders data flow, interaction and inheritance diagrams from contract facts."""

    def __init__(self, contracts: Sequence[ContractFacts]):
        """
        Initialize the generator.

        Args:
            contracts: Contract facts in discovery order
        """
        self.contracts = list(contracts)

    def data_flow(self) -> str:
        """Flowchart from the user entry point through each contract."""
        if not self.contracts:
            return EMPTY_DATA_FLOW

        lines = ["flowchart TD", "    User[User] --> Entry[Entry Point]"]

        for index, contract in enumerate(self.contracts):
            node = f"C{index}"
            lines.append(f"    Entry --> {node}[{node_id(contract.contract_name)}]")

            if len(contract.functions) > LOGIC_CHAIN_THRESHOLD:
                lines.append(f"    {node} --> {node}_Logic[Business Logic]")
                lines.append(f"    {node}_Logic --> {node}_State[State Updates]")

        lines.append("    C0 --> External[External Calls]")
        lines.append("    External --> Events[Event Emission]")
        return "\n".join(lines)

    def interaction(self) -> str:
        """Sequence diagram across at most the first three contracts."""
        if not self.contracts:
            return EMPTY_INTERACTION

        participants = self.contracts[:MAX_SEQUENCE_CONTRACTS]
        lines = ["sequenceDiagram", "    participant User"]
        for index, contract in enumerate(participants):
            lines.append(f"    participant C{index} as {node_id(contract.contract_name)}")
        lines.append("    participant Storage")

        lines.append("    User->>C0: Initialize Transaction")
        for index in range(1, len(participants)):
            lines.append(f"    C{index - 1}->>C{index}: Call")

        last = f"C{len(participants) - 1}"
        lines.append(f"    {last}->>Storage: Read State")
        lines.append(f"    Storage-->>{last}: Current Data")
        lines.append(f"    {last}->>Storage: Update State")
        for index in range(len(participants) - 1, 0, -1):
            lines.append(f"    C{index}-->>C{index - 1}: Return Data")

        lines.append("    C0-->>User: Transaction Result")
        return "\n".join(lines)

    def inheritance(self) -> str:
        """Class diagram with declared parents and inferred usage edges."""
        if not self.contracts:
            return EMPTY_INHERITANCE

        known = {node_id(c.contract_name) for c in self.contracts}
        placeholders: List[str] = []
        lines = ["classDiagram"]

        for contract in self.contracts:
            class_name = node_id(contract.contract_name)
            lines.append(f"    class {class_name} {{")

            for func in contract.functions[:MAX_CLASS_FUNCTIONS]:
                lines.append(f"        {VISIBILITY_MARKERS.get(func.visibility, '~')}{func.name}()")
            for modifier in contract.modifiers[:MAX_CLASS_MODIFIERS]:
                lines.append(f"        +modifier {modifier.name}()")

            lines.append("    }")

            for parent in contract.inheritance:
                parent_name = node_id(parent)
                if not parent_name:
                    continue
                if parent_name not in known and parent_name not in placeholders:
                    placeholders.append(parent_name)
                    lines.append(f"    class {parent_name} {{")
                    lines.append("        <<interface>>")
                    lines.append("    }")
                lines.append(f"    {parent_name} <|-- {class_name}")

        for index, contract in enumerate(self.contracts):
            for other_index, other in enumerate(self.contracts):
                if index != other_index and _uses(contract, other):
                    lines.append(
                        f"    {node_id(contract.contract_name)} --> {node_id(other.contract_name)} : uses"
                    )

        return "\n".join(lines)


def _uses(contract: ContractFacts, other: ContractFacts) -> bool:
    """Heuristic usage edge between two contracts."""
    if not contract.functions:
        return False
    other_name = other.contract_name.lower()
    if "factory" in other_name or "manager" in other_name:
        return True
    return any(other_name in func.name.lower() for func in contract.functions)
