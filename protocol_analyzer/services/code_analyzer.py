"""
Solidity code analyzer.

Facts are pulled out with anchored regular expressions over the raw text.
There is no parse tree: comments and string literals are scanned like code,
and only the first contract declared in a file is reported.
"""
import json
import logging
import re
from typing import Dict, List, Optional, Iterable

from protocol_analyzer.models.contract_facts import (
    ContractFacts,
    EventFact,
    FunctionFact,
    ModifierFact,
    SourceFile,
)

logger = logging.getLogger(__name__)

CONTRACT_PATTERN = re.compile(r'\bcontract\s+([A-Za-z_]\w*)')
FUNCTION_PATTERN = re.compile(r'\bfunction\s+([A-Za-z_]\w*)\s*\(([^)]*)\)([^{;]*)')
EVENT_PATTERN = re.compile(r'\bevent\s+([A-Za-z_]\w*)\s*\(([^)]*)\)')
MODIFIER_PATTERN = re.compile(r'\bmodifier\s+([A-Za-z_]\w*)\s*(?:\(([^)]*)\))?')
IMPORT_PATTERN = re.compile(r'\bimport\s+(?:[^;"\']*?\bfrom\s+)?["\']([^"\']+)["\']')
RETURNS_PATTERN = re.compile(r'\breturns\s*\(([^)]*)\)')
CALL_SITE_PATTERN = re.compile(r'([A-Za-z_]\w*)\s*(?:\([^)]*\))?')
IF_PATTERN = re.compile(r'\bif\s*\(')
LOOP_PATTERN = re.compile(r'\b(?:for|while)\s*\(')

VISIBILITIES = ("public", "private", "internal", "external")
MUTABILITIES = ("view", "pure", "payable")
# Header keywords that are not call-site modifiers
_RESERVED = set(VISIBILITIES) | set(MUTABILITIES) | {
    "nonpayable", "virtual", "override", "returns", "constant", "immutable",
}

BASE_COMPLEXITY = 3.0
FUNCTION_WEIGHT = 0.5
MODIFIER_WEIGHT = 0.3
CONDITIONAL_WEIGHT = 0.2
LOOP_WEIGHT = 0.4

FILE_KINDS = {
    "sol": "solidity",
    "js": "javascript",
    "ts": "typescript",
    "md": "markdown",
    "json": "json",
}


def get_file_kind(file_name: str) -> str:
    """Coarse kind tag from a file extension."""
    extension = file_name.rsplit(".", 1)[-1].lower() if "." in file_name else ""
    return FILE_KINDS.get(extension, "other")


def calculate_complexity(
    function_count: int,
    modifier_count: int,
    conditional_count: int,
    loop_count: int,
) -> float:
    """
    Linear complexity proxy, clamped to [0, 10].

    Args:
        function_count: Number of function declarations
        modifier_count: Number of modifier declarations
        conditional_count: Number of if statements
        loop_count: Number of for/while loops

    Returns:
        Complexity score rounded to two decimals
    """
    score = (
        BASE_COMPLEXITY
        + function_count * FUNCTION_WEIGHT
        + modifier_count * MODIFIER_WEIGHT
        + conditional_count * CONDITIONAL_WEIGHT
        + loop_count * LOOP_WEIGHT
    )
    return round(min(max(score, 0.0), 10.0), 2)


def analyze_contract(file_name: str, code: str) -> Optional[ContractFacts]:
    """
    Analyze Solidity code to extract structure information.

    Args:
        file_name: Name of the file the code came from
        code: Solidity code to analyze

    Returns:
        ContractFacts for the first contract, or None if the file declares none
    """
    contract_match = CONTRACT_PATTERN.search(code)
    if not contract_match:
        return None

    contract_name = contract_match.group(1)
    functions = _extract_functions(code)
    modifiers = _extract_modifiers(code)

    complexity = calculate_complexity(
        len(functions),
        len(modifiers),
        len(IF_PATTERN.findall(code)),
        len(LOOP_PATTERN.findall(code)),
    )

    return ContractFacts(
        file_name=file_name,
        contract_name=contract_name,
        functions=functions,
        events=_extract_events(code),
        modifiers=modifiers,
        imports=_extract_imports(code),
        inheritance=_extract_inheritance(code, contract_match.end()),
        complexity_score=complexity,
    )


def analyze_files(files: Iterable[SourceFile]) -> List[ContractFacts]:
    """
    Analyze every Solidity file, keeping discovery order.

    Files without a contract, files that fail to parse and files whose
    contract name was already seen are skipped.

    Args:
        files: Files retrieved from the source reference

    Returns:
        List of ContractFacts
    """
    results = []
    seen_names = set()

    for file in files:
        if file.kind != "solidity":
            continue

        try:
            facts = analyze_contract(file.name, file.content)
        except Exception as e:
            logger.warning(f"Failed to analyze {file.path}: {str(e)}")
            continue

        if facts is None:
            logger.info(f"No contract declaration found in {file.path}")
            continue

        if facts.contract_name in seen_names:
            logger.warning(f"Skipping duplicate contract {facts.contract_name} in {file.path}")
            continue

        seen_names.add(facts.contract_name)
        results.append(facts)
        logger.debug(
            f"Analyzed {facts.contract_name}: {len(facts.functions)} functions, "
            f"{len(facts.events)} events, {len(facts.modifiers)} modifiers"
        )

    logger.info(f"Analyzed {len(results)} contracts")
    return results


def is_package_import(target: str) -> bool:
    """Package-style import targets are dependency candidates; relative or absolute paths are not."""
    return bool(target) and not target.startswith((".", "/"))


def package_name(target: str) -> str:
    """Reduce an import target to its package, keeping npm scopes (@scope/pkg)."""
    parts = target.split("/")
    if target.startswith("@") and len(parts) > 1:
        return f"{parts[0]}/{parts[1]}"
    return parts[0]


def extract_dependencies(files: Iterable[SourceFile]) -> List[str]:
    """
    Collect external dependencies from package.json files and Solidity imports.

    Args:
        files: Files retrieved from the source reference

    Returns:
        Unique dependency names in discovery order
    """
    dependencies: Dict[str, None] = {}

    for file in files:
        if file.name == "package.json":
            try:
                package_data = json.loads(file.content) if file.content.strip() else {}
            except ValueError as e:
                logger.warning(f"Error parsing package.json at {file.path}: {str(e)}")
                continue
            if not isinstance(package_data, dict):
                continue
            for section in ("dependencies", "devDependencies"):
                entries = package_data.get(section)
                if isinstance(entries, dict):
                    for name in entries:
                        dependencies.setdefault(name, None)

        elif file.kind == "solidity":
            for target in _extract_imports(file.content):
                if is_package_import(target):
                    dependencies.setdefault(package_name(target), None)

    return list(dependencies)


def _split_list(text: Optional[str]) -> List[str]:
    if not text:
        return []
    return [part.strip() for part in text.split(",") if part.strip()]


def _extract_functions(code: str) -> List[FunctionFact]:
    """
    Extract function declarations.

    Args:
        code: Solidity code to analyze

    Returns:
        List of functions
    """
    functions = []

    for match in FUNCTION_PATTERN.finditer(code):
        name = match.group(1)
        header = match.group(3)

        returns_match = RETURNS_PATTERN.search(header)
        returns = _split_list(returns_match.group(1)) if returns_match else []
        if returns_match:
            header = header[:returns_match.start()] + header[returns_match.end():]

        visibility = "external"
        mutability = "nonpayable"
        modifiers = []

        for token in CALL_SITE_PATTERN.finditer(header):
            word = token.group(1)
            if word in VISIBILITIES:
                visibility = word
            elif word in MUTABILITIES:
                mutability = word
            elif word not in _RESERVED:
                modifiers.append(word)

        functions.append(FunctionFact(
            name=name,
            visibility=visibility,
            mutability=mutability,
            parameters=_split_list(match.group(2)),
            returns=returns,
            modifiers=modifiers,
        ))

    return functions


def _extract_events(code: str) -> List[EventFact]:
    return [
        EventFact(name=match.group(1), parameters=_split_list(match.group(2)))
        for match in EVENT_PATTERN.finditer(code)
    ]


def _extract_modifiers(code: str) -> List[ModifierFact]:
    return [
        ModifierFact(name=match.group(1), parameters=_split_list(match.group(2)))
        for match in MODIFIER_PATTERN.finditer(code)
    ]


def _extract_imports(code: str) -> List[str]:
    return [match.group(1) for match in IMPORT_PATTERN.finditer(code)]


def _extract_inheritance(code: str, header_start: int) -> List[str]:
    """
    Read the `is A, B(args)` clause that follows the contract name.

    Args:
        code: Solidity code to analyze
        header_start: Offset just past the contract name

    Returns:
        Parent names in declaration order
    """
    header_end = code.find("{", header_start)
    header = code[header_start:header_end] if header_end != -1 else code[header_start:]

    clause = re.match(r'\s+is\s+(.+)', header, re.DOTALL)
    if not clause:
        return []

    return [token.group(1) for token in CALL_SITE_PATTERN.finditer(clause.group(1))]
