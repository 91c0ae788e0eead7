"""
Tests for the Solidity code analyzer.
"""
import pytest

from protocol_analyzer.models.contract_facts import SourceFile
from protocol_analyzer.services.code_analyzer import (
    analyze_contract,
    analyze_files,
    calculate_complexity,
    extract_dependencies,
    get_file_kind,
    package_name,
)
from tests.conftest import MATH_LIBRARY_SOLIDITY, PACKAGE_JSON, ROUTER_SOLIDITY, VAULT_SOLIDITY


class TestCalculateComplexity:

    def test_empty_contract_scores_base(self):
        assert calculate_complexity(0, 0, 0, 0) == 3.0

    def test_worked_example(self):
        assert calculate_complexity(3, 1, 2, 0) == 5.2

    def test_clamped_to_ten(self):
        assert calculate_complexity(40, 10, 30, 12) == 10.0

    @pytest.mark.parametrize("counts", [(0, 0, 0, 0), (1, 2, 3, 4), (12, 0, 0, 0), (100, 100, 100, 100)])
    def test_always_in_range(self, counts):
        assert 0.0 <= calculate_complexity(*counts) <= 10.0


class TestAnalyzeContract:

    def test_no_contract_returns_none(self):
        assert analyze_contract("MathLib.sol", MATH_LIBRARY_SOLIDITY) is None

    def test_empty_text_returns_none(self):
        assert analyze_contract("Empty.sol", "") is None

    def test_garbage_text_returns_none(self):
        assert analyze_contract("Noise.sol", "{{{ ))) function ( ;;; event") is None

    def test_bare_contract_scores_base(self):
        facts = analyze_contract("Empty.sol", "contract Empty {}")
        assert facts.contract_name == "Empty"
        assert facts.functions == []
        assert facts.complexity_score == 3.0

    def test_vault_structure(self):
        facts = analyze_contract("Vault.sol", VAULT_SOLIDITY)

        assert facts.file_name == "Vault.sol"
        assert facts.contract_name == "Vault"
        assert [f.name for f in facts.functions] == [
            "deposit", "withdraw", "balanceOf", "pause", "unpause", "sweep",
        ]
        assert [e.name for e in facts.events] == ["Deposited"]
        assert [m.name for m in facts.modifiers] == ["whenNotPaused"]
        assert facts.inheritance == ["Ownable"]
        assert facts.imports == [
            "@openzeppelin/contracts/access/Ownable.sol",
            "./interfaces/IStrategy.sol",
        ]
        # 6 functions, 1 modifier, 1 if
        assert facts.complexity_score == 6.5

    def test_function_attributes(self):
        facts = analyze_contract("Vault.sol", VAULT_SOLIDITY)
        functions = {f.name: f for f in facts.functions}

        assert functions["deposit"].visibility == "external"
        assert functions["deposit"].mutability == "payable"
        assert functions["deposit"].modifiers == ["whenNotPaused"]

        assert functions["balanceOf"].visibility == "public"
        assert functions["balanceOf"].mutability == "view"
        assert functions["balanceOf"].parameters == ["address user"]
        assert functions["balanceOf"].returns == ["uint256"]
        assert functions["balanceOf"].modifiers == []

        assert functions["pause"].modifiers == ["onlyOwner"]
        assert functions["withdraw"].mutability == "nonpayable"

    def test_defaults_without_keywords(self):
        facts = analyze_contract("A.sol", "contract A { function run() { } }")
        run = facts.functions[0]
        assert run.visibility == "external"
        assert run.mutability == "nonpayable"
        assert run.modifiers == []

    def test_modifier_arguments_and_override(self):
        code = """
        contract Token is ERC20("Token", "TKN"), AccessControl {
            function mint(address to, uint256 amount) public virtual override(ERC20) onlyRole(MINTER) {
            }
        }
        """
        facts = analyze_contract("Token.sol", code)
        assert facts.inheritance == ["ERC20", "AccessControl"]
        assert facts.functions[0].modifiers == ["onlyRole"]
        assert facts.functions[0].parameters == ["address to", "uint256 amount"]

    def test_loop_counted(self):
        facts = analyze_contract("Router.sol", ROUTER_SOLIDITY)
        # 1 function, 1 loop
        assert facts.complexity_score == 3.9
        assert facts.imports == ["./Vault.sol"]

    def test_only_first_contract_reported(self):
        code = "contract First { function a() external {} } contract Second { function b() external {} }"
        facts = analyze_contract("Two.sol", code)
        assert facts.contract_name == "First"


class TestAnalyzeFiles:

    def test_keeps_discovery_order_and_skips_non_contracts(self):
        files = [
            SourceFile(path="b/Router.sol", content=ROUTER_SOLIDITY, kind="solidity"),
            SourceFile(path="a/MathLib.sol", content=MATH_LIBRARY_SOLIDITY, kind="solidity"),
            SourceFile(path="a/Vault.sol", content=VAULT_SOLIDITY, kind="solidity"),
            SourceFile(path="package.json", content=PACKAGE_JSON, kind="json"),
        ]
        facts = analyze_files(files)
        assert [f.contract_name for f in facts] == ["Router", "Vault"]
        assert facts[0].file_name == "Router.sol"

    def test_duplicate_contract_names_skipped(self):
        files = [
            SourceFile(path="v1/Vault.sol", content=VAULT_SOLIDITY, kind="solidity"),
            SourceFile(path="v2/Vault.sol", content="contract Vault {}", kind="solidity"),
        ]
        facts = analyze_files(files)
        assert len(facts) == 1
        assert len(facts[0].functions) == 6

    def test_empty_input(self):
        assert analyze_files([]) == []


class TestDependencies:

    def test_package_json_and_imports(self, snapshot):
        assert extract_dependencies(snapshot.files) == ["@openzeppelin/contracts", "hardhat"]

    def test_relative_imports_ignored(self):
        files = [SourceFile(path="Router.sol", content=ROUTER_SOLIDITY, kind="solidity")]
        assert extract_dependencies(files) == []

    def test_invalid_package_json_ignored(self):
        files = [
            SourceFile(path="package.json", content="{not json", kind="json"),
            SourceFile(path="Vault.sol", content=VAULT_SOLIDITY, kind="solidity"),
        ]
        assert extract_dependencies(files) == ["@openzeppelin/contracts"]

    @pytest.mark.parametrize("target,expected", [
        ("@openzeppelin/contracts/access/Ownable.sol", "@openzeppelin/contracts"),
        ("solmate/src/tokens/ERC20.sol", "solmate"),
        ("forge-std/Test.sol", "forge-std"),
    ])
    def test_package_name(self, target, expected):
        assert package_name(target) == expected


class TestFileKind:

    @pytest.mark.parametrize("name,kind", [
        ("Vault.sol", "solidity"),
        ("deploy.js", "javascript"),
        ("hardhat.config.ts", "typescript"),
        ("README.md", "markdown"),
        ("package.json", "json"),
        ("LICENSE", "other"),
    ])
    def test_kinds(self, name, kind):
        assert get_file_kind(name) == kind
