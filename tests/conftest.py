"""
Shared test fixtures for the protocol analyzer test suite.

Provides sample Solidity sources, repository snapshots, documentation
digests and a synthesized base report.
"""
import pytest

from protocol_analyzer.models.contract_facts import DocumentDigest, RepositorySnapshot, SourceFile
from protocol_analyzer.services.code_analyzer import analyze_files
from protocol_analyzer.services.synthesizer import HeuristicSynthesizer


# ── Sample Solidity sources ─────────────────────────────

VAULT_SOLIDITY = """\
// SPDX-License-Identifier: MIT
pragma solidity ^0.8.20;

import "@openzeppelin/contracts/access/Ownable.sol";
import "./interfaces/IStrategy.sol";

contract Vault is Ownable {
    mapping(address => uint256) public balances;
    bool public paused;

    event Deposited(address indexed user, uint256 amount);

    modifier whenNotPaused() {
        require(!paused, "paused");
        _;
    }

    function deposit() external payable whenNotPaused {
        balances[msg.sender] += msg.value;
        emit Deposited(msg.sender, msg.value);
    }

    function withdraw(uint256 amount) external whenNotPaused {
        if (balances[msg.sender] < amount) {
            revert("insufficient");
        }
        balances[msg.sender] -= amount;
        payable(msg.sender).transfer(amount);
    }

    function balanceOf(address user) public view returns (uint256) {
        return balances[user];
    }

    function pause() external onlyOwner {
        paused = true;
    }

    function unpause() external onlyOwner {
        paused = false;
    }

    function sweep(address to) external onlyOwner {
        payable(to).transfer(address(this).balance);
    }
}
"""

MATH_LIBRARY_SOLIDITY = """\
// SPDX-License-Identifier: MIT
pragma solidity ^0.8.20;

library MathLib {
    function min(uint256 a, uint256 b) internal pure returns (uint256) {
        return a < b ? a : b;
    }
}
"""

ROUTER_SOLIDITY = """\
pragma solidity ^0.8.20;

import {Vault} from "./Vault.sol";

contract Router {
    function route(address vault) external {
        for (uint256 i = 0; i < 3; i++) {
            Vault(vault).deposit();
        }
    }
}
"""

PACKAGE_JSON = """\
{
  "name": "vault-protocol",
  "dependencies": {"@openzeppelin/contracts": "^5.0.0"},
  "devDependencies": {"hardhat": "^2.19.0"}
}
"""


@pytest.fixture
def vault_source():
    return SourceFile(path="contracts/Vault.sol", content=VAULT_SOLIDITY, kind="solidity")


@pytest.fixture
def library_source():
    return SourceFile(path="contracts/MathLib.sol", content=MATH_LIBRARY_SOLIDITY, kind="solidity")


@pytest.fixture
def snapshot(vault_source, library_source):
    return RepositorySnapshot(
        name="vault-protocol",
        description="Yield vault for pooled deposits",
        files=[
            vault_source,
            library_source,
            SourceFile(path="package.json", content=PACKAGE_JSON, kind="json"),
        ],
    )


@pytest.fixture
def digest():
    return DocumentDigest(
        title="Vault Protocol Docs",
        content="The vault accepts deposits and pays staking rewards. Governance is run by a DAO.",
    )


@pytest.fixture
def facts(snapshot):
    return analyze_files(snapshot.files)


@pytest.fixture
def base_report(facts, digest, snapshot):
    return HeuristicSynthesizer(facts, digest, repository=snapshot).synthesize()
