"""
Report enhancement through an OpenAI-compatible chat completion API.
"""
import asyncio
import json
import logging
from typing import Any, Dict, List, NamedTuple, Optional

import openai
from openai import AsyncOpenAI

from protocol_analyzer.errors import EnhancementError
from protocol_analyzer.models.contract_facts import ContractFacts, DocumentDigest, RepositorySnapshot
from protocol_analyzer.models.enhancement import EnhancementReport
from protocol_analyzer.models.protocol_report import ProtocolReport

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = "You are an expert Web3 protocol analyst. Always respond with valid JSON objects as requested."

DOC_EXCERPT_LENGTH = 5000

SUMMARY_PROMPT = """You are a senior blockchain analyst with deep knowledge of Web3 protocols.
Analyze this protocol combining code structure and documentation.

Repository analysis:
{repository}

Documentation summary:
{documentation}

Provide a protocol summary covering the protocol's purpose, key technical features,
economic model and tokenomics, risks, and how the core components interact.

Return a JSON object with the following structure:
{{
  "overview": "Detailed overview...",
  "keyFeatures": ["Feature 1", "Feature 2"],
  "web3Fundamentals": "Web3 fundamentals explanation...",
  "economicModel": {{
    "tokenomics": ["Token role 1"],
    "feeStructure": ["Fee type 1"],
    "incentives": ["Incentive 1"],
    "governance": "Governance model description"
  }},
  "riskAssessment": "Risk assessment..."
}}
"""

ARCHITECTURE_PROMPT = """Create an architecture analysis for this Web3 protocol:
- {contract_count} Solidity contracts analyzed
- {dependency_count} external dependencies identified

Contract details:
{contracts}

Focus on contract relationships, data flow and its security implications, design patterns,
gas efficiency, and upgrade or governance mechanisms. Diagrams must use Mermaid.js syntax.

Return a JSON object with the following structure:
{{
  "dataFlow": "Mermaid.js flowchart",
  "interactionDiagram": "Mermaid.js sequence diagram",
  "inheritanceDiagram": "Mermaid.js class diagram",
  "designPatterns": ["Pattern 1"],
  "gasOptimization": {{
    "optimizations": ["Optimization 1"],
    "concerns": ["Concern 1"]
  }}
}}
"""

SECURITY_PROMPT = """Perform a security analysis of this Web3 protocol.

Code structure:
{structure}

Documentation claims:
{documentation}

Base security assessment:
{base_security}

Identify critical vulnerabilities with code references, discrepancies between the
documentation and the implementation, best practice violations, business logic risks,
integration risks and centralization risks.

Return a JSON object with the following structure:
{{
  "rating": "B+",
  "businessLogic": "Business logic analysis...",
  "strengths": ["Strength 1"],
  "vulnerabilities": [
    {{
      "name": "Finding name",
      "description": "What is wrong",
      "severity": "Critical|High|Medium|Low",
      "exploitability": "High|Medium|Low",
      "category": "Access Control",
      "mitigation": "How to fix it",
      "codeReference": "Contract.function",
      "docMismatch": false
    }}
  ],
  "recommendations": ["Recommendation 1"],
  "auditStatus": "Audit status description",
  "documentationCodeMismatches": ["Mismatch 1"]
}}
"""


class EnhancementContext(NamedTuple):
    """Everything the enhancer is allowed to see."""
    facts: List[ContractFacts]
    digest: DocumentDigest
    base_report: ProtocolReport
    repository: RepositorySnapshot
    dependencies: List[str]


def extract_json(text: Optional[str]) -> Optional[Dict[str, Any]]:
    """
    Pull the outermost JSON object out of a model response.

    Args:
        text: Raw response text

    Returns:
        Decoded object, or None when there is none
    """
    if not text:
        return None

    json_start = text.find("{")
    json_end = text.rfind("}") + 1
    if json_start < 0 or json_end <= json_start:
        return None

    try:
        decoded = json.loads(text[json_start:json_end])
    except json.JSONDecodeError:
        return None
    return decoded if isinstance(decoded, dict) else None


class ProtocolEnhancer:
    """Service for enhancing a base report with a language model."""

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o-mini",
        api_base_url: Optional[str] = None,
        client: Optional[AsyncOpenAI] = None,
    ):
        """
        Initialize the enhancer.

        Args:
            api_key: OpenAI API key
            model: OpenAI model to use
            api_base_url: Base URL for OpenAI API
            client: Preconfigured client, mainly for tests
        """
        self.model = model
        self.api_base_url = api_base_url

        if client is None:
            client_args = {"api_key": api_key}
            if api_base_url:
                client_args["base_url"] = api_base_url
            client = AsyncOpenAI(**client_args)

        self.client = client
        logger.info(f"Enhancer ready with model {model}")

    async def enhance(self, context: EnhancementContext) -> Optional[EnhancementReport]:
        """
        Run the three enhancement calls concurrently.

        Args:
            context: Facts, documentation and the base report

        Returns:
            EnhancementReport, or None when every call failed
        """
        summary, architecture, security = await asyncio.gather(
            self._section("summary", self._summary_prompt(context)),
            self._section("architecture", self._architecture_prompt(context)),
            self._section("security", self._security_prompt(context)),
        )

        if summary is None and architecture is None and security is None:
            logger.warning("All enhancement calls failed")
            return None

        report = EnhancementReport.from_raw(summary, architecture, security)
        return None if report.is_empty() else report

    async def _section(self, analysis_type: str, prompt: str) -> Optional[Dict[str, Any]]:
        """One sub-call; failures are logged and yield None."""
        try:
            content = await self._call_api(analysis_type, prompt)
        except EnhancementError as e:
            logger.warning(f"Enhancement {analysis_type} failed: {str(e)}")
            return None
        except Exception as e:
            logger.error(f"Unexpected error during {analysis_type} enhancement: {str(e)}")
            return None

        result = extract_json(content)
        if result is None:
            logger.warning(f"Could not parse JSON from {analysis_type} response")
        return result

    async def _call_api(self, analysis_type: str, prompt: str) -> str:
        logger.debug(f"Requesting {analysis_type} enhancement from {self.model}")
        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": prompt},
                ],
                temperature=0.3,
                max_tokens=4000,
            )
        except openai.AuthenticationError as e:
            raise EnhancementError("Invalid API key. Please check your OpenAI API key.") from e
        except openai.RateLimitError as e:
            raise EnhancementError("API rate limit exceeded. Please try again later.") from e
        except openai.APIConnectionError as e:
            raise EnhancementError(
                f"Network error: unable to connect to {self.api_base_url or 'the OpenAI API'}."
            ) from e
        except openai.OpenAIError as e:
            raise EnhancementError(f"API request failed: {str(e)}") from e

        if not response.choices or response.choices[0].message is None:
            raise EnhancementError("Invalid API response structure")
        return response.choices[0].message.content or ""

    def _summary_prompt(self, context: EnhancementContext) -> str:
        repository = {
            "name": context.repository.name,
            "description": context.repository.description,
            "contractCount": len(context.facts),
            "totalFunctions": sum(len(c.functions) for c in context.facts),
            "totalEvents": sum(len(c.events) for c in context.facts),
            "dependencies": context.dependencies[:10],
            "contracts": [
                {
                    "name": c.contract_name,
                    "functions": len(c.functions),
                    "complexity": c.complexity_score,
                    "inheritance": c.inheritance,
                }
                for c in context.facts
            ],
        }
        return SUMMARY_PROMPT.format(
            repository=json.dumps(repository, indent=2),
            documentation=context.digest.content[:DOC_EXCERPT_LENGTH],
        )

    def _architecture_prompt(self, context: EnhancementContext) -> str:
        blocks = []
        for contract in context.facts:
            key_functions = ", ".join(
                f"{f.name}({f.visibility}, {f.mutability})" for f in contract.functions[:5]
            )
            blocks.append("\n".join([
                f"Contract: {contract.contract_name}",
                f"File: {contract.file_name}",
                f"Functions: {len(contract.functions)}",
                f"Events: {len(contract.events)}",
                f"Modifiers: {len(contract.modifiers)}",
                f"Complexity: {contract.complexity_score:.2f}",
                f"Inheritance: {', '.join(contract.inheritance) or 'None'}",
                f"Key Functions: {key_functions}",
            ]))
        return ARCHITECTURE_PROMPT.format(
            contract_count=len(context.facts),
            dependency_count=len(context.dependencies),
            contracts="\n---\n".join(blocks) or "No contracts detected",
        )

    def _security_prompt(self, context: EnhancementContext) -> str:
        structure = {
            "contractCount": len(context.facts),
            "contracts": [
                {
                    "name": c.contract_name,
                    "file": c.file_name,
                    "inheritance": c.inheritance,
                    "imports": c.imports[:5],
                    "publicFunctions": [f.name for f in c.functions if f.visibility == "public"],
                    "externalFunctions": [f.name for f in c.functions if f.visibility == "external"],
                    "modifiers": [m.name for m in c.modifiers],
                }
                for c in context.facts
            ],
            "dependencies": context.dependencies[:15],
        }
        return SECURITY_PROMPT.format(
            structure=json.dumps(structure, indent=2),
            documentation=context.digest.content[:DOC_EXCERPT_LENGTH],
            base_security=json.dumps(context.base_report.security.model_dump(mode="json"), indent=2),
        )
