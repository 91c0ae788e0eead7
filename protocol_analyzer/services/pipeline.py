"""
End-to-end analysis: source and documentation in, ProtocolReport out.
"""
import asyncio
import logging
from typing import Callable, Optional

from protocol_analyzer.models.enhancement import EnhancementReport
from protocol_analyzer.models.protocol_report import ProtocolReport
from protocol_analyzer.services.code_analyzer import analyze_files, extract_dependencies
from protocol_analyzer.services.document_fetcher import DocumentFetcher
from protocol_analyzer.services.enhancer import EnhancementContext, ProtocolEnhancer
from protocol_analyzer.services.reconciler import merge
from protocol_analyzer.services.source_fetcher import open_source
from protocol_analyzer.services.synthesizer import HeuristicSynthesizer

logger = logging.getLogger(__name__)


class AnalysisPipeline:
    """Runs retrieval, extraction, synthesis and the optional enhancement phase."""

    def __init__(
        self,
        enhancer: Optional[ProtocolEnhancer] = None,
        enhancement_enabled: bool = False,
        enhancement_timeout: float = 60.0,
        source_factory: Callable = open_source,
        document_fetcher: Optional[DocumentFetcher] = None,
    ):
        """
        Initialize the pipeline.

        Args:
            enhancer: Enhancement service
            enhancement_enabled: Whether the enhancement phase runs at all
            enhancement_timeout: Wall-clock budget for the whole enhancement phase, in seconds
            source_factory: Maps a repository reference to an object with fetch()
            document_fetcher: Documentation fetcher
        """
        self.enhancer = enhancer
        self.enhancement_enabled = enhancement_enabled
        self.enhancement_timeout = enhancement_timeout
        self.source_factory = source_factory
        self.document_fetcher = document_fetcher or DocumentFetcher()

        if enhancement_enabled and enhancer is None:
            logger.warning("Enhancement enabled without an enhancer, reports will be heuristic only")

    def analyze(self, repo_reference: str, docs_url: str) -> ProtocolReport:
        """Synchronous wrapper around analyze_async."""
        return asyncio.run(self.analyze_async(repo_reference, docs_url))

    async def analyze_async(self, repo_reference: str, docs_url: str) -> ProtocolReport:
        """
        Analyze a protocol.

        Args:
            repo_reference: GitHub URL or local directory
            docs_url: Documentation URL or local file

        Returns:
            Base report, merged with the enhancement when one is available

        Raises:
            AnalysisError: When the reference is invalid or retrieval fails
        """
        source = self.source_factory(repo_reference)
        snapshot = await asyncio.to_thread(source.fetch)

        facts = analyze_files(snapshot.files)
        if not facts:
            logger.warning(f"No Solidity contracts found in {repo_reference}")
        dependencies = extract_dependencies(snapshot.files)
        logger.info(f"Analyzed {len(facts)} contracts with {len(dependencies)} dependencies")

        digest = await asyncio.to_thread(self.document_fetcher.fetch, docs_url)

        base = HeuristicSynthesizer(facts, digest, repository=snapshot, dependencies=dependencies).synthesize()

        enhancement = await self.enhance(EnhancementContext(
            facts=facts,
            digest=digest,
            base_report=base,
            repository=snapshot,
            dependencies=dependencies,
        ))
        return merge(base, enhancement)

    async def enhance(self, context: EnhancementContext) -> Optional[EnhancementReport]:
        """Run the enhancement phase under its time budget; every failure yields None."""
        if not self.enhancement_enabled or self.enhancer is None:
            return None

        try:
            return await asyncio.wait_for(self.enhancer.enhance(context), timeout=self.enhancement_timeout)
        except asyncio.TimeoutError:
            logger.warning(f"Enhancement timed out after {self.enhancement_timeout}s, using base report")
        except Exception as e:
            logger.error(f"Enhancement failed, using base report: {str(e)}")
        return None
