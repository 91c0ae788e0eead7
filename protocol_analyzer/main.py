"""
Main entry point for the protocol analyzer.
"""
import argparse
import functools
import logging
import sys
from typing import Optional

from protocol_analyzer.config import Settings
from protocol_analyzer.errors import AnalysisError
from protocol_analyzer.services.document_fetcher import DocumentFetcher
from protocol_analyzer.services.enhancer import ProtocolEnhancer
from protocol_analyzer.services.pipeline import AnalysisPipeline
from protocol_analyzer.services.report_generator import REPORT_FORMATS, ReportGenerator
from protocol_analyzer.services.source_fetcher import open_source

logger = logging.getLogger(__name__)


def setup_logging(log_level: str, log_file: Optional[str] = None):
    """
    Set up logging configuration.

    Args:
        log_level: Logging level
        log_file: Path to log file
    """
    handlers = [logging.StreamHandler()]

    if log_file:
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=getattr(logging, log_level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=handlers
    )


def build_pipeline(config: Settings, use_llm: bool = True) -> AnalysisPipeline:
    """
    Wire the pipeline from settings.

    Args:
        config: Application configuration
        use_llm: False when the user opted out of enhancement

    Returns:
        Configured AnalysisPipeline
    """
    enhancement_enabled = use_llm and config.enhancement_available
    if use_llm and config.llm_enabled and not config.openai_api_key:
        logger.warning("LLM enhancement is enabled but OPENAI_API_KEY is not set")

    enhancer = None
    if enhancement_enabled:
        enhancer = ProtocolEnhancer(
            api_key=config.openai_api_key,
            model=config.openai_model,
            api_base_url=config.api_base_url
        )

    return AnalysisPipeline(
        enhancer=enhancer,
        enhancement_enabled=enhancement_enabled,
        enhancement_timeout=config.enhancement_timeout,
        source_factory=functools.partial(
            open_source,
            token=config.github_token,
            timeout=config.request_timeout,
            max_files=config.max_repository_files,
        ),
        document_fetcher=DocumentFetcher(timeout=config.request_timeout),
    )


def analyze(args, config: Settings) -> int:
    """
    Run an analysis and write the report.

    Args:
        args: Command line arguments
        config: Application configuration

    Returns:
        Process exit status
    """
    pipeline = build_pipeline(config, use_llm=not args.no_llm)

    try:
        report = pipeline.analyze(args.repo, args.docs)
    except AnalysisError as e:
        logger.error(f"Analysis failed: {str(e)}")
        return 1

    report_format = args.format or config.default_report_format
    if report_format not in REPORT_FORMATS:
        logger.warning(f"Unknown report format {report_format}, using text")
        report_format = "text"

    output = ReportGenerator().generate(report, report_format)

    if args.output:
        with open(args.output, 'w', encoding='utf-8') as f:
            f.write(output)
        logger.info(f"Report written to {args.output}")
    else:
        print(output)

    return 0


def main(argv=None):
    """Main entry point."""
    parser = argparse.ArgumentParser(description='Smart contract protocol analyzer')
    subparsers = parser.add_subparsers(dest='mode', help='Mode of operation')

    analyze_parser = subparsers.add_parser('analyze', help='Analyze a protocol')
    analyze_parser.add_argument('--repo', required=True, help='GitHub URL or path to repository')
    analyze_parser.add_argument('--docs', required=True, help='Documentation URL or local file')
    analyze_parser.add_argument('--output', help='Path to output file')
    analyze_parser.add_argument('--format', choices=REPORT_FORMATS, help='Output format')
    analyze_parser.add_argument('--no-llm', action='store_true', help='Skip LLM enhancement')

    args = parser.parse_args(argv)

    # Load configuration
    config = Settings()

    # Set up logging
    setup_logging(config.log_level, config.log_file)

    if args.mode == 'analyze':
        sys.exit(analyze(args, config))

    parser.print_help()
    sys.exit(1)


if __name__ == '__main__':
    main()
