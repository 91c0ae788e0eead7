"""
Report generator for protocol analysis results.
"""
import datetime
import json
import os
from typing import Any, Dict, Optional

from jinja2 import Environment, FileSystemLoader

from protocol_analyzer.models.protocol_report import ProtocolReport

FORMAT_VERSION = "1.0"
REPORT_FORMATS = ("text", "json", "markdown")


def export_record(report: ProtocolReport) -> Dict[str, Any]:
    """
    Build the export record for a report.

    Args:
        report: Report to export

    Returns:
        Dictionary with metadata, summary, architecture and security
    """
    data = report.to_dict()
    return {
        "metadata": {
            "name": report.summary.name,
            "analyzed_at": report.timestamp,
            "exported_at": datetime.datetime.now(datetime.timezone.utc).isoformat(),
            "format_version": FORMAT_VERSION,
        },
        "summary": data["summary"],
        "architecture": data["architecture"],
        "security": data["security"],
    }


class ReportGenerator:
    """Generator for different formats of protocol reports."""

    def __init__(self, template_dir: Optional[str] = None):
        """
        Initialize the report generator.

        Args:
            template_dir: Directory containing report templates
        """
        if template_dir is None:
            current_dir = os.path.dirname(os.path.abspath(__file__))
            template_dir = os.path.join(os.path.dirname(current_dir), "templates")

        self.template_dir = template_dir
        self.env = Environment(loader=FileSystemLoader(template_dir), trim_blocks=True, lstrip_blocks=True)

    def generate(self, report: ProtocolReport, report_format: str) -> str:
        """Render a report in one of REPORT_FORMATS."""
        if report_format == "json":
            return self.generate_json_report(report)
        if report_format == "markdown":
            return self.generate_markdown_report(report)
        if report_format == "text":
            return self.generate_text_report(report)
        raise ValueError(f"Unsupported report format: {report_format}")

    def generate_text_report(self, report: ProtocolReport) -> str:
        """
        Generate a plain text report.

        Args:
            report: Report to render

        Returns:
            Text report
        """
        template = self.env.get_template("text_report.txt")
        return template.render(report=report, date=_render_date())

    def generate_markdown_report(self, report: ProtocolReport) -> str:
        """
        Generate a Markdown report with embedded Mermaid diagrams.

        Args:
            report: Report to render

        Returns:
            Markdown report
        """
        template = self.env.get_template("markdown_report.md")
        return template.render(report=report, date=_render_date())

    def generate_json_report(self, report: ProtocolReport) -> str:
        """
        Generate a JSON export.

        Args:
            report: Report to export

        Returns:
            JSON report
        """
        return json.dumps(export_record(report), indent=2)


def _render_date() -> str:
    return datetime.datetime.now().strftime("%Y-%m-%d %H:%M:%S")
