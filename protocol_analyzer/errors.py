"""
Exceptions raised by the analysis pipeline.

Only input validation and collaborator failures surface to the caller.
Enhancement problems are logged and never leave the pipeline.
"""
from typing import Optional


class AnalysisError(Exception):
    """Base class for user-facing analysis failures."""

    default_message = "Failed to analyze protocol due to an unexpected error."

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.default_message)


class InvalidReferenceError(AnalysisError):
    default_message = (
        "Please provide a valid GitHub repository URL "
        "(e.g., https://github.com/owner/repo) or a local directory."
    )


class SourceFetchError(AnalysisError):
    default_message = "Failed to retrieve repository files."


class RateLimitError(SourceFetchError):
    default_message = (
        "GitHub API rate limit exceeded. Please try again later "
        "or provide a GitHub token for higher rate limits."
    )


class NotFoundError(SourceFetchError):
    default_message = (
        "Repository not found. Please check the GitHub URL "
        "and ensure the repository is public."
    )


class InvalidCredentialsError(SourceFetchError):
    default_message = (
        "Invalid GitHub token provided. Please check your authentication credentials."
    )


class AccessRestrictedError(SourceFetchError):
    default_message = (
        "Unable to reach the source due to a network error or access restriction. "
        "Please ensure the resource is publicly accessible."
    )


class DocumentFetchError(AnalysisError):
    default_message = "Failed to fetch documentation. Please check the URL and try again."


class EnhancementError(Exception):
    """Raised by the enhancer; always handled inside the pipeline."""
