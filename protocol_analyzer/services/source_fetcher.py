"""
Source retrieval from a local checkout or a GitHub repository.
"""
import logging
import os
import re
from typing import Dict, Optional, Tuple

import requests

from protocol_analyzer.errors import (
    AccessRestrictedError,
    InvalidCredentialsError,
    InvalidReferenceError,
    NotFoundError,
    RateLimitError,
    SourceFetchError,
)
from protocol_analyzer.models.contract_facts import RepositorySnapshot, SourceFile
from protocol_analyzer.services.code_analyzer import get_file_kind

logger = logging.getLogger(__name__)

GITHUB_API_URL = "https://api.github.com"
GITHUB_RAW_URL = "https://raw.githubusercontent.com"
GITHUB_URL_PATTERN = re.compile(r'github\.com[/:]([^/\s]+)/([^/\s#?]+)')

SKIPPED_DIRECTORIES = {"node_modules", ".git"}


def is_relevant(path: str) -> bool:
    """Only contract sources and package manifests feed the analysis."""
    name = os.path.basename(path)
    return name.endswith(".sol") or name == "package.json"


def parse_github_url(url: str) -> Tuple[str, str]:
    """
    Split a GitHub URL into owner and repository.

    Raises:
        InvalidReferenceError: When the URL does not name a repository
    """
    match = GITHUB_URL_PATTERN.search(url or "")
    if not match:
        raise InvalidReferenceError()
    repo = match.group(2)
    if repo.endswith(".git"):
        repo = repo[:-4]
    return match.group(1), repo


class LocalDirectorySource:
    """Reads a repository checkout from disk."""

    def __init__(self, path: str):
        self.path = path

    def fetch(self) -> RepositorySnapshot:
        if not os.path.isdir(self.path):
            raise InvalidReferenceError(f"Directory not found: {self.path}")

        files = []
        for root, dirs, names in os.walk(self.path):
            dirs[:] = sorted(d for d in dirs if d not in SKIPPED_DIRECTORIES)
            for name in sorted(names):
                file_path = os.path.join(root, name)
                if not is_relevant(file_path):
                    continue
                try:
                    with open(file_path, 'r', encoding='utf-8', errors='replace') as f:
                        content = f.read()
                except OSError as e:
                    logger.warning(f"Could not read {file_path}: {str(e)}")
                    continue

                files.append(SourceFile(
                    path=os.path.relpath(file_path, self.path),
                    content=content,
                    kind=get_file_kind(name),
                ))

        name = os.path.basename(os.path.normpath(os.path.abspath(self.path)))
        logger.info(f"Found {len(files)} relevant files in {self.path}")
        return RepositorySnapshot(name=name, files=files)


class GitHubSource:
    """Reads a public (or token-accessible) GitHub repository over the REST API."""

    def __init__(
        self,
        url: str,
        token: Optional[str] = None,
        timeout: float = 15.0,
        max_files: int = 200,
        session: Optional[requests.Session] = None,
    ):
        """
        Initialize the source.

        Args:
            url: Repository URL
            token: GitHub token for higher rate limits
            timeout: Request timeout in seconds
            max_files: Upper bound on files downloaded
            session: Preconfigured session, mainly for tests
        """
        self.owner, self.repo = parse_github_url(url)
        self.timeout = timeout
        self.max_files = max_files
        self.session = session or requests.Session()
        self.headers = {"Accept": "application/vnd.github+json"}
        if token:
            self.headers["Authorization"] = f"Bearer {token}"

    def fetch(self) -> RepositorySnapshot:
        logger.info(f"Fetching GitHub repository {self.owner}/{self.repo}")
        info = self._get_json(f"{GITHUB_API_URL}/repos/{self.owner}/{self.repo}")
        branch = info.get("default_branch") or "main"

        tree = self._get_json(
            f"{GITHUB_API_URL}/repos/{self.owner}/{self.repo}/git/trees/{branch}",
            params={"recursive": "1"},
        )
        if tree.get("truncated"):
            logger.warning(f"Repository tree for {self.owner}/{self.repo} was truncated by GitHub")

        paths = [
            entry["path"] for entry in tree.get("tree", [])
            if entry.get("type") == "blob"
            and is_relevant(entry.get("path", ""))
            and not SKIPPED_DIRECTORIES.intersection(entry["path"].split("/"))
        ]
        if len(paths) > self.max_files:
            logger.warning(f"Limiting download to {self.max_files} of {len(paths)} files")
            paths = paths[:self.max_files]

        files = []
        for path in paths:
            content = self._get_raw(branch, path)
            if content is not None:
                files.append(SourceFile(path=path, content=content, kind=get_file_kind(path)))

        logger.info(f"Retrieved {len(files)} files from {self.owner}/{self.repo}")
        return RepositorySnapshot(
            name=info.get("name") or self.repo,
            description=info.get("description") or "",
            files=files,
        )

    def _request(self, url: str, params: Optional[Dict[str, str]] = None) -> requests.Response:
        try:
            response = self.session.get(url, headers=self.headers, params=params, timeout=self.timeout)
        except (requests.exceptions.ConnectionError, requests.exceptions.Timeout) as e:
            raise AccessRestrictedError() from e
        except requests.exceptions.RequestException as e:
            raise SourceFetchError(f"GitHub API error: {str(e)}") from e
        raise_for_github_status(response)
        return response

    def _get_json(self, url: str, params: Optional[Dict[str, str]] = None) -> Dict:
        response = self._request(url, params)
        try:
            return response.json()
        except ValueError as e:
            raise SourceFetchError(f"GitHub API returned invalid JSON for {url}") from e

    def _get_raw(self, branch: str, path: str) -> Optional[str]:
        """File contents; failures other than rate limiting skip the file."""
        try:
            return self._request(f"{GITHUB_RAW_URL}/{self.owner}/{self.repo}/{branch}/{path}").text
        except RateLimitError:
            raise
        except SourceFetchError as e:
            logger.warning(f"Failed to get content for {path}: {str(e)}")
            return None


def raise_for_github_status(response: requests.Response):
    """
    Map an unsuccessful GitHub response onto the source error hierarchy.

    Args:
        response: Response to check
    """
    status = response.status_code
    if status < 400:
        return

    if status == 401:
        raise InvalidCredentialsError()
    if status == 429:
        raise RateLimitError()
    if status == 403:
        if response.headers.get("X-RateLimit-Remaining") == "0" or "rate limit" in response.text.lower():
            raise RateLimitError()
        raise AccessRestrictedError()
    if status == 404:
        raise NotFoundError()
    raise SourceFetchError(f"GitHub API error: HTTP {status}")


def open_source(reference: str, token: Optional[str] = None, timeout: float = 15.0, max_files: int = 200):
    """
    Choose a source for a repository reference.

    Args:
        reference: GitHub URL or local directory
        token: GitHub token
        timeout: Request timeout in seconds
        max_files: Upper bound on files downloaded from GitHub

    Returns:
        Object with a fetch() method returning a RepositorySnapshot

    Raises:
        InvalidReferenceError: When the reference is neither
    """
    reference = (reference or "").strip()
    if "github.com" in reference:
        return GitHubSource(reference, token=token, timeout=timeout, max_files=max_files)
    if reference and os.path.isdir(reference):
        return LocalDirectorySource(reference)
    raise InvalidReferenceError()
