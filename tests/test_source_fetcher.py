"""
Tests for repository retrieval.
"""
import os
from unittest.mock import MagicMock

import pytest
import requests

from protocol_analyzer.errors import (
    AccessRestrictedError,
    InvalidCredentialsError,
    InvalidReferenceError,
    NotFoundError,
    RateLimitError,
    SourceFetchError,
)
from protocol_analyzer.services.source_fetcher import (
    GitHubSource,
    LocalDirectorySource,
    open_source,
    parse_github_url,
    raise_for_github_status,
)
from tests.conftest import PACKAGE_JSON, VAULT_SOLIDITY


def response(status=200, json_data=None, text="", headers=None):
    mock = MagicMock()
    mock.status_code = status
    mock.json.return_value = json_data
    mock.text = text
    mock.headers = headers or {}
    return mock


def github_session(responses):
    """Session whose get() answers by URL suffix."""
    session = MagicMock()

    def get(url, **kwargs):
        for suffix, answer in responses.items():
            if url.endswith(suffix):
                if isinstance(answer, Exception):
                    raise answer
                return answer
        return response(404)

    session.get.side_effect = get
    return session


REPO_INFO = {"name": "vault-protocol", "description": "Pooled vault", "default_branch": "main"}
TREE = {"tree": [
    {"path": "contracts/Vault.sol", "type": "blob"},
    {"path": "contracts", "type": "tree"},
    {"path": "README.md", "type": "blob"},
    {"path": "package.json", "type": "blob"},
    {"path": "node_modules/lib/Ownable.sol", "type": "blob"},
    {"path": "contracts/Missing.sol", "type": "blob"},
]}


class TestParseGithubUrl:

    @pytest.mark.parametrize("url", [
        "https://github.com/acme/vault",
        "https://github.com/acme/vault.git",
        "https://github.com/acme/vault/tree/main/contracts",
        "git@github.com:acme/vault.git",
    ])
    def test_valid(self, url):
        assert parse_github_url(url) == ("acme", "vault")

    def test_invalid(self):
        with pytest.raises(InvalidReferenceError):
            parse_github_url("https://gitlab.com/acme/vault")


class TestStatusMapping:

    @pytest.mark.parametrize("status,headers,text,error", [
        (401, {}, "Bad credentials", InvalidCredentialsError),
        (403, {"X-RateLimit-Remaining": "0"}, "", RateLimitError),
        (403, {}, "API rate limit exceeded for 1.2.3.4", RateLimitError),
        (403, {}, "Resource not accessible", AccessRestrictedError),
        (429, {}, "", RateLimitError),
        (404, {}, "Not Found", NotFoundError),
        (500, {}, "", SourceFetchError),
    ])
    def test_errors(self, status, headers, text, error):
        with pytest.raises(error):
            raise_for_github_status(response(status, text=text, headers=headers))

    def test_success_passes(self):
        raise_for_github_status(response(200))

    def test_messages_are_distinct(self):
        messages = {str(cls()) for cls in (RateLimitError, NotFoundError, InvalidCredentialsError, AccessRestrictedError)}
        assert len(messages) == 4


class TestGitHubSource:

    def test_fetch(self):
        session = github_session({
            "/repos/acme/vault": response(json_data=REPO_INFO),
            "/git/trees/main": response(json_data=TREE),
            "/main/contracts/Vault.sol": response(text=VAULT_SOLIDITY),
            "/main/package.json": response(text=PACKAGE_JSON),
        })
        snapshot = GitHubSource("https://github.com/acme/vault", token="t0k", session=session).fetch()

        assert snapshot.name == "vault-protocol"
        assert snapshot.description == "Pooled vault"
        # Missing.sol 404s and is skipped
        assert [f.path for f in snapshot.files] == ["contracts/Vault.sol", "package.json"]
        assert snapshot.files[0].kind == "solidity"
        assert session.get.call_args.kwargs["headers"]["Authorization"] == "Bearer t0k"

    def test_max_files(self):
        session = github_session({
            "/repos/acme/vault": response(json_data=REPO_INFO),
            "/git/trees/main": response(json_data=TREE),
            "/main/contracts/Vault.sol": response(text=VAULT_SOLIDITY),
        })
        snapshot = GitHubSource("https://github.com/acme/vault", max_files=1, session=session).fetch()
        assert [f.path for f in snapshot.files] == ["contracts/Vault.sol"]

    def test_repository_not_found(self):
        session = github_session({})
        with pytest.raises(NotFoundError):
            GitHubSource("https://github.com/acme/vault", session=session).fetch()

    def test_rate_limit_on_file_propagates(self):
        session = github_session({
            "/repos/acme/vault": response(json_data=REPO_INFO),
            "/git/trees/main": response(json_data=TREE),
            "/main/contracts/Vault.sol": response(429),
        })
        with pytest.raises(RateLimitError):
            GitHubSource("https://github.com/acme/vault", session=session).fetch()

    def test_network_error(self):
        session = github_session({"/repos/acme/vault": requests.exceptions.ConnectionError("down")})
        with pytest.raises(AccessRestrictedError):
            GitHubSource("https://github.com/acme/vault", session=session).fetch()


class TestLocalDirectorySource:

    def test_walk(self, tmp_path):
        (tmp_path / "contracts").mkdir()
        (tmp_path / "contracts" / "Vault.sol").write_text(VAULT_SOLIDITY, encoding="utf-8")
        (tmp_path / "package.json").write_text(PACKAGE_JSON, encoding="utf-8")
        (tmp_path / "README.md").write_text("# Vault", encoding="utf-8")
        (tmp_path / "node_modules" / "dep").mkdir(parents=True)
        (tmp_path / "node_modules" / "dep" / "Dep.sol").write_text("contract Dep {}", encoding="utf-8")

        snapshot = LocalDirectorySource(str(tmp_path)).fetch()

        assert snapshot.name == tmp_path.name
        assert sorted(f.path for f in snapshot.files) == [os.path.join("contracts", "Vault.sol"), "package.json"]

    def test_missing_directory(self, tmp_path):
        with pytest.raises(InvalidReferenceError):
            LocalDirectorySource(str(tmp_path / "absent")).fetch()


class TestOpenSource:

    def test_choices(self, tmp_path):
        assert isinstance(open_source("https://github.com/acme/vault"), GitHubSource)
        assert isinstance(open_source(str(tmp_path)), LocalDirectorySource)

    @pytest.mark.parametrize("reference", ["", "   ", "ftp://example.com/repo", "/definitely/not/here"])
    def test_invalid(self, reference):
        with pytest.raises(InvalidReferenceError):
            open_source(reference)
