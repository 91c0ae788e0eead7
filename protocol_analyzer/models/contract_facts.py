"""
Models for source files, extracted contract facts and documentation digests.
"""
from typing import List, Literal

from pydantic import BaseModel, ConfigDict, Field

Visibility = Literal["public", "private", "internal", "external"]
Mutability = Literal["view", "pure", "payable", "nonpayable"]
FileKind = Literal["solidity", "javascript", "typescript", "markdown", "json", "other"]


class FunctionFact(BaseModel):
    """A function declaration found in a contract file."""
    model_config = ConfigDict(frozen=True)

    name: str
    visibility: Visibility = "external"
    mutability: Mutability = "nonpayable"
    parameters: List[str] = Field(default_factory=list)
    returns: List[str] = Field(default_factory=list)
    modifiers: List[str] = Field(default_factory=list)


class EventFact(BaseModel):
    """An event declaration."""
    model_config = ConfigDict(frozen=True)

    name: str
    parameters: List[str] = Field(default_factory=list)


class ModifierFact(BaseModel):
    """A modifier declaration."""
    model_config = ConfigDict(frozen=True)

    name: str
    parameters: List[str] = Field(default_factory=list)


class ContractFacts(BaseModel):
    """Structural summary of the first contract declared in one file."""
    model_config = ConfigDict(frozen=True)

    file_name: str
    contract_name: str
    functions: List[FunctionFact] = Field(default_factory=list)
    events: List[EventFact] = Field(default_factory=list)
    modifiers: List[ModifierFact] = Field(default_factory=list)
    imports: List[str] = Field(default_factory=list)
    inheritance: List[str] = Field(default_factory=list)
    complexity_score: float = Field(3.0, ge=0, le=10)


class SourceFile(BaseModel):
    """A file retrieved from a source reference."""
    path: str
    content: str
    kind: FileKind = "other"

    @property
    def name(self) -> str:
        return self.path.replace("\\", "/").rsplit("/", 1)[-1]


class RepositorySnapshot(BaseModel):
    """Everything the pipeline needs from a source reference."""
    name: str
    description: str = ""
    files: List[SourceFile] = Field(default_factory=list)


class DocumentSection(BaseModel):
    """A heading and the text that follows it."""
    title: str
    content: str
    level: int = Field(1, ge=1, le=6)


class DocumentDigest(BaseModel):
    """Normalized documentation page."""
    title: str
    content: str = ""
    sections: List[DocumentSection] = Field(default_factory=list)
    links: List[str] = Field(default_factory=list)
    images: List[str] = Field(default_factory=list)
