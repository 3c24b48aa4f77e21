"""Pydantic schemas for stage input rules and gathered source documents."""

from enum import Enum

from pydantic import BaseModel, Field


class InputRuleType(str, Enum):
    """Where a stage input comes from."""

    CONTRIBUTION = "contribution"
    FEEDBACK = "feedback"
    DOCUMENT = "document"


class InputRule(BaseModel):
    """One declarative input requirement of a stage."""

    type: InputRuleType = Field(..., description="Source table family")
    stage_slug: str = Field(..., min_length=1, description="Stage the input was produced in")
    required: bool = Field(True, description="Missing data is an error when true")
    multiple: bool = Field(False, description="Keep every match instead of the latest one")
    section_header: str | None = Field(None, description="Header used when assembling prompts")
    document_key: str | None = Field(
        None, description="Specific document key; '*' or None matches any"
    )


class ProjectContext(BaseModel):
    """Project fields input gathering needs."""

    id: str
    user_id: str
    project_name: str | None = None


class SessionContext(BaseModel):
    """Session fields input gathering needs."""

    id: str
    project_id: str
    iteration_count: int | None = None


class SourceDocumentMetadata(BaseModel):
    """Labels attached to a gathered document."""

    display_name: str = Field(..., description="Human stage name")
    stage_slug: str
    header: str | None = Field(None, description="Section header from the rule")
    model_name: str | None = None
    document_key: str | None = None


class SourceDocument(BaseModel):
    """A downloaded, labelled input for prompt construction."""

    id: str
    type: InputRuleType
    content: str
    metadata: SourceDocumentMetadata
