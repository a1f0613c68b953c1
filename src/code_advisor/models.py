"""Persisted records: repositories, suggestions, analysis runs, chats."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import JSON, Column, DateTime, Text
from sqlmodel import Field, SQLModel

SUGGESTION_STATUSES = ("pending", "applied", "dismissed")
RUN_STATUSES = ("running", "completed", "failed")

# Allowed status moves. Anything not listed is terminal.
SUGGESTION_TRANSITIONS = {"pending": {"applied", "dismissed"}}
RUN_TRANSITIONS = {"running": {"completed", "failed"}}


class InvalidTransitionError(Exception):
    """A record was asked to leave a terminal status."""


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def check_transition(kind: str, current: str, target: str) -> None:
    table = SUGGESTION_TRANSITIONS if kind == "suggestion" else RUN_TRANSITIONS
    if target not in table.get(current, set()):
        raise InvalidTransitionError(
            f"Cannot move {kind} from {current!r} to {target!r}"
        )


class Repository(SQLModel, table=True):
    __tablename__ = "repositories"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(index=True, max_length=255)
    description: str = Field(default="", sa_column=Column(Text, nullable=False, default=""))
    framework: Optional[str] = Field(default=None, max_length=64)
    root_path: Optional[str] = Field(default=None, max_length=1024)
    created_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )


class CodeSuggestion(SQLModel, table=True):
    __tablename__ = "code_suggestions"

    id: Optional[int] = Field(default=None, primary_key=True)
    repository_id: int = Field(foreign_key="repositories.id", index=True)
    file_path: str = Field(index=True, max_length=1024)
    suggestion_type: str = Field(max_length=32)
    title: str = Field(max_length=255)
    description: str = Field(sa_column=Column(Text, nullable=False))
    code_snippet: Optional[str] = Field(default=None, sa_column=Column(Text, nullable=True))
    suggested_fix: Optional[str] = Field(default=None, sa_column=Column(Text, nullable=True))
    priority: str = Field(default="medium", max_length=16)
    status: str = Field(default="pending", index=True, max_length=16)
    created_by_ai: bool = Field(default=True)
    line: Optional[int] = Field(default=None)
    rule_id: Optional[str] = Field(default=None, max_length=64)
    created_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )


class CodeAnalysisRun(SQLModel, table=True):
    __tablename__ = "code_analysis"

    id: Optional[int] = Field(default=None, primary_key=True)
    repository_id: int = Field(foreign_key="repositories.id", index=True)
    analysis_type: str = Field(default="full_scan", max_length=64)
    status: str = Field(default="running", index=True, max_length=16)
    results: Optional[dict] = Field(default=None, sa_column=Column(JSON, nullable=True))
    issues_found: int = Field(default=0, ge=0)
    suggestions_count: int = Field(default=0, ge=0)
    started_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )
    completed_at: Optional[datetime] = Field(
        default=None,
        sa_column=Column(DateTime(timezone=True), nullable=True),
    )


class Conversation(SQLModel, table=True):
    __tablename__ = "ai_conversations"

    id: Optional[int] = Field(default=None, primary_key=True)
    title: str = Field(max_length=64)
    provider: str = Field(max_length=32)
    repository_id: Optional[int] = Field(default=None, foreign_key="repositories.id")
    created_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )
    updated_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )


class Message(SQLModel, table=True):
    __tablename__ = "ai_messages"

    id: Optional[int] = Field(default=None, primary_key=True)
    conversation_id: int = Field(foreign_key="ai_conversations.id", index=True)
    role: str = Field(max_length=16)
    content: str = Field(sa_column=Column(Text, nullable=False))
    metadata_json: Optional[dict] = Field(default=None, sa_column=Column(JSON, nullable=True))
    created_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )
