"""SQLModel-backed storage for suggestions, analysis runs and chats."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from pathlib import Path
from typing import Any

from sqlalchemy.engine import Engine
from sqlmodel import Session, SQLModel, create_engine, select

from .config import load_settings
from .extractor import Suggestion
from .models import (
    CodeAnalysisRun,
    CodeSuggestion,
    Conversation,
    Message,
    Repository,
    check_transition,
    utcnow,
)

logger = logging.getLogger(__name__)

TITLE_LENGTH = 50

_engine: Engine | None = None


class NotFoundError(Exception):
    """Requested record does not exist."""


def get_engine(database_url: str | None = None) -> Engine:
    global _engine
    if _engine is None:
        url = database_url or load_settings().database_url
        connect_args: dict[str, object] = {}
        if url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
            if url.startswith("sqlite:///") and url != "sqlite:///:memory:":
                Path(url[len("sqlite:///"):]).parent.mkdir(parents=True, exist_ok=True)
        _engine = create_engine(url, connect_args=connect_args, echo=False)
    return _engine


def reset_engine() -> None:
    global _engine
    if _engine is not None:
        _engine.dispose()
    _engine = None


def init_db(engine: Engine | None = None) -> Engine:
    engine = engine or get_engine()
    SQLModel.metadata.create_all(engine)
    return engine


def conversation_title(message: str) -> str:
    title = message[:TITLE_LENGTH]
    return title + "..." if len(message) > TITLE_LENGTH else title


class SuggestionStore:
    """Insert-only suggestion log plus run and conversation bookkeeping."""

    def __init__(self, session: Session):
        self.session = session

    # --- repositories ---

    def add_repository(
        self,
        name: str,
        framework: str | None = None,
        description: str = "",
        root_path: str | None = None,
    ) -> Repository:
        repo = Repository(
            name=name,
            framework=framework,
            description=description,
            root_path=root_path,
        )
        return self._save(repo)

    def get_repository(self, repository_id: int) -> Repository:
        repo = self.session.get(Repository, repository_id)
        if repo is None:
            raise NotFoundError(f"Repository {repository_id} not found")
        return repo

    def find_repository(self, root_path: str) -> Repository | None:
        return self.session.exec(
            select(Repository).where(Repository.root_path == root_path)
        ).first()

    # --- suggestions ---

    def add_suggestions(
        self,
        suggestions: Iterable[Suggestion],
        repository_id: int,
        file_path: str | None = None,
    ) -> list[CodeSuggestion]:
        """Append extracted suggestions as pending rows."""
        rows = []
        for s in suggestions:
            row = CodeSuggestion(
                repository_id=repository_id,
                file_path=file_path or s.file_path or "",
                suggestion_type=s.suggestion_type,
                title=s.title,
                description=s.description,
                code_snippet=s.code_snippet or None,
                suggested_fix=s.suggested_fix or None,
                priority=s.priority,
                status="pending",
                created_by_ai=s.created_by_ai,
                line=s.line,
                rule_id=s.rule_id,
            )
            self.session.add(row)
            rows.append(row)
        self.session.commit()
        for row in rows:
            self.session.refresh(row)
        return rows

    def get_suggestion(self, suggestion_id: int) -> CodeSuggestion:
        row = self.session.get(CodeSuggestion, suggestion_id)
        if row is None:
            raise NotFoundError(f"Suggestion {suggestion_id} not found")
        return row

    def list_suggestions(
        self,
        repository_id: int | None = None,
        status: str | None = None,
        file_path: str | None = None,
    ) -> list[CodeSuggestion]:
        query = select(CodeSuggestion)
        if repository_id is not None:
            query = query.where(CodeSuggestion.repository_id == repository_id)
        if status is not None:
            query = query.where(CodeSuggestion.status == status)
        if file_path is not None:
            query = query.where(CodeSuggestion.file_path == file_path)
        return list(self.session.exec(query.order_by(CodeSuggestion.id)).all())

    def apply_suggestion(self, suggestion_id: int) -> CodeSuggestion:
        return self._set_status(suggestion_id, "applied")

    def dismiss_suggestion(self, suggestion_id: int) -> CodeSuggestion:
        return self._set_status(suggestion_id, "dismissed")

    def _set_status(self, suggestion_id: int, status: str) -> CodeSuggestion:
        row = self.get_suggestion(suggestion_id)
        check_transition("suggestion", row.status, status)
        row.status = status
        return self._save(row)

    # --- analysis runs ---

    def start_run(self, repository_id: int, analysis_type: str = "full_scan") -> CodeAnalysisRun:
        run = CodeAnalysisRun(
            repository_id=repository_id,
            analysis_type=analysis_type,
            status="running",
        )
        run = self._save(run)
        logger.info("Started %s analysis run %s for repository %s", analysis_type, run.id, repository_id)
        return run

    def complete_run(
        self,
        run: CodeAnalysisRun,
        results: dict[str, Any],
        issues_found: int,
        suggestions_count: int,
    ) -> CodeAnalysisRun:
        check_transition("run", run.status, "completed")
        run.status = "completed"
        run.results = results
        run.issues_found = issues_found
        run.suggestions_count = suggestions_count
        run.completed_at = utcnow()
        return self._save(run)

    def fail_run(self, run: CodeAnalysisRun, error: str) -> CodeAnalysisRun:
        check_transition("run", run.status, "failed")
        run.status = "failed"
        run.results = {"error": error}
        run.completed_at = utcnow()
        return self._save(run)

    def get_run(self, run_id: int) -> CodeAnalysisRun:
        run = self.session.get(CodeAnalysisRun, run_id)
        if run is None:
            raise NotFoundError(f"Analysis run {run_id} not found")
        return run

    def latest_completed_run(self, repository_id: int) -> CodeAnalysisRun | None:
        return self.session.exec(
            select(CodeAnalysisRun)
            .where(CodeAnalysisRun.repository_id == repository_id)
            .where(CodeAnalysisRun.status == "completed")
            .order_by(CodeAnalysisRun.completed_at.desc(), CodeAnalysisRun.id.desc())
        ).first()

    # --- conversations ---

    def get_or_create_conversation(
        self,
        message: str,
        provider: str,
        conversation_id: int | None = None,
        repository_id: int | None = None,
    ) -> Conversation:
        """Load a conversation by id, or start a new one titled from message."""
        if conversation_id is not None:
            existing = self.session.get(Conversation, conversation_id)
            if existing is not None:
                return existing
            logger.warning("Conversation %s not found, starting a new one", conversation_id)
        conversation = Conversation(
            title=conversation_title(message),
            provider=provider,
            repository_id=repository_id,
        )
        return self._save(conversation)

    def add_message(
        self,
        conversation: Conversation,
        role: str,
        content: str,
        metadata: dict[str, Any] | None = None,
    ) -> Message:
        msg = Message(
            conversation_id=conversation.id,
            role=role,
            content=content,
            metadata_json=metadata,
        )
        conversation.updated_at = utcnow()
        self.session.add(conversation)
        return self._save(msg)

    def list_messages(self, conversation_id: int) -> list[Message]:
        return list(
            self.session.exec(
                select(Message)
                .where(Message.conversation_id == conversation_id)
                .order_by(Message.id)
            ).all()
        )

    def _save(self, obj):
        self.session.add(obj)
        self.session.commit()
        self.session.refresh(obj)
        return obj
