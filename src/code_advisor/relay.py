"""Conversational relay - forwards chat turns to a provider and records them.

After each assistant reply, a trigger decides whether the reply reads like
a code recommendation; if so the extractor runs over it and the results
are attributed to the first open file.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Protocol

from .extractor import Suggestion, extract_suggestions
from .model import ChatProvider
from .models import CodeSuggestion
from .prompts import build_system_prompt, repository_context_prompt
from .rules import framework_hint, language_for_path
from .store import SuggestionStore

logger = logging.getLogger(__name__)

REPLY_EXCERPT_LENGTH = 500

DEFAULT_TRIGGER_KEYWORDS = (
    "يمكن تحسين",
    "أقترح",
    "يجب إصلاح",
    "مشكلة أمنية",
    "optimization",
    "bug fix",
    "security issue",
    "improvement",
)


class SuggestionTrigger(Protocol):
    def should_analyze(self, reply_text: str) -> bool: ...


class KeywordTrigger:
    """Fires when the reply contains any of a fixed list of phrases."""

    def __init__(self, keywords: tuple[str, ...] = DEFAULT_TRIGGER_KEYWORDS):
        self.keywords = tuple(k.lower() for k in keywords)

    def should_analyze(self, reply_text: str) -> bool:
        lower = reply_text.lower()
        return any(k in lower for k in self.keywords)


@dataclass
class RepositoryContext:
    repository_id: int
    current_files: list[str] = field(default_factory=list)
    # File name -> contents, shown to the model alongside the names
    file_contents: dict[str, str] = field(default_factory=dict)


@dataclass
class RelayReply:
    conversation_id: int
    response: str
    suggestions: list[CodeSuggestion] = field(default_factory=list)


class ChatRelay:
    def __init__(
        self,
        provider: ChatProvider,
        store: SuggestionStore,
        trigger: SuggestionTrigger | None = None,
    ):
        self.provider = provider
        self.store = store
        self.trigger = trigger or KeywordTrigger()

    def send(
        self,
        message: str,
        conversation_id: int | None = None,
        context: RepositoryContext | None = None,
    ) -> RelayReply:
        """Relay one user turn and return the assistant's answer."""
        repository = None
        if context is not None:
            repository = self.store.get_repository(context.repository_id)

        conversation = self.store.get_or_create_conversation(
            message,
            provider=self.provider.name,
            conversation_id=conversation_id,
            repository_id=repository.id if repository else None,
        )
        history = [
            {"role": m.role, "content": m.content}
            for m in self.store.list_messages(conversation.id)
        ]
        self.store.add_message(
            conversation,
            "user",
            message,
            metadata={"current_files": context.current_files} if context else None,
        )

        latest_run = self.store.latest_completed_run(repository.id) if repository else None
        system_prompt = build_system_prompt(
            repository_context_prompt(
                repository,
                context.current_files if context else None,
                latest_run,
                context.file_contents if context else None,
            )
        )

        logger.info("Relaying message to %s (conversation %s)", self.provider.name, conversation.id)
        response = self.provider.send(system_prompt, history, message)
        self.store.add_message(
            conversation, "assistant", response, metadata={"model": self.provider.model}
        )

        suggestions: list[CodeSuggestion] = []
        if context is not None and context.current_files and self.trigger.should_analyze(response):
            suggestions = self._record_suggestions(response, repository, context.current_files[0])

        return RelayReply(conversation_id=conversation.id, response=response, suggestions=suggestions)

    def _record_suggestions(self, response, repository, file_path: str) -> list[CodeSuggestion]:
        found = extract_suggestions(
            response,
            language=language_for_path(file_path),
            framework_hint=framework_hint(repository.framework),
            file_path=file_path,
            repository_id=repository.id,
        )
        if not found:
            found = [
                Suggestion(
                    suggestion_type="improvement",
                    title="AI suggestion",
                    description=response[:REPLY_EXCERPT_LENGTH],
                    priority="medium",
                    rule_id="chat-reply",
                    file_path=file_path,
                    repository_id=repository.id,
                )
            ]
        logger.info("Recording %d suggestions from chat reply for %s", len(found), file_path)
        return self.store.add_suggestions(found, repository.id, file_path)
