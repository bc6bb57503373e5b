"""Adapter around the OpenAI threads API with response reshaping helpers."""

from __future__ import annotations

import logging
import secrets
import time
from typing import Any, Dict, Iterable, List, Optional, Set

import openai

from .errors import UpstreamFailure, UpstreamNotFound
from .models import ContentBlock, ConversationSummary, Message, ModelSummary, TextValue

logger = logging.getLogger(__name__)

NO_CONTENT_PLACEHOLDER = "No content found"
TITLE_SUFFIX_CHARS = 6
KNOWN_ROLES = {"user", "assistant"}


# -----------------------------
# Pure mapping helpers
# -----------------------------

def _field(obj: Any, name: str, default: Any = None) -> Any:
    """Read ``name`` from an SDK object or a plain dict."""
    if obj is None:
        return default
    if isinstance(obj, dict):
        return obj.get(name, default)
    return getattr(obj, name, default)


def synthesize_title(thread_id: str) -> str:
    suffix = thread_id[-TITLE_SUFFIX_CHARS:] or "new"
    return f"Thread {suffix}"


def summary_from_thread(thread: Any, title: Optional[str] = None) -> ConversationSummary:
    """Build a :class:`ConversationSummary` from an upstream thread.

    Title precedence: the caller's title, then ``metadata["title"]`` on the
    thread, then ``"Thread <id suffix>"``. ``created_at`` falls back to now.
    """
    thread_id = str(_field(thread, "id", ""))
    metadata = _field(thread, "metadata") or {}
    chosen = (title or "").strip() or str(_field(metadata, "title") or "").strip()
    created_at = _field(thread, "created_at")
    return ConversationSummary(
        id=thread_id,
        title=chosen or synthesize_title(thread_id),
        created_at=int(created_at) if created_at else int(time.time()),
    )


def _first_text(message: Any) -> Optional[str]:
    content = _field(message, "content") or []
    if not content:
        return None
    block = content[0]
    if _field(block, "type") != "text":
        return None
    text = _field(block, "text")
    if text is None:
        return None
    value = _field(text, "value")
    return value if isinstance(value, str) else None


def format_message(message: Any) -> Message:
    """Reshape one upstream message into ``{id, role, content:[{text:{value}}]}``."""
    msg_id = str(_field(message, "id", ""))
    value = _first_text(message)
    if value is None:
        logger.warning("Message %s has unexpected content structure: %r", msg_id, _field(message, "content"))
        value = NO_CONTENT_PLACEHOLDER

    role = _field(message, "role")
    return Message(
        id=msg_id,
        role=role if role in KNOWN_ROLES else "other",
        content=[ContentBlock(text=TextValue(value=value))],
    )


def format_messages(messages: List[Any]) -> List[Message]:
    return [format_message(m) for m in messages]


def format_model(model: Any) -> ModelSummary:
    return ModelSummary(
        id=str(_field(model, "id", "")),
        owned_by=str(_field(model, "owned_by", "") or ""),
        created=int(_field(model, "created", 0) or 0),
    )


def _translate(exc: Exception, *, not_found_message: str) -> Exception:
    """Map an SDK exception to the gateway's error taxonomy."""
    if isinstance(exc, openai.APIStatusError) and exc.status_code == 404:
        return UpstreamNotFound(not_found_message, status_code=404)
    status = getattr(exc, "status_code", None)
    return UpstreamFailure(str(exc), status_code=status)


# -----------------------------
# Adapters
# -----------------------------

class ThreadsAdapter:
    """Thin async wrapper around :class:`openai.AsyncOpenAI` threads calls.

    ``client`` only needs ``beta.threads.create``,
    ``beta.threads.messages.list`` and ``models.list``; tests pass fakes.
    """

    mode = "openai"

    def __init__(self, client: Any) -> None:
        self._client = client

    async def create_conversation(self, title: Optional[str] = None) -> ConversationSummary:
        title = (title or "").strip() or None
        kwargs: Dict[str, Any] = {}
        if title:
            kwargs["metadata"] = {"title": title}
        try:
            thread = await self._client.beta.threads.create(**kwargs)
        except openai.OpenAIError as e:
            raise _translate(e, not_found_message="Thread creation endpoint not found.") from e
        summary = summary_from_thread(thread, title)
        logger.info("Created thread %s (%s)", summary.id, summary.title)
        return summary

    async def list_messages(self, conversation_id: str) -> List[Message]:
        try:
            page = await self._client.beta.threads.messages.list(conversation_id, order="asc")
        except openai.OpenAIError as e:
            raise _translate(e, not_found_message=f"Thread with ID {conversation_id} not found.") from e
        data = _field(page, "data") or []
        logger.debug("Thread %s returned %d message(s)", conversation_id, len(data))
        return format_messages(list(data))

    async def list_models(self) -> List[ModelSummary]:
        try:
            page = await self._client.models.list()
        except openai.OpenAIError as e:
            raise _translate(e, not_found_message="Models endpoint not found.") from e
        models = [format_model(m) for m in (_field(page, "data") or [])]
        return sorted(models, key=lambda m: m.id)


class OfflineAdapter:
    """Stand-in used when no API key is configured.

    Creates ids locally and knows only the threads it created, plus any
    ids handed to :meth:`remember` at startup; those have no messages.
    """

    mode = "offline"

    def __init__(self) -> None:
        self._known: Set[str] = set()

    def remember(self, thread_ids: Iterable[str]) -> None:
        """Treat ``thread_ids`` (e.g. from the store after a restart) as known."""
        self._known.update(thread_ids)

    async def create_conversation(self, title: Optional[str] = None) -> ConversationSummary:
        thread = {"id": f"thread_{secrets.token_hex(12)}", "created_at": int(time.time())}
        self._known.add(thread["id"])
        return summary_from_thread(thread, title)

    async def list_messages(self, conversation_id: str) -> List[Message]:
        if conversation_id not in self._known:
            raise UpstreamNotFound(f"Thread with ID {conversation_id} not found.", status_code=404)
        return []

    async def list_models(self) -> List[ModelSummary]:
        return []


def create_from_config(cfg: Dict[str, Any]) -> ThreadsAdapter | OfflineAdapter:
    """Build the adapter from the ``upstream`` config section."""
    up_cfg = (cfg or {}).get("upstream", {}) if isinstance(cfg, dict) else {}
    api_key = up_cfg.get("api_key")
    logger.info("Initializing OpenAI client with API key: %s", "Key exists" if api_key else "No key found")
    if not api_key:
        logger.warning("No upstream API key configured; serving offline conversations only.")
        return OfflineAdapter()

    params: Dict[str, Any] = {
        "api_key": api_key,
        "base_url": up_cfg.get("base_url"),
        "timeout": up_cfg.get("timeout"),
        "max_retries": up_cfg.get("max_retries"),
    }
    # Let the SDK keep its own defaults for anything unset.
    params = {k: v for k, v in params.items() if v is not None}
    return ThreadsAdapter(openai.AsyncOpenAI(**params))
