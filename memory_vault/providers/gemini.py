"""
Gemini-backed providers for embedding, extraction, and adjudication.

The core treats these as opaque async callables; nothing outside this
module knows about the SDK.
"""

from __future__ import annotations

import logging
from typing import Any

try:
    from google import genai
    from google.genai import types

    GENAI_AVAILABLE = True
except ImportError:
    GENAI_AVAILABLE = False

from utils.reliability.error_recovery import RETRY_PROVIDER, retry_async

from ..conversation import message_text
from ..models.memory import EventType, Memory
from ..retrieval.scorer import QueryContext

EXTRACTION_PROMPT = """You are a narrative memory extractor for a role-play between {character} and {user}.
Read the messages below and list the significant events as a JSON array.
Each event is an object with:
- "summary": one sentence describing what happened
- "event_type": one of {event_types}
- "characters_involved": names of the characters taking part
- "witnesses": names of everyone who saw or heard it
- "location": where it happened, or null
- "is_secret": true if only some characters know about it
- "known_by": for secrets, the names of those who know
- "importance": 1 (trivial) to 5 (story-changing)
- "emotional_tone": short words such as "tense" or "warm"
- "emotional_valence": -1 (very negative) to 1 (very positive)
- "emotional_impact": {{"Name": "emotion"}} for characters whose mood changed
- "relationship_impact": {{"A->B": {{"trust": 1, "tension": -1}}}} with deltas for
  trust, tension, respect, attraction, fear, loyalty, familiarity, and optionally
  "relationship_type"
- "promise": {{"from": "A", "to": "B", "content": "...", "deadline": null}} or null
- "goal": {{"character": "A", "goal": "...", "motivation": "..."}} or null
- "skill": {{"character": "A", "skill": "...", "category": "...", "source": "...",
  "teacher": null}} or null

Return [] when nothing significant happened.

Messages:
{messages}
"""

ADJUDICATION_PROMPT = """The conversation is currently about:
{query}

Candidate memories (id: summary):
{candidates}

Select only the memories that matter for the next reply, most relevant first.
Answer with a JSON array of memory ids, for example ["mem_1", "mem_2"].
"""


def format_messages(messages: list[dict[str, Any]]) -> str:
    lines = []
    for message in messages:
        name = message.get("name") or ("User" if message.get("is_user") else "Character")
        lines.append(f"[{message.get('id', '?')}] {name}: {message_text(message)}")
    return "\n".join(lines)


class GeminiProvider:
    """Async embedding, extraction, and adjudication through the Google GenAI SDK."""

    def __init__(
        self,
        api_key: str | None,
        extraction_model: str = "gemini-2.5-flash",
        embedding_model: str = "text-embedding-004",
        client: Any = None,
    ):
        self.extraction_model = extraction_model
        self.embedding_model = embedding_model
        self.logger = logging.getLogger("GeminiProvider")
        self.client = client

        if self.client is None and api_key:
            if not GENAI_AVAILABLE:
                self.logger.warning("google-genai not available, providers disabled")
            else:
                try:
                    self.client = genai.Client(api_key=api_key)
                    self.logger.info("🤖 Gemini provider initialized")
                except Exception as e:
                    self.logger.error("Failed to init Gemini client: %s", e)

    @property
    def available(self) -> bool:
        return self.client is not None

    async def embed(self, text: str) -> list[float] | None:
        """Embedding vector for ``text``, or None when unavailable or failed."""
        if not self.client or not text:
            return None
        result = await retry_async(
            self.client.aio.models.embed_content,
            model=self.embedding_model,
            contents=text,
            config=RETRY_PROVIDER,
            service_name="embedding",
        )
        if result is None or not result.embeddings:
            return None
        return [float(v) for v in result.embeddings[0].values]

    async def _generate(self, prompt: str, service_name: str) -> str:
        if not self.client:
            return ""

        async def call():
            return await self.client.aio.models.generate_content(
                model=self.extraction_model,
                contents=prompt,
                config=types.GenerateContentConfig(
                    temperature=0.1,  # Low temp for consistent extraction
                    response_mime_type="application/json",
                ),
            )

        response = await retry_async(call, config=RETRY_PROVIDER, service_name=service_name)
        if response is None:
            return ""
        return response.text or ""

    async def extract(
        self,
        messages: list[dict[str, Any]],
        character_name: str,
        user_name: str,
        batch_id: str,
    ) -> str:
        """Raw extraction text for one batch; empty string on failure."""
        prompt = EXTRACTION_PROMPT.format(
            character=character_name or "the character",
            user=user_name or "the user",
            event_types=", ".join(sorted(EventType.values())),
            messages=format_messages(messages),
        )
        self.logger.debug("Extracting batch %s (%d messages)", batch_id, len(messages))
        return await self._generate(prompt, "extraction")

    async def adjudicate(self, candidates: list[Memory], query: QueryContext) -> str:
        """Raw adjudication text; the pipeline parses it."""
        listing = "\n".join(f"{m.id}: {m.summary}" for m in candidates)
        prompt = ADJUDICATION_PROMPT.format(query=query.text, candidates=listing)
        return await self._generate(prompt, "adjudication")

    def get_stats(self) -> dict[str, Any]:
        return {
            "client_ready": self.available,
            "extraction_model": self.extraction_model,
            "embedding_model": self.embedding_model,
            "sdk_available": GENAI_AVAILABLE,
        }
