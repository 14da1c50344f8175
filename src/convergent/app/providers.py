from __future__ import annotations

import hashlib
import logging
import math
import os
import re
from typing import List, Optional

import httpx

from ..sim.core.rng import DeterministicRng

logger = logging.getLogger(__name__)

_WORD = re.compile(r"[a-z0-9']+")


class ProviderError(RuntimeError):
    pass


class ScriptedGenerator:
    """Offline generator for dry runs: short canned replies with a vote tag.

    Replies are drawn from a small phrase bank with its own seeded random
    source, so a seeded run is reproducible end to end without network access.
    """

    OPENERS = [
        "I hear the concern, but",
        "Building on that,",
        "Let me push back a little:",
        "Here's a concrete angle:",
        "Honestly,",
        "From where I stand,",
    ]
    CLAIMS = [
        "we should pilot it in one region before scaling.",
        "the costs land on the people with the least slack.",
        "a phased rollout keeps the upside and caps the risk.",
        "nobody has shown the numbers actually add up.",
        "incentives matter more than the headline policy.",
        "we keep arguing past each other about the goal itself.",
    ]
    PROPOSALS = [
        "Run a regional pilot",
        "Phase it in over five years",
        "Fund an independent study first",
    ]

    def __init__(self, seed: Optional[int] = None, vote: bool = True, dimensions: int = 32):
        self._rng = DeterministicRng(seed)
        self._vote = vote
        self._dimensions = dimensions
        self.calls = 0

    async def __call__(self, system_prompt: str, user_prompt: str, temperature: float, max_tokens: int) -> str:
        self.calls += 1
        text = f"{self._rng.choice(self.OPENERS)} {self._rng.choice(self.CLAIMS)}"
        if not self._vote:
            return text
        stance = self._rng.weighted_choice([1, 0, -1], [0.55, 0.2, 0.25])
        proposal = self._rng.choice(self.PROPOSALS)
        return f'{text}\n<META stance={stance} proposal="{proposal}">'

    async def embed(self, text: str) -> List[float]:
        """Hashed bag-of-words vector; similar wording gives similar vectors."""
        vector = [0.0] * self._dimensions
        for word in _WORD.findall(text.lower()):
            digest = hashlib.sha1(word.encode("utf-8")).digest()
            vector[digest[0] % self._dimensions] += 1.0
        norm = math.sqrt(sum(value * value for value in vector))
        return vector if norm == 0.0 else [value / norm for value in vector]


class OpenAIChatGenerator:
    """Generation and embedding calls against an OpenAI-compatible HTTP API."""

    def __init__(
        self,
        model: str = "gpt-4o-mini",
        *,
        api_key: Optional[str] = None,
        base_url: str = "https://api.openai.com/v1",
        embedding_model: str = "text-embedding-3-small",
        timeout: float = 60.0,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.model = model
        self.embedding_model = embedding_model
        self.base_url = base_url.rstrip("/")
        self._api_key = api_key if api_key is not None else os.environ.get("OPENAI_API_KEY", "")
        self._client = client if client is not None else httpx.AsyncClient(timeout=timeout)

    def _headers(self) -> dict:
        if not self._api_key:
            raise ProviderError("no API key configured (set OPENAI_API_KEY)")
        return {"Authorization": f"Bearer {self._api_key}"}

    async def _post(self, path: str, payload: dict) -> dict:
        try:
            resp = await self._client.post(f"{self.base_url}{path}", json=payload, headers=self._headers())
            resp.raise_for_status()
            return resp.json()
        except httpx.HTTPStatusError as exc:
            raise ProviderError(f"{path} returned HTTP {exc.response.status_code}") from exc
        except (httpx.HTTPError, ValueError) as exc:
            raise ProviderError(f"{path} request failed: {exc}") from exc

    async def __call__(self, system_prompt: str, user_prompt: str, temperature: float, max_tokens: int) -> str:
        data = await self._post(
            "/chat/completions",
            {
                "model": self.model,
                "temperature": temperature,
                "max_tokens": max_tokens,
                "messages": [
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
            },
        )
        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as exc:
            raise ProviderError("chat completion payload had no message content") from exc
        logger.debug("chat completion: %d chars", len(content or ""))
        return (content or "").strip()

    async def embed(self, text: str) -> List[float]:
        data = await self._post("/embeddings", {"model": self.embedding_model, "input": text})
        try:
            return [float(value) for value in data["data"][0]["embedding"]]
        except (KeyError, IndexError, TypeError, ValueError) as exc:
            raise ProviderError("embedding payload had no vector") from exc

    async def aclose(self) -> None:
        await self._client.aclose()
