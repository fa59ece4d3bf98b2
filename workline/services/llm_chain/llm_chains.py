# workline/services/llm_chain/llm_chains.py
from __future__ import annotations

import asyncio
from typing import Any, Dict, List, Optional, Type

import httpx
from openai import (
    APIConnectionError,
    APITimeoutError,
    AsyncOpenAI,
    AuthenticationError,
    BadRequestError,
    InternalServerError,
    RateLimitError,
)
from pydantic import BaseModel

from workline.config import ServiceConfigs
from workline.utils.logger import get_logger
from .llm_utils import (
    extract_assistant_text_chat,
    extract_parsed_chat,
    json_schema_from_pydantic,
    pydantic_parse,
)

logger = get_logger(__name__)


class LLMChains:
    """Thin async wrapper over an OpenAI-compatible chat completions endpoint."""

    def __init__(
        self,
        settings: Optional[ServiceConfigs] = None,
        *,
        client: Optional[AsyncOpenAI] = None,
        model: Optional[str] = None,
    ):
        settings = settings or ServiceConfigs()
        self.model = model or settings.llm_model
        self.temperature = float(settings.llm_temperature or 0.0)
        self.max_tokens = int(settings.max_token) or 256
        self.request_timeout = float(settings.llm_request_timeout)
        self.client = client or AsyncOpenAI(
            base_url=settings.llm_base_url,
            api_key=settings.llm_api_key or "missing",
            timeout=httpx.Timeout(self.request_timeout, connect=10.0),
            max_retries=1,
        )

    async def aclose(self) -> None:
        await self.client.close()

    # ====================================================
    # Low-level SDK calls
    # ====================================================
    async def chat_completions(self, **kwargs) -> Any:
        return await asyncio.wait_for(
            self.client.chat.completions.create(**kwargs), timeout=self.request_timeout
        )

    # =====================================================
    # Structured output (Pydantic)
    # =====================================================
    async def chat_completions_parse(
        self,
        messages: List[Dict[str, Any]],
        *,
        pydantic_model: Type[BaseModel],
        max_tokens: Optional[int] = None,
        strict: bool = True,
    ) -> BaseModel:
        """
        1) Native: client.chat.completions.parse(..., response_format=Model)
        2) When that is unsupported or rejected: .create with a JSON schema
           derived from the model, then parse the text manually.
        """
        try:
            resp = await asyncio.wait_for(
                self.client.chat.completions.parse(
                    model=self.model,
                    messages=messages,  # type: ignore
                    response_format=pydantic_model,
                    temperature=self.temperature,
                    max_tokens=max_tokens or self.max_tokens,
                ),
                timeout=self.request_timeout,
            )
            parsed = extract_parsed_chat(resp)
            if parsed is not None:
                return parsed
        except (AttributeError, TypeError) as e:
            logger.debug("chat.completions.parse unavailable, falling back. err=%s", e)
        except (
            BadRequestError,
            RateLimitError,
            AuthenticationError,
            APIConnectionError,
            InternalServerError,
            APITimeoutError,
        ) as e:
            logger.info("chat.parse error (%s), trying create+schema.", type(e).__name__)

        resp = await self.chat_completions(
            model=self.model,
            messages=messages,
            response_format=json_schema_from_pydantic(pydantic_model, strict=strict),
            temperature=self.temperature,
            max_tokens=max_tokens or self.max_tokens,
        )
        text = extract_assistant_text_chat(resp)
        if not text:
            raise ValueError("empty reply from the model")
        return pydantic_parse(pydantic_model, text)
