"""LLM service for the estimate agent.

Thin LangChain/OpenAI wrapper used by the optional category fallback and by
the retrieval answer step.
"""

import json
from typing import Dict, Any, Optional, List

import structlog
from langchain_openai import ChatOpenAI
from langchain_core.messages import BaseMessage, HumanMessage, SystemMessage

from config.settings import settings
from config.errors import LLMError, ErrorCode

logger = structlog.get_logger()

JSON_INSTRUCTION = (
    "IMPORTANT: You MUST respond with valid JSON only. "
    "No markdown, no explanation, just JSON."
)


def _strip_code_fence(content: str) -> str:
    content = content.strip()
    if content.startswith("```json"):
        content = content[7:]
    elif content.startswith("```"):
        content = content[3:]
    if content.endswith("```"):
        content = content[:-3]
    return content.strip()


class LLMService:
    """Chat model wrapper with token accounting and error mapping."""

    def __init__(
        self,
        model: Optional[str] = None,
        temperature: Optional[float] = None,
        api_key: Optional[str] = None,
        client: Optional[ChatOpenAI] = None,
    ):
        """Initialize LLMService.

        Args:
            model: Model name (default from settings).
            temperature: Sampling temperature (default from settings).
            api_key: OpenAI API key (default from settings).
            client: Preconfigured chat model, mainly for tests.
        """
        self.model = model or settings.llm_model
        self.temperature = temperature if temperature is not None else settings.llm_temperature
        self._api_key = api_key
        self._client = client
        self._total_tokens_used = 0
        self._call_count = 0

    @property
    def api_key(self) -> Optional[str]:
        if self._api_key is None:
            self._api_key = settings.openai_api_key
        return self._api_key

    @property
    def client(self) -> ChatOpenAI:
        """Get the ChatOpenAI client (lazy initialization)."""
        if self._client is None:
            self._client = ChatOpenAI(
                model=self.model,
                temperature=self.temperature,
                api_key=self.api_key,
            )
        return self._client

    @property
    def total_tokens_used(self) -> int:
        return self._total_tokens_used

    @property
    def call_count(self) -> int:
        return self._call_count

    async def generate(
        self,
        messages: List[BaseMessage],
        max_tokens: Optional[int] = None,
    ) -> Dict[str, Any]:
        """Generate a response from the chat model.

        Returns:
            Dict with ``content`` and ``tokens_used``.

        Raises:
            LLMError: If the provider call fails.
        """
        kwargs = {}
        if max_tokens:
            kwargs["max_tokens"] = max_tokens

        try:
            response = await self.client.ainvoke(messages, **kwargs)
        except Exception as e:
            raise self._map_error(e)

        metadata = getattr(response, "response_metadata", None) or {}
        usage = metadata.get("token_usage") or {}
        tokens_used = usage.get("total_tokens", 0) or 0
        self._total_tokens_used += tokens_used
        self._call_count += 1

        logger.info(
            "llm_generated",
            model=self.model,
            tokens_used=tokens_used,
            content_length=len(response.content),
        )
        return {"content": response.content, "tokens_used": tokens_used}

    def _map_error(self, error: Exception) -> LLMError:
        error_msg = str(error)
        lowered = error_msg.lower()
        logger.error("llm_generation_failed", model=self.model, error=error_msg)

        if "rate_limit" in lowered or "rate limit" in lowered:
            return LLMError(
                "OpenAI rate limit exceeded",
                code=ErrorCode.LLM_RATE_LIMIT,
                details={"original_error": error_msg},
            )
        if "context_length" in lowered or "maximum context" in lowered:
            return LLMError(
                "Input too long for model context",
                code=ErrorCode.LLM_CONTEXT_TOO_LONG,
                details={"original_error": error_msg},
            )
        return LLMError(
            f"LLM generation failed: {error_msg}",
            details={"original_error": error_msg},
        )

    async def generate_with_system_prompt(
        self,
        system_prompt: str,
        user_message: str,
        max_tokens: Optional[int] = None,
    ) -> Dict[str, Any]:
        messages = [
            SystemMessage(content=system_prompt),
            HumanMessage(content=user_message),
        ]
        return await self.generate(messages, max_tokens)

    async def generate_json(
        self,
        system_prompt: str,
        user_message: str,
        max_tokens: Optional[int] = None,
    ) -> Dict[str, Any]:
        """Generate a response and parse it as JSON.

        Markdown code fences around the payload are tolerated.

        Raises:
            LLMError: If the response is not valid JSON.
        """
        result = await self.generate_with_system_prompt(
            f"{system_prompt}\n\n{JSON_INSTRUCTION}",
            user_message,
            max_tokens,
        )

        try:
            parsed = json.loads(_strip_code_fence(result["content"]))
        except json.JSONDecodeError as e:
            raise LLMError(
                "LLM did not return valid JSON",
                details={
                    "parse_error": str(e),
                    "raw_content": result["content"][:500],
                },
            )

        return {"content": parsed, "tokens_used": result["tokens_used"]}
