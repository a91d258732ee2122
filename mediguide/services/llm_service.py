"""
LLM service wrapping a LangChain chat model.
Adds concurrency limiting, per-attempt timeouts, rate-limit retries and
JSON extraction for prompts that ask for structured answers.
"""

import re
import json
import time
import asyncio
from typing import Type, TypeVar

from pydantic import BaseModel, ValidationError
from langchain_core.language_models.chat_models import BaseChatModel
from langchain_core.messages import BaseMessage
from langchain_openai import ChatOpenAI
from langchain_google_genai import ChatGoogleGenerativeAI

from mediguide.errors import ParseError, RemoteRateLimitedError, RemoteUnavailableError
from mediguide.services.resilience import call_with_retry, is_rate_limited
from mediguide.utils.logger import get_logger

logger = get_logger(__name__)

SchemaT = TypeVar("SchemaT", bound=BaseModel)

CODE_FENCE_PATTERN = re.compile(r"```(?:json)?\s*|\s*```")


class LLMError(RemoteUnavailableError):
    """Base exception for LLM-related errors."""


class LLMTimeoutError(LLMError):
    """Raised when LLM call exceeds timeout threshold."""


def create_llm(
    model_name: str, api_key: str, temperature: float = 0
) -> BaseChatModel:
    """
    Factory function to create chat model instances.

    Args:
        model_name: Model identifier (e.g., "gemini-2.5-flash", "gpt-4o-mini")
        api_key: API key for the provider
        temperature: Sampling temperature (0 for deterministic)

    Returns:
        Configured chat model instance

    Raises:
        ValueError: If model provider is not supported
    """
    if "gemini" in model_name:
        return ChatGoogleGenerativeAI(
            google_api_key=api_key, model=model_name, temperature=temperature
        )
    elif "gpt" in model_name:
        return ChatOpenAI(
            api_key=api_key, model=model_name, temperature=temperature
        )
    else:
        raise ValueError(
            f"Unsupported model: {model_name}. "
            "Model name must contain 'gpt' or 'gemini'"
        )


def message_text(message: BaseMessage) -> str:
    """Extracts plain text from a message whose content may be a list of parts."""
    content = message.content
    if isinstance(content, str):
        return content
    parts = []
    for part in content:
        if isinstance(part, str):
            parts.append(part)
        elif isinstance(part, dict) and part.get("type") == "text":
            parts.append(part.get("text", ""))
    return "".join(parts)


def strip_code_fences(text: str) -> str:
    return CODE_FENCE_PATTERN.sub("", text).strip()


class LLMService:
    """
    Async gateway to the chat model used by every assistant feature.
    """

    def __init__(
        self,
        model: BaseChatModel,
        max_attempts: int = 3,
        initial_delay: float = 2.0,
        timeout: int = 30,
        rate_limit: int = 3,
    ):
        """
        Initialize async LLM service.

        Args:
            model: Configured chat model instance
            max_attempts: Attempts for rate-limited calls
            initial_delay: First backoff delay in seconds
            timeout: Timeout in seconds for each attempt
            rate_limit: Maximum concurrent LLM requests (Semaphore)
        """
        self.model = model
        self.max_attempts = max_attempts
        self.initial_delay = initial_delay
        self.timeout = timeout
        self.semaphore = asyncio.Semaphore(rate_limit)

    async def invoke_with_retry(
        self,
        messages: list[BaseMessage] | str,
        timeout: int | None = None,
    ) -> BaseMessage:
        """
        Invokes the LLM, retrying with backoff while it is rate limited.

        Args:
            messages: Input messages or single prompt string
            timeout: Override default per-attempt timeout (seconds)

        Returns:
            LLM response as BaseMessage

        Raises:
            LLMTimeoutError: If an attempt exceeds the timeout
            RemoteRateLimitedError: If still rate limited after the last attempt
            LLMError: For any other provider failure
        """
        timeout = timeout or self.timeout
        start_time = time.time()
        model_name = getattr(self.model, "model_name", None) or getattr(
            self.model, "model", "unknown"
        )

        async def attempt() -> BaseMessage:
            logger.info("llm_call_started", timeout=timeout, model=str(model_name))
            async with self.semaphore:
                return await asyncio.wait_for(
                    self.model.ainvoke(messages), timeout=timeout
                )

        try:
            response = await call_with_retry(
                attempt,
                max_attempts=self.max_attempts,
                initial_delay=self.initial_delay,
            )
        except asyncio.TimeoutError as e:
            logger.error(
                "llm_call_timeout",
                elapsed=time.time() - start_time,
                timeout=timeout,
            )
            raise LLMTimeoutError(f"LLM call exceeded timeout of {timeout}s") from e
        except Exception as e:
            elapsed = time.time() - start_time
            if is_rate_limited(e):
                logger.error("llm_rate_limit_exhausted", elapsed=elapsed, error=str(e))
                raise RemoteRateLimitedError(
                    f"LLM still rate limited after {self.max_attempts} attempts"
                ) from e
            logger.error("llm_call_failed", exc_info=True, elapsed=elapsed, error=str(e))
            raise LLMError(f"LLM invocation failed: {e}") from e

        self._log_usage(response, time.time() - start_time)
        return response

    async def generate_json(
        self, prompt: str, output_schema: Type[SchemaT]
    ) -> SchemaT | None:
        """
        Asks for a JSON answer and validates it against a schema.

        Markdown code fences around the JSON are tolerated. A literal `null`
        answer is returned as None.

        Args:
            prompt: Prompt instructing the model to answer in JSON
            output_schema: Pydantic model describing the expected shape

        Returns:
            Validated schema instance, or None

        Raises:
            ParseError: If the answer is not JSON or does not match the schema
            LLMError: If the call itself fails
        """
        response = await self.invoke_with_retry(prompt)
        content = strip_code_fences(message_text(response))

        if content == "null":
            return None

        try:
            return output_schema.model_validate(json.loads(content))
        except (json.JSONDecodeError, ValidationError) as e:
            logger.warning(
                "llm_output_unparseable",
                schema=output_schema.__name__,
                preview=content[:100],
                error=str(e),
            )
            raise ParseError(
                f"LLM output does not match {output_schema.__name__}"
            ) from e

    def _log_usage(self, response: BaseMessage, elapsed: float) -> None:
        """
        Logs token usage when the provider reports it.

        Args:
            response: LLM response message
            elapsed: Elapsed time in seconds
        """
        usage = getattr(response, "usage_metadata", None)
        if usage:
            logger.info(
                "llm_usage",
                input_tokens=usage.get("input_tokens", 0),
                output_tokens=usage.get("output_tokens", 0),
                total_tokens=usage.get("total_tokens", 0),
                elapsed=elapsed,
            )
        else:
            logger.info("llm_call_completed", elapsed=elapsed)
