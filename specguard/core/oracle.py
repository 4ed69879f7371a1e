# ==============================================
# File: specguard/core/oracle.py
# Description: Reasoning oracle contract (schema-constrained generation)
# ==============================================

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Callable, Generic, Optional, Protocol, Type, TypeVar

from pydantic import BaseModel, ValidationError

from specguard.config import settings
from specguard.core.llm_provider import LLMProvider, get_llm_provider
from specguard.jsonparser import parse_json_object

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)


class OracleError(Exception):
    """
    The oracle could not produce a usable answer.

    Raised for transport failures, unparseable output and schema mismatches
    alike; callers recover from all three the same way.
    """

    def __init__(self, message: str, *, request_name: str = "", cause: Optional[BaseException] = None):
        super().__init__(message)
        self.request_name = request_name
        self.cause = cause


@dataclass(frozen=True)
class StructuredRequest(Generic[T]):
    """A prompt together with the schema its answer must satisfy."""
    name: str
    prompt: str
    response_model: Type[T]
    system_prompt: str = ""

    def schema_instructions(self) -> str:
        schema = self.response_model.model_json_schema(by_alias=True)
        return (
            "Respond with a single JSON object that validates against this JSON schema. "
            "Use exactly these field names and no others.\n"
            f"{json.dumps(schema, ensure_ascii=False)}"
        )


def validate_structured_response(raw_text: str, request: StructuredRequest[T]) -> T:
    """Turn raw oracle text into the request's model, or raise OracleError."""
    try:
        data = parse_json_object(raw_text)
        return request.response_model.model_validate(data)
    except (ValueError, ValidationError) as e:
        # ValidationError subclasses ValueError in pydantic v2; both mean shape mismatch
        raise OracleError(
            f"{request.name}: response did not match schema: {e}",
            request_name=request.name,
            cause=e,
        ) from e


class ReasoningOracle(Protocol):
    async def generate_object(self, request: StructuredRequest[T]) -> T: ...

    async def generate_text(self, prompt: str, system_prompt: str = "", max_tokens: int = 1000) -> str: ...


class LLMOracle:
    """
    ReasoningOracle backed by an LLM provider.

    The provider is resolved on first use so a missing API key surfaces as an
    OracleError inside an analysis rather than at construction time.
    """

    def __init__(
        self,
        provider: Optional[LLMProvider] = None,
        provider_factory: Callable[[], LLMProvider] = get_llm_provider,
        temperature: Optional[float] = None,
        structured_max_tokens: Optional[int] = None,
    ):
        self._provider = provider
        self._provider_factory = provider_factory
        self.temperature = settings.oracle_temperature if temperature is None else temperature
        self.structured_max_tokens = structured_max_tokens or settings.structured_max_tokens

    def _get_provider(self) -> LLMProvider:
        if self._provider is None:
            self._provider = self._provider_factory()
        return self._provider

    async def generate_object(self, request: StructuredRequest[T]) -> T:
        system_prompt = "\n\n".join(p for p in (request.system_prompt, request.schema_instructions()) if p)
        try:
            provider = self._get_provider()
            raw = await provider.async_complete(
                user_prompt=request.prompt,
                system_prompt=system_prompt,
                max_tokens=self.structured_max_tokens,
                temperature=self.temperature,
                json_mode=True,
            )
        except Exception as e:
            raise OracleError(
                f"{request.name}: oracle call failed: {e}",
                request_name=request.name,
                cause=e,
            ) from e

        return validate_structured_response(raw, request)

    async def generate_text(self, prompt: str, system_prompt: str = "", max_tokens: int = 1000) -> str:
        provider = self._get_provider()
        return await provider.async_complete(
            user_prompt=prompt,
            system_prompt=system_prompt,
            max_tokens=max_tokens,
            temperature=self.temperature,
        )
