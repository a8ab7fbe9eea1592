import asyncio
import json
import time
import os
import logging
from typing import TypeVar, Type
from pydantic import BaseModel
from openai import OpenAI, AzureOpenAI
from dotenv import load_dotenv

from comp_analyzer.models.report import LLMCallLog

load_dotenv()
logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)

TEMPERATURE = 0.3


def _build_client() -> OpenAI:
    azure_endpoint = os.getenv("AZURE_OPENAI_ENDPOINT")
    if azure_endpoint:
        return AzureOpenAI(
            azure_endpoint=azure_endpoint,
            api_key=os.getenv("OPENAI_API_KEY"),
            api_version=os.getenv("AZURE_OPENAI_API_VERSION", "2024-02-15-preview"),
        )
    return OpenAI(api_key=os.getenv("OPENAI_API_KEY"))


class LLMService:
    """OpenAI (or Azure OpenAI) chat completions.

    Call logs are appended to the list the caller passes in, so each pipeline
    run owns its own audit trail even though the service is shared.
    """

    def __init__(self):
        self.client = _build_client()
        deployment = os.getenv("AZURE_OPENAI_DEPLOYMENT_NAME")
        self.model = deployment or os.getenv("OPENAI_MODEL", "gpt-4o-mini")
        self.narrative_model = deployment or os.getenv("OPENAI_NARRATIVE_MODEL", "gpt-4o")

    async def structured_completion(
        self,
        system_prompt: str,
        user_prompt: str,
        response_model: Type[T],
        step_name: str,
        call_logs: list[LLMCallLog] | None = None,
    ) -> T:
        """JSON-mode completion parsed into `response_model`. Attempted once."""
        return await asyncio.to_thread(
            self._structured_sync, system_prompt, user_prompt, response_model, step_name, call_logs,
        )

    async def text_completion(
        self,
        system_prompt: str,
        user_prompt: str,
        step_name: str,
        call_logs: list[LLMCallLog] | None = None,
        max_tokens: int = 2500,
    ) -> str:
        """Free-text response from the narrative model."""
        return await asyncio.to_thread(
            self._chat, self.narrative_model, system_prompt, user_prompt, step_name, call_logs,
            max_tokens=max_tokens,
        )

    def _structured_sync(
        self,
        system_prompt: str,
        user_prompt: str,
        response_model: Type[T],
        step_name: str,
        call_logs: list[LLMCallLog] | None,
    ) -> T:
        schema = json.dumps(response_model.model_json_schema(), indent=2)
        full_system = f"{system_prompt}\n\nRespond with valid JSON matching this schema:\n{schema}"

        try:
            content = self._chat(
                self.model, full_system, user_prompt, step_name, call_logs,
                response_format={"type": "json_object"},
            )
            return response_model.model_validate_json(content or "{}")
        except Exception as e:
            logger.warning(f"LLM call failed for [{step_name}]: {e}")
            raise RuntimeError(f"LLM call failed for [{step_name}]: {e}") from e

    def _chat(
        self,
        model: str,
        system_prompt: str,
        user_prompt: str,
        step_name: str,
        call_logs: list[LLMCallLog] | None,
        **params,
    ) -> str:
        start = time.time()
        response = self.client.chat.completions.create(
            model=model,
            temperature=TEMPERATURE,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            **params,
        )
        duration_ms = (time.time() - start) * 1000
        content = response.choices[0].message.content or ""
        tokens = response.usage.total_tokens if response.usage else None

        logger.info(f"LLM call [{step_name}]: model={model}, tokens={tokens}, duration={duration_ms:.0f}ms")
        logger.debug(f"LLM [{step_name}] response: {content[:500]}...")

        if call_logs is not None:
            call_logs.append(LLMCallLog(
                step_name=step_name,
                model=model,
                system_prompt=system_prompt,
                user_prompt=user_prompt,
                response=content,
                tokens_used=tokens,
                duration_ms=duration_ms,
            ))
        return content
