import httpx
import openai

from gradeguard.equation_recovery.client_base import BaseEquationClient
from gradeguard.equation_recovery.exceptions import (
    EquationRecoveryError,
    EquationRecoveryNetworkError,
)
from gradeguard.logging.logger import Log

RESPONSE_SCHEMA_NAME = "equation_recovery"
DEFAULT_MAX_OUTPUT_TOKENS = 1024


class OpenAIClientAdapter(BaseEquationClient):
    """Equation recognition over any OpenAI-compatible chat endpoint.

    The reply is constrained to the equation JSON schema. A truncated or
    refused reply is an error here, because a partial equation list would
    otherwise pass as "nothing recovered".
    """

    def __init__(
        self,
        *,
        api_key: str,
        timeout_seconds: int,
        base_url: str | None = None,
        max_output_tokens: int = DEFAULT_MAX_OUTPUT_TOKENS,
    ) -> None:
        self._client = openai.OpenAI(
            api_key=api_key,
            timeout=timeout_seconds,
            base_url=base_url,
        )
        self._max_output_tokens = max_output_tokens

    @staticmethod
    def _messages(system_prompt: str, user_prompt: str) -> list[dict[str, str]]:
        messages = []
        if system_prompt.strip():
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": user_prompt})
        return messages

    def create_chat_completion(
        self,
        *,
        model: str,
        temperature: float,
        system_prompt: str,
        user_prompt: str,
        json_schema: dict[str, object],
    ) -> str:
        try:
            response = self._client.chat.completions.create(
                model=model,
                temperature=temperature,
                max_tokens=self._max_output_tokens,
                response_format={
                    "type": "json_schema",
                    "json_schema": {
                        "name": RESPONSE_SCHEMA_NAME,
                        "strict": True,
                        "schema": json_schema,
                    },
                },
                messages=self._messages(system_prompt, user_prompt),
            )
        except (openai.APIConnectionError, httpx.ConnectError, httpx.TimeoutException) as exc:
            raise EquationRecoveryNetworkError(f"Model provider network error: {exc}") from exc
        except openai.RateLimitError as exc:
            raise EquationRecoveryNetworkError(f"Model provider rate limit: {exc}") from exc
        except openai.APIError as exc:
            raise EquationRecoveryNetworkError(f"Model provider API error: {exc}") from exc

        if not response.choices:
            raise EquationRecoveryError("Model returned no choices")
        choice = response.choices[0]
        Log.debug("Equation recovery reply", model=model, finish_reason=choice.finish_reason)
        if choice.message.refusal:
            raise EquationRecoveryError(f"Model refused equation recovery: {choice.message.refusal}")
        if choice.finish_reason == "length":
            raise EquationRecoveryError(
                f"Model reply was cut off at {self._max_output_tokens} tokens"
            )
        content = choice.message.content
        if content is None:
            raise EquationRecoveryError("Model returned empty response")
        return content
