"""Offline equation client.

Reference for new provider adapters: implement BaseEquationClient and
register the provider in EquationRecovererFactory.
"""

import json
from typing import ClassVar

from gradeguard.equation_recovery.client_base import BaseEquationClient


class ExampleClientAdapter(BaseEquationClient):
    """Returns a fixed, valid response that recovers nothing.

    No network calls, so local runs and tests never leave the machine.
    """

    DEFAULT_RESPONSE: ClassVar[dict[str, object]] = {"equations": []}

    def __init__(self, response: dict[str, object] | None = None) -> None:
        self._response = response if response is not None else self.DEFAULT_RESPONSE

    def create_chat_completion(
        self,
        *,
        model: str,
        temperature: float,
        system_prompt: str,
        user_prompt: str,
        json_schema: dict[str, object],
    ) -> str:
        _ = model, temperature, system_prompt, user_prompt, json_schema
        return json.dumps(self._response)
