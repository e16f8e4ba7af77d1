"""Re-recognises weak equations through an external model."""

import json
from collections.abc import Sequence
from pathlib import Path

from gradeguard.equation_recovery.base import BaseEquationRecoverer
from gradeguard.equation_recovery.client_base import BaseEquationClient
from gradeguard.equation_recovery.exceptions import EquationRecoveryError
from gradeguard.equation_recovery.models import RecoveryResult
from gradeguard.equation_recovery.prompt_loader import load_json_schema, load_prompt_template
from gradeguard.equation_recovery.validator import validate_and_build
from gradeguard.extraction.equations import (
    EquationFallbackPolicy,
    merge_recovered,
    pick_equation_fallback_candidates,
)
from gradeguard.extraction.models import Equation
from gradeguard.logging.logger import Log

_PAGE_CONTEXT_CHARS = 1500


class EquationRecoverer(BaseEquationRecoverer):
    """Sends only the selected fallback candidates, never the whole document."""

    def __init__(
        self,
        *,
        client: BaseEquationClient,
        model: str,
        policy: EquationFallbackPolicy,
        temperature: float = 0.0,
        prompt_template_path: Path | None = None,
        json_schema_path: Path | None = None,
        system_prompt: str = "",
    ) -> None:
        self._client = client
        self._model = model
        self._policy = policy
        self._temperature = max(0.0, min(0.2, temperature))
        self._system_prompt = system_prompt
        self._prompt_template = load_prompt_template(prompt_template_path)
        schema_str = load_json_schema(json_schema_path)
        self._json_schema = schema_str
        self._json_schema_dict = json.loads(schema_str)

    def recover(self, equations: Sequence[Equation], page_texts: Sequence[str]) -> RecoveryResult:
        candidate_ids = pick_equation_fallback_candidates(equations, self._policy)
        if not candidate_ids:
            return RecoveryResult(equations=list(equations))

        candidates = [eq for eq in equations if eq.id in candidate_ids]
        prompt = self._build_prompt(candidates, page_texts)
        Log.debug("Equation recovery prompt built", candidates=len(candidates))

        raw_response = self._call_ai(prompt)
        parsed = self._parse_json(raw_response)
        recovered = validate_and_build(parsed)

        accepted = {r.id: (r.latex, r.confidence) for r in recovered if r.id in candidate_ids}
        ignored = [r.id for r in recovered if r.id not in candidate_ids]
        merged = merge_recovered(equations, accepted, self._policy.min_confidence_to_skip)

        Log.info(
            "Equation recovery complete",
            attempted=len(candidates),
            recovered=len(accepted),
            ignored=len(ignored),
        )
        return RecoveryResult(
            equations=merged,
            attempted_ids=[eq.id for eq in candidates],
            recovered_ids=sorted(accepted),
            ignored_ids=ignored,
        )

    def _build_prompt(self, candidates: Sequence[Equation], page_texts: Sequence[str]) -> str:
        blocks = []
        for eq in candidates:
            page_text = ""
            if eq.page and 0 < eq.page <= len(page_texts):
                page_text = page_texts[eq.page - 1][:_PAGE_CONTEXT_CHARS]
            blocks.append(
                json.dumps(
                    {
                        "id": eq.id,
                        "raw": eq.raw,
                        "latex": eq.latex or "",
                        "page": eq.page,
                        "page_text": page_text,
                    },
                    ensure_ascii=False,
                )
            )
        return self._prompt_template.format(
            candidates="\n".join(blocks),
            json_schema=self._json_schema,
        )

    def _call_ai(self, prompt: str) -> str:
        return self._client.create_chat_completion(
            model=self._model,
            temperature=self._temperature,
            system_prompt=self._system_prompt,
            user_prompt=prompt,
            json_schema=self._json_schema_dict,
        )

    @staticmethod
    def _parse_json(raw: str) -> dict[str, object]:
        cleaned = raw.strip()
        if cleaned.startswith("```"):
            lines = cleaned.splitlines()
            if lines and lines[0].startswith("```"):
                lines = lines[1:]
            if lines and lines[-1].strip() == "```":
                lines = lines[:-1]
            cleaned = "\n".join(lines)

        try:
            parsed = json.loads(cleaned)
        except json.JSONDecodeError as exc:
            raise EquationRecoveryError(f"Invalid JSON response: {exc}") from exc

        if not isinstance(parsed, dict):
            raise EquationRecoveryError("JSON response must be an object")
        return parsed
