import logging
import os
from typing import Any, Protocol

import requests
from pydantic import BaseModel

from phototitler.ai.prompts import ModelRequest
from phototitler.errors import GenerationFailedError

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "claude-sonnet-4-6"


class Completion(BaseModel):
    text: str
    input_tokens: int
    output_tokens: int


class ModelClient(Protocol):
    def complete(self, request: ModelRequest) -> Completion: ...


class ClaudeClient:
    """
    Client for the Anthropic Messages API over plain HTTP.

    One request in, one structured completion out; no retries.
    """

    _MESSAGES_URL = "https://api.anthropic.com/v1/messages"
    _API_VERSION = "2023-06-01"
    _SUCCESS_CODE = 200
    _TIMEOUT = 120  # seconds

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        timeout: float | None = None,
    ) -> None:
        self.api_key = api_key or os.getenv("ANTHROPIC_API_KEY")
        self.model = model or os.getenv("ANTHROPIC_MODEL", DEFAULT_MODEL)
        self.timeout = timeout or float(os.getenv("ANTHROPIC_TIMEOUT", str(self._TIMEOUT)))

    def build_payload(self, request: ModelRequest) -> dict[str, Any]:
        return {
            "model": self.model,
            "max_tokens": request.max_tokens,
            "system": request.system,
            "messages": [{"role": "user", "content": request.content}],
            "output_config": {
                "format": {"type": "json_schema", "schema": request.output_schema}
            },
        }

    @staticmethod
    def _error_detail(resp: requests.Response) -> str:
        try:
            body = resp.json()
        except ValueError:
            return resp.text
        error = body.get("error") if isinstance(body, dict) else None
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
        return resp.text

    def complete(self, request: ModelRequest) -> Completion:
        if not self.api_key:
            msg = "ANTHROPIC_API_KEY not set in environment"
            raise GenerationFailedError(msg)
        headers = {
            "x-api-key": self.api_key,
            "anthropic-version": self._API_VERSION,
            "content-type": "application/json",
        }
        try:
            resp = requests.post(
                self._MESSAGES_URL,
                headers=headers,
                json=self.build_payload(request),
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            msg = f"Claude API request failed: {exc}"
            raise GenerationFailedError(msg) from exc
        if resp.status_code != self._SUCCESS_CODE:
            msg = f"Claude API error: {resp.status_code} {self._error_detail(resp)}"
            raise GenerationFailedError(msg)

        try:
            body = resp.json()
        except ValueError as exc:
            msg = "Claude API returned a non-JSON body"
            raise GenerationFailedError(msg) from exc
        content = body.get("content", []) if isinstance(body, dict) else None
        usage = body.get("usage", {}) if isinstance(body, dict) else None
        if not isinstance(content, list) or not isinstance(usage, dict):
            msg = "Unexpected Claude API response shape"
            raise GenerationFailedError(msg)
        text = next(
            (
                block["text"]
                for block in content
                if isinstance(block, dict)
                and block.get("type") == "text"
                and isinstance(block.get("text"), str)
                and block["text"]
            ),
            None,
        )
        if text is None:
            msg = "No text response from Claude"
            raise GenerationFailedError(msg)
        try:
            completion = Completion(
                text=text,
                input_tokens=int(usage.get("input_tokens", 0)),
                output_tokens=int(usage.get("output_tokens", 0)),
            )
        except (TypeError, ValueError) as exc:
            msg = f"Unexpected Claude API usage block: {usage}"
            raise GenerationFailedError(msg) from exc
        logger.info(
            "Claude call completed: model=%s input_tokens=%d output_tokens=%d",
            self.model,
            completion.input_tokens,
            completion.output_tokens,
        )
        return completion
