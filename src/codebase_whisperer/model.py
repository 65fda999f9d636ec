"""watsonx.ai model client - hosted text generation.

Exchanges an IBM Cloud API key for a bearer token, then sends prompts
to the watsonx.ai text generation endpoint and returns the raw text.
"""

from __future__ import annotations

import logging
import time
from typing import Any

import httpx

from .config import (
    DEFAULT_MAX_TOKENS,
    DEFAULT_MODEL_ID,
    DEFAULT_TEMPERATURE,
    DEFAULT_WATSONX_URL,
    Settings,
)

logger = logging.getLogger(__name__)

IAM_URL = "https://iam.cloud.ibm.com/identity/token"
IAM_GRANT_TYPE = "urn:ibm:params:oauth:grant-type:apikey"
API_VERSION = "2023-05-29"
TOKEN_TIMEOUT = 30
GENERATE_TIMEOUT = 300  # long documentation prompts can take minutes
TOKEN_EXPIRY_MARGIN = 60  # refresh a minute before the token lapses


class ModelError(Exception):
    """Error communicating with the model."""


class WatsonxClient:
    """Client for the watsonx.ai text generation REST API."""

    def __init__(
        self,
        api_key: str,
        project_id: str,
        base_url: str = DEFAULT_WATSONX_URL,
        model_id: str = DEFAULT_MODEL_ID,
        max_tokens: int = DEFAULT_MAX_TOKENS,
        temperature: float = DEFAULT_TEMPERATURE,
    ):
        self.api_key = api_key
        self.project_id = project_id
        self.base_url = base_url.rstrip("/")
        self.model_id = model_id
        self.max_tokens = max_tokens
        self.temperature = temperature
        self._token: str | None = None
        self._token_expires_at = 0.0

    @classmethod
    def from_settings(cls, settings: Settings) -> "WatsonxClient":
        return cls(
            api_key=settings.api_key,
            project_id=settings.project_id,
            base_url=settings.watsonx_url,
            model_id=settings.model_id,
            max_tokens=settings.max_tokens,
            temperature=settings.temperature,
        )

    def is_configured(self) -> bool:
        """Both an API key and a project id are required."""
        return bool(self.api_key and self.project_id)

    def get_access_token(self) -> str:
        """Exchange the API key for a bearer token, reusing it until near expiry."""
        if self._token and time.time() < self._token_expires_at - TOKEN_EXPIRY_MARGIN:
            return self._token

        try:
            with httpx.Client(timeout=TOKEN_TIMEOUT) as client:
                resp = client.post(
                    IAM_URL,
                    data={"grant_type": IAM_GRANT_TYPE, "apikey": self.api_key},
                    headers={"Accept": "application/json"},
                    timeout=TOKEN_TIMEOUT,
                )
        except httpx.TimeoutException:
            raise ModelError(f"IBM Cloud authentication timed out after {TOKEN_TIMEOUT}s")
        except httpx.HTTPError as e:
            raise ModelError(f"Cannot reach IBM Cloud IAM: {e}")

        if resp.status_code != 200:
            raise ModelError(
                f"Authentication failed - check your IBM API key ({resp.status_code}: {resp.text[:200]})"
            )
        try:
            data = resp.json()
            token = data["access_token"]
        except (ValueError, KeyError, TypeError):
            raise ModelError("IAM response did not contain an access token")

        expires_in = data.get("expires_in", 3600)
        self._token = token
        self._token_expires_at = time.time() + (expires_in if isinstance(expires_in, (int, float)) else 3600)
        logger.debug("Obtained IAM token valid for %ss", expires_in)
        return token

    def generate(self, prompt: str) -> str:
        """Generate text from prompt. Returns raw text response."""
        if not self.is_configured():
            raise ModelError("watsonx.ai credentials are not configured")

        token = self.get_access_token()
        payload: dict[str, Any] = {
            "input": prompt,
            "parameters": {
                "decoding_method": "greedy",
                "max_new_tokens": self.max_tokens,
                "temperature": self.temperature,
                "stop_sequences": [],
            },
            "model_id": self.model_id,
            "project_id": self.project_id,
        }

        logger.debug("Sending %d-char prompt to %s", len(prompt), self.model_id)
        try:
            with httpx.Client(timeout=GENERATE_TIMEOUT) as client:
                resp = client.post(
                    f"{self.base_url}/ml/v1/text/generation",
                    params={"version": API_VERSION},
                    json=payload,
                    headers={
                        "Authorization": f"Bearer {token}",
                        "Accept": "application/json",
                    },
                    timeout=GENERATE_TIMEOUT,
                )
        except httpx.TimeoutException:
            raise ModelError(f"Model generation timed out after {GENERATE_TIMEOUT}s")
        except httpx.HTTPError as e:
            raise ModelError(f"Cannot connect to watsonx.ai at {self.base_url}: {e}")

        if resp.status_code == 401:
            self._token = None
        if resp.status_code != 200:
            raise ModelError(f"watsonx.ai returned {resp.status_code}: {resp.text[:200]}")

        try:
            data = resp.json()
            text = data["results"][0]["generated_text"]
        except (ValueError, KeyError, IndexError, TypeError):
            raise ModelError(f"Unexpected watsonx.ai response: {resp.text[:200]}")
        return text.strip()
