import base64
import logging
from typing import Protocol

import httpx

from bikelane_sentinel.core.exceptions import InferenceError

logger = logging.getLogger(__name__)

SIMPLE_QUESTION = "Are there cars parking on the bike lane? Answer in yes or no."
EXTENDED_QUESTION = (
    "Are there cars parking on the bike lane? If yes, what type of vehicle is it "
    "(car, taxi, truck, bus, etc)? Provide the answer in this format: "
    "'Yes, [vehicle type]' or simply 'No'."
)


def question_for(mode: str) -> str:
    return SIMPLE_QUESTION if mode == "simple" else EXTENDED_QUESTION


def to_data_uri(image: bytes, content_type: str = "image/jpeg") -> str:
    encoded = base64.b64encode(image).decode("ascii")
    return f"data:{content_type};base64,{encoded}"


class InferenceClient(Protocol):
    """Anything that can answer a natural-language question about an image."""

    async def query(self, image: bytes, question: str, content_type: str = "image/jpeg") -> str: ...


class MoondreamClient:
    """
    Client for the Moondream cloud query endpoint.

    One non-streamed request per call, no retries. Every failure is raised as
    InferenceError so the caller can turn it into a 500.
    """

    def __init__(
            self,
            api_key: str,
            http_client: httpx.AsyncClient,
            base_url: str = "https://api.moondream.ai/v1",
            timeout: float = 30.0,
    ):
        if not api_key:
            raise ValueError("A Moondream API key is required")
        self.api_key = api_key
        self.http_client = http_client
        self.query_url = f"{base_url.rstrip('/')}/query"
        self.timeout = timeout

    async def query(self, image: bytes, question: str, content_type: str = "image/jpeg") -> str:
        payload = {
            "image_url": to_data_uri(image, content_type),
            "question": question,
            "stream": False,
        }
        headers = {"X-Moondream-Auth": self.api_key}

        try:
            response = await self.http_client.post(
                self.query_url, json=payload, headers=headers, timeout=self.timeout
            )
            response.raise_for_status()
            body = response.json()
        except httpx.HTTPStatusError as e:
            raise InferenceError(
                f"Inference service returned HTTP {e.response.status_code}"
            ) from e
        except httpx.HTTPError as e:
            raise InferenceError(f"Inference service unreachable: {e}") from e
        except ValueError as e:
            raise InferenceError("Inference service returned invalid JSON") from e

        answer = body.get("answer") if isinstance(body, dict) else None
        if not isinstance(answer, str):
            raise InferenceError("Inference service response has no answer")

        logger.debug("Inference answered %r (request %s)", answer, body.get("request_id"))
        return answer
