"""Code verification through a hosted LLM.

The model is asked to answer with a single word. Only an exact ``CORRECT``
(after trimming and upper-casing) counts as a passing verdict.
"""

import logging
import sqlite3

from openai import APIError, OpenAI

from coderush.config import settings
from coderush.db import save_api_usage

logger = logging.getLogger(__name__)

CORRECT = "CORRECT"
INCORRECT = "INCORRECT"

VERIFY_PROMPT = """You are a code verification engine. Your task is to evaluate the provided code \
against a problem statement and return ONLY 'CORRECT' or 'INCORRECT'. Do not add any explanation, \
markdown, or commentary.

Problem Statement: "{problem}"
Language: {language}
Code to evaluate:
```{language}
{code}
```
Answer:"""


class VerificationError(Exception):
    """Raised when the verdict could not be obtained from the model."""


def build_prompt(code: str, problem: str, language: str) -> str:
    return VERIFY_PROMPT.format(code=code, problem=problem, language=language)


def parse_verdict(content: str | None) -> bool:
    return (content or "").strip().upper() == CORRECT


def _base_url(api_url: str) -> str:
    # Accept either the API root or the full chat completions URL
    url = api_url.rstrip("/")
    suffix = "/chat/completions"
    if url.endswith(suffix):
        url = url[: -len(suffix)]
    return url


def get_client() -> OpenAI:
    if not settings.codestral_api_url or not settings.codestral_api_key:
        raise VerificationError("Codestral environment variables are not set")
    return OpenAI(
        api_key=settings.codestral_api_key,
        base_url=_base_url(settings.codestral_api_url),
        timeout=settings.verify_timeout_seconds,
        max_retries=0,
    )


def verify_code(code: str, problem: str, language: str, user_id: int | None = None) -> bool:
    client = get_client()

    try:
        response = client.chat.completions.create(
            model=settings.codestral_model,
            messages=[{"role": "user", "content": build_prompt(code, problem, language)}],
            max_tokens=10,
            temperature=0.0,
        )
    except APIError as e:
        status = getattr(e, "status_code", None)
        logger.error(f"Codestral API error (status={status}): {e}")
        if status:
            raise VerificationError(f"Codestral API failed with status {status}") from e
        raise VerificationError("Codestral API request failed") from e

    if response.usage:
        try:
            save_api_usage(
                user_id=user_id,
                model=response.model or settings.codestral_model,
                prompt_tokens=response.usage.prompt_tokens,
                completion_tokens=response.usage.completion_tokens,
                total_tokens=response.usage.total_tokens,
                operation="verify",
            )
        except sqlite3.Error as e:
            logger.warning(f"Could not record API usage: {e}")

    content = response.choices[0].message.content if response.choices else ""
    logger.info(f"Model verdict: {(content or '').strip().upper()!r}")
    return parse_verdict(content)
