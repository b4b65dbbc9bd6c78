# src/its_done/llm/client.py

from __future__ import annotations

import logging
import os
import time
from typing import Any, Dict, Iterable, List, Optional

import httpx
import openai
from openai import OpenAI

from ..config import Settings
from ..core.ports import LLMMessage

logger = logging.getLogger(__name__)

BAD_MODEL_COOLDOWN_SECONDS = 3600.0


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None:
        return default
    s = raw.strip()
    if not s:
        return default
    try:
        return float(s)
    except ValueError:
        return default


def _timeouts_from_env() -> dict[str, float]:
    """
    Timeouts are configurable via env so a model with a long time-to-first-token
    does not hang the console.

    Defaults:
    - connect timeout: 5s
    - read timeout: 25s (no data from server)
    - first token timeout: 20s (no content tokens)
    """
    first_token = _env_float("ITS_DONE_LLM_FIRST_TOKEN_TIMEOUT_SECONDS", 20.0)
    read_timeout = _env_float("ITS_DONE_LLM_READ_TIMEOUT_SECONDS", 25.0)
    connect_timeout = _env_float("ITS_DONE_LLM_CONNECT_TIMEOUT_SECONDS", 5.0)

    # keep read >= first_token as a sane baseline
    read_timeout = max(read_timeout, first_token)

    return {
        "first_token": first_token,
        "read": read_timeout,
        "connect": connect_timeout,
    }


def _is_auth_error(exc: Exception) -> bool:
    if isinstance(exc, (openai.AuthenticationError, openai.PermissionDeniedError)):
        return True
    return exc.__class__.__name__ in {"UnauthorizedError"}


def _is_rate_limit_error(exc: Exception) -> bool:
    if isinstance(exc, openai.RateLimitError):
        return True
    return exc.__class__.__name__ in {"TooManyRequestsError"}


def _is_connection_error(exc: Exception) -> bool:
    if isinstance(exc, (openai.APIConnectionError, httpx.TimeoutException, TimeoutError)):
        return True
    return False


def _is_not_found_error(exc: Exception) -> bool:
    # OpenAI-compatible SDK uses NotFoundError for HTTP 404
    return isinstance(exc, openai.NotFoundError)


def _make_timeout(connect_s: float, read_s: float) -> httpx.Timeout:
    return httpx.Timeout(
        connect=connect_s,
        read=read_s,
        write=10.0,
        pool=connect_s,
    )


def friendly_llm_error_message(err: Exception) -> str:
    msg = str(err).strip() or "LLM error."
    if "LLM API key is not set" in msg:
        return "LLM is not configured (missing API key). Set ITS_DONE_OPENROUTER_API_KEY in .env."
    if "LLM model list is empty" in msg:
        return "LLM is not configured (no models). Set ITS_DONE_LLM_MODELS in .env."
    if "LLM base URL is not set" in msg:
        return "LLM is not configured (missing base URL). Set ITS_DONE_OPENROUTER_BASE_URL in .env."
    return msg


def _close_stream(stream: Any) -> None:
    """Best-effort close for streaming responses."""
    close = getattr(stream, "close", None)
    if not callable(close):
        return
    try:
        close()
    except (httpx.HTTPError, OSError) as e:
        logger.debug("LLM: failed to close stream: %s", e)


def _chunk_content(chunk: Any) -> str | None:
    choices = getattr(chunk, "choices", None) or []
    if not choices:
        return None
    delta = getattr(choices[0], "delta", None)
    return getattr(delta, "content", None) if delta is not None else None


def _citations_from_message(message: Any) -> list[dict[str, Any]]:
    """
    OpenRouter web search returns `url_citation` annotations on the message.
    Normalize them to {"uri", "title"} dicts, de-duplicated by uri.
    """
    out: list[dict[str, Any]] = []
    seen: set[str] = set()
    for ann in getattr(message, "annotations", None) or []:
        if getattr(ann, "type", None) != "url_citation":
            continue
        cit = getattr(ann, "url_citation", None)
        uri = getattr(cit, "url", None) if cit is not None else None
        if not uri or uri in seen:
            continue
        seen.add(uri)
        out.append({"uri": uri, "title": getattr(cit, "title", None) or uri})
    return out


class OpenRouterLLMClient:
    """
    OpenAI-compatible (OpenRouter) client with model fallback.

    Behavior:
    - Tries models in the order from settings (ITS_DONE_LLM_MODELS).
    - If a model doesn't produce a first content token within FIRST_TOKEN timeout,
      we abort and try the next model.
    - 404 (model not available) -> benched for an hour, try next.
    - Rate limit / network issues -> try next.
    - Auth issues -> fail fast (no retries across models).
    """

    def __init__(self, settings: Settings) -> None:
        self._settings = settings
        self._client: OpenAI | None = None
        self._bad_models: dict[str, float] = {}  # model -> retry_at (monotonic)
        self._timeouts = _timeouts_from_env()

    def _get_client(self) -> OpenAI:
        """
        Lazily create and cache the SDK client.

        Automatic retries are disabled to allow quick fallback across models.
        """
        if self._client is not None:
            return self._client

        api_key = self._settings.openrouter_api_key
        base_url = self._settings.openrouter_base_url or ""

        if not api_key or not str(api_key).strip():
            raise RuntimeError("LLM API key is not set. Set ITS_DONE_OPENROUTER_API_KEY in your .env.")
        if not base_url.strip():
            raise RuntimeError("LLM base URL is not set. Set ITS_DONE_OPENROUTER_BASE_URL in your .env.")

        t = self._timeouts
        self._client = OpenAI(
            base_url=str(base_url),
            api_key=str(api_key),
            timeout=_make_timeout(connect_s=t["connect"], read_s=t["read"]),
            max_retries=0,
        )
        return self._client

    def _candidate_models(self) -> List[str]:
        models = [m.strip() for m in (self._settings.llm_models or []) if m and m.strip()]
        if not models:
            raise RuntimeError("LLM model list is empty. Set ITS_DONE_LLM_MODELS in your .env.")
        now = time.monotonic()
        return [m for m in models if self._bad_models.get(m, 0.0) <= now]

    def _handle_model_error(self, model: str, e: Exception) -> None:
        """Raise for fatal errors; log and return to let the caller try the next model."""
        if _is_auth_error(e):
            raise RuntimeError(
                "LLM authentication failed. Check your API key (ITS_DONE_OPENROUTER_API_KEY)."
            ) from e
        if _is_not_found_error(e):
            self._bad_models[model] = time.monotonic() + BAD_MODEL_COOLDOWN_SECONDS
            logger.info("LLM: model not available (404): %s", model)
        elif _is_rate_limit_error(e):
            logger.info("LLM: rate-limited on model=%s, trying next", model)
        elif _is_connection_error(e):
            logger.info("LLM: network/timeout error on model=%s, trying next", model)
        else:
            logger.info("LLM: error on model=%s (%s), trying next", model, e.__class__.__name__)

    @staticmethod
    def _exhausted_error(last_error: Optional[Exception]) -> RuntimeError:
        if last_error is not None and _is_rate_limit_error(last_error):
            return RuntimeError("LLM is rate-limited. Try again later.")
        if last_error is not None and _is_connection_error(last_error):
            return RuntimeError("LLM network/timeout error. Try again later or change models.")
        return RuntimeError("All LLM models failed.")

    def stream_chat(
            self,
            messages: list[LLMMessage],
            system_prompt: str,
            *,
            temperature: float | None = None,
            max_tokens: int | None = None,
            json_mode: bool = False,
    ) -> Iterable[str]:
        """Stream the LLM response in text chunks."""
        models = self._candidate_models()
        client = self._get_client()
        headers: Dict[str, str] = dict(self._settings.extra_headers or {})

        t = self._timeouts
        first_token_timeout = float(t["first_token"])

        params: dict[str, Any] = {}
        if temperature is not None:
            params["temperature"] = temperature
        if max_tokens is not None:
            params["max_tokens"] = max_tokens
        if json_mode:
            params["response_format"] = {"type": "json_object"}

        last_error: Optional[Exception] = None

        for model in models:
            logger.info(
                "LLM: trying model=%s (first_token_timeout=%.1fs, read_timeout=%.1fs)",
                model,
                first_token_timeout,
                float(t["read"]),
            )
            t0 = time.monotonic()
            deadline = t0 + first_token_timeout

            stream = None
            used_any = False

            try:
                stream = client.chat.completions.create(
                    model=model,
                    stream=True,
                    extra_headers=headers or None,
                    messages=[{"role": "system", "content": system_prompt}, *messages],
                    **params,
                )

                for chunk in stream:
                    if not used_any and time.monotonic() > deadline:
                        last_error = TimeoutError(f"First token timeout on model: {model}")
                        logger.info("LLM: first token timeout on model=%s -> trying next", model)
                        break

                    content = _chunk_content(chunk)
                    if content:
                        if not used_any:
                            logger.info("LLM: first token from model=%s (%.2fs)", model, time.monotonic() - t0)
                        used_any = True
                        yield content

                if used_any:
                    logger.debug("LLM: completed with model=%s", model)
                    return

                if last_error is None:
                    last_error = RuntimeError(f"Model returned no content: {model}")

            except (openai.OpenAIError, httpx.HTTPError) as e:
                # Once tokens reached the caller, switching models would splice two answers.
                if used_any:
                    raise RuntimeError(f"LLM stream interrupted on model: {model}") from e
                last_error = e
                self._handle_model_error(model, e)
                continue

            finally:
                if stream is not None:
                    _close_stream(stream)

        raise self._exhausted_error(last_error) from last_error

    def search_chat(
            self,
            messages: list[LLMMessage],
            system_prompt: str,
    ) -> tuple[str, list[dict[str, Any]]]:
        """
        Web-grounded completion via OpenRouter's `web` plugin.
        Returns (text, sources) where sources are {"uri", "title"} dicts.
        """
        models = self._candidate_models()
        client = self._get_client()
        headers: Dict[str, str] = dict(self._settings.extra_headers or {})

        last_error: Optional[Exception] = None

        for model in models:
            logger.info("LLM: web search with model=%s", model)
            try:
                completion = client.chat.completions.create(
                    model=model,
                    extra_headers=headers or None,
                    extra_body={"plugins": [{"id": "web"}]},
                    messages=[{"role": "system", "content": system_prompt}, *messages],
                )
            except (openai.OpenAIError, httpx.HTTPError) as e:
                last_error = e
                self._handle_model_error(model, e)
                continue

            choices = completion.choices or []
            message = choices[0].message if choices else None
            text = (getattr(message, "content", None) or "").strip()
            if not text:
                last_error = RuntimeError(f"Model returned no content: {model}")
                logger.info("LLM: empty search answer from model=%s, trying next", model)
                continue

            sources = _citations_from_message(message)
            logger.debug("LLM: search completed with model=%s sources=%d", model, len(sources))
            return text, sources

        raise self._exhausted_error(last_error) from last_error
