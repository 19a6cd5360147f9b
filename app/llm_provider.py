#!/usr/bin/env python3
"""
LLM Provider Module

This module provides an abstraction layer for translating text through
different LLM vendors (OpenAI, OpenRouter, Anthropic) behind one interface.
It handles provider-specific configuration, API endpoints, authentication and
response quirks. Each vendor contributes a builder that turns a flat
configuration mapping into a ready TranslationProvider.
"""

import logging
from abc import ABC, abstractmethod
from typing import Dict, Mapping, Optional

import anthropic
from openai import OpenAI, OpenAIError

from language_utils import describe_language
from translator_errors import ConfigError, ProviderError

logger = logging.getLogger(__name__)


# ------------------------------------------------------------------------------
# Translation Prompt Constants
# ------------------------------------------------------------------------------

SYSTEM_MESSAGE = (
    "You are a professional translator. Your task is to translate text accurately "
    "while preserving all formatting, placeholders, and special characters."
)
TRANSLATE_PROMPT_TEMPLATE = """\
Translate the following text to {target_language}. Preserve any formatting, \
placeholders (such as {{Name}}, %s, %d), and special characters exactly as they \
appear. Return ONLY the translated text, without quotes or explanations.

{text}"""

OPENAI_BASE_URL = "https://api.openai.com/v1"
OPENROUTER_BASE_URL = "https://openrouter.ai/api/v1"

DEFAULT_OPENAI_MODEL = "gpt-3.5-turbo"
DEFAULT_OPENROUTER_MODEL = "openai/gpt-3.5-turbo"
DEFAULT_ANTHROPIC_MODEL = "claude-3-haiku-20240307"

DEFAULT_TEMPERATURE = 0.3
DEFAULT_MAX_TOKENS = 1024

DEFAULT_OPENROUTER_SITE_URL = "https://github.com/gotext-translator/gotext-translator"
DEFAULT_OPENROUTER_SITE_NAME = "Gotext Translator"


def build_translation_prompt(text: str, target_lang: str) -> str:
    """Build the user prompt asking for a translation of text into target_lang."""
    return TRANSLATE_PROMPT_TEMPLATE.format(
        target_language=describe_language(target_lang), text=text
    )


class TranslationProvider(ABC):
    """
    A configured translation backend.

    Instances are stateless once built: they hold an API client, a model name
    and options, and can be reused for any number of sequential translate calls.
    """

    name: str = ""

    def get_name(self) -> str:
        return self.name

    @abstractmethod
    def translate(self, text: str, target_lang: str) -> str:
        """
        Translate text into target_lang.

        Returns:
            The translated text only, with no surrounding metadata

        Raises:
            ProviderError: If the upstream call fails or returns nothing usable
        """


class OpenAICompatibleTranslator(TranslationProvider):
    """
    Translator for OpenAI-compatible chat completion APIs.

    Serves both OpenAI and OpenRouter through the OpenAI Python SDK, as both
    providers are API-compatible and only differ in base URL and headers.
    """

    def __init__(
        self,
        name: str,
        api_key: str,
        model: str,
        base_url: str = OPENAI_BASE_URL,
        temperature: float = DEFAULT_TEMPERATURE,
        extra_headers: Optional[Dict[str, str]] = None,
    ):
        self.name = name
        self.model = model
        self.base_url = base_url
        self.temperature = temperature
        self.extra_headers = dict(extra_headers or {})
        logger.debug(f"Creating OpenAI client with base_url={base_url}")
        self.client = OpenAI(api_key=api_key, base_url=base_url)

        logger.info(f"Initialized LLM client with provider={name}, model={model}")

    def translate(self, text: str, target_lang: str) -> str:
        if not text or not text.strip():
            return ""

        api_params = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": SYSTEM_MESSAGE},
                {"role": "user", "content": build_translation_prompt(text, target_lang)},
            ],
            "temperature": self.temperature,
        }
        if self.extra_headers:
            api_params["extra_headers"] = self.extra_headers

        logger.debug(
            f"Sending chat completion request to {self.name} "
            f"(model: {self.model}, temperature: {self.temperature})"
        )

        try:
            response = self.client.chat.completions.create(**api_params)
        except OpenAIError as e:
            raise ProviderError(f"failed to get translation from {self.name}: {e}") from e

        if not response.choices:
            raise ProviderError(f"no translation choices returned from {self.name}")

        content = response.choices[0].message.content
        translation = (content or "").strip()
        if not translation:
            raise ProviderError(f"empty translation returned from {self.name}")

        logger.debug(f"Received response from {self.name}: {translation[:100]}")
        return translation


class AnthropicTranslator(TranslationProvider):
    """Translator backed by the Anthropic Messages API."""

    name = "anthropic"

    def __init__(self, api_key: str, model: str, max_tokens: int = DEFAULT_MAX_TOKENS):
        self.model = model
        self.max_tokens = max_tokens
        self.client = anthropic.Anthropic(api_key=api_key)

        logger.info(f"Initialized LLM client with provider={self.name}, model={model}")

    def translate(self, text: str, target_lang: str) -> str:
        if not text or not text.strip():
            return ""

        logger.debug(
            f"Sending messages request to {self.name} "
            f"(model: {self.model}, max_tokens: {self.max_tokens})"
        )

        try:
            response = self.client.messages.create(
                model=self.model,
                max_tokens=self.max_tokens,
                system=SYSTEM_MESSAGE,
                messages=[
                    {
                        "role": "user",
                        "content": build_translation_prompt(text, target_lang),
                    }
                ],
            )
        except anthropic.AnthropicError as e:
            raise ProviderError(f"failed to get translation from Anthropic: {e}") from e

        translation = ""
        for block in response.content or []:
            if getattr(block, "type", None) == "text":
                translation = block.text
                break

        translation = strip_translation_preamble(translation)
        if not translation:
            raise ProviderError("empty or invalid response from Anthropic API")
        return translation


def strip_translation_preamble(reply: str) -> str:
    """
    Drop an explanatory first paragraph from a model reply.

    Claude models sometimes answer with "Here is the translation:" followed by a
    blank line and the actual text. If the first paragraph mentions a
    translation, only the remainder is returned.
    """
    reply = (reply or "").strip()
    if "\n\n" in reply:
        head, rest = reply.split("\n\n", 1)
        if "translation" in head.lower() and rest.strip():
            return rest.strip()
    return reply


# ------------------------------------------------------------------------------
# Provider Builders
# ------------------------------------------------------------------------------


def _require_api_key(config: Mapping[str, str], vendor: str) -> str:
    api_key = config.get("api_key") or ""
    if not api_key:
        raise ConfigError(f"{vendor} API key is required")
    return api_key


def _parse_float(config: Mapping[str, str], key: str, default: float) -> float:
    raw = config.get(key)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except (TypeError, ValueError):
        raise ConfigError(f"option '{key}' must be a number, got {raw!r}")


def _parse_int(config: Mapping[str, str], key: str, default: int) -> int:
    raw = config.get(key)
    if raw is None or raw == "":
        return default
    try:
        value = int(raw)
    except (TypeError, ValueError):
        raise ConfigError(f"option '{key}' must be an integer, got {raw!r}")
    if value <= 0:
        raise ConfigError(f"option '{key}' must be positive, got {value}")
    return value


def _parse_bool(config: Mapping[str, str], key: str, default: bool) -> bool:
    raw = config.get(key)
    if raw is None or raw == "":
        return default
    value = str(raw).strip().lower()
    if value in ("true", "1", "yes", "on"):
        return True
    if value in ("false", "0", "no", "off"):
        return False
    raise ConfigError(f"option '{key}' must be a boolean, got {raw!r}")


def build_openai_translator(config: Mapping[str, str]) -> TranslationProvider:
    """Build an OpenAI translator. Options: temperature, base_url."""
    api_key = _require_api_key(config, "OpenAI")
    return OpenAICompatibleTranslator(
        name="openai",
        api_key=api_key,
        model=config.get("model") or DEFAULT_OPENAI_MODEL,
        base_url=config.get("base_url") or OPENAI_BASE_URL,
        temperature=_parse_float(config, "temperature", DEFAULT_TEMPERATURE),
    )


def build_openrouter_translator(config: Mapping[str, str]) -> TranslationProvider:
    """
    Build an OpenRouter translator.

    Options:
        temperature: Sampling temperature
        site_url: Sent as HTTP-Referer for OpenRouter rankings
        site_name: Sent as X-Title for OpenRouter rankings
        send_site_info: Set to "false" to send neither header
    """
    api_key = _require_api_key(config, "OpenRouter")

    headers: Dict[str, str] = {}
    if _parse_bool(config, "send_site_info", True):
        headers["HTTP-Referer"] = config.get("site_url") or DEFAULT_OPENROUTER_SITE_URL
        headers["X-Title"] = config.get("site_name") or DEFAULT_OPENROUTER_SITE_NAME

    return OpenAICompatibleTranslator(
        name="openrouter",
        api_key=api_key,
        model=config.get("model") or DEFAULT_OPENROUTER_MODEL,
        base_url=OPENROUTER_BASE_URL,
        temperature=_parse_float(config, "temperature", DEFAULT_TEMPERATURE),
        extra_headers=headers,
    )


def build_anthropic_translator(config: Mapping[str, str]) -> TranslationProvider:
    """Build an Anthropic translator. Options: max_tokens."""
    api_key = _require_api_key(config, "Anthropic")
    return AnthropicTranslator(
        api_key=api_key,
        model=config.get("model") or DEFAULT_ANTHROPIC_MODEL,
        max_tokens=_parse_int(config, "max_tokens", DEFAULT_MAX_TOKENS),
    )


DEFAULT_PROVIDER_BUILDERS = {
    "openai": build_openai_translator,
    "openrouter": build_openrouter_translator,
    "anthropic": build_anthropic_translator,
}
