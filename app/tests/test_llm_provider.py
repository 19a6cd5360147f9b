#!/usr/bin/env python3
"""
Tests for the LLM provider module.

This module tests the vendor translators with mocked SDK clients, including:
- Request construction (model, prompt, headers)
- Builder defaults and configuration validation
- Mapping of SDK errors and empty replies to ProviderError
- Anthropic preamble stripping
"""
import os
import sys
import unittest
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import anthropic
from openai import OpenAIError

# Add parent directory to path for module import
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from llm_provider import (
    DEFAULT_ANTHROPIC_MODEL,
    DEFAULT_OPENAI_MODEL,
    DEFAULT_OPENROUTER_MODEL,
    OPENROUTER_BASE_URL,
    SYSTEM_MESSAGE,
    build_anthropic_translator,
    build_openai_translator,
    build_openrouter_translator,
    build_translation_prompt,
    strip_translation_preamble,
)
from translator_errors import ConfigError, ProviderError


def chat_response(content):
    message = SimpleNamespace(content=content)
    return SimpleNamespace(choices=[SimpleNamespace(message=message)])


@patch("llm_provider.OpenAI")
class TestOpenAITranslator(unittest.TestCase):
    """Tests for OpenAI and OpenRouter translators."""

    def test_translate_sends_prompt(self, mock_openai):
        """Test that translate sends system and user prompts and strips the reply."""
        client = mock_openai.return_value
        client.chat.completions.create.return_value = chat_response("  Привет, Мир!\n")

        translator = build_openai_translator({"api_key": "test-key", "model": "test-model"})
        result = translator.translate("Hello, World!", "ru-RU")

        self.assertEqual(result, "Привет, Мир!")
        self.assertEqual(translator.get_name(), "openai")
        mock_openai.assert_called_once_with(api_key="test-key", base_url="https://api.openai.com/v1")

        kwargs = client.chat.completions.create.call_args.kwargs
        self.assertEqual(kwargs["model"], "test-model")
        self.assertEqual(kwargs["temperature"], 0.3)
        self.assertEqual(kwargs["messages"][0], {"role": "system", "content": SYSTEM_MESSAGE})
        user_prompt = kwargs["messages"][1]["content"]
        self.assertIn("Hello, World!", user_prompt)
        self.assertIn("ru-RU", user_prompt)
        self.assertIn("Russian", user_prompt)
        self.assertNotIn("extra_headers", kwargs)

    def test_default_model_and_options(self, mock_openai):
        """Test that a missing model falls back to the default and options apply."""
        translator = build_openai_translator(
            {"api_key": "k", "model": "", "temperature": "0", "base_url": "http://localhost:8080/v1"}
        )
        self.assertEqual(translator.model, DEFAULT_OPENAI_MODEL)
        self.assertEqual(translator.temperature, 0.0)
        mock_openai.assert_called_once_with(api_key="k", base_url="http://localhost:8080/v1")

    def test_missing_api_key(self, mock_openai):
        """Test that a missing API key raises ConfigError before creating a client."""
        for config in ({"model": "m"}, {"api_key": "", "model": "m"}):
            with self.subTest(config=config):
                with self.assertRaises(ConfigError) as ctx:
                    build_openai_translator(config)
                self.assertIn("API key is required", str(ctx.exception))
        mock_openai.assert_not_called()

    def test_invalid_temperature(self, mock_openai):
        """Test that a non-numeric temperature is a configuration error."""
        with self.assertRaises(ConfigError):
            build_openai_translator({"api_key": "k", "temperature": "warm"})

    def test_sdk_error_becomes_provider_error(self, mock_openai):
        """Test that SDK failures surface as ProviderError."""
        client = mock_openai.return_value
        client.chat.completions.create.side_effect = OpenAIError("connection refused")

        translator = build_openai_translator({"api_key": "k"})
        with self.assertRaises(ProviderError) as ctx:
            translator.translate("Hello", "de")
        self.assertIn("connection refused", str(ctx.exception))

    def test_empty_reply_is_error(self, mock_openai):
        """Test that empty or missing content raises ProviderError."""
        client = mock_openai.return_value
        translator = build_openai_translator({"api_key": "k"})

        for response in (chat_response(None), chat_response("   "), SimpleNamespace(choices=[])):
            with self.subTest(response=response):
                client.chat.completions.create.return_value = response
                with self.assertRaises(ProviderError):
                    translator.translate("Hello", "de")

    def test_blank_text_not_sent(self, mock_openai):
        """Test that blank input returns an empty string without an API call."""
        client = mock_openai.return_value
        translator = build_openai_translator({"api_key": "k"})

        self.assertEqual(translator.translate("   ", "de"), "")
        client.chat.completions.create.assert_not_called()

    def test_translator_is_reusable(self, mock_openai):
        """Test that one translator instance serves several sequential calls."""
        client = mock_openai.return_value
        client.chat.completions.create.side_effect = [chat_response("Eins"), chat_response("Zwei")]
        translator = build_openai_translator({"api_key": "k"})

        self.assertEqual(translator.translate("One", "de"), "Eins")
        self.assertEqual(translator.translate("Two", "de"), "Zwei")
        mock_openai.assert_called_once()

    def test_openrouter_headers_and_defaults(self, mock_openai):
        """Test the OpenRouter base URL, default model and site headers."""
        client = mock_openai.return_value
        client.chat.completions.create.return_value = chat_response("Hola")

        translator = build_openrouter_translator(
            {"api_key": "k", "site_url": "https://example.com", "site_name": "Example"}
        )
        translator.translate("Hello", "es")

        self.assertEqual(translator.get_name(), "openrouter")
        self.assertEqual(translator.model, DEFAULT_OPENROUTER_MODEL)
        mock_openai.assert_called_once_with(api_key="k", base_url=OPENROUTER_BASE_URL)
        kwargs = client.chat.completions.create.call_args.kwargs
        self.assertEqual(
            kwargs["extra_headers"],
            {"HTTP-Referer": "https://example.com", "X-Title": "Example"},
        )

    def test_openrouter_site_info_disabled(self, mock_openai):
        """Test that send_site_info=false suppresses the ranking headers."""
        client = mock_openai.return_value
        client.chat.completions.create.return_value = chat_response("Hola")

        translator = build_openrouter_translator({"api_key": "k", "send_site_info": "false"})
        translator.translate("Hello", "es")

        self.assertNotIn("extra_headers", client.chat.completions.create.call_args.kwargs)

    def test_openrouter_missing_api_key(self, mock_openai):
        """Test the OpenRouter API key requirement."""
        with self.assertRaises(ConfigError) as ctx:
            build_openrouter_translator({"model": "m"})
        self.assertIn("OpenRouter API key is required", str(ctx.exception))


@patch("llm_provider.anthropic.Anthropic")
class TestAnthropicTranslator(unittest.TestCase):
    """Tests for the Anthropic translator."""

    def _reply(self, *blocks):
        return SimpleNamespace(content=list(blocks))

    def test_translate_extracts_text_block(self, mock_anthropic):
        """Test that the first text block is returned."""
        client = mock_anthropic.return_value
        client.messages.create.return_value = self._reply(
            SimpleNamespace(type="thinking", text="ignored"),
            SimpleNamespace(type="text", text="Bonjour"),
        )

        translator = build_anthropic_translator({"api_key": "k", "model": "claude-test"})
        result = translator.translate("Hello", "fr-FR")

        self.assertEqual(result, "Bonjour")
        mock_anthropic.assert_called_once_with(api_key="k")
        kwargs = client.messages.create.call_args.kwargs
        self.assertEqual(kwargs["model"], "claude-test")
        self.assertEqual(kwargs["max_tokens"], 1024)
        self.assertEqual(kwargs["system"], SYSTEM_MESSAGE)
        self.assertEqual(kwargs["messages"][0]["role"], "user")
        self.assertIn("Hello", kwargs["messages"][0]["content"])

    def test_defaults_and_options(self, mock_anthropic):
        """Test the default model and the max_tokens option."""
        translator = build_anthropic_translator({"api_key": "k", "max_tokens": "256"})
        self.assertEqual(translator.model, DEFAULT_ANTHROPIC_MODEL)
        self.assertEqual(translator.max_tokens, 256)

        with self.assertRaises(ConfigError):
            build_anthropic_translator({"api_key": "k", "max_tokens": "-1"})
        with self.assertRaises(ConfigError):
            build_anthropic_translator({"model": "m"})

    def test_preamble_is_stripped(self, mock_anthropic):
        """Test that an explanatory first paragraph is removed."""
        client = mock_anthropic.return_value
        client.messages.create.return_value = self._reply(
            SimpleNamespace(type="text", text="Here is the translation:\n\nHallo Welt")
        )

        translator = build_anthropic_translator({"api_key": "k"})
        self.assertEqual(translator.translate("Hello World", "de"), "Hallo Welt")

    def test_errors(self, mock_anthropic):
        """Test that SDK errors and empty replies raise ProviderError."""
        client = mock_anthropic.return_value
        translator = build_anthropic_translator({"api_key": "k"})

        client.messages.create.side_effect = anthropic.AnthropicError("overloaded")
        with self.assertRaises(ProviderError):
            translator.translate("Hello", "de")

        client.messages.create.side_effect = None
        client.messages.create.return_value = self._reply()
        with self.assertRaises(ProviderError):
            translator.translate("Hello", "de")


class TestPromptHelpers(unittest.TestCase):
    """Tests for prompt construction and reply cleanup."""

    def test_build_translation_prompt(self):
        """Test that the prompt names the language and carries the text verbatim."""
        prompt = build_translation_prompt("You have {Count} new messages", "de-DE")
        self.assertIn("German (Germany) [de-DE]", prompt)
        self.assertTrue(prompt.endswith("You have {Count} new messages"))
        self.assertIn("{Name}", prompt)

    def test_strip_translation_preamble(self):
        """Test preamble stripping edge cases."""
        cases = [
            ("Hallo", "Hallo"),
            ("  Hallo  ", "Hallo"),
            ("Translation:\n\nHallo", "Hallo"),
            ("Erste Zeile\n\nZweite Zeile", "Erste Zeile\n\nZweite Zeile"),
            ("Here is the translation:\n\n", "Here is the translation:"),
            ("", ""),
            (None, ""),
        ]
        for reply, expected in cases:
            with self.subTest(reply=reply):
                self.assertEqual(strip_translation_preamble(reply), expected)


if __name__ == "__main__":
    unittest.main()
