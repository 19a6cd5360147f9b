#!/usr/bin/env python3
"""
Gotext Resource Auto-Translator

This script translates untranslated messages in gotext localization files
(*.gotext.json) using an LLM provider, either for a single file or for a whole
`locales/<lang>/...` directory tree, and reports what was translated.
"""

import argparse
import logging
import os
import signal
import sys
from pathlib import Path
from typing import List, Optional

from language_utils import get_language_name
from reconcile import (
    DirectoryResult,
    FileResult,
    default_output_path,
    translate_directory,
    translate_file,
)
from translator_config import LLMConfig, load_config
from translator_errors import TranslationCancelled, TranslatorError
from translator_registry import ProviderRegistry, default_registry

__version__ = "0.1.0"

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_INTERRUPTED = 130

# ------------------------------------------------------------------------------
# Logger Setup
# ------------------------------------------------------------------------------

logger = logging.getLogger(__name__)

LOG_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


def configure_logging(level: str = "info") -> None:
    """Configure console logging for every module."""
    log_level = LOG_LEVELS.get(level.lower(), logging.INFO)
    formatter = logging.Formatter("%(asctime)s [%(levelname)s] %(message)s")

    # Configure the root logger so every module shares the same handlers/level.
    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    if not root_logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(formatter)
        root_logger.addHandler(handler)
    else:
        for existing_handler in root_logger.handlers:
            existing_handler.setFormatter(formatter)

    logger.setLevel(log_level)

    # Suppress noisy debug logs from HTTP client/SDK libraries unless they escalate.
    noisy_loggers = [
        "openai",
        "openai._base_client",
        "anthropic",
        "anthropic._base_client",
        "httpx",
        "httpcore",
    ]
    for name in noisy_loggers:
        logging.getLogger(name).setLevel(logging.WARNING)


# ------------------------------------------------------------------------------
# Translation Report
# ------------------------------------------------------------------------------


def create_translation_report(
    target_lang: str, file_results: List[FileResult], failed_files: Optional[dict] = None
) -> str:
    """
    Build a Markdown report of the messages translated in this run.
    """
    report = "# Translation Report\n\n"
    report += f"### Language: {get_language_name(target_lang)}\n\n"

    has_translations = False
    for file_result in file_results:
        if not file_result.details and not file_result.failed_messages:
            continue

        report += f"#### File: {file_result.target_path}\n\n"
        if file_result.totals:
            report += (
                f"Messages: {file_result.totals['messages']} "
                f"(translated: {file_result.totals['translated']}, "
                f"untranslated: {file_result.totals['untranslated']})\n\n"
            )
        if file_result.details:
            has_translations = True
            report += "| Key | Source Text | Translated Text |\n"
            report += "| --- | ----------- | --------------- |\n"
            for entry in file_result.details:
                source = entry["source"].replace("\n", " ").replace("|", "\\|")
                translation = entry["translation"].replace("\n", " ").replace("|", "\\|")
                report += f"| {entry['id']} | {source} | {translation} |\n"
            report += "\n"

        if file_result.failed_messages:
            report += "Failed messages: "
            report += ", ".join(sorted(file_result.failed_messages))
            report += "\n\n"

    if failed_files:
        report += "#### Skipped files\n\n"
        for path, error in failed_files.items():
            report += f"- {path}: {error}\n"
        report += "\n"

    if not has_translations:
        report += "No translations were performed."

    return report


def emit_report(report: str) -> None:
    """Print the report, or append it to $GITHUB_OUTPUT when running in GitHub Actions."""
    if "GITHUB_OUTPUT" in os.environ:
        with open(os.environ["GITHUB_OUTPUT"], "a", encoding="utf-8") as f:
            # Use a unique delimiter to prevent collision if translations contain "EOF"
            delimiter = "EOF_TRANSLATION_REPORT_4c1a9e2b"
            print(f"translation_report<<{delimiter}", file=f)
            print(report, file=f)
            print(delimiter, file=f)
    else:
        print("\nTranslation Report:")
        print(report)


# ------------------------------------------------------------------------------
# Commands
# ------------------------------------------------------------------------------


def prepare_translator(llm_config: LLMConfig, registry: ProviderRegistry):
    """Build the configured provider; raises ConfigError/UnknownProviderError."""
    logger.info(
        f"Initializing translator with provider {llm_config.provider} "
        f"and model {llm_config.model or '(provider default)'}"
    )
    return registry.create_translator(
        llm_config.provider, llm_config.to_provider_config()
    )


def run_translate(args: argparse.Namespace, llm_config: LLMConfig, registry: ProviderRegistry) -> FileResult:
    translator = prepare_translator(llm_config, registry)
    output_path = Path(args.output) if args.output else default_output_path(args.source)

    result = translate_file(
        Path(args.source),
        output_path,
        args.target_lang,
        translator,
        force_rewrite=args.force_rewrite,
    )
    emit_report(create_translation_report(args.target_lang, [result]))
    return result


def run_translate_dir(args: argparse.Namespace, llm_config: LLMConfig, registry: ProviderRegistry) -> DirectoryResult:
    translator = prepare_translator(llm_config, registry)

    result = translate_directory(
        Path(args.dir),
        args.target_lang,
        translator,
        force_rewrite=args.force_rewrite,
        source_lang=args.source_lang,
    )
    emit_report(
        create_translation_report(args.target_lang, result.files, result.failed_files)
    )
    return result


def run_providers(registry: ProviderRegistry) -> None:
    providers = sorted(registry.list_providers())
    if not providers:
        print("No translation providers registered")
        return

    print("Available translation providers:")
    for provider in providers:
        print(f"  - {provider}")
    print(
        "\nConfigure the provider in your config file (llm.provider) "
        "or via the LLM_PROVIDER environment variable."
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="gotext-translate",
        description="Translate untranslated strings in gotext localization files using LLMs",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--config", default=None, help="Config file path (YAML or JSON)")
    parser.add_argument(
        "--log-level",
        choices=sorted(LOG_LEVELS),
        default="info",
        help="Log level (default: info)",
    )
    parser.add_argument(
        "--force-rewrite",
        action="store_true",
        help="Re-translate messages that already have a translation",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    translate_parser = subparsers.add_parser("translate", help="Translate a single file")
    translate_parser.add_argument("--source", required=True, help="Source file path")
    translate_parser.add_argument(
        "--target-lang", required=True, help="Target language (e.g., ru-RU)"
    )
    translate_parser.add_argument(
        "--output",
        default=None,
        help="Output file path (default: out.gotext.json next to the source)",
    )

    dir_parser = subparsers.add_parser(
        "translate-dir", help="Translate all files in a locales directory tree"
    )
    dir_parser.add_argument(
        "--dir",
        required=True,
        help="Project directory containing locales/<lang>/ subdirectories",
    )
    dir_parser.add_argument(
        "--target-lang", required=True, help="Target language (e.g., ru-RU)"
    )
    dir_parser.add_argument(
        "--source-lang",
        default=None,
        help="Source language directory (default: first other language, sorted)",
    )

    subparsers.add_parser("providers", help="List available translation providers")

    return parser


def _raise_keyboard_interrupt(signum, frame):
    raise KeyboardInterrupt


# ------------------------------------------------------------------------------
# Main Entry Point
# ------------------------------------------------------------------------------


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main entry point for the Gotext Translator CLI.
    Returns the process exit code.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    configure_logging(args.log_level)
    registry = default_registry()

    if args.command == "providers":
        run_providers(registry)
        return EXIT_OK

    # SIGTERM follows the same path as Ctrl+C: abort without writing a partial file
    previous_handler = signal.signal(signal.SIGTERM, _raise_keyboard_interrupt)

    try:
        llm_config = load_config(args.config)
        if args.command == "translate":
            run_translate(args, llm_config, registry)
        else:
            run_translate_dir(args, llm_config, registry)
    except (KeyboardInterrupt, TranslationCancelled):
        logger.error("Translation interrupted; the current file was not written")
        return EXIT_INTERRUPTED
    except TranslatorError as e:
        logger.error(f"Error: {e}")
        return EXIT_FAILURE
    finally:
        signal.signal(signal.SIGTERM, previous_handler)

    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
