from babel import Locale, UnknownLocaleError

import logging
import re

logger = logging.getLogger(__name__)


def normalize_language_tag(language_tag: str) -> str:
    """
    Convert a BCP-47-like tag into Babel's underscore form.

    Examples:
        'ru-RU'      -> 'ru_RU'
        'zh-Hans-CN' -> 'zh_Hans_CN'
        'pt_BR'      -> 'pt_BR'
    """
    return re.sub(r"[-+]", "_", language_tag.strip())


def get_language_name(language_tag: str) -> str:
    """
    Get the English display name of a language tag using Babel.

    Used to build translation prompts, where "Russian (Russia)" reads better to
    an LLM than the bare "ru-RU" tag.

    Args:
        language_tag: A language tag such as 'en', 'ru-RU', 'zh-Hans-CN' or 'pt_BR'

    Returns:
        The display name in English, including region/script if present.
        Returns the original tag if Babel cannot parse it.
    """
    if not language_tag or not language_tag.strip():
        return language_tag

    try:
        locale = Locale.parse(normalize_language_tag(language_tag))
        return locale.get_display_name(locale="en")
    except (ValueError, UnknownLocaleError) as e:
        logger.warning(
            f"Could not determine language name for tag '{language_tag}': {e}"
        )
        return language_tag


def describe_language(language_tag: str) -> str:
    """Return 'Name [tag]' for prompts, or just the tag when no name is known."""
    name = get_language_name(language_tag)
    if name == language_tag:
        return language_tag
    return f"{name} [{language_tag}]"
