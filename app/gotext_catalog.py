#!/usr/bin/env python3
"""
Gotext Catalog Module

In-memory model of gotext localization files (*.gotext.json): a language tag
plus an ordered list of messages, each with placeholders and translator
metadata. Handles parsing from and serializing back to JSON.
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List

from translator_errors import CatalogParseError

logger = logging.getLogger(__name__)

CATALOG_SUFFIX = ".gotext.json"
# Output filename written by single-file mode; never used as a translation source
GENERATED_CATALOG_NAME = "out.gotext.json"

_PLACEHOLDER_FIELDS = ("id", "string", "type", "underlyingType", "expr", "argNum")
_MESSAGE_FIELDS = (
    "id",
    "message",
    "translation",
    "placeholders",
    "translatorComment",
    "fuzzy",
)
_CATALOG_FIELDS = ("language", "messages")


@dataclass
class Placeholder:
    """A positional substitution token of a message."""

    id: str = ""
    string: str = ""
    type: str = ""
    underlying_type: str = ""
    expr: str = ""
    arg_num: int = 0
    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Placeholder":
        if not isinstance(data, dict):
            raise CatalogParseError(f"placeholder must be an object, got {data!r}")
        arg_num = data.get("argNum", 0)
        if isinstance(arg_num, bool) or not isinstance(arg_num, int):
            raise CatalogParseError(f"placeholder argNum must be an integer, got {arg_num!r}")
        return cls(
            id=_as_str(data.get("id"), "placeholder id"),
            string=_as_str(data.get("string"), "placeholder string"),
            type=_as_str(data.get("type"), "placeholder type"),
            underlying_type=_as_str(data.get("underlyingType"), "placeholder underlyingType"),
            expr=_as_str(data.get("expr"), "placeholder expr"),
            arg_num=arg_num,
            extra={k: v for k, v in data.items() if k not in _PLACEHOLDER_FIELDS},
        )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "id": self.id,
            "string": self.string,
            "type": self.type,
            "underlyingType": self.underlying_type,
            "expr": self.expr,
            "argNum": self.arg_num,
        }
        data.update(self.extra)
        return data


@dataclass
class Message:
    """
    One translatable unit of a catalog.

    Attributes:
        id: Stable identifier, unique within a catalog
        message: Source text
        translation: Translated text (empty means untranslated)
        placeholders: Ordered placeholders; order is the positional substitution order
        translator_comment: Optional note for translators
        fuzzy: Marks a translation as needing review
        extra: Unknown JSON fields, written back unchanged
    """

    id: str
    message: str = ""
    translation: str = ""
    placeholders: List[Placeholder] = field(default_factory=list)
    translator_comment: str = ""
    fuzzy: bool = False
    extra: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_translated(self) -> bool:
        return self.translation != ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Message":
        if not isinstance(data, dict):
            raise CatalogParseError(f"message must be an object, got {data!r}")
        if "id" not in data:
            raise CatalogParseError(f"message without id: {data!r}")

        raw_placeholders = data.get("placeholders")
        if raw_placeholders is None:
            raw_placeholders = []
        if not isinstance(raw_placeholders, list):
            raise CatalogParseError(
                f"placeholders of message '{data['id']}' must be an array"
            )
        fuzzy = data.get("fuzzy", False)
        if not isinstance(fuzzy, bool):
            raise CatalogParseError(f"fuzzy of message '{data['id']}' must be a boolean")

        return cls(
            id=_as_str(data["id"], "message id"),
            message=_as_str(data.get("message"), "message text"),
            translation=_as_str(data.get("translation"), "translation"),
            placeholders=[Placeholder.from_dict(p) for p in raw_placeholders],
            translator_comment=_as_str(data.get("translatorComment"), "translatorComment"),
            fuzzy=fuzzy,
            extra={k: v for k, v in data.items() if k not in _MESSAGE_FIELDS},
        )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "id": self.id,
            "message": self.message,
            "translation": self.translation,
        }
        if self.placeholders:
            data["placeholders"] = [p.to_dict() for p in self.placeholders]
        if self.translator_comment:
            data["translatorComment"] = self.translator_comment
        if self.fuzzy:
            data["fuzzy"] = True
        data.update(self.extra)
        return data


@dataclass
class Catalog:
    """A localization file: a target-language tag plus an ordered list of messages."""

    language: str
    messages: List[Message] = field(default_factory=list)
    extra: Dict[str, Any] = field(default_factory=dict)

    def duplicate_ids(self) -> List[str]:
        """Return identifiers that occur more than once, in first-seen order."""
        seen = set()
        duplicates: List[str] = []
        for msg in self.messages:
            if msg.id in seen and msg.id not in duplicates:
                duplicates.append(msg.id)
            seen.add(msg.id)
        return duplicates

    def summary(self) -> Dict[str, int]:
        """Return message counts for reporting."""
        translated = sum(1 for msg in self.messages if msg.is_translated)
        return {
            "messages": len(self.messages),
            "translated": translated,
            "untranslated": len(self.messages) - translated,
        }

    @classmethod
    def from_dict(cls, data: Any) -> "Catalog":
        if not isinstance(data, dict):
            raise CatalogParseError("catalog must be a JSON object")
        raw_messages = data.get("messages")
        if raw_messages is None:
            raw_messages = []
        if not isinstance(raw_messages, list):
            raise CatalogParseError("catalog 'messages' must be an array")
        return cls(
            language=_as_str(data.get("language"), "language"),
            messages=[Message.from_dict(m) for m in raw_messages],
            extra={k: v for k, v in data.items() if k not in _CATALOG_FIELDS},
        )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "language": self.language,
            "messages": [msg.to_dict() for msg in self.messages],
        }
        data.update(self.extra)
        return data


def _as_str(value: Any, what: str) -> str:
    """Coerce a JSON field to str, treating missing/null as empty."""
    if value is None:
        return ""
    if not isinstance(value, str):
        raise CatalogParseError(f"{what} must be a string, got {value!r}")
    return value


def loads_catalog(data) -> Catalog:
    """
    Parse catalog JSON text (str or bytes) into a Catalog.

    Raises:
        CatalogParseError: If the payload is not valid JSON or not catalog-shaped
    """
    try:
        raw = json.loads(data)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise CatalogParseError(f"invalid JSON: {e}") from e
    catalog = Catalog.from_dict(raw)
    logger.debug(
        f"Parsed catalog for '{catalog.language}' with {len(catalog.messages)} messages"
    )
    return catalog


def dumps_catalog(catalog: Catalog) -> str:
    """Serialize a Catalog to indented JSON text, keeping non-ASCII characters literal."""
    return json.dumps(catalog.to_dict(), indent=2, ensure_ascii=False)


def is_catalog_file(name: str) -> bool:
    """True for *.gotext.json files that are not generated single-file output."""
    return name.endswith(CATALOG_SUFFIX) and name != GENERATED_CATALOG_NAME
