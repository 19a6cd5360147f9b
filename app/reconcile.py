#!/usr/bin/env python3
"""
Catalog Reconciliation

Merges a freshly extracted source catalog with an existing target catalog,
requests translations for the messages that need one, and writes the target
catalog back. Messages are only ever added or updated; target messages whose
identifiers vanished from the source are kept as they are so that no human
translation is lost.
"""

import copy
import logging
import os
import shutil
import tempfile
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

from gotext_catalog import (
    CATALOG_SUFFIX,
    Catalog,
    GENERATED_CATALOG_NAME,
    Message,
    dumps_catalog,
    is_catalog_file,
    loads_catalog,
)
from llm_provider import TranslationProvider
from translator_errors import (
    CatalogError,
    CatalogIOError,
    ConfigError,
    DuplicateMessageError,
    ProviderError,
    TranslationCancelled,
)

logger = logging.getLogger(__name__)

MACHINE_TRANSLATED_COMMENT = "Machine translated"
LOCALES_DIR_NAME = "locales"


@dataclass
class ReconcileResult:
    """Outcome of reconciling one catalog."""

    catalog: Catalog
    translated_ids: List[str] = field(default_factory=list)
    failed: Dict[str, str] = field(default_factory=dict)  # id -> error message
    added_ids: List[str] = field(default_factory=list)
    details: List[Dict[str, str]] = field(default_factory=list)

    @property
    def translated(self) -> int:
        return len(self.translated_ids)


@dataclass
class FileResult:
    """Outcome of processing one source/target file pair."""

    source_path: Path
    target_path: Path
    translated: int = 0
    created: bool = False
    failed_messages: Dict[str, str] = field(default_factory=dict)
    details: List[Dict[str, str]] = field(default_factory=list)
    totals: Dict[str, int] = field(default_factory=dict)  # Catalog.summary() of the written file


@dataclass
class DirectoryResult:
    """Aggregate outcome of a directory run."""

    source_dir: Path
    target_dir: Path
    files: List[FileResult] = field(default_factory=list)
    failed_files: Dict[Path, str] = field(default_factory=dict)  # path -> error

    @property
    def files_processed(self) -> int:
        return len(self.files)

    @property
    def messages_translated(self) -> int:
        return sum(f.translated for f in self.files)


def _copy_for_target(source_msg: Message) -> Message:
    """Start a target message from a source message, untranslated."""
    return Message(
        id=source_msg.id,
        message=source_msg.message,
        placeholders=copy.deepcopy(source_msg.placeholders),
    )


def new_target_catalog(source: Catalog, target_lang: str) -> Catalog:
    """Create an untranslated target catalog mirroring the source messages."""
    return Catalog(
        language=target_lang,
        messages=[_copy_for_target(msg) for msg in source.messages],
    )


def reconcile_catalog(
    source: Catalog,
    existing: Optional[Catalog],
    target_lang: str,
    translator: TranslationProvider,
    force_rewrite: bool = False,
    cancel_event: Optional[threading.Event] = None,
) -> ReconcileResult:
    """
    Merge source into the target catalog and translate what is missing.

    A message is sent to the translator when its target translation is empty,
    or for every message when force_rewrite is set. A failed translation
    leaves the previous translation in place and processing continues.

    Args:
        source: Freshly extracted catalog; its translations are ignored
        existing: Previously written target catalog, or None to start from scratch
        target_lang: Language tag to translate into
        translator: Provider used for every message
        force_rewrite: Re-translate messages that already have a translation
        cancel_event: When set, abort before the next provider call

    Returns:
        ReconcileResult holding the updated catalog (existing is not modified)

    Raises:
        DuplicateMessageError: If the source catalog repeats an identifier
        TranslationCancelled: If cancel_event was set during processing
    """
    duplicates = source.duplicate_ids()
    if duplicates:
        raise DuplicateMessageError(duplicates)

    if existing is None:
        target = new_target_catalog(source, target_lang)
    else:
        target = copy.deepcopy(existing)
        target.language = target_lang

    result = ReconcileResult(catalog=target)

    index: Dict[str, int] = {}
    for i, msg in enumerate(target.messages):
        index[msg.id] = i

    for src_msg in source.messages:
        position = index.get(src_msg.id)
        if position is None:
            target.messages.append(_copy_for_target(src_msg))
            position = len(target.messages) - 1
            index[src_msg.id] = position
            result.added_ids.append(src_msg.id)
            logger.debug(f"Added new message '{src_msg.id}'")
        else:
            # The source text may have changed; keep the stored translation
            target_msg = target.messages[position]
            target_msg.message = src_msg.message
            target_msg.placeholders = copy.deepcopy(src_msg.placeholders)

        target_msg = target.messages[position]

        if target_msg.translation and not force_rewrite:
            logger.debug(f"Skipping translated message '{target_msg.id}'")
            continue

        if not target_msg.message.strip():
            logger.debug(f"Skipping message '{target_msg.id}' with empty source text")
            continue

        if cancel_event is not None and cancel_event.is_set():
            raise TranslationCancelled(
                f"translation cancelled before message '{target_msg.id}'"
            )

        try:
            translation = translator.translate(target_msg.message, target_lang)
        except ProviderError as e:
            logger.error(f"Failed to translate message '{target_msg.id}': {e}")
            result.failed[target_msg.id] = str(e)
            continue

        target_msg.translation = translation
        if force_rewrite and translation:
            target_msg.translator_comment = MACHINE_TRANSLATED_COMMENT

        result.translated_ids.append(target_msg.id)
        result.details.append(
            {
                "id": target_msg.id,
                "source": target_msg.message,
                "translation": translation,
            }
        )
        logger.info(
            f"Translated message '{target_msg.id}': '{target_msg.message}' -> '{translation}'"
        )

    return result


# ------------------------------------------------------------------------------
# File I/O
# ------------------------------------------------------------------------------


def read_catalog(path: Path) -> Catalog:
    """
    Read and parse a catalog file.

    Raises:
        CatalogIOError: If the file cannot be read
        CatalogParseError: If the content is not a valid catalog
    """
    try:
        data = Path(path).read_bytes()
    except OSError as e:
        raise CatalogIOError(f"failed to read catalog {path}: {e}", path=path) from e
    return loads_catalog(data)


def _current_umask() -> int:
    mask = os.umask(0)
    os.umask(mask)
    return mask


def write_catalog(catalog: Catalog, path: Path) -> None:
    """
    Write a catalog atomically: serialize to a temporary sibling file, then
    replace the target. A failed or interrupted write leaves the previous
    content intact.

    Raises:
        CatalogIOError: If the file cannot be written
    """
    path = Path(path)
    content = dumps_catalog(catalog)
    tmp_name = None
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{path.name}.", suffix=".tmp", dir=str(path.parent)
        )
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)
        # mkstemp creates 0600; keep the target's mode or use the umask default
        if path.exists():
            shutil.copymode(path, tmp_name)
        else:
            os.chmod(tmp_name, 0o666 & ~_current_umask())
        os.replace(tmp_name, path)
        tmp_name = None
    except OSError as e:
        raise CatalogIOError(f"failed to write catalog {path}: {e}", path=path) from e
    finally:
        if tmp_name is not None and os.path.exists(tmp_name):
            os.unlink(tmp_name)


def translate_file(
    source_path: Path,
    target_path: Path,
    target_lang: str,
    translator: TranslationProvider,
    force_rewrite: bool = False,
    cancel_event: Optional[threading.Event] = None,
) -> FileResult:
    """
    Reconcile one source catalog with its target file and write the result.

    The target file is merged when it exists and created otherwise. Nothing is
    written unless every message decision for the file has completed.

    Raises:
        CatalogIOError: On read/write failures
        CatalogParseError: On malformed source or target catalogs
        TranslationCancelled: If cancel_event was set
    """
    source_path = Path(source_path)
    target_path = Path(target_path)

    source = read_catalog(source_path)

    existing = None
    if target_path.exists():
        existing = read_catalog(target_path)

    logger.info(
        f"Processing {source_path} -> {target_path} "
        f"({len(source.messages)} messages, target language '{target_lang}')"
    )

    result = reconcile_catalog(
        source,
        existing,
        target_lang,
        translator,
        force_rewrite=force_rewrite,
        cancel_event=cancel_event,
    )

    write_catalog(result.catalog, target_path)

    logger.info(
        f"Wrote {target_path} (new file: {existing is None}, "
        f"translated: {result.translated}, failed: {len(result.failed)})"
    )

    return FileResult(
        source_path=source_path,
        target_path=target_path,
        translated=result.translated,
        created=existing is None,
        failed_messages=dict(result.failed),
        details=result.details,
        totals=result.catalog.summary(),
    )


def default_output_path(source_path: Path) -> Path:
    """Single-file mode output: out.gotext.json next to the source."""
    return Path(source_path).parent / GENERATED_CATALOG_NAME


# ------------------------------------------------------------------------------
# Directory Orchestration
# ------------------------------------------------------------------------------


def select_source_dir(
    base_dir: Path, target_lang: str, source_lang: Optional[str] = None
) -> Path:
    """
    Choose the source language directory under base_dir.

    An explicit source_lang wins. Otherwise the first non-target language
    directory in sorted order is used.

    Raises:
        ConfigError: If source_lang is invalid
        CatalogIOError: If no candidate directory exists
    """
    if source_lang:
        if source_lang == target_lang:
            raise ConfigError(
                f"source language '{source_lang}' is the same as the target language"
            )
        source_dir = base_dir / source_lang
        if not source_dir.is_dir():
            raise ConfigError(f"source language directory {source_dir} does not exist")
        return source_dir

    try:
        candidates = sorted(
            entry
            for entry in base_dir.iterdir()
            if entry.is_dir() and entry.name != target_lang
        )
    except OSError as e:
        raise CatalogIOError(
            f"failed to read base directory {base_dir}: {e}", path=base_dir
        ) from e

    if not candidates:
        raise CatalogIOError(
            f"no source language directories found in {base_dir}", path=base_dir
        )

    if len(candidates) > 1:
        logger.warning(
            f"Multiple source language directories found "
            f"({', '.join(c.name for c in candidates)}); using '{candidates[0].name}'"
        )
    return candidates[0]


def find_catalog_files(source_dir: Path) -> List[Path]:
    """Recursively list catalog files under source_dir, sorted, skipping generated output."""
    return sorted(
        path
        for path in Path(source_dir).rglob(f"*{CATALOG_SUFFIX}")
        if path.is_file() and is_catalog_file(path.name)
    )


def translate_directory(
    root_dir: Path,
    target_lang: str,
    translator: TranslationProvider,
    force_rewrite: bool = False,
    source_lang: Optional[str] = None,
    cancel_event: Optional[threading.Event] = None,
) -> DirectoryResult:
    """
    Translate every catalog of a `<root_dir>/locales/<lang>/...` tree.

    Each catalog under the source language directory is mirrored to the same
    relative path under `<root_dir>/locales/<target_lang>`. A file that fails
    to read, parse or write is logged and skipped.

    Raises:
        CatalogIOError: If the locales directory is missing or unreadable
        ConfigError: If source_lang is invalid
        TranslationCancelled: If cancel_event was set
    """
    base_dir = Path(root_dir) / LOCALES_DIR_NAME
    if not base_dir.is_dir():
        raise CatalogIOError(f"locales directory {base_dir} does not exist", path=base_dir)

    target_dir = base_dir / target_lang
    source_dir = select_source_dir(base_dir, target_lang, source_lang)

    try:
        target_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise CatalogIOError(
            f"failed to create target directory {target_dir}: {e}", path=target_dir
        ) from e

    logger.info(
        f"Starting directory translation: source={source_dir}, "
        f"target={target_dir}, target language='{target_lang}'"
    )

    source_files = find_catalog_files(source_dir)
    logger.info(f"Found {len(source_files)} source catalog files")

    result = DirectoryResult(source_dir=source_dir, target_dir=target_dir)

    for source_file in source_files:
        target_file = target_dir / source_file.relative_to(source_dir)
        try:
            file_result = translate_file(
                source_file,
                target_file,
                target_lang,
                translator,
                force_rewrite=force_rewrite,
                cancel_event=cancel_event,
            )
        except CatalogError as e:
            logger.error(f"Failed to process file {source_file}: {e}")
            result.failed_files[source_file] = str(e)
            continue
        result.files.append(file_result)

    logger.info(
        f"Directory translation completed for '{target_lang}': "
        f"processed files: {result.files_processed}, "
        f"translated messages: {result.messages_translated}, "
        f"failed files: {len(result.failed_files)}"
    )
    return result
