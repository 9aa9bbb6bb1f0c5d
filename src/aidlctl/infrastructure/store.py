"""RecordStore — the single dependency injected into every service.

The store owns the on-disk layout under the configured base directory: the
shared index (through :class:`IndexManager`) and one markdown document per
record. The index is the system of record; documents are projections of it
that any mutation (or ``repair``) can regenerate.

Lock nesting is always document → index, never the reverse.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import TYPE_CHECKING

from aidlctl.domain.document import DocumentFormatError, decode, encode, reheader
from aidlctl.domain.errors import InvalidError, NotFoundError, StoreIOError
from aidlctl.domain.ids import validate_id
from aidlctl.infrastructure.filesystem import (
    TEMP_SUFFIX,
    LockPolicy,
    atomic_write,
    ensure_dir,
    file_lock,
    list_files,
    read_text,
    replace_atomic,
)
from aidlctl.infrastructure.index import IndexManager

if TYPE_CHECKING:
    from collections.abc import Iterator
    from pathlib import Path

    from aidlctl.config.settings import AidlSettings
    from aidlctl.domain.record import Record

logger = logging.getLogger(__name__)


def lock_policy_from(settings: AidlSettings) -> LockPolicy:
    """Build the lock backoff policy from the ``[store]`` section."""
    store = settings.store
    return LockPolicy(
        retries=store.lock_retries,
        factor=store.lock_factor,
        min_timeout=store.lock_min_timeout,
        max_timeout=store.lock_max_timeout,
        jitter=store.lock_jitter,
    )


class RecordStore:
    """Facade over the index and the record documents of one base directory."""

    def __init__(self, settings: AidlSettings) -> None:
        self.settings = settings
        self.root: Path = settings.store_dir
        self.lock_policy = lock_policy_from(settings)
        self.index = IndexManager(self.root / settings.store.index_name, self.lock_policy)

    def initialize(self) -> bool:
        """Create the base directory and an empty index if absent.

        Returns True if the index was created by this call.
        """
        ensure_dir(self.root)
        created = self.index.initialize()
        if created:
            logger.info("Initialized record store at %s", self.root)
        return created

    # ------------------------------------------------------------------
    # Paths
    # ------------------------------------------------------------------

    def document_path(self, record_id: str) -> Path:
        """Path of the document for *record_id*.

        Raises:
            InvalidError: If *record_id* is not a well-formed slug.
        """
        if not validate_id(record_id):
            msg = f"Invalid record ID: {record_id!r}"
            raise InvalidError(msg)
        return self.root / f"{record_id}{self.settings.store.document_suffix}"

    def document_exists(self, record_id: str) -> bool:
        return self.document_path(record_id).is_file()

    def find_documents(self) -> list[Path]:
        """All record documents, sorted by file name."""
        return list_files(self.root, self.settings.store.document_suffix)

    def find_temp_files(self) -> list[Path]:
        """Temp files left behind by interrupted writes."""
        return [p for p in list_files(self.root, TEMP_SUFFIX) if p.name.startswith(".")]

    def record_id_of(self, path: Path) -> str:
        """Record ID a document path is named after."""
        return path.name.removesuffix(self.settings.store.document_suffix)

    # ------------------------------------------------------------------
    # Documents
    # ------------------------------------------------------------------

    def read_document(self, record_id: str) -> Record:
        """Decode the document for *record_id* (no lock, never torn).

        Raises:
            NotFoundError: If the document is missing.
            StoreIOError: If the document cannot be decoded.
        """
        return self._decode(record_id, self._read_raw(record_id))

    def _read_raw(self, record_id: str) -> str:
        try:
            return read_text(self.document_path(record_id))
        except NotFoundError:
            msg = f"Record not found: {record_id}"
            raise NotFoundError(msg) from None

    def _decode(self, record_id: str, content: str) -> Record:
        try:
            return decode(content)
        except DocumentFormatError as exc:
            msg = f"Unreadable document {self.document_path(record_id).name}: {exc}"
            raise StoreIOError(msg) from exc

    def write_document(self, record: Record) -> None:
        """Atomically (re)write the document for *record* under its lock."""
        atomic_write(self.document_path(record.id), encode(record), policy=self.lock_policy)

    @contextmanager
    def document_lock(self, record_id: str) -> Iterator[Path]:
        """Hold the lock of *record_id*'s document; yields its path."""
        path = self.document_path(record_id)
        ensure_dir(path.parent)
        with file_lock(path, self.lock_policy):
            yield path

    def replace_document(self, path: Path, record: Record) -> None:
        """Rewrite *path* with *record*. The caller holds :meth:`document_lock`."""
        replace_atomic(path, encode(record))

    def project_document(self, record_id: str) -> Record:
        """Bring a document's header in line with its index entry.

        Only the index-owned lines are rewritten; the content sections stay
        exactly as they are on disk. The entry is read while the document
        lock is held, so the last projection to finish reflects the latest
        index state. Idempotent.

        Raises:
            NotFoundError: If the record is not indexed or has no document.
        """
        with self.document_lock(record_id) as path:
            entry = self.index.get_entry(record_id)
            if entry is None:
                msg = f"Record not found: {record_id}"
                raise NotFoundError(msg)
            content = self._read_raw(record_id)
            record = self._decode(record_id, content).with_metadata(entry)
            replace_atomic(path, reheader(content, record))
        logger.debug("Projected %s (status=%s)", record_id, record.status)
        return record
