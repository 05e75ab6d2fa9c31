"""Load exam paper files from disk into SourceDocuments."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from pathlib import Path

from config import DEFAULT_MAX_DOCUMENTS, DEFAULT_MAX_FILE_SIZE_MB
from errors import DocumentRejected
from models import SourceDocument

LOGGER = logging.getLogger(__name__)

MEDIA_TYPES_BY_SUFFIX: dict[str, str] = {
    ".pdf": "application/pdf",
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".txt": "text/plain",
}


def media_type_for(path: Path) -> str:
    """Return the media type for a supported file, or raise DocumentRejected."""
    media_type = MEDIA_TYPES_BY_SUFFIX.get(path.suffix.lower())
    if media_type is None:
        accepted = ", ".join(sorted(MEDIA_TYPES_BY_SUFFIX))
        raise DocumentRejected(f"Unsupported file type for {path.name}; accepted: {accepted}")
    return media_type


def load_document(path: str | Path, max_file_size_mb: int = DEFAULT_MAX_FILE_SIZE_MB) -> SourceDocument:
    path = Path(path)
    media_type = media_type_for(path)

    size = path.stat().st_size
    if size > max_file_size_mb * 1024 * 1024:
        raise DocumentRejected(
            f"{path.name} is {size / (1024 * 1024):.1f} MB; the limit is {max_file_size_mb} MB"
        )

    return SourceDocument(filename=path.name, media_type=media_type, data=path.read_bytes())


def load_documents(
    paths: Iterable[str | Path],
    max_documents: int = DEFAULT_MAX_DOCUMENTS,
    max_file_size_mb: int = DEFAULT_MAX_FILE_SIZE_MB,
) -> list[SourceDocument]:
    """Load a batch of papers, enforcing the per-run upload limits."""
    paths = list(paths)
    if len(paths) > max_documents:
        raise DocumentRejected(
            f"{len(paths)} files selected; at most {max_documents} papers can be analyzed per run"
        )

    documents = [load_document(p, max_file_size_mb=max_file_size_mb) for p in paths]
    LOGGER.info("Loaded %s documents (%s bytes total)", len(documents), sum(len(d.data) for d in documents))
    return documents
