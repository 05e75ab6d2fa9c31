from __future__ import annotations

from pathlib import Path

import pytest

from documents import load_document, load_documents
from errors import DocumentRejected


@pytest.mark.parametrize("name,media_type", [
    ("paper.pdf", "application/pdf"),
    ("scan.PNG", "image/png"),
    ("photo.jpg", "image/jpeg"),
    ("photo.jpeg", "image/jpeg"),
    ("notes.txt", "text/plain"),
])
def test_load_document_detects_media_type(tmp_path: Path, name: str, media_type: str) -> None:
    path = tmp_path / name
    path.write_bytes(b"content")

    doc = load_document(path)

    assert doc.filename == name
    assert doc.media_type == media_type
    assert doc.data == b"content"


def test_load_document_rejects_unsupported_type(tmp_path: Path) -> None:
    path = tmp_path / "paper.docx"
    path.write_bytes(b"content")

    with pytest.raises(DocumentRejected, match="Unsupported file type"):
        load_document(path)


def test_load_document_rejects_oversize_file(tmp_path: Path) -> None:
    path = tmp_path / "big.pdf"
    path.write_bytes(b"x" * (1024 * 1024 + 1))

    with pytest.raises(DocumentRejected, match="limit is 1 MB"):
        load_document(path, max_file_size_mb=1)


def test_load_documents_enforces_document_limit(tmp_path: Path) -> None:
    paths = []
    for i in range(3):
        path = tmp_path / f"paper{i}.txt"
        path.write_text("Define X")
        paths.append(path)

    with pytest.raises(DocumentRejected, match="at most 2"):
        load_documents(paths, max_documents=2)

    docs = load_documents(paths, max_documents=3)
    assert [d.filename for d in docs] == ["paper0.txt", "paper1.txt", "paper2.txt"]
    assert len({d.doc_id for d in docs}) == 3
