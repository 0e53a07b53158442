"""
Document store

Tests:
  1. Role × document type matrix
  2. Upload validation order and messages
  3. Re-upload replaces the single (user, type) row and its file
     (also when a concurrent first upload wins the insert)
  4. A database failure leaves no stored file behind
  5. Listing and download
"""
from pathlib import Path

import httpx
import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from branchlearn.core.errors import InvalidDocumentType, MissingFile, UnsupportedFile
from branchlearn.models.document import Document, DocumentStatus, DocumentType
from branchlearn.models.user import Role
from branchlearn.services import documents
from branchlearn.services.documents import allowed_types_for, check_document_type, check_file
from tests.conftest import register

PDF = b"%PDF-1.4\n% test document\n"
PNG = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32


def pdf_upload(doc_type: str, content: bytes = PDF, name: str = "doc.pdf", mime: str = "application/pdf"):
    return {"data": {"type": doc_type}, "files": {"file": (name, content, mime)}}


def stored_files(settings) -> list:
    root = Path(settings.UPLOAD_ROOT)
    return [p for p in root.rglob("*") if p.is_file()] if root.exists() else []


# ─── Role × type matrix ────────────────────────────────────────────────────────
@pytest.mark.parametrize(
    "role, doc_type, allowed",
    [
        (Role.STUDENT, DocumentType.ACADEMIC_TRANSCRIPT, True),
        (Role.STUDENT, DocumentType.PROFILE_PHOTO, True),
        (Role.STUDENT, DocumentType.RESUME, False),
        (Role.STUDENT, DocumentType.PAN_CARD, False),
        (Role.TEACHER, DocumentType.UGC_NET, True),
        (Role.TEACHER, DocumentType.EXPERIENCE_LETTER, True),
        (Role.TEACHER, DocumentType.MARKSHEET, False),
        (Role.LECTURER, DocumentType.RESUME, True),
        (Role.LECTURER, DocumentType.EXPERIENCE_LETTER, False),
        (Role.LECTURER, DocumentType.BIRTH_CERTIFICATE, False),
        (Role.ADMIN, DocumentType.NATIONAL_ID, False),
    ],
)
def test_role_document_matrix(role, doc_type, allowed):
    if allowed:
        assert check_document_type(role, doc_type.value) is doc_type
    else:
        with pytest.raises(InvalidDocumentType):
            check_document_type(role, doc_type.value)


def test_every_disallowed_pair_is_rejected():
    for role in Role:
        for doc_type in DocumentType:
            if doc_type in allowed_types_for(role):
                continue
            with pytest.raises(InvalidDocumentType):
                check_document_type(role, doc_type.value)


@pytest.mark.parametrize("raw", [None, "", "driving_licence", "NATIONAL_ID"])
def test_unknown_document_type(raw):
    with pytest.raises(InvalidDocumentType):
        check_document_type(Role.STUDENT, raw)


def test_check_file():
    assert check_file(PDF, "application/pdf", 1024) == PDF
    assert check_file(PNG, "image/png", 1024) == PNG
    with pytest.raises(MissingFile):
        check_file(None, "application/pdf", 1024)
    with pytest.raises(MissingFile):
        check_file(b"", "application/pdf", 1024)
    with pytest.raises(UnsupportedFile):
        check_file(PDF, "text/plain", 1024)
    with pytest.raises(UnsupportedFile):
        check_file(b"x" * 1025, "application/pdf", 1024)


# ─── Upload ────────────────────────────────────────────────────────────────────
@pytest.mark.asyncio
async def test_student_uploads_transcript(client, container, settings):
    await register(client, "sana")
    r = await client.post("/api/documents/upload", **pdf_upload("academic_transcript", name="Transcript.PDF"))
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["type"] == "academic_transcript"
    assert body["status"] == "pending"
    assert body["feedback"] is None
    assert body["url"].startswith("/uploads/student/")
    assert body["url"].endswith(".pdf")

    path = container.files.resolve(body["url"].lstrip("/"))
    assert path.read_bytes() == PDF


@pytest.mark.asyncio
async def test_disallowed_type_rejected_before_file_is_stored(client, container, settings):
    await register(client, "tara")
    r = await client.post("/api/documents/upload", **pdf_upload("resume"))
    assert r.status_code == 400
    assert r.json()["message"] == "Invalid document type for your role"
    assert stored_files(settings) == []
    async with container.database.session() as db:
        count = (await db.execute(select(func.count()).select_from(Document))).scalar_one()
    assert count == 0


@pytest.mark.asyncio
async def test_type_is_checked_before_missing_file(client):
    await register(client, "uma")
    r = await client.post("/api/documents/upload", data={"type": "resume"})
    assert r.status_code == 400
    assert r.json()["message"] == "Invalid document type for your role"


@pytest.mark.asyncio
async def test_missing_file(client):
    await register(client, "vani")
    r = await client.post("/api/documents/upload", data={"type": "passport"})
    assert r.status_code == 400
    assert r.json()["message"] == "No file uploaded"


@pytest.mark.asyncio
async def test_unsupported_mime_type(client, settings):
    await register(client, "wasim")
    r = await client.post(
        "/api/documents/upload", **pdf_upload("passport", content=b"hello", name="p.txt", mime="text/plain")
    )
    assert r.status_code == 400
    assert "Invalid file type" in r.json()["message"]
    assert stored_files(settings) == []


@pytest.mark.asyncio
async def test_oversized_file(client, settings):
    await register(client, "xena")
    big = b"0" * (settings.UPLOAD_MAX_BYTES + 1)
    r = await client.post("/api/documents/upload", **pdf_upload("passport", content=big))
    assert r.status_code == 400
    assert "too large" in r.json()["message"]


@pytest.mark.asyncio
async def test_reupload_replaces_row_and_file(client, container, settings):
    created = await register(client, "dr_yadav", role="teacher")

    first = await client.post("/api/documents/upload", **pdf_upload("resume", content=PDF))
    assert first.status_code == 200, first.text

    # Reviewer feedback is cleared by a fresh upload.
    async with container.database.session() as db:
        doc = (await db.execute(select(Document).where(Document.user_id == created["id"]))).scalar_one()
        doc.status = DocumentStatus.REJECTED
        doc.feedback = "Unreadable scan"
        await db.commit()

    second = await client.post(
        "/api/documents/upload", **pdf_upload("resume", content=PNG, name="resume.png", mime="image/png")
    )
    assert second.status_code == 200, second.text
    assert second.json()["id"] == first.json()["id"]
    assert second.json()["url"] != first.json()["url"]
    assert second.json()["status"] == "pending"
    assert second.json()["feedback"] is None

    async with container.database.session() as db:
        rows = (
            await db.execute(
                select(Document).where(Document.user_id == created["id"], Document.type == DocumentType.RESUME)
            )
        ).scalars().all()
    assert len(rows) == 1
    assert "/" + rows[0].storage_path == second.json()["url"]

    assert not container.files.resolve(first.json()["url"].lstrip("/")).exists()
    assert container.files.resolve(second.json()["url"].lstrip("/")).read_bytes() == PNG
    assert len(stored_files(settings)) == 1


@pytest.mark.asyncio
async def test_database_failure_removes_stored_file(app, container, settings, monkeypatch):
    async def failing(db, user_id, doc_type):
        raise OperationalError("SELECT documents", {}, Exception("database is down"))

    transport = httpx.ASGITransport(app=app, raise_app_exceptions=False)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
        await register(client, "imran")
        monkeypatch.setattr(documents, "_find", failing)
        r = await client.post("/api/documents/upload", **pdf_upload("academic_transcript"))

    assert r.status_code == 500
    assert r.json() == {"message": "An internal error occurred."}
    assert stored_files(settings) == [], "Orphaned upload left on disk"
    async with container.database.session() as db:
        assert (await db.execute(select(func.count()).select_from(Document))).scalar_one() == 0


@pytest.mark.asyncio
async def test_concurrent_first_upload_last_write_wins(client, container, settings, monkeypatch):
    created = await register(client, "meera")
    first = await client.post("/api/documents/upload", **pdf_upload("academic_transcript"))
    assert first.status_code == 200, first.text

    # The row exists, but this upload misses it on the first lookup as if
    # another request inserted it in between.
    real_find = documents._find
    calls = []

    async def racing(db, user_id, doc_type):
        calls.append(doc_type)
        if len(calls) == 1:
            return None
        return await real_find(db, user_id, doc_type)

    monkeypatch.setattr(documents, "_find", racing)
    second = await client.post(
        "/api/documents/upload", **pdf_upload("academic_transcript", content=PNG, name="t.png", mime="image/png")
    )
    assert second.status_code == 200, second.text
    assert len(calls) == 2
    assert second.json()["id"] == first.json()["id"]
    assert second.json()["url"] != first.json()["url"]

    async with container.database.session() as db:
        rows = (
            await db.execute(select(Document).where(Document.user_id == created["id"]))
        ).scalars().all()
    assert len(rows) == 1
    assert "/" + rows[0].storage_path == second.json()["url"]
    assert not container.files.resolve(first.json()["url"].lstrip("/")).exists()
    assert len(stored_files(settings)) == 1


@pytest.mark.asyncio
async def test_upload_requires_session(client, settings):
    r = await client.post("/api/documents/upload", **pdf_upload("passport"))
    assert r.status_code == 401
    assert stored_files(settings) == []


# ─── Listing & download ────────────────────────────────────────────────────────
@pytest.mark.asyncio
async def test_list_documents_newest_first(client_factory):
    owner = client_factory()
    await register(owner, "zoya")
    for doc_type in ("national_id", "passport", "marksheet"):
        r = await owner.post("/api/documents/upload", **pdf_upload(doc_type))
        assert r.status_code == 200

    other = client_factory()
    await register(other, "zubin")
    await other.post("/api/documents/upload", **pdf_upload("passport"))

    r = await owner.get("/api/documents")
    assert r.status_code == 200
    assert [d["type"] for d in r.json()] == ["marksheet", "passport", "national_id"]


@pytest.mark.asyncio
async def test_download_own_document(client):
    await register(client, "arjun")
    await client.post("/api/documents/upload", **pdf_upload("birth_certificate"))

    r = await client.get("/api/documents/birth_certificate/file")
    assert r.status_code == 200
    assert r.content == PDF

    missing = await client.get("/api/documents/passport/file")
    assert missing.status_code == 404
