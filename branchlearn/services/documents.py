"""
Document store

Owns the role → allowed document type mapping. Upload validation order:
document type, attached file, then size and MIME type. The file is written
before its metadata row; a failed metadata write removes the new file so the
two never drift apart.
"""
import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from branchlearn.core.errors import InvalidDocumentType, MissingFile, NotFoundError, UnsupportedFile
from branchlearn.core.file_storage import DocumentFileStore
from branchlearn.models.document import Document, DocumentStatus, DocumentType as T
from branchlearn.models.user import Role, utcnow
from branchlearn.services.identity import Identity

logger = logging.getLogger(__name__)

ALLOWED_DOCUMENT_TYPES: dict[Role, frozenset[T]] = {
    Role.STUDENT: frozenset({
        T.NATIONAL_ID, T.PASSPORT, T.BIRTH_CERTIFICATE, T.ACADEMIC_TRANSCRIPT,
        T.MARKSHEET, T.TRANSFER_CERTIFICATE, T.ADMISSION_LETTER, T.ENTRANCE_RESULT,
        T.PROFILE_PHOTO,
    }),
    Role.TEACHER: frozenset({
        T.NATIONAL_ID, T.PASSPORT, T.DEGREE_CERTIFICATE, T.UGC_NET, T.EXPERIENCE_LETTER,
        T.RESUME, T.TEACHER_CERTIFICATION, T.PAN_CARD, T.PROFILE_PHOTO, T.SIGNATURE,
    }),
    Role.LECTURER: frozenset({
        T.NATIONAL_ID, T.PASSPORT, T.DEGREE_CERTIFICATE, T.RESUME,
        T.TEACHER_CERTIFICATION, T.PAN_CARD, T.PROFILE_PHOTO, T.SIGNATURE, T.UGC_NET,
    }),
    Role.ADMIN: frozenset(),
}

ALLOWED_MIME_TYPES = frozenset({"application/pdf", "image/jpeg", "image/png"})


def allowed_types_for(role: Role) -> frozenset[T]:
    return ALLOWED_DOCUMENT_TYPES.get(role, frozenset())


def check_document_type(role: Role, raw_type: str | None) -> T:
    """Parse raw_type and make sure the role may upload it."""
    try:
        doc_type = T(raw_type)
    except ValueError:
        raise InvalidDocumentType()
    if doc_type not in allowed_types_for(role):
        raise InvalidDocumentType()
    return doc_type


def check_file(content: bytes | None, content_type: str | None, max_bytes: int) -> bytes:
    if not content:
        raise MissingFile()
    if len(content) > max_bytes:
        raise UnsupportedFile("File too large. Maximum size is 5 MB.")
    if content_type not in ALLOWED_MIME_TYPES:
        raise UnsupportedFile()
    return content


async def list_documents(db: AsyncSession, user_id: str) -> list[Document]:
    result = await db.execute(
        select(Document)
        .where(Document.user_id == user_id)
        .order_by(Document.uploaded_at.desc())
    )
    return list(result.scalars().all())


async def get_document(db: AsyncSession, user_id: str, raw_type: str) -> Document:
    try:
        doc_type = T(raw_type)
    except ValueError:
        raise NotFoundError("Document not found")
    result = await db.execute(
        select(Document).where(Document.user_id == user_id, Document.type == doc_type)
    )
    doc = result.scalar_one_or_none()
    if doc is None:
        raise NotFoundError("Document not found")
    return doc


async def _find(db: AsyncSession, user_id: str, doc_type: T) -> Document | None:
    result = await db.execute(
        select(Document).where(Document.user_id == user_id, Document.type == doc_type)
    )
    return result.scalar_one_or_none()


def _reset(doc: Document, locator: str) -> None:
    doc.storage_path = locator
    doc.status = DocumentStatus.PENDING
    doc.feedback = None
    doc.uploaded_at = utcnow()


async def upload_document(
    db: AsyncSession,
    files: DocumentFileStore,
    identity: Identity,
    raw_type: str | None,
    *,
    filename: str | None,
    content_type: str | None,
    content: bytes | None,
    max_bytes: int,
) -> Document:
    """Validate and store a document, replacing any earlier one of the same type."""
    doc_type = check_document_type(identity.role, raw_type)
    content = check_file(content, content_type, max_bytes)

    locator = await files.save(identity.role.value, filename, content)
    previous_locator: str | None = None
    try:
        doc = await _find(db, identity.id, doc_type)
        if doc is None:
            doc = Document(user_id=identity.id, type=doc_type, storage_path=locator)
            _reset(doc, locator)
            db.add(doc)
            try:
                await db.commit()
            except IntegrityError:
                # A concurrent upload created the row first; last write wins.
                await db.rollback()
                doc = await _find(db, identity.id, doc_type)
                if doc is None:
                    raise
                previous_locator = doc.storage_path
                _reset(doc, locator)
                await db.commit()
        else:
            previous_locator = doc.storage_path
            _reset(doc, locator)
            await db.commit()
    except SQLAlchemyError:
        await db.rollback()
        await files.remove(locator)
        raise

    if previous_locator and previous_locator != locator:
        await files.remove(previous_locator)
    logger.info("Stored %s document for user %s", doc_type.value, identity.id)
    return doc
