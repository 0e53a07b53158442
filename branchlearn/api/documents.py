"""
Documents API

Flow:
  1. Session validated by middleware (request.state.user_id set)
  2. Type checked against the caller's role, then file presence, size and MIME
  3. File written under uploads/<role>/, then the (user, type) row upserted
"""
from fastapi import APIRouter, Depends, File, Form, UploadFile
from fastapi.responses import FileResponse
from sqlalchemy.ext.asyncio import AsyncSession

from branchlearn.api.deps import get_container, get_current_identity, get_db
from branchlearn.core.container import ServiceContainer
from branchlearn.core.errors import NotFoundError
from branchlearn.schemas.documents import DocumentResponse
from branchlearn.services import documents as document_service
from branchlearn.services.identity import Identity

router = APIRouter(prefix="/api/documents", tags=["documents"])


@router.get("", response_model=list[DocumentResponse])
async def list_my_documents(
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
):
    """The caller's documents, most recent upload first."""
    return await document_service.list_documents(db, identity.id)


@router.post("/upload", response_model=DocumentResponse)
async def upload_document(
    type: str | None = Form(None),
    file: UploadFile | None = File(None),
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
    container: ServiceContainer = Depends(get_container),
):
    max_bytes = container.settings.UPLOAD_MAX_BYTES
    content = filename = content_type = None
    if file is not None:
        # One byte past the limit is enough to detect an oversized upload.
        content = await file.read(max_bytes + 1)
        filename = file.filename
        content_type = file.content_type
        await file.close()

    return await document_service.upload_document(
        db,
        container.files,
        identity,
        type,
        filename=filename,
        content_type=content_type,
        content=content,
        max_bytes=max_bytes,
    )


@router.get("/{doc_type}/file")
async def download_document(
    doc_type: str,
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
    container: ServiceContainer = Depends(get_container),
):
    doc = await document_service.get_document(db, identity.id, doc_type)
    path = container.files.resolve(doc.storage_path)
    if not path.is_file():
        raise NotFoundError("Document file missing")
    return FileResponse(path, filename=path.name)
