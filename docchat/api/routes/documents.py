from fastapi import APIRouter, Depends, File, Response, UploadFile

from docchat.api.dependencies import get_session
from docchat.api.schemas import DocumentDetail, DocumentSummary, UrlImportRequest
from docchat.core.exceptions import DocumentNotFoundError
from docchat.ingest.pipeline import ingest_file, ingest_url
from docchat.rag.session import ChatSession

router = APIRouter(prefix="/api/v1/documents", tags=["documents"])


@router.post("/upload", response_model=DocumentSummary, status_code=201)
async def upload_document(
    file: UploadFile = File(...),
    session: ChatSession = Depends(get_session),
):
    data = await file.read()
    document = await ingest_file(file.filename or "", data, session.store)
    session.set_document(document)
    return DocumentSummary.from_document(document)


@router.post("/url", response_model=DocumentSummary, status_code=201)
async def import_url(
    request: UrlImportRequest,
    session: ChatSession = Depends(get_session),
):
    document = await ingest_url(request.url, session.store, name=request.name)
    session.set_document(document)
    return DocumentSummary.from_document(document)


@router.get("", response_model=list[DocumentSummary])
async def list_documents(session: ChatSession = Depends(get_session)):
    documents = await session.store.get_all()
    return [DocumentSummary.from_document(doc) for doc in documents]


@router.get("/{document_id}", response_model=DocumentDetail)
async def get_document(document_id: str, session: ChatSession = Depends(get_session)):
    document = await session.store.get_by_id(document_id)
    if document is None:
        raise DocumentNotFoundError(document_id)
    return DocumentDetail.from_document(document)


@router.delete("/{document_id}", status_code=204)
async def delete_document(document_id: str, session: ChatSession = Depends(get_session)):
    session.forget_document(document_id)
    await session.store.delete(document_id)
    return Response(status_code=204)


@router.delete("", status_code=204)
async def clear_documents(session: ChatSession = Depends(get_session)):
    document = session.document
    if document is not None:
        session.forget_document(document.id)
    await session.store.clear()
    return Response(status_code=204)
