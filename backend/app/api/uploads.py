"""File upload endpoint for chat attachments."""

from __future__ import annotations

from fastapi import APIRouter, File, HTTPException, UploadFile

from app.api.security_deps import ChatRouterDep
from app.domain.chat.policy import ChatPolicyError
from app.domain.chat.schemas import AttachmentDescriptor, UploadResponse
from app.domain.chat.service import ChatRouter

router = APIRouter()


@router.post("/upload", response_model=UploadResponse)
async def upload_file(
    file: UploadFile = File(...),
    chat_router: ChatRouter = ChatRouterDep,
) -> UploadResponse:
    """Store an attachment and return its descriptor.

    The client follows up with a ``send_message`` event carrying the
    descriptor; uploading alone does not post anything to a chat.
    """
    storage = chat_router.storage
    # Reject before buffering the whole body when the client declared its size
    if file.size is not None and file.size > storage.max_bytes:
        raise HTTPException(
            status_code=413,
            detail=f"File too large. Maximum size is {storage.max_bytes // 1024 // 1024}MB",
        )
    content = await file.read()
    try:
        attachment = await storage.store(
            content,
            file.filename or "",
            file.content_type or "application/octet-stream",
        )
    except ChatPolicyError as exc:
        raise HTTPException(status_code=exc.status_code, detail=exc.detail) from exc
    return UploadResponse(file=AttachmentDescriptor.from_model(attachment))
