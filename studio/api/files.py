"""Multipart upload validation shared by video and thumbnail endpoints."""
from fastapi import HTTPException, UploadFile, status

IMAGE_TYPES = {"image/jpeg", "image/png", "image/webp"}
VIDEO_TYPES = {"video/mp4", "video/webm", "video/quicktime"}

EXT_MAP = {
    "image/jpeg": ".jpg",
    "image/png": ".png",
    "image/webp": ".webp",
    "video/mp4": ".mp4",
    "video/webm": ".webm",
    "video/quicktime": ".mov",
}


def validate_content_type(file: UploadFile, allowed: set[str]) -> str:
    """Return the stored extension for an allowed upload, 400 otherwise."""
    content_type = file.content_type or ""
    if content_type not in allowed:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid file type: {content_type}. Allowed: {sorted(allowed)}",
        )
    return EXT_MAP[content_type]


async def read_limited(file: UploadFile, max_size_mb: int) -> bytes:
    data = await file.read()
    if len(data) > max_size_mb * 1024 * 1024:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"File too large. Max {max_size_mb}MB",
        )
    if not data:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Empty file")
    return data
