from typing import Annotated

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, status

from circle.core.auth import get_current_user
from circle.models.models import User
from circle.schemas.schemas import UploadResponse
from circle.services import media_service
from circle.services.errors import InvalidMediaError

router = APIRouter(prefix="/api/uploads", tags=["uploads"])


@router.post("", status_code=status.HTTP_200_OK)
async def upload_image(
    current_user: Annotated[User, Depends(get_current_user)],
    image: Annotated[UploadFile, File()],
) -> UploadResponse:
    """
    Store a standalone image, e.g. a profile picture, and return its public URL.

    Raises:
    - **400 Bad Request**: If the file is missing or not an image
    - **401 Unauthorized**: If not authenticated
    """
    content = await image.read()
    try:
        url = media_service.save_image(content, image.filename, image.content_type)
    except InvalidMediaError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return UploadResponse(success=True, filename=url.rsplit("/", 1)[-1], url=url)
