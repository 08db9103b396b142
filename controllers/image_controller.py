from fastapi import HTTPException, Request
from fastapi.responses import Response

from dal.image_dal import ImageDAL
from models.image_record import ImageRecord


async def _load_image(request: Request, image_id: int) -> ImageRecord:
    image_dal: ImageDAL = request.app.state.image_dal
    record = await image_dal.get_image_by_id(int(image_id))
    if record is None:
        raise HTTPException(status_code=404, detail="Image not found")
    return record


async def get_image(request: Request, image_id: int) -> Response:
    """Return the stored image bytes with their original MIME type.

    Raises:
        HTTPException(404) if the image is not found.
    """
    record = await _load_image(request, image_id)
    return Response(content=record.image_data, media_type=record.mime_type)


async def get_thumbnail(request: Request, image_id: int) -> Response:
    """Controller to fetch the thumbnail bytes for a stored image.

    Args:
        request: FastAPI Request (to access app.state.image_dal).
        image_id: Integer id of the image row.

    Returns:
        FastAPI `Response` with `content` set to raw PNG bytes and
        `media_type` set to `image/png`.

    Raises:
        HTTPException(404) if the image or thumbnail is not found.
    """
    record = await _load_image(request, image_id)
    if not record.image_thumbnail:
        raise HTTPException(status_code=404, detail="Thumbnail not available for this image")

    # Stored thumbnails are raw PNG bytes; return them directly
    return Response(content=record.image_thumbnail, media_type="image/png")
