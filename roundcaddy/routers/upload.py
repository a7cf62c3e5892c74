from fastapi import APIRouter, Depends, HTTPException
from roundcaddy.middleware.auth import get_current_user_id
from roundcaddy.schemas.upload import UploadUrlRequest, UploadUrlResponse
from roundcaddy.services.s3_service import S3Service
import structlog

logger = structlog.get_logger()
router = APIRouter(prefix="/upload-url", tags=["upload"])


@router.post("", response_model=UploadUrlResponse)
async def get_upload_url(
    request: UploadUrlRequest,
    current_user_id: str = Depends(get_current_user_id)
):
    """
    Generate a presigned POST for uploading a swing video to S3.

    Args:
        request: Contains filename and content type

    Returns:
        Presigned upload URL, form fields and the file URL to store on the swing
    """
    try:
        s3_service = S3Service()
        upload_url, file_url, presigned_fields, key = s3_service.generate_presigned_upload_url(
            filename=request.filename,
            content_type=request.contentType
        )

        logger.info(
            "Generated upload URL",
            user_id=current_user_id,
            filename=request.filename,
            content_type=request.contentType
        )

        return UploadUrlResponse(
            uploadUrl=upload_url,
            fileUrl=file_url,
            contentType=request.contentType,
            key=key,
            uploadFields=presigned_fields
        )

    except Exception as e:
        logger.error(
            "Failed to generate upload URL",
            error=str(e),
            filename=request.filename
        )
        raise HTTPException(
            status_code=500,
            detail=f"Failed to generate upload URL: {str(e)}"
        )
