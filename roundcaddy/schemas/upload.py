from pydantic import BaseModel


class UploadUrlRequest(BaseModel):
    filename: str
    contentType: str


class UploadUrlResponse(BaseModel):
    uploadUrl: str
    fileUrl: str  # stored by the client as the swing's video_url
    contentType: str
    key: str
    uploadFields: dict  # Fields for presigned POST
