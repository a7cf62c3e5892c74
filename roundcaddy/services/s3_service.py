import boto3
import uuid
from typing import Tuple
from roundcaddy.config import settings
import structlog

logger = structlog.get_logger()

UPLOAD_PREFIX = "range-swings"
UPLOAD_EXPIRY_SECONDS = 86400


class S3Service:
    def __init__(self):
        self.s3_client = boto3.client(
            's3',
            aws_access_key_id=settings.aws_access_key_id,
            aws_secret_access_key=settings.aws_secret_access_key,
            region_name=settings.aws_region
        )
        self.bucket_name = settings.s3_bucket_name

    @staticmethod
    def build_key(filename: str) -> str:
        """range-swings/<uuid>.<ext>, defaulting to mp4"""
        extension = filename.rsplit('.', 1)[-1].lower() if '.' in filename else 'mp4'
        return f"{UPLOAD_PREFIX}/{uuid.uuid4()}.{extension}"

    @staticmethod
    def normalize_content_type(filename: str, content_type: str) -> str:
        if not content_type or content_type == 'application/octet-stream':
            return 'video/mp4'
        if not content_type.startswith('video/'):
            logger.warning(
                "Unexpected content type for swing video upload",
                filename=filename,
                content_type=content_type
            )
        return content_type

    def file_url(self, key: str) -> str:
        return f"https://{self.bucket_name}.s3.{settings.aws_region}.amazonaws.com/{key}"

    def generate_presigned_upload_url(self, filename: str, content_type: str) -> Tuple[str, str, dict, str]:
        """
        Generate a presigned POST for uploading a swing video to S3.

        Args:
            filename: The original filename
            content_type: The MIME type of the file

        Returns:
            Tuple of (upload_url, file_url, form_fields, key)
        """
        try:
            key = self.build_key(filename)
            content_type = self.normalize_content_type(filename, content_type)

            # Content-Type and Content-Disposition are part of the signed policy
            presigned_post = self.s3_client.generate_presigned_post(
                Bucket=self.bucket_name,
                Key=key,
                Fields={
                    'Content-Type': content_type,
                    'Content-Disposition': 'inline',
                },
                Conditions=[
                    {'Content-Type': content_type},
                    {'Content-Disposition': 'inline'},
                ],
                ExpiresIn=UPLOAD_EXPIRY_SECONDS
            )

            logger.info(
                "Generated presigned upload",
                filename=filename,
                s3_key=key,
                content_type=content_type
            )

            return presigned_post['url'], self.file_url(key), presigned_post['fields'], key

        except Exception as e:
            logger.error(
                "Failed to generate presigned upload",
                error=str(e),
                filename=filename
            )
            raise Exception(f"Failed to generate presigned URL: {str(e)}")
