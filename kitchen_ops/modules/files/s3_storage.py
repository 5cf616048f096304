import boto3
from botocore.exceptions import ClientError
from kitchen_ops.config import settings
import logging

logger = logging.getLogger(__name__)


class S3Storage:
    """Attachment storage on S3. Bucket names become key prefixes."""

    def __init__(self):
        if not settings.s3_configured:
            raise ValueError("AWS S3 credentials and bucket name must be configured")

        self.s3_client = boto3.client(
            's3',
            aws_access_key_id=settings.aws_access_key_id,
            aws_secret_access_key=settings.aws_secret_access_key,
            region_name=settings.aws_region
        )
        self.bucket_name = settings.s3_bucket_name

    @staticmethod
    def _key(bucket: str, path: str) -> str:
        return f"{bucket}/{path}"

    def upload_file(self, bucket: str, path: str, file_content: bytes, content_type: str) -> str:
        """Upload file to S3 and return the S3 URL"""
        key = self._key(bucket, path)
        try:
            self.s3_client.put_object(
                Bucket=self.bucket_name,
                Key=key,
                Body=file_content,
                ContentType=content_type
            )
            return f"s3://{self.bucket_name}/{key}"
        except ClientError as e:
            logger.error(f"Failed to upload file to S3: {str(e)}")
            raise

    def download_file(self, bucket: str, path: str) -> bytes:
        try:
            response = self.s3_client.get_object(Bucket=self.bucket_name, Key=self._key(bucket, path))
            return response["Body"].read()
        except ClientError as e:
            logger.error(f"Failed to download file from S3: {str(e)}")
            raise

    def delete_file(self, bucket: str, path: str) -> bool:
        """Delete file from S3"""
        try:
            self.s3_client.delete_object(Bucket=self.bucket_name, Key=self._key(bucket, path))
            return True
        except ClientError as e:
            logger.error(f"Failed to delete file from S3: {str(e)}")
            return False
