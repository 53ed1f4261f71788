import logging
import uuid
from io import BytesIO
from typing import Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from ..config import AWS_ACCESS_KEY, AWS_SECRET_KEY, S3_REGION, S3_BUCKET_NAME, S3_URL
from ..exceptions import UploadFailed

logger = logging.getLogger(__name__)


def create_s3_client():
    return boto3.client("s3",
        aws_access_key_id=AWS_ACCESS_KEY,
        aws_secret_access_key=AWS_SECRET_KEY,
        region_name=S3_REGION
    )


class S3Host:
    """Image host backed by a public S3 bucket."""

    def __init__(
        self,
        bucket: Optional[str] = S3_BUCKET_NAME,
        base_url: str = S3_URL,
        folder: str = "submissions",
        client=None
    ):
        self.bucket = bucket
        self.base_url = base_url.rstrip("/")
        self.folder = folder
        self.client = client or create_s3_client()

    def get_url(self, key: str) -> str:
        return f"{self.base_url}/{key}"

    def upload(self, image: bytes, content_type: str = "image/jpeg") -> str:
        extension = "jpg" if content_type == "image/jpeg" else content_type.split("/")[-1]
        filename = f"{self.folder}/{uuid.uuid4()}.{extension}"
        try:
            self.client.upload_fileobj(
                BytesIO(image),
                self.bucket,
                filename,
                ExtraArgs={'ContentType': content_type}
            )
        except (BotoCoreError, ClientError) as e:
            raise UploadFailed(f"S3 upload failed: {e}")

        logger.info(f"Uploaded {filename} to bucket {self.bucket}")
        return self.get_url(filename)
