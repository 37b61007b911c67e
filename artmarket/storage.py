import logging
import os
import uuid

import boto3
from botocore.exceptions import BotoCoreError, ClientError
from django.conf import settings

from .exceptions import ImageUploadFailed

logger = logging.getLogger(__name__)


def extract_ext(filename):
    """파일 확장자 추출 (확장자가 없으면 빈 문자열)"""
    _, ext = os.path.splitext(filename or '')
    return ext[1:].lower()


def generate_image_name(filename):
    """저장소 키 생성: <uuid4>.<ext>"""
    image_uuid = str(uuid.uuid4())
    ext = extract_ext(filename)
    return f"{image_uuid}.{ext}" if ext else image_uuid


def is_empty_file(file):
    return file is None or not getattr(file, 'size', 0)


class S3ImageStorage:
    """작품 이미지 S3 저장소"""

    def __init__(self, bucket=None, client=None):
        self.bucket = bucket or settings.ARTMARKET_S3_BUCKET
        self.client = client or boto3.client('s3')

    def upload(self, file, key):
        extra_args = {}
        content_type = getattr(file, 'content_type', None)
        if content_type:
            extra_args['ContentType'] = content_type

        try:
            file.seek(0)
            self.client.upload_fileobj(file, self.bucket, key, ExtraArgs=extra_args)
        except (BotoCoreError, ClientError) as e:
            logger.error(f"Image upload failed: bucket={self.bucket}, key={key}, error={e}")
            raise ImageUploadFailed()

        logger.info(f"Image uploaded: bucket={self.bucket}, key={key}")

    def delete(self, key):
        # 실패 시 예외 전파 (호출 측에서 재시도 예약)
        self.client.delete_object(Bucket=self.bucket, Key=key)
        logger.info(f"Image deleted: bucket={self.bucket}, key={key}")


def image_url(key):
    return f"{settings.ARTMARKET_STORAGE_URL}{key}"
