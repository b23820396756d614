"""
Storage for uploaded course materials and submissions (S3 or local disk)
"""

import io
import os
import uuid
from typing import Dict, Any, Optional
import boto3
from botocore.exceptions import BotoCoreError, ClientError
from flask import current_app
from PIL import Image, UnidentifiedImageError
from werkzeug.utils import secure_filename
from kmmedia.utils.exceptions import FileUploadError
from kmmedia.utils.helpers import ensure_directory_exists
from kmmedia.utils.validators import validate_file_extension

IMAGE_EXTENSIONS = {'png', 'jpg', 'jpeg'}

# Prefix of URLs served by the local uploads route
LOCAL_URL_PREFIX = '/api/uploads/'


def _compress_image(data: bytes, max_size=(1600, 1200), quality=85) -> bytes:
    """Compress and optimize image for storage"""
    try:
        img = Image.open(io.BytesIO(data))

        # Convert to RGB if necessary (for JPEG compatibility)
        if img.mode in ('RGBA', 'LA', 'P'):
            img = img.convert('RGB')

        # Resize if image is too large
        img.thumbnail(max_size, Image.Resampling.LANCZOS)

        output = io.BytesIO()
        img.save(output, format='JPEG', quality=quality, optimize=True)
        compressed = output.getvalue()
    except (UnidentifiedImageError, OSError) as e:
        current_app.logger.warning(f"Image compression skipped: {str(e)}")
        return data

    # Keep whichever is smaller
    return compressed if len(compressed) < len(data) else data


class StorageService:
    """File storage service class"""

    @staticmethod
    def _get_s3_client():
        config = current_app.config
        return boto3.client(
            's3',
            aws_access_key_id=config.get('AWS_ACCESS_KEY_ID'),
            aws_secret_access_key=config.get('AWS_SECRET_ACCESS_KEY'),
            region_name=config.get('AWS_REGION')
        )

    @staticmethod
    def uses_s3() -> bool:
        return bool(current_app.config.get('S3_BUCKET_NAME'))

    @staticmethod
    def local_root() -> str:
        folder = current_app.config.get('UPLOAD_FOLDER', 'uploads/materials')
        if not os.path.isabs(folder):
            folder = os.path.join(current_app.root_path, '..', folder)
        return os.path.abspath(folder)

    @staticmethod
    def save(file, folder: str) -> Dict[str, Any]:
        """
        Store an uploaded file

        Args:
            file: werkzeug FileStorage from the request
            folder: Key prefix, e.g. "course_3/materials"

        Returns:
            file_url, file_name, file_size and the storage key
        """
        if file is None or not file.filename:
            raise FileUploadError("No file provided")

        file_name = secure_filename(file.filename)
        allowed = current_app.config.get('ALLOWED_EXTENSIONS', set())
        if not validate_file_extension(file_name, allowed):
            raise FileUploadError(f"File type not allowed. Allowed types: {', '.join(sorted(allowed))}")

        data = file.read()
        if not data:
            raise FileUploadError("Uploaded file is empty")

        extension = file_name.rsplit('.', 1)[1].lower()
        content_type = file.mimetype or 'application/octet-stream'
        if extension in IMAGE_EXTENSIONS:
            compressed = _compress_image(data)
            if compressed is not data:
                data = compressed
                content_type = 'image/jpeg'
                if extension not in ('jpg', 'jpeg'):
                    file_name = f"{file_name.rsplit('.', 1)[0]}.jpg"

        key = f"{folder.strip('/')}/{uuid.uuid4().hex[:12]}_{file_name}"
        if StorageService.uses_s3():
            file_url = StorageService._upload_to_s3(data, key, content_type)
        else:
            file_url = StorageService._save_local(data, key)

        current_app.logger.info(f"Stored {file_name} ({len(data)} bytes) at {key}")
        return {
            'file_url': file_url,
            'file_name': file_name,
            'file_size': len(data),
            'key': key
        }

    @staticmethod
    def _upload_to_s3(data: bytes, key: str, content_type: str) -> str:
        bucket_name = current_app.config['S3_BUCKET_NAME']
        try:
            StorageService._get_s3_client().put_object(
                Bucket=bucket_name,
                Key=key,
                Body=data,
                ContentType=content_type
            )
        except (ClientError, BotoCoreError) as e:
            current_app.logger.error(f"S3 upload error for {key}: {str(e)}")
            raise FileUploadError("File upload failed. Please try again.")
        return f"https://{bucket_name}.s3.amazonaws.com/{key}"

    @staticmethod
    def _save_local(data: bytes, key: str) -> str:
        path = os.path.join(StorageService.local_root(), *key.split('/'))
        ensure_directory_exists(os.path.dirname(path))
        with open(path, 'wb') as fh:
            fh.write(data)
        return f"{LOCAL_URL_PREFIX}{key}"

    @staticmethod
    def delete(file_url: Optional[str]) -> None:
        """Remove a stored file; external links are left alone"""
        if not file_url:
            return
        if file_url.startswith(LOCAL_URL_PREFIX):
            key = file_url[len(LOCAL_URL_PREFIX):]
            path = os.path.join(StorageService.local_root(), *key.split('/'))
            if os.path.exists(path):
                os.remove(path)
            return

        bucket_name = current_app.config.get('S3_BUCKET_NAME')
        prefix = f"https://{bucket_name}.s3.amazonaws.com/" if bucket_name else None
        if prefix and file_url.startswith(prefix):
            try:
                StorageService._get_s3_client().delete_object(Bucket=bucket_name, Key=file_url[len(prefix):])
            except (ClientError, BotoCoreError) as e:
                current_app.logger.error(f"S3 delete error for {file_url}: {str(e)}")
