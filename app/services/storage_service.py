"""
Object storage bridge: upload bytes, remove bytes and mint signed URLs.
"""
import logging
from typing import List

from fastapi import Depends

from app.config import settings
from app.exceptions import StorageError
from app.supabase_client import get_supabase

logger = logging.getLogger(__name__)


class StorageBridge:
    def __init__(self, client, bucket: str = settings.STORAGE_BUCKET):
        self.client = client
        self.bucket = bucket

    def _bucket(self):
        return self.client.storage.from_(self.bucket)

    def put(self, path: str, data: bytes, content_type: str) -> None:
        try:
            self._bucket().upload(path, data, {"content-type": content_type})
        except Exception as e:
            logger.error(f"Upload of {path} failed: {e}")
            raise StorageError(str(e)) from e

    def remove(self, paths: List[str]) -> None:
        if not paths:
            return
        try:
            self._bucket().remove(paths)
        except Exception as e:
            logger.error(f"Removal of {len(paths)} object(s) failed: {e}")
            raise StorageError(str(e)) from e

    def sign_url(self, path: str, ttl_seconds: int) -> str:
        try:
            result = self._bucket().create_signed_url(path, ttl_seconds)
        except Exception as e:
            logger.error(f"Signing {path} failed: {e}")
            raise StorageError(str(e)) from e

        signed_url = result.get("signedUrl") or result.get("signedURL")
        if not signed_url:
            raise StorageError(f"No signed URL returned for {path}")
        return signed_url


def get_storage(client=Depends(get_supabase)) -> StorageBridge:
    return StorageBridge(client)
