# services/file_storage.py
import asyncio
import hashlib
import hmac
import os
import time
from pathlib import Path
from typing import Optional

from models import new_id

SIGNED_URL_TTL_SECONDS = 60 * 60


class FileStorage:
    """
    Local-disk blob store. Blobs are addressed by a storage id and served
    through short-lived HMAC-signed URLs.
    """

    def __init__(self, root: str, secret: str, base_url: str = ""):
        self.root = Path(root)
        self._secret = secret.encode("utf-8")
        self.base_url = base_url.rstrip("/")

    def path_for(self, storage_id: str) -> Path:
        return self.root / storage_id

    def _write(self, storage_id: str, data: bytes) -> None:
        os.makedirs(self.root, exist_ok=True)
        with open(self.path_for(storage_id), "wb") as f:
            f.write(data)

    async def store(self, data: bytes) -> str:
        storage_id = new_id()
        await asyncio.to_thread(self._write, storage_id, data)
        return storage_id

    def _sign(self, storage_id: str, expires: int) -> str:
        return hmac.new(self._secret, f"{storage_id}:{expires}".encode("utf-8"), hashlib.sha256).hexdigest()

    def signed_url(self, storage_id: str, ttl_seconds: int = SIGNED_URL_TTL_SECONDS) -> str:
        expires = int(time.time()) + ttl_seconds
        signature = self._sign(storage_id, expires)
        return f"{self.base_url}/api/files/{storage_id}?expires={expires}&signature={signature}"

    def verify(self, storage_id: str, expires: Optional[int], signature: Optional[str]) -> bool:
        if expires is None or not signature:
            return False
        if expires < time.time():
            return False
        return hmac.compare_digest(signature, self._sign(storage_id, expires))
