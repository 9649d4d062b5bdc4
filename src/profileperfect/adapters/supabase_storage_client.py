"""Supabase Storage adapter for image files."""

import asyncio
from dataclasses import dataclass

from supabase import Client

from profileperfect.services.uploads import StorageClient


@dataclass
class SupabaseStorageClient(StorageClient):
    """Stores files in a public Supabase Storage bucket."""

    client: Client
    bucket: str

    async def put(self, content: bytes, filename: str, content_type: str) -> str:
        """Upload content and return its public URL."""
        return await asyncio.to_thread(self._put, content, filename, content_type)

    def _put(self, content: bytes, filename: str, content_type: str) -> str:
        bucket = self.client.storage.from_(self.bucket)
        bucket.upload(
            filename,
            content,
            {"content-type": content_type, "upsert": "false"},
        )
        return bucket.get_public_url(filename)
