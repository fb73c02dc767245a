import hashlib

from labintake.database.repositories.hash_index_repository import HashIndexRepository


def content_hash(data: bytes) -> str:
    """SHA-256 hex digest of file content; independent of name and upload path."""
    return hashlib.sha256(data).hexdigest()


class Deduplicator:
    """Gate in front of object storage backed by the known-hash index."""

    def __init__(self, hash_repo: HashIndexRepository) -> None:
        self._hash_repo = hash_repo

    def is_duplicate(self, digest: str) -> bool:
        return self._hash_repo.exists(digest)

    def claim(self, digest: str) -> bool:
        """Atomically reserve a hash; False means another upload owns it."""
        return self._hash_repo.claim(digest)

    def bind(self, digest: str, document_id: int) -> None:
        self._hash_repo.bind(digest, document_id)

    def release(self, digest: str) -> None:
        self._hash_repo.release(digest)
