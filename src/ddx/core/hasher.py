"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

hasher.py
Implements whole-file content digests with a pluggable hash algorithm.

ContentHasherImpl caches digests per path, so an image compared against many
candidates during exact matching is read from disk only once.
"""

import logging
from typing import Dict

import xxhash
from ddx.core.interfaces import ContentHasher, HashAlgorithm

logger = logging.getLogger(__name__)


# Use the same way to implement and use any other hashing algorithm
class XXHashAlgorithmImpl(HashAlgorithm):
    @staticmethod
    def hash(data: bytes) -> bytes:
        return xxhash.xxh64(data).digest()


class ContentHasherImpl(ContentHasher):
    """
    A hasher implementation that supports any algorithm via the HashAlgorithm interface.
    Computes and caches the full-content hash of each path.
    """

    def __init__(self, algorithm: HashAlgorithm = None):
        self.algorithm = algorithm or XXHashAlgorithmImpl()
        self._cache: Dict[str, bytes] = {}

    def compute_full_hash(self, path: str) -> bytes:
        """Hash of the whole file; b'' when it cannot be read."""
        if path in self._cache:
            return self._cache[path]
        try:
            with open(path, 'rb') as f:
                result = self.algorithm.hash(f.read())
        except OSError as e:
            logger.warning(f"Error reading full content of {path}: {e}")
            return b''
        self._cache[path] = result
        return result

    def same_content(self, path1: str, path2: str) -> bool:
        """True only when both files were readable and their digests match."""
        hash1 = self.compute_full_hash(path1)
        if not hash1:
            return False
        return hash1 == self.compute_full_hash(path2)
