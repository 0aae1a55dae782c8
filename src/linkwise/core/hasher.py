"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

hasher.py
Implements file hashing utilities using FileRecord and pluggable hash algorithms.

HasherImpl streams files in fixed-size chunks so memory use stays flat no matter
how large the file is. The full digest uses a cryptographic algorithm from hashlib;
the front-block digest used for pre-filtering uses xxHash64.
"""

import hashlib
import logging

import xxhash

from linkwise.core.models import FileRecord
from linkwise.core.interfaces import Hasher, HashAlgorithm, HashObject

logger = logging.getLogger(__name__)

READ_CHUNK_SIZE = 1024 * 1024  # 1 MiB


# Use the same way to implement and use any other hashing algorithm
class XXHashAlgorithmImpl(HashAlgorithm):
    name = "xxh64"

    def new(self) -> HashObject:
        return xxhash.xxh64()


class HashlibAlgorithmImpl(HashAlgorithm):
    """Any algorithm exposed by hashlib.new(), e.g. 'sha256' or 'blake2b'."""

    def __init__(self, name: str = "sha256"):
        hashlib.new(name)  # fail fast on unknown names
        self.name = name

    def new(self) -> HashObject:
        return hashlib.new(self.name)


class HasherImpl(Hasher):
    """
    Computes front-block and full digests for catalog records.

    The full digest is cached on FileRecord.digest; front hashes are only used
    to split candidate groups and are not stored.
    Read errors propagate as OSError so callers can count them.
    """

    def __init__(self, algorithm: HashAlgorithm = None, front_algorithm: HashAlgorithm = None):
        self.algorithm = algorithm or HashlibAlgorithmImpl("sha256")
        self.front_algorithm = front_algorithm or XXHashAlgorithmImpl()

    def compute_full_hash(self, record: FileRecord) -> bytes:
        if record.digest is not None:
            return record.digest
        h = self.algorithm.new()
        with open(record.path, 'rb') as f:
            while True:
                data = f.read(READ_CHUNK_SIZE)
                if not data:
                    break
                h.update(data)
        record.digest = h.digest()
        logger.debug(f"Full hash {record.digest.hex()[:16]} for {record.path}")
        return record.digest

    def compute_front_hash(self, record: FileRecord, block_size: int) -> bytes:
        """Computes hash of the first block_size bytes of a file."""
        h = self.front_algorithm.new()
        with open(record.path, 'rb') as f:
            h.update(f.read(block_size))
        return h.digest()
