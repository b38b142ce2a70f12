"""
Backup Codes
============
Single-use recovery codes, stored encrypted.
"""

import time
from datetime import datetime, timezone
from typing import Callable, List

import structlog

from ..crypto import decrypt, encrypt, generate_otp
from ..errors import InvalidCode, NotFound
from .locks import SubjectLocks
from .models import BackupCodeSet
from .store import DocumentStore

logger = structlog.get_logger(__name__)

BACKUP_CODES_COLLECTION = "mfa_backup_codes"


class BackupCodeStore:
    """Generate, store and redeem backup codes."""

    def __init__(
        self,
        store: DocumentStore,
        secret_key: str,
        clock: Callable[[], float] = time.time,
    ):
        self.store = store
        self.secret_key = secret_key
        self._clock = clock
        self._locks = SubjectLocks()

    @staticmethod
    def generate(count: int = 10) -> List[str]:
        """Codes of 8 random digits formatted ``XXXX-XXXX``."""
        codes = []
        for _ in range(count):
            digits = generate_otp(8)
            codes.append(f"{digits[:4]}-{digits[4:]}")
        return codes

    async def store_codes(self, subject_id: str, codes: List[str]) -> str:
        """
        Persist codes for a subject, replacing any previous set.

        Returns:
            Document id of the new set
        """
        async with self._locks(subject_id):
            for document_id, _ in await self.store.query(BACKUP_CODES_COLLECTION, subject_id=subject_id):
                await self.store.delete(BACKUP_CODES_COLLECTION, document_id)

            code_set = BackupCodeSet(
                subject_id=subject_id,
                codes=[encrypt(code, self.secret_key) for code in codes],
                created_at=datetime.fromtimestamp(self._clock(), tz=timezone.utc),
            )
            document_id = await self.store.create(BACKUP_CODES_COLLECTION, code_set.to_document())

        logger.info("backup_codes_stored", subject_id=subject_id, count=len(codes))
        return document_id

    async def verify(self, subject_id: str, candidate: str) -> None:
        """
        Redeem a backup code.

        Every stored code is decrypted on each call; sets are small.

        Raises:
            NotFound: Subject has no backup codes
            InvalidCode: No match, or the matching code was already used
        """
        async with self._locks(subject_id):
            code_set = await self._load(subject_id)

            codes = [decrypt(blob, self.secret_key) for blob in code_set.codes]
            try:
                index = codes.index(candidate)
            except ValueError:
                index = -1

            if index == -1 or index in code_set.used:
                logger.warning("backup_code_rejected", subject_id=subject_id)
                raise InvalidCode("Invalid or already used backup code")

            code_set.used.append(index)
            await self.store.update(BACKUP_CODES_COLLECTION, code_set.id, used=code_set.used)

        logger.info("backup_code_used", subject_id=subject_id, remaining=code_set.remaining)

    async def remaining(self, subject_id: str) -> int:
        """
        Raises:
            NotFound: Subject has no backup codes
        """
        return (await self._load(subject_id)).remaining

    async def _load(self, subject_id: str) -> BackupCodeSet:
        matches = await self.store.query(BACKUP_CODES_COLLECTION, subject_id=subject_id)
        if not matches:
            raise NotFound("No backup codes found")
        document_id, document = matches[0]
        return BackupCodeSet.from_document(document_id, document)
