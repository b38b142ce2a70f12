"""
OTP Models
==========
Persisted records for email OTP challenges and backup code sets.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional
from dataclasses import dataclass, field


@dataclass
class OTPChallenge:
    """An emailed one-time code awaiting verification."""
    subject_id: str
    destination: str
    encrypted_code: str
    created_at: datetime
    expires_at: datetime
    verified: bool = False
    attempts: int = 0
    id: Optional[str] = None

    def is_expired(self, now: datetime) -> bool:
        return now > self.expires_at

    def to_document(self) -> Dict[str, Any]:
        return {
            "subject_id": self.subject_id,
            "destination": self.destination,
            "code": self.encrypted_code,
            "created_at": self.created_at,
            "expires_at": self.expires_at,
            "verified": self.verified,
            "attempts": self.attempts,
        }

    @classmethod
    def from_document(cls, document_id: str, document: Dict[str, Any]) -> "OTPChallenge":
        return cls(
            id=document_id,
            subject_id=document["subject_id"],
            destination=document["destination"],
            encrypted_code=document["code"],
            created_at=document["created_at"],
            expires_at=document["expires_at"],
            verified=document.get("verified", False),
            attempts=document.get("attempts", 0),
        )


@dataclass
class BackupCodeSet:
    """Encrypted single-use recovery codes for one subject."""
    subject_id: str
    codes: List[str]  # Encrypted blobs
    created_at: datetime
    used: List[int] = field(default_factory=list)
    id: Optional[str] = None

    @property
    def remaining(self) -> int:
        return len(self.codes) - len(set(self.used))

    def to_document(self) -> Dict[str, Any]:
        return {
            "subject_id": self.subject_id,
            "codes": list(self.codes),
            "created_at": self.created_at,
            "used": list(self.used),
        }

    @classmethod
    def from_document(cls, document_id: str, document: Dict[str, Any]) -> "BackupCodeSet":
        return cls(
            id=document_id,
            subject_id=document["subject_id"],
            codes=list(document["codes"]),
            created_at=document["created_at"],
            used=list(document.get("used", [])),
        )
