"""
Digital ID Models
=================
Wire payload embedded in ID QR codes, plus card data.
"""

from dataclasses import dataclass
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class DigitalIdentityPayload(BaseModel):
    """
    Signed identity claims.

    Serialized with the deployed camelCase keys (``userId``,
    ``memberNumber``, ``timestamp``...). Timestamps are epoch milliseconds.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    subject_id: str = Field(alias="userId")
    display_number: str = Field(alias="memberNumber")
    full_name: str = Field(alias="fullName")
    email: str
    role: str
    issued_at: int = Field(alias="timestamp")
    expires_at: int = Field(alias="expiresAt")
    signature: str = ""

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True)


@dataclass(frozen=True)
class IssuedIdentity:
    payload: DigitalIdentityPayload
    blob: str  # Encrypted payload, the QR code content


@dataclass
class DigitalIDCard:
    """Data for a downloadable ID card."""
    subject_id: str
    display_number: str
    full_name: str
    email: str
    role: str
    member_since: datetime
    qr_code_data_url: str
    issued_at: datetime
    expires_at: datetime
