"""
Email OTP and Backup Codes
==========================
Challenge lifecycle, recovery codes and their collaborator interfaces.
"""

from .models import OTPChallenge, BackupCodeSet
from .store import DocumentStore, InMemoryDocumentStore
from .locks import SubjectLocks
from .mailer import EmailMessage, Mailer, ResendMailer, render_otp_email
from .challenge import OTPChallengeStore, MFA_COLLECTION
from .backup_codes import BackupCodeStore, BACKUP_CODES_COLLECTION

__all__ = [
    # Models
    "OTPChallenge",
    "BackupCodeSet",
    # Collaborators
    "DocumentStore",
    "InMemoryDocumentStore",
    "SubjectLocks",
    "EmailMessage",
    "Mailer",
    "ResendMailer",
    "render_otp_email",
    # Stores
    "OTPChallengeStore",
    "BackupCodeStore",
    "MFA_COLLECTION",
    "BACKUP_CODES_COLLECTION",
]
