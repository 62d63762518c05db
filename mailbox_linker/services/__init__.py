"""Service layer exports."""

from .account_linker import CallbackOutcome, MailboxAccountLinker
from .gmail_tokens import GmailTokenService
from .token_cipher import TokenCipherService

__all__ = [
    "CallbackOutcome",
    "GmailTokenService",
    "MailboxAccountLinker",
    "TokenCipherService",
]
