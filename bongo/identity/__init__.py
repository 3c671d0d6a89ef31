"""Подтверждение личности и токены сессии."""

from bongo.identity.google import (
    GoogleIdentityVerifier,
    IdentityVerifier,
    VerifiedIdentity,
)
from bongo.identity.service import LoginResult, LoginService
from bongo.identity.tokens import SessionTokens, create_session_tokens

__all__ = [
    "GoogleIdentityVerifier",
    "IdentityVerifier",
    "LoginResult",
    "LoginService",
    "SessionTokens",
    "VerifiedIdentity",
    "create_session_tokens",
]
