"""Credential variants for the push service."""

from pushclient.auth.credentials import (
    BearerTokenCredential,
    Credential,
    CredentialError,
    CredentialVariant,
    SecretCredential,
    build_credential,
)

__all__ = [
    "BearerTokenCredential",
    "Credential",
    "CredentialError",
    "CredentialVariant",
    "SecretCredential",
    "build_credential",
]
