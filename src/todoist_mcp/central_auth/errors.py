"""Exception types raised by the OAuth core.

Only lightweight, **data-carrying** exceptions live here so that the HTTP layer
can transform them into standard OAuth error bodies.
"""

from __future__ import annotations


class OAuthError(Exception):
    """An OAuth 2.0 protocol error with its RFC 6749 error code."""

    def __init__(
        self,
        error: str,
        description: str,
        *,
        status_code: int = 400,
    ) -> None:
        super().__init__(description)
        self.error: str = error
        self.description: str = description
        self.status_code: int = status_code

    def to_payload(self) -> dict[str, str]:
        """Return a JSON-serialisable payload **without secrets**."""
        return {"error": self.error, "error_description": self.description}

    # Convenience constructors keep error codes spelled in one place.
    @classmethod
    def invalid_request(cls, description: str) -> OAuthError:
        return cls("invalid_request", description)

    @classmethod
    def invalid_client(cls, description: str) -> OAuthError:
        return cls("invalid_client", description, status_code=401)

    @classmethod
    def invalid_grant(cls, description: str) -> OAuthError:
        return cls("invalid_grant", description)

    @classmethod
    def invalid_scope(cls, description: str) -> OAuthError:
        return cls("invalid_scope", description)

    @classmethod
    def unsupported_grant_type(cls, description: str) -> OAuthError:
        return cls("unsupported_grant_type", description)

    @classmethod
    def unsupported_response_type(cls, description: str) -> OAuthError:
        return cls("unsupported_response_type", description)

    @classmethod
    def invalid_client_metadata(cls, description: str) -> OAuthError:
        return cls("invalid_client_metadata", description)


class UnsupportedAuthMethodError(OAuthError):
    """Raised when a client asks for anything but ``token_endpoint_auth_method=none``."""

    def __init__(self, method: str) -> None:
        super().__init__(
            "invalid_client_metadata",
            f"Unsupported token_endpoint_auth_method '{method}': "
            "only public clients using PKCE (method 'none') are supported.",
        )
        self.method = method


class IdentityProviderError(RuntimeError):
    """Raised when the upstream identity provider rejects a code or lookup."""
