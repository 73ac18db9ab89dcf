"""Resolve bearer tokens to user ids with Supabase Auth."""

import logging
from dataclasses import dataclass
from typing import Protocol
from uuid import UUID

from supabase import AuthApiError, Client

from intake_tracker.domain.errors import DependencyError

_logger = logging.getLogger(__name__)

_SERVER_ERROR = 500


class Authenticator(Protocol):
    """Maps an access token to the authenticated user's id."""

    def authenticate(self, token: str) -> UUID | None:
        """Return the user id, or None when the token is not valid.

        Raises DependencyError when the auth service cannot answer.
        """


@dataclass
class SupabaseAuthenticator(Authenticator):
    """Validates access tokens against Supabase Auth."""

    client: Client

    def authenticate(self, token: str) -> UUID | None:
        """Return the user id for a valid access token."""
        try:
            response = self.client.auth.get_user(token)
        except AuthApiError as exc:
            if (exc.status or 0) >= _SERVER_ERROR:
                _logger.error("Supabase Auth failed: status=%s", exc.status)
                raise DependencyError(
                    "Authentication unavailable", operation="authenticate"
                ) from exc
            _logger.info("Token rejected: %s", exc)
            return None
        except Exception as exc:
            _logger.exception("Supabase Auth request failed")
            raise DependencyError(
                "Authentication unavailable", operation="authenticate"
            ) from exc
        user = getattr(response, "user", None)
        if user is None:
            return None
        return UUID(str(user.id))
