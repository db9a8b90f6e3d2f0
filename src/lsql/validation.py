"""
HTTP client for the remote SQL validation endpoint.

The same endpoint serves two purposes: checking a full statement before it is
executed (`validate` with caret 0) and producing completion suggestions for
the statement being typed (`complete` with the cursor position as caret).
Both calls are synchronous; a slow server stalls the caller for one round
trip.
"""

import logging

import requests
from pydantic import ValidationError as PydanticValidationError

from .config import ConnectionConfig
from .errors import ValidationError
from .models import Lint, Suggestion, ValidationRequest, ValidationResult

logger = logging.getLogger(__name__)

TOKEN_HEADER = "X-Kafka-Lenses-Token"
VALIDATE_PATH = "/api/v1/sql/presentation"


class ValidationClient:
    """Validation and completion calls against the remote service."""

    def __init__(self, config: ConnectionConfig, session: requests.Session | None = None):
        """
        Initialize client.

        Args:
            config: Host, token and TLS settings of the remote service
            session: Optional pre-built requests session (tests inject one)
        """
        self.config = config
        self.session = session or requests.Session()
        if config.token:
            self.session.headers[TOKEN_HEADER] = config.token
        self.session.verify = not config.insecure

    def validate(self, sql: str, caret: int = 0) -> ValidationResult:
        """
        Validate a SQL fragment.

        Args:
            sql: Statement or partial statement text
            caret: Cursor offset into `sql`; irrelevant for full-statement checks

        Returns:
            The lints and suggestions returned by the server

        Raises:
            ValidationError: the call failed or the response could not be decoded
        """
        if not sql.strip():
            raise ValidationError("sql is empty")

        body = ValidationRequest(sql_text=sql, caret=caret).model_dump(by_alias=True)
        url = f"{self.config.base_url}{VALIDATE_PATH}"
        logger.debug("validate caret=%d sql=%r", caret, sql)

        try:
            response = self.session.post(url, json=body, timeout=self.config.timeout)
        except requests.RequestException as e:
            raise ValidationError(f"validation request to {self.config.host} failed: {e}") from e

        if response.status_code >= 400:
            raise ValidationError(
                f"validation request rejected with HTTP {response.status_code}: {response.text.strip()[:200]}",
                status_code=response.status_code,
            )

        try:
            return ValidationResult.model_validate(response.json())
        except (ValueError, PydanticValidationError) as e:
            raise ValidationError(f"cannot decode validation response: {e}", status_code=response.status_code) from e

    def lint(self, sql: str) -> list[Lint]:
        """Full-statement check; returns only the lints that block execution."""
        return self.validate(sql, caret=0).blocking_lints()

    def complete(self, sql: str, caret: int, word: str) -> list[Suggestion]:
        """
        Suggestions for the cursor position, filtered to those whose display
        text starts with `word` (case-sensitive).
        """
        result = self.validate(sql, caret=caret)
        return filter_has_prefix(result.suggestions, word)


def filter_has_prefix(suggestions: list[Suggestion], word: str) -> list[Suggestion]:
    """Keep suggestions whose display text has `word` as a case-sensitive prefix."""
    return [suggestion for suggestion in suggestions if suggestion.display.startswith(word)]
