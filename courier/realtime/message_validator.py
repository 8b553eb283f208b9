"""
Validation of inbound "send-message" payloads.

A payload is rejected with ValidationFailure before it can reach the
Message Store or the registry. Text is validated but never rewritten; only
the from, to and text fields are carried into the broadcast.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from ..exceptions import ErrorContext, ValidationFailure, create_error_context
from ..structured_logging.logging_config import get_logger

logger = get_logger(__name__)


class SendMessagePayload(BaseModel):
    """Wire shape of a send-message event: {"from", "to", "text"}."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore", str_strip_whitespace=False)

    sender: str = Field(alias="from")
    recipient: str = Field(alias="to")
    text: str

    @field_validator("sender", "recipient")
    @classmethod
    def identity_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("identity must not be empty")
        return v

    @field_validator("text")
    @classmethod
    def text_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("text must not be empty")
        return v


class MessageValidator:
    """Applies payload shape and policy checks to outbound messages."""

    def __init__(
        self,
        max_text_length: int = 4000,
        max_identity_length: int = 64,
        allow_self_messages: bool = True,
    ) -> None:
        self.max_text_length = max_text_length
        self.max_identity_length = max_identity_length
        self.allow_self_messages = allow_self_messages

    @classmethod
    def from_config(cls, realtime_config) -> "MessageValidator":
        return cls(
            max_text_length=realtime_config.max_text_length,
            max_identity_length=realtime_config.max_identity_length,
            allow_self_messages=realtime_config.allow_self_messages,
        )

    def parse(self, data: Any, context: ErrorContext | None = None) -> SendMessagePayload:
        """
        Parse a raw event payload and validate it.

        Args:
            data: The "data" member of an inbound frame
            context: Error context for logging

        Returns:
            SendMessagePayload

        Raises:
            ValidationFailure: If the payload is missing fields or breaks a policy
        """
        context = context or create_error_context()
        if not isinstance(data, dict):
            raise ValidationFailure("send-message payload must be an object", context, field="data")
        try:
            payload = SendMessagePayload.model_validate(data)
        except ValidationError as e:
            first = e.errors()[0]
            field_name = ".".join(str(part) for part in first.get("loc", ())) or None
            raise ValidationFailure(
                f"Invalid send-message payload: {first.get('msg')}",
                context,
                field=field_name,
                details={"errors": e.errors(include_url=False, include_context=False, include_input=False)},
            ) from e

        self.check(payload.sender, payload.recipient, payload.text, context)
        return payload

    def check(self, sender: str, recipient: str, text: str, context: ErrorContext | None = None) -> None:
        """
        Enforce field presence, length limits and the self-message policy.

        Raises:
            ValidationFailure: On the first violated rule
        """
        context = context or create_error_context(identity=sender or None)
        for field_name, value in (("from", sender), ("to", recipient)):
            if not isinstance(value, str) or not value.strip():
                raise ValidationFailure(f"'{field_name}' must be a non-empty string", context, field=field_name)
            if len(value) > self.max_identity_length:
                raise ValidationFailure(
                    f"'{field_name}' exceeds {self.max_identity_length} characters", context, field=field_name
                )
        if not isinstance(text, str) or not text.strip():
            raise ValidationFailure("'text' must be a non-empty string", context, field="text")
        if len(text) > self.max_text_length:
            raise ValidationFailure(f"'text' exceeds {self.max_text_length} characters", context, field="text")

        if sender == recipient:
            if not self.allow_self_messages:
                raise ValidationFailure("Messages to self are not allowed", context, field="to", value=recipient)
            logger.info("Self-message accepted", identity=sender)
