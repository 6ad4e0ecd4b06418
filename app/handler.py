"""
Validation and persistence of message submissions.

The HTTP layer hands the raw request body to decode_submission, passes the
result to MessageHandler.submit and maps the returned outcome to a status
code. Decode errors raise MalformedBody; validation and storage failures
are returned as outcomes.
"""

import json
import logging
from datetime import datetime, timezone
from typing import Literal, Optional, Union

from pydantic import BaseModel, ValidationError

from app.models import GROUP_OR_USER_NAME_MAX_LENGTH, Message
from app.schemas import MessageSubmission
from app.storage import MessageStore


SAVED_MESSAGE = "message saved"
EMPTY_BODY_MESSAGE = "Request body cannot be empty"
BLANK_FIELDS_MESSAGE = "groupOrUserName and messageContent are required"
INVALID_JSON_MESSAGE = "Request body is not valid JSON"
INTERNAL_ERROR_MESSAGE = "Internal server error, please try again later"


class MalformedBody(Exception):
    """Raised when a request body cannot be decoded into a MessageSubmission."""


# =============================================================================
# Outcomes
# =============================================================================

class Success(BaseModel):
    kind: Literal["success"] = "success"
    message_id: int
    message: str = SAVED_MESSAGE


class InvalidInput(BaseModel):
    kind: Literal["invalid_input"] = "invalid_input"
    message: str


class InternalError(BaseModel):
    kind: Literal["internal_error"] = "internal_error"
    message: str = INTERNAL_ERROR_MESSAGE


Outcome = Union[Success, InvalidInput, InternalError]


# =============================================================================
# Decoding
# =============================================================================

def decode_submission(raw_body: bytes) -> Optional[MessageSubmission]:
    """
    Decode a raw JSON request body.

    Returns None for a JSON null body so that the handler can report the
    missing submission. Raises MalformedBody when the body is not JSON or
    does not have the shape of a submission.
    """
    try:
        payload = json.loads(raw_body)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise MalformedBody(INVALID_JSON_MESSAGE) from e

    if payload is None:
        return None

    if not isinstance(payload, dict):
        raise MalformedBody("Request body must be a JSON object")

    try:
        return MessageSubmission.model_validate(payload)
    except ValidationError as e:
        errors = "; ".join(
            f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}"
            for err in e.errors()
        )
        raise MalformedBody(f"Invalid request body: {errors}") from e


def _is_blank(value: Optional[str]) -> bool:
    return value is None or not value.strip()


def _to_naive_utc(value: datetime) -> datetime:
    # The ReceivedDateTime column holds naive timestamps
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


# =============================================================================
# Handler
# =============================================================================

class MessageHandler:
    """
    Validates submissions and writes them to a MessageStore.

    Args:
        store: Store the validated message is inserted into
        logger: Logger for receipt, persistence and failure entries
    """

    def __init__(self, store: MessageStore, logger: Optional[logging.Logger] = None):
        self.store = store
        self.logger = logger or logging.getLogger(__name__)

    def submit(self, submission: Optional[MessageSubmission]) -> Outcome:
        if submission is None:
            self.logger.warning("Rejected submission: empty body")
            return InvalidInput(message=EMPTY_BODY_MESSAGE)

        if _is_blank(submission.group_or_user_name) or _is_blank(submission.message_content):
            self.logger.warning("Rejected submission: blank groupOrUserName or messageContent")
            return InvalidInput(message=BLANK_FIELDS_MESSAGE)

        if len(submission.group_or_user_name) > GROUP_OR_USER_NAME_MAX_LENGTH:
            self.logger.warning("Rejected submission: groupOrUserName too long")
            return InvalidInput(
                message=f"groupOrUserName must be at most {GROUP_OR_USER_NAME_MAX_LENGTH} characters"
            )

        self.logger.info(
            "Message received",
            extra={
                "group_or_user_name": submission.group_or_user_name,
                "received_at": submission.received_at.isoformat(),
                "content_length": len(submission.message_content),
            }
        )

        message = Message(
            group_or_user_name=submission.group_or_user_name,
            message_content=submission.message_content,
            received_at=_to_naive_utc(submission.received_at),
        )

        try:
            message_id = self.store.insert(message)
        except Exception:
            self.logger.exception("Failed to save message")
            return InternalError()

        self.logger.info("Message saved", extra={"message_id": message_id})
        return Success(message_id=message_id)
