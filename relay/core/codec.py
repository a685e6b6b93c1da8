"""
Inbound payload validation.

The relay never re-serializes a record: the text that was received is the text
that is stored and relayed. Validation only checks that the message is a
self-contained JSON object.
"""

import json
from typing import Union

from .errors import MalformedPayloadError


def decode_payload(raw: Union[str, bytes]) -> str:
    """
    Validate an inbound message and return it as text.

    Args:
        raw: Text frame or UTF-8 encoded binary frame

    Returns:
        The payload text, unchanged

    Raises:
        MalformedPayloadError: If the message is not valid UTF-8 or not a JSON object
    """
    if isinstance(raw, (bytes, bytearray)):
        try:
            text = bytes(raw).decode("utf-8")
        except UnicodeDecodeError as ex:
            raise MalformedPayloadError(f"payload is not valid UTF-8: {ex}") from ex
    elif isinstance(raw, str):
        text = raw
    else:
        raise MalformedPayloadError(f"unsupported payload type: {type(raw).__name__}")

    try:
        parsed = json.loads(text)
    except (ValueError, RecursionError) as ex:
        raise MalformedPayloadError(f"payload is not valid JSON: {ex}") from ex

    if not isinstance(parsed, dict):
        raise MalformedPayloadError("payload must be a JSON object")
    return text
