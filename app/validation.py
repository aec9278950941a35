"""Declarative request validation.

A rule set is a list of ``Rule(field, check, message)`` descriptors. Fields are
evaluated independently, in the order they first appear in the list. Within a
field, rules run in declaration order and the first failing rule records its
message; the remaining rules for that field are skipped. A check may be a plain
function or a coroutine function, both return truthy when the value passes.
"""

import base64
import binascii
import inspect
from collections.abc import Awaitable, Callable, Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from email_validator import EmailNotValidError, validate_email

from app.errors import ValidationFailure

Check = Callable[[Any], bool | Awaitable[bool]]


@dataclass(frozen=True)
class Rule:
    field: str
    check: Check
    message: str

    async def passes(self, value: Any) -> bool:
        result = self.check(value)
        if inspect.isawaitable(result):
            result = await result
        return bool(result)


async def collect_errors(data: Mapping[str, Any], rules: Iterable[Rule]) -> dict[str, str]:
    """Run the rules against ``data`` and return field -> first failing message."""
    by_field: dict[str, list[Rule]] = {}
    for rule in rules:
        by_field.setdefault(rule.field, []).append(rule)

    errors: dict[str, str] = {}
    for field, field_rules in by_field.items():
        value = data.get(field)
        for rule in field_rules:
            if not await rule.passes(value):
                errors[field] = rule.message
                break
    return errors


async def validate(data: Mapping[str, Any], rules: Iterable[Rule]) -> None:
    """Raise ValidationFailure carrying every failing field, if any."""
    errors = await collect_errors(data, rules)
    if errors:
        raise ValidationFailure(errors)


def decode_base64(value: Any) -> bytes | None:
    if not isinstance(value, str):
        return None
    try:
        return base64.b64decode(value)
    except (binascii.Error, ValueError):
        return None


# --- Rule families ---


def required(field: str, message: str) -> Rule:
    def check(value: Any) -> bool:
        if value is None:
            return False
        if isinstance(value, str):
            return value.strip() != ""
        return True

    return Rule(field, check, message)


def length(field: str, message: str, min_length: int = 0, max_length: int | None = None, strip: bool = False) -> Rule:
    def check(value: Any) -> bool:
        if not isinstance(value, str):
            return False
        size = len(value.strip() if strip else value)
        return size >= min_length and (max_length is None or size <= max_length)

    return Rule(field, check, message)


def email_shape(field: str, message: str) -> Rule:
    def check(value: Any) -> bool:
        if not isinstance(value, str):
            return False
        try:
            validate_email(value, check_deliverability=False)
        except EmailNotValidError:
            return False
        return True

    return Rule(field, check, message)


def unique(field: str, lookup: Callable[[Any], Any], message: str) -> Rule:
    """Passes when ``lookup(value)`` finds nothing. ``lookup`` may be async."""

    async def check(value: Any) -> bool:
        found = lookup(value)
        if inspect.isawaitable(found):
            found = await found
        return not found

    return Rule(field, check, message)


def max_bytes(field: str, limit: int, message: str) -> Rule:
    """Bound the decoded size of an optional base64 payload."""

    def check(value: Any) -> bool:
        if not value:
            return True
        payload = decode_base64(value)
        return payload is None or len(payload) <= limit

    return Rule(field, check, message)


def content_type(field: str, allowed: set[str], detect: Callable[[bytes], Any], message: str) -> Rule:
    """Sniff an optional base64 payload and require one of ``allowed`` MIME types."""

    async def check(value: Any) -> bool:
        if not value:
            return True
        payload = decode_base64(value)
        if not payload:
            return False
        mime = detect(payload)
        if inspect.isawaitable(mime):
            mime = await mime
        return mime in allowed

    return Rule(field, check, message)
