"""Short public tokens for shareable resources.

A token insert is attempted inside a savepoint and reported back as one of
``Issued``, ``Conflict`` or ``Failed``; ``issue_token`` drives the bounded retry
loop over those outcomes instead of inspecting raw driver errors.
"""

from __future__ import annotations

import secrets
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Union

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncConnection
from sqlalchemy.sql import Executable

from ..core.logging import get_logger
from .errors import TokenGenerationError

logger = get_logger(__name__)

TOKEN_LENGTH = 8
MAX_TOKEN_ATTEMPTS = 5
UNIQUE_VIOLATION = "23505"


@dataclass(frozen=True)
class Issued:
    token: str
    value: Any = None


@dataclass(frozen=True)
class Conflict:
    token: str


@dataclass(frozen=True)
class Failed:
    token: str
    error: BaseException


InsertAttempt = Union[Issued, Conflict, Failed]
AttemptFn = Callable[[str], Awaitable[InsertAttempt]]


def generate_token() -> str:
    return secrets.token_urlsafe(6)[:TOKEN_LENGTH]


def is_unique_violation(exc: IntegrityError) -> bool:
    orig = exc.orig
    code = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if code is not None:
        return code == UNIQUE_VIOLATION
    return "UNIQUE constraint failed" in str(orig)


async def try_insert(conn: AsyncConnection, token: str, stmt: Executable) -> InsertAttempt:
    """Run ``stmt`` in a savepoint; a uniqueness violation leaves the outer transaction usable."""

    try:
        async with conn.begin_nested():
            result = await conn.execute(stmt)
            value = result.scalar_one_or_none() if result.returns_rows else None
    except IntegrityError as exc:
        if is_unique_violation(exc):
            return Conflict(token)
        return Failed(token, exc)
    return Issued(token, value)


async def issue_token(
    attempt: AttemptFn,
    *,
    first_candidate: str | None = None,
    generate: Callable[[], str] | None = None,
    max_attempts: int = MAX_TOKEN_ATTEMPTS,
) -> Issued:
    generate = generate or generate_token
    for attempt_no in range(1, max_attempts + 1):
        candidate = first_candidate if attempt_no == 1 and first_candidate else generate()
        outcome = await attempt(candidate)
        if isinstance(outcome, Issued):
            return outcome
        if isinstance(outcome, Failed):
            raise outcome.error
        logger.info("Token collision, regenerating", extra={"attempt": attempt_no, "token": candidate})
    raise TokenGenerationError(max_attempts)
