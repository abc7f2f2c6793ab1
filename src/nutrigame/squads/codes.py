"""Squad code generation and validation.

Codes are 6-character alphanumeric (A-Z, 0-9), generated server-side with
a cryptographic random source. User input is trimmed and uppercased before
lookup.
"""

from __future__ import annotations

import re
import secrets
import string

from sqlalchemy.ext.asyncio import AsyncSession

from nutrigame.db.models import Squad
from nutrigame.errors import CodeGenerationFailed, InvalidSquadCode

SQUAD_CODE_CHARSET = string.ascii_uppercase + string.digits  # A-Z, 0-9
SQUAD_CODE_LENGTH = 6
SQUAD_CODE_PATTERN = re.compile(r"^[A-Z0-9]{6}$")


def generate_squad_code() -> str:
    return "".join(secrets.choice(SQUAD_CODE_CHARSET) for _ in range(SQUAD_CODE_LENGTH))


def normalize_squad_code(code: str) -> str:
    """Trim and uppercase; raise InvalidSquadCode if the result is not A-Z0-9 x6."""
    normalized = code.strip().upper()
    if not SQUAD_CODE_PATTERN.match(normalized):
        raise InvalidSquadCode()
    return normalized


async def generate_unique_squad_code(db: AsyncSession, max_attempts: int = 10) -> str:
    """Generate a code no existing squad uses."""
    for _ in range(max_attempts):
        code = generate_squad_code()
        if await db.get(Squad, code) is None:
            return code
    raise CodeGenerationFailed(f"Failed to generate unique squad code after {max_attempts} attempts")
