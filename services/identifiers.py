# services/identifiers.py
import logging
from typing import Any, Awaitable, Callable, Optional

from sqlalchemy.exc import SQLAlchemyError

from repositories.base import InvalidIdentifierError

log = logging.getLogger(__name__)

Lookup = Callable[[str], Awaitable[Optional[Any]]]


def looks_external(identifier: str) -> bool:
    # Client-generated UUIDs carry hyphens; storage ids never do.
    return "-" in identifier


class IdentifierResolver:
    """
    Maps a caller-supplied id to a stored record.

    Lookup order: external id first; then, only if the id has no hyphen,
    the internal id. Errors from the internal lookup (a malformed id, a
    failing query) count as "not found". Nothing is ever created.
    """

    def __init__(self, by_external_id: Lookup, by_internal_id: Lookup):
        self.by_external_id = by_external_id
        self.by_internal_id = by_internal_id

    async def resolve_record(self, identifier: str) -> Optional[Any]:
        if not identifier:
            return None
        record = await self.by_external_id(identifier)
        if record is not None:
            return record
        if looks_external(identifier):
            return None
        try:
            return await self.by_internal_id(identifier)
        except (InvalidIdentifierError, SQLAlchemyError) as e:
            log.debug("internal lookup for %r failed: %s", identifier, e)
            return None

    async def resolve(self, identifier: str) -> Optional[str]:
        """Returns the internal id, or None."""
        record = await self.resolve_record(identifier)
        return record.id if record is not None else None
