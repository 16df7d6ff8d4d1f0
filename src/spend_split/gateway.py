"""The ledger gateway interface and backend selection.

The ledger engine never talks to storage directly. It depends on this
protocol, and the concrete backend (hosted Supabase or a local SQLite file)
is picked once when the store is built.
"""

import logging
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from .config import Settings
from .exceptions import ConfigurationError
from .models import Expense

if TYPE_CHECKING:
    from .clients.supabase import SupabaseGateway
    from .db import SqliteGateway

logger = logging.getLogger(__name__)


@runtime_checkable
class LedgerGateway(Protocol):
    """Durable CRUD for expenses, scoped to the calling owner.

    Every method may raise ``TransportFailure``, ``AuthorizationFailure`` or
    ``NotFound``.
    """

    async def list_expenses(self, owner_id: str | None) -> list[Expense]:
        """All expenses for the owner, newest first."""
        ...

    async def create_expense(self, draft: Expense) -> Expense:
        """Persist a new expense and return the stored copy."""
        ...

    async def update_expense(self, expense: Expense) -> Expense:
        """Replace an expense's fields and return the stored copy."""
        ...

    async def delete_expense(self, expense_id: str) -> None:
        """Delete an expense by id."""
        ...

    async def settle_expense(self, expense_id: str) -> Expense:
        """Mark an expense settled (the gateway stamps settled_at)."""
        ...


def build_gateway(settings: Settings) -> "SupabaseGateway | SqliteGateway":
    """
    Build the gateway selected by ``settings.gateway_backend``.

    Raises:
        ConfigurationError: If the selected backend is missing settings
    """
    if settings.gateway_backend == "supabase":
        from .clients.supabase import SupabaseGateway

        missing = [
            name
            for name in ("supabase_url", "supabase_api_key", "owner_id")
            if not getattr(settings, name)
        ]
        if missing:
            raise ConfigurationError(
                f"Supabase backend requires: {', '.join(missing)}"
            )

        logger.info(f"Using Supabase gateway at {settings.supabase_url}")
        return SupabaseGateway(
            base_url=settings.supabase_url,
            api_key=settings.supabase_api_key,
            access_token=settings.supabase_access_token,
            owner_id=settings.owner_id,
            timeout=settings.request_timeout,
        )

    from .db import Database, SqliteGateway

    logger.info(f"Using local SQLite gateway at {settings.database_path}")
    return SqliteGateway(Database(settings.database_path), owner_id=settings.owner_id)
