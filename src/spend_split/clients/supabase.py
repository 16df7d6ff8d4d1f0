"""Supabase (PostgREST) ledger gateway."""

import logging
from datetime import UTC, datetime
from decimal import Decimal
from typing import Any

import httpx

from ..exceptions import AuthorizationFailure, NotFound, TransportFailure
from ..models import Expense, Party, utc_now

logger = logging.getLogger(__name__)

# The hosted schema predates the primary/secondary naming
_PARTY_TO_WIRE = {Party.PRIMARY: "user", Party.SECONDARY: "partner"}
_WIRE_TO_PARTY = {wire: party for party, wire in _PARTY_TO_WIRE.items()}


def parse_timestamp(value: str) -> datetime:
    """
    Parse the timestamp formats Supabase returns.

    ``T`` or space separators, any number of fractional digits, and ``Z``,
    ``+00``, ``+0000`` or ``+00:00`` offsets are all accepted. A missing
    offset is taken as UTC.

    Raises:
        ValueError: If the string is not a recognizable timestamp
    """
    parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def _format_timestamp(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC).isoformat()


def expense_to_row(expense: Expense) -> dict[str, Any]:
    """Encode an expense as an ``expenses`` table row."""
    return {
        "id": expense.id,
        "amount": str(expense.amount),
        "spender": _PARTY_TO_WIRE[expense.payer],
        "split_type": expense.policy.value,
        "title": expense.title,
        "description": expense.description,
        "date": _format_timestamp(expense.occurred_at),
        "settled": expense.settled,
        "settled_date": (
            _format_timestamp(expense.settled_at) if expense.settled_at else None
        ),
        "user_id": expense.owner_id,
        "debt_amount": str(expense.debt_amount),
        "debtor": _PARTY_TO_WIRE[expense.debtor] if expense.debtor else None,
    }


def expense_from_row(row: dict[str, Any]) -> Expense:
    """Decode an ``expenses`` table row. Debt fields are taken as stored."""
    debtor = row.get("debtor")
    settled_date = row.get("settled_date")
    return Expense(
        id=str(row["id"]),
        amount=row["amount"],
        payer=_WIRE_TO_PARTY[row["spender"]],
        policy=row.get("split_type") or "equal",
        title=row.get("title"),
        description=row.get("description"),
        occurred_at=parse_timestamp(row["date"]),
        settled=bool(row.get("settled", False)),
        settled_at=parse_timestamp(settled_date) if settled_date else None,
        owner_id=str(row["user_id"]) if row.get("user_id") else None,
        debt_amount=row["debt_amount"],
        debtor=_WIRE_TO_PARTY[debtor] if debtor else None,
    )


class SupabaseGateway:
    """Ledger gateway backed by a Supabase ``expenses`` table."""

    def __init__(
        self,
        base_url: str,
        api_key: str,
        owner_id: str,
        access_token: str | None = None,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize the Supabase gateway."""
        self.owner_id = owner_id
        self.client = httpx.AsyncClient(
            base_url=f"{base_url.rstrip('/')}/rest/v1",
            headers={
                "apikey": api_key,
                "Authorization": f"Bearer {access_token or api_key}",
                "Content-Type": "application/json",
                "Prefer": "return=representation",
            },
            timeout=timeout,
            transport=transport,
        )

    async def aclose(self):
        """Close the HTTP client."""
        await self.client.aclose()

    async def __aenter__(self):
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        params: dict[str, str] | None = None,
        json: Any = None,
        expense_id: str | None = None,
    ) -> Any:
        """
        Send a request and decode the JSON body.

        Numbers are decoded as Decimal so amounts never pass through float.

        Raises:
            TransportFailure: Network error, timeout or unexpected status
            AuthorizationFailure: 401/403 responses
            NotFound: 404 responses for a specific expense
        """
        try:
            response = await self.client.request(method, path, params=params, json=json)
        except httpx.TimeoutException as e:
            raise TransportFailure(f"{method} {path} timed out") from e
        except httpx.TransportError as e:
            raise TransportFailure(f"{method} {path} failed: {e}") from e

        if response.status_code in (401, 403):
            logger.warning(f"{method} {path} rejected with {response.status_code}")
            raise AuthorizationFailure(
                f"Not authorized ({response.status_code}): {response.text}"
            )
        if response.status_code == 404 and expense_id:
            raise NotFound(expense_id)
        if response.is_error:
            raise TransportFailure(f"HTTP error {response.status_code}: {response.text}")

        if not response.content:
            return []
        try:
            return response.json(parse_float=Decimal)
        except ValueError as e:
            raise TransportFailure(f"Invalid JSON from {method} {path}: {e}") from e

    @staticmethod
    def _decode(rows: list[dict[str, Any]]) -> list[Expense]:
        try:
            return [expense_from_row(row) for row in rows]
        except (KeyError, ValueError) as e:
            raise TransportFailure(f"Malformed expense row: {e}") from e

    def _scoped(self, expense_id: str) -> dict[str, str]:
        return {"id": f"eq.{expense_id}", "user_id": f"eq.{self.owner_id}"}

    async def list_expenses(self, owner_id: str | None = None) -> list[Expense]:
        """List the owner's expenses, newest first."""
        owner = owner_id or self.owner_id
        rows = await self._request(
            "GET", "/expenses", params={"user_id": f"eq.{owner}", "order": "date.desc"}
        )
        logger.debug(f"Fetched {len(rows)} expenses for owner {owner}")
        return self._decode(rows)

    async def create_expense(self, draft: Expense) -> Expense:
        """Insert an expense owned by the authenticated user."""
        row = expense_to_row(draft)
        row["user_id"] = self.owner_id
        rows = await self._request("POST", "/expenses", json=row)
        if not rows:
            raise TransportFailure("No data returned from server")
        return self._decode(rows[:1])[0]

    async def update_expense(self, expense: Expense) -> Expense:
        """Replace an expense's fields."""
        row = expense_to_row(expense)
        del row["id"]
        row["user_id"] = self.owner_id
        rows = await self._request(
            "PATCH",
            "/expenses",
            params=self._scoped(expense.id),
            json=row,
            expense_id=expense.id,
        )
        if not rows:
            raise NotFound(expense.id)
        return self._decode(rows[:1])[0]

    async def delete_expense(self, expense_id: str) -> None:
        """Delete an expense by id."""
        rows = await self._request(
            "DELETE", "/expenses", params=self._scoped(expense_id), expense_id=expense_id
        )
        if not rows:
            raise NotFound(expense_id)

    async def settle_expense(self, expense_id: str) -> Expense:
        """Mark an expense settled, stamping the settle date."""
        rows = await self._request(
            "PATCH",
            "/expenses",
            params=self._scoped(expense_id),
            json={"settled": True, "settled_date": _format_timestamp(utc_now())},
            expense_id=expense_id,
        )
        if not rows:
            raise NotFound(expense_id)
        logger.debug(f"Settled expense {expense_id} remotely")
        return self._decode(rows[:1])[0]
