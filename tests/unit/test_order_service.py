"""Unit tests for OrderService."""

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Any
from unittest.mock import AsyncMock, MagicMock, patch
from uuid import UUID

import pytest
from postgrest.exceptions import APIError as PostgrestAPIError

from src.api.middleware.error_handler import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from src.schemas.order import CartItem
from src.services.order_service import (
    OrderService,
    can_transition,
    compute_order_totals,
    to_cents,
)

USER_ID = UUID("550e8400-e29b-41d4-a716-446655440000")
OTHER_USER_ID = UUID("990e8400-e29b-41d4-a716-446655440000")
ORDER_ID = UUID("660e8400-e29b-41d4-a716-446655440000")
COURSE_ID = UUID("880e8400-e29b-41d4-a716-446655440000")
EVENT_ID = UUID("770e8400-e29b-41d4-a716-446655440000")


@pytest.fixture
def mock_supabase() -> MagicMock:
    """Create a mock Supabase client."""
    return MagicMock()


@pytest.fixture
def mock_settings() -> MagicMock:
    """Create mock settings."""
    settings = MagicMock()
    settings.store_currency = "USD"
    settings.tax_rate = Decimal("0.08")
    settings.orders_page_size = 20
    settings.orders_max_page_size = 100
    return settings


@pytest.fixture
def order_service(mock_supabase: MagicMock, mock_settings: MagicMock) -> OrderService:
    """Create OrderService with mocked dependencies."""
    with patch("src.services.order_service.get_supabase_client", return_value=mock_supabase), \
         patch("src.services.order_service.get_settings", return_value=mock_settings), \
         patch("src.services.order_service.CatalogService"), \
         patch("src.services.order_service.UserService"), \
         patch("src.services.order_service.FulfillmentService"):
        service = OrderService()

    service.catalog.get_catalog_item = AsyncMock()
    service.users.get_active_user = AsyncMock(return_value={"id": str(USER_ID), "role": "customer"})
    service.users.is_admin = AsyncMock(return_value=False)
    service.fulfillment.holds_event_spots = AsyncMock(return_value=False)
    service.fulfillment.grant_access = AsyncMock()
    service.fulfillment.revoke_access = AsyncMock()
    service.fulfillment.release_reservations = AsyncMock()
    return service


def make_order(**overrides: Any) -> dict[str, Any]:
    """Create an order row as returned by the orders select with embeds."""
    order = {
        "id": str(ORDER_ID),
        "user_id": str(USER_ID),
        "status": "pending",
        "subtotal": 4999,
        "tax": 400,
        "total": 5399,
        "currency": "USD",
        "payment_intent_id": None,
        "order_items": [
            {
                "item_type": "course",
                "item_id": str(COURSE_ID),
                "item_title": "Intro to Breathwork",
                "price": 4999,
                "quantity": 1,
            }
        ],
        "users": {"email": "test@example.com", "name": "Test User"},
        "created_at": "2024-11-01T10:00:00+00:00",
    }
    order.update(overrides)
    return order


def make_course_row(**overrides: Any) -> dict[str, Any]:
    row = {
        "id": str(COURSE_ID),
        "title": "Intro to Breathwork",
        "price": "49.99",
        "is_published": True,
    }
    row.update(overrides)
    return row


def make_event_row(**overrides: Any) -> dict[str, Any]:
    row = {
        "id": str(EVENT_ID),
        "title": "Full Moon Circle",
        "price": "25.00",
        "is_published": True,
        "event_date": (datetime.now(timezone.utc) + timedelta(days=30)).isoformat(),
        "available_spots": 10,
    }
    row.update(overrides)
    return row


def mock_order_lookup(mock_supabase: MagicMock, order: dict[str, Any] | None) -> None:
    """Point fetch_order at the given row."""
    response = MagicMock()
    response.data = order
    mock_supabase.table.return_value.select.return_value.eq.return_value.maybe_single.return_value.execute.return_value = (
        response
    )


def mock_status_update(mock_supabase: MagicMock, rows: list[dict[str, Any]]) -> MagicMock:
    """Mock the conditional orders update and return the update mock."""
    response = MagicMock()
    response.data = rows
    update = mock_supabase.table.return_value.update
    update.return_value.eq.return_value.eq.return_value.execute.return_value = response
    return update


class TestOrderMath:
    """Tests for cents conversion and totals."""

    def test_to_cents(self) -> None:
        assert to_cents("49.99") == 4999
        assert to_cents(Decimal("0.005")) == 1
        assert to_cents(25) == 2500

    def test_compute_order_totals(self) -> None:
        totals = compute_order_totals(
            [{"price": 1999, "quantity": 2}, {"price": 500, "quantity": 1}],
            Decimal("0.08"),
        )

        assert totals.subtotal == 4498
        assert totals.tax == 360
        assert totals.total == totals.subtotal + totals.tax

    @pytest.mark.parametrize(
        "current,target,allowed",
        [
            ("pending", "payment_pending", True),
            ("pending", "cancelled", True),
            ("payment_pending", "paid", True),
            ("paid", "completed", True),
            ("paid", "refunded", True),
            ("completed", "refunded", True),
            ("pending", "paid", False),
            ("completed", "cancelled", False),
            ("cancelled", "pending", False),
            ("refunded", "paid", False),
        ],
    )
    def test_can_transition(self, current: str, target: str, allowed: bool) -> None:
        assert can_transition(current, target) is allowed


class TestCreateOrder:
    """Tests for create_order method."""

    @pytest.mark.asyncio
    async def test_creates_order_from_catalog_prices(
        self, order_service: OrderService, mock_supabase: MagicMock
    ) -> None:
        """Test cart items are priced from the catalog and written in one RPC call."""
        order_service.catalog.get_catalog_item.return_value = make_course_row()
        mock_supabase.rpc.return_value.execute.return_value = MagicMock(data=str(ORDER_ID))
        mock_order_lookup(mock_supabase, make_order())

        result = await order_service.create_order(
            USER_ID, [CartItem(item_type="course", item_id=COURSE_ID, quantity=1)]
        )

        mock_supabase.rpc.assert_called_once()
        rpc_name, params = mock_supabase.rpc.call_args.args
        assert rpc_name == "create_order_with_items"
        assert params["p_user_id"] == str(USER_ID)
        assert params["p_currency"] == "USD"
        assert params["p_subtotal"] == 4999
        assert params["p_tax"] == 400
        assert params["p_total"] == 5399
        assert params["p_items"] == [
            {
                "item_type": "course",
                "item_id": str(COURSE_ID),
                "item_title": "Intro to Breathwork",
                "price": 4999,
                "quantity": 1,
            }
        ]
        assert result["id"] == str(ORDER_ID)
        assert result["user_email"] == "test@example.com"
        assert "users" not in result

    @pytest.mark.asyncio
    async def test_merges_duplicate_cart_lines(
        self, order_service: OrderService, mock_supabase: MagicMock
    ) -> None:
        """Test repeated lines for one item become a single line item."""
        order_service.catalog.get_catalog_item.return_value = make_event_row()
        mock_supabase.rpc.return_value.execute.return_value = MagicMock(data=str(ORDER_ID))
        mock_order_lookup(mock_supabase, make_order())

        await order_service.create_order(
            USER_ID,
            [
                CartItem(item_type="event", item_id=EVENT_ID, quantity=2),
                CartItem(item_type="event", item_id=EVENT_ID, quantity=1),
            ],
        )

        params = mock_supabase.rpc.call_args.args[1]
        assert len(params["p_items"]) == 1
        assert params["p_items"][0]["quantity"] == 3
        assert params["p_subtotal"] == 7500
        order_service.catalog.get_catalog_item.assert_awaited_once()
        order_service.fulfillment.holds_event_spots.assert_awaited_once_with(USER_ID, EVENT_ID)

    @pytest.mark.asyncio
    async def test_rejects_empty_cart(self, order_service: OrderService) -> None:
        with pytest.raises(ValidationError):
            await order_service.create_order(USER_ID, [])

    @pytest.mark.asyncio
    async def test_rejects_foreign_currency(self, order_service: OrderService) -> None:
        """Test orders must be in the store currency."""
        with pytest.raises(ValidationError) as exc_info:
            await order_service.create_order(
                USER_ID, [CartItem(item_type="course", item_id=COURSE_ID)], currency="EUR"
            )

        assert "USD" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_rejects_unsupported_currency(self, order_service: OrderService) -> None:
        with pytest.raises(ValidationError):
            await order_service.create_order(
                USER_ID, [CartItem(item_type="course", item_id=COURSE_ID)], currency="JPY"
            )

    @pytest.mark.asyncio
    async def test_unknown_user(self, order_service: OrderService) -> None:
        order_service.users.get_active_user.return_value = None

        with pytest.raises(NotFoundError):
            await order_service.create_order(USER_ID, [CartItem(item_type="course", item_id=COURSE_ID)])

    @pytest.mark.asyncio
    async def test_missing_catalog_item(self, order_service: OrderService) -> None:
        order_service.catalog.get_catalog_item.return_value = None

        with pytest.raises(NotFoundError):
            await order_service.create_order(USER_ID, [CartItem(item_type="course", item_id=COURSE_ID)])

    @pytest.mark.asyncio
    async def test_rejects_unpublished_item(self, order_service: OrderService) -> None:
        order_service.catalog.get_catalog_item.return_value = make_course_row(is_published=False)

        with pytest.raises(ValidationError):
            await order_service.create_order(USER_ID, [CartItem(item_type="course", item_id=COURSE_ID)])

    @pytest.mark.asyncio
    async def test_rejects_past_event(self, order_service: OrderService) -> None:
        order_service.catalog.get_catalog_item.return_value = make_event_row(
            event_date=(datetime.now(timezone.utc) - timedelta(days=1)).isoformat()
        )

        with pytest.raises(ValidationError):
            await order_service.create_order(USER_ID, [CartItem(item_type="event", item_id=EVENT_ID)])

    @pytest.mark.asyncio
    async def test_rejects_event_without_enough_spots(
        self, order_service: OrderService, mock_supabase: MagicMock
    ) -> None:
        order_service.catalog.get_catalog_item.return_value = make_event_row(available_spots=2)

        with pytest.raises(ConflictError):
            await order_service.create_order(
                USER_ID, [CartItem(item_type="event", item_id=EVENT_ID, quantity=3)]
            )

        mock_supabase.rpc.assert_not_called()

    @pytest.mark.asyncio
    async def test_rejects_event_the_user_already_holds(
        self, order_service: OrderService, mock_supabase: MagicMock
    ) -> None:
        """Test an event is not sold twice to a user with a live booking or open order."""
        order_service.catalog.get_catalog_item.return_value = make_event_row()
        order_service.fulfillment.holds_event_spots.return_value = True

        with pytest.raises(ConflictError) as exc_info:
            await order_service.create_order(USER_ID, [CartItem(item_type="event", item_id=EVENT_ID)])

        assert "already have a booking" in exc_info.value.message
        order_service.fulfillment.holds_event_spots.assert_awaited_once_with(USER_ID, EVENT_ID)
        mock_supabase.rpc.assert_not_called()

    @pytest.mark.asyncio
    async def test_courses_skip_the_event_spot_check(
        self, order_service: OrderService, mock_supabase: MagicMock
    ) -> None:
        order_service.catalog.get_catalog_item.return_value = make_course_row()
        mock_supabase.rpc.return_value.execute.return_value = MagicMock(data=str(ORDER_ID))
        mock_order_lookup(mock_supabase, make_order())

        await order_service.create_order(USER_ID, [CartItem(item_type="course", item_id=COURSE_ID)])

        order_service.fulfillment.holds_event_spots.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_capacity_race_in_database(
        self, order_service: OrderService, mock_supabase: MagicMock
    ) -> None:
        """Test a failed reservation inside the transaction surfaces as a conflict."""
        order_service.catalog.get_catalog_item.return_value = make_event_row()
        mock_supabase.rpc.return_value.execute.side_effect = PostgrestAPIError(
            {"message": "insufficient_capacity for event", "code": "P0001", "hint": None, "details": None}
        )

        with pytest.raises(ConflictError):
            await order_service.create_order(USER_ID, [CartItem(item_type="event", item_id=EVENT_ID)])

    @pytest.mark.asyncio
    async def test_other_database_errors_propagate(
        self, order_service: OrderService, mock_supabase: MagicMock
    ) -> None:
        order_service.catalog.get_catalog_item.return_value = make_course_row()
        mock_supabase.rpc.return_value.execute.side_effect = PostgrestAPIError(
            {"message": "connection reset", "code": "08006", "hint": None, "details": None}
        )

        with pytest.raises(PostgrestAPIError):
            await order_service.create_order(USER_ID, [CartItem(item_type="course", item_id=COURSE_ID)])


class TestGetOrder:
    """Tests for get_order method."""

    @pytest.mark.asyncio
    async def test_owner_can_read(self, order_service: OrderService, mock_supabase: MagicMock) -> None:
        mock_order_lookup(mock_supabase, make_order())

        order = await order_service.get_order(ORDER_ID, USER_ID)

        assert order["id"] == str(ORDER_ID)
        assert order["user_name"] == "Test User"
        order_service.users.is_admin.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_admin_can_read(self, order_service: OrderService, mock_supabase: MagicMock) -> None:
        mock_order_lookup(mock_supabase, make_order())
        order_service.users.is_admin.return_value = True

        order = await order_service.get_order(ORDER_ID, OTHER_USER_ID)

        assert order["id"] == str(ORDER_ID)

    @pytest.mark.asyncio
    async def test_other_user_is_rejected(
        self, order_service: OrderService, mock_supabase: MagicMock
    ) -> None:
        mock_order_lookup(mock_supabase, make_order())

        with pytest.raises(AuthorizationError):
            await order_service.get_order(ORDER_ID, OTHER_USER_ID)

    @pytest.mark.asyncio
    async def test_missing_order(self, order_service: OrderService, mock_supabase: MagicMock) -> None:
        mock_order_lookup(mock_supabase, None)

        with pytest.raises(NotFoundError):
            await order_service.get_order(ORDER_ID, USER_ID)


class TestListUserOrders:
    """Tests for list_user_orders method."""

    @pytest.mark.asyncio
    async def test_paginates_newest_first(
        self, order_service: OrderService, mock_supabase: MagicMock
    ) -> None:
        response = MagicMock()
        response.data = [make_order(order_items=[{"count": 2}])]
        response.count = 45
        query = mock_supabase.table.return_value.select.return_value.eq.return_value
        query.order.return_value.range.return_value.execute.return_value = response

        result = await order_service.list_user_orders(USER_ID, page=2)

        query.order.assert_called_once_with("created_at", desc=True)
        query.order.return_value.range.assert_called_once_with(20, 39)
        assert result["total"] == 45
        assert result["pages"] == 3
        assert result["limit"] == 20
        assert result["orders"][0]["item_count"] == 2
        assert "order_items" not in result["orders"][0]

    @pytest.mark.asyncio
    async def test_limit_is_capped(self, order_service: OrderService, mock_supabase: MagicMock) -> None:
        response = MagicMock()
        response.data = []
        response.count = 0
        query = mock_supabase.table.return_value.select.return_value.eq.return_value
        query.order.return_value.range.return_value.execute.return_value = response

        result = await order_service.list_user_orders(USER_ID, limit=500)

        assert result["limit"] == 100
        assert result["pages"] == 0
        query.order.return_value.range.assert_called_once_with(0, 99)

    @pytest.mark.asyncio
    async def test_filters_by_status(self, order_service: OrderService, mock_supabase: MagicMock) -> None:
        query = mock_supabase.table.return_value.select.return_value.eq.return_value
        filtered = query.eq.return_value
        filtered.order.return_value.range.return_value.execute.return_value = MagicMock(data=[], count=0)

        await order_service.list_user_orders(USER_ID, status="paid")

        query.eq.assert_called_once_with("status", "paid")

    @pytest.mark.asyncio
    async def test_rejects_page_zero(self, order_service: OrderService) -> None:
        with pytest.raises(ValidationError):
            await order_service.list_user_orders(USER_ID, page=0)


class TestUpdateOrderStatus:
    """Tests for update_order_status method."""

    @pytest.mark.asyncio
    async def test_completing_grants_access(
        self, order_service: OrderService, mock_supabase: MagicMock
    ) -> None:
        mock_order_lookup(mock_supabase, make_order(status="paid"))
        update = mock_status_update(mock_supabase, [{"id": str(ORDER_ID)}])

        order = await order_service.update_order_status(ORDER_ID, "completed")

        update_data = update.call_args.args[0]
        assert update_data["status"] == "completed"
        assert "completed_at" in update_data
        update.return_value.eq.return_value.eq.assert_called_once_with("status", "paid")
        assert order["status"] == "completed"
        order_service.fulfillment.grant_access.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_refund_after_completion_revokes_access(
        self, order_service: OrderService, mock_supabase: MagicMock
    ) -> None:
        mock_order_lookup(mock_supabase, make_order(status="completed"))
        update = mock_status_update(mock_supabase, [{"id": str(ORDER_ID)}])

        await order_service.update_order_status(ORDER_ID, "refunded", reason="Customer request")

        assert update.call_args.args[0]["refund_reason"] == "Customer request"
        order_service.fulfillment.revoke_access.assert_awaited_once()
        order_service.fulfillment.release_reservations.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_refund_before_fulfillment_releases_spots(
        self, order_service: OrderService, mock_supabase: MagicMock
    ) -> None:
        mock_order_lookup(mock_supabase, make_order(status="paid"))
        mock_status_update(mock_supabase, [{"id": str(ORDER_ID)}])

        await order_service.update_order_status(ORDER_ID, "refunded")

        order_service.fulfillment.release_reservations.assert_awaited_once()
        order_service.fulfillment.revoke_access.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_cancelling_releases_spots(
        self, order_service: OrderService, mock_supabase: MagicMock
    ) -> None:
        mock_order_lookup(mock_supabase, make_order(status="payment_pending"))
        update = mock_status_update(mock_supabase, [{"id": str(ORDER_ID)}])

        await order_service.update_order_status(ORDER_ID, "cancelled", reason="Changed my mind")

        assert update.call_args.args[0]["cancellation_reason"] == "Changed my mind"
        order_service.fulfillment.release_reservations.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_rejects_invalid_transition(
        self, order_service: OrderService, mock_supabase: MagicMock
    ) -> None:
        mock_order_lookup(mock_supabase, make_order(status="pending"))

        with pytest.raises(ValidationError):
            await order_service.update_order_status(ORDER_ID, "completed")

        mock_supabase.table.return_value.update.assert_not_called()

    @pytest.mark.asyncio
    async def test_concurrent_change_conflicts(
        self, order_service: OrderService, mock_supabase: MagicMock
    ) -> None:
        """Test an update that matches no row raises ConflictError."""
        mock_order_lookup(mock_supabase, make_order(status="paid"))
        mock_status_update(mock_supabase, [])

        with pytest.raises(ConflictError):
            await order_service.update_order_status(ORDER_ID, "completed")

        order_service.fulfillment.grant_access.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_failed_grant_leaves_order_paid(
        self, order_service: OrderService, mock_supabase: MagicMock
    ) -> None:
        """Test a grant error stops the transition so a retry can complete the order."""
        mock_order_lookup(mock_supabase, make_order(status="paid"))
        order_service.fulfillment.grant_access.side_effect = PostgrestAPIError(
            {"message": "connection reset", "code": "08006", "hint": None, "details": None}
        )

        with pytest.raises(PostgrestAPIError):
            await order_service.update_order_status(ORDER_ID, "completed")

        mock_supabase.table.return_value.update.assert_not_called()

    @pytest.mark.asyncio
    async def test_retry_after_failed_grant_completes(
        self, order_service: OrderService, mock_supabase: MagicMock
    ) -> None:
        mock_order_lookup(mock_supabase, make_order(status="paid"))
        update = mock_status_update(mock_supabase, [{"id": str(ORDER_ID)}])
        order_service.fulfillment.grant_access.side_effect = [
            PostgrestAPIError({"message": "connection reset", "code": "08006", "hint": None, "details": None}),
            None,
        ]

        with pytest.raises(PostgrestAPIError):
            await order_service.update_order_status(ORDER_ID, "completed")
        order = await order_service.update_order_status(ORDER_ID, "completed")

        assert order["status"] == "completed"
        assert order_service.fulfillment.grant_access.await_count == 2
        update.assert_called_once()

    @pytest.mark.asyncio
    async def test_non_admin_requester_rejected(self, order_service: OrderService) -> None:
        with pytest.raises(AuthorizationError):
            await order_service.update_order_status(ORDER_ID, "completed", requester_id=USER_ID)


class TestPaymentLifecycle:
    """Tests for payment attachment, fulfillment, cancellation and refunds."""

    @pytest.mark.asyncio
    async def test_attach_payment_intent(
        self, order_service: OrderService, mock_supabase: MagicMock
    ) -> None:
        mock_order_lookup(mock_supabase, make_order())
        update = mock_supabase.table.return_value.update
        update.return_value.eq.return_value.is_.return_value.execute.return_value = MagicMock(
            data=[{"id": str(ORDER_ID)}]
        )

        order = await order_service.attach_payment_intent(ORDER_ID, "pi_123", payment_method="card")

        update.return_value.eq.return_value.is_.assert_called_once_with("payment_intent_id", "null")
        assert order["status"] == "payment_pending"
        assert order["payment_intent_id"] == "pi_123"

    @pytest.mark.asyncio
    async def test_attach_payment_intent_twice(
        self, order_service: OrderService, mock_supabase: MagicMock
    ) -> None:
        mock_order_lookup(mock_supabase, make_order(status="payment_pending", payment_intent_id="pi_old"))

        with pytest.raises(ConflictError):
            await order_service.attach_payment_intent(ORDER_ID, "pi_123")

    @pytest.mark.asyncio
    async def test_fulfill_requires_paid(self, order_service: OrderService, mock_supabase: MagicMock) -> None:
        mock_order_lookup(mock_supabase, make_order(status="payment_pending"))

        with pytest.raises(ValidationError):
            await order_service.fulfill_order(ORDER_ID)

    @pytest.mark.asyncio
    async def test_cancel_paid_order_rejected(
        self, order_service: OrderService, mock_supabase: MagicMock
    ) -> None:
        mock_order_lookup(mock_supabase, make_order(status="paid"))

        with pytest.raises(ValidationError):
            await order_service.cancel_order(ORDER_ID, requester_id=USER_ID)

    @pytest.mark.asyncio
    async def test_cancel_by_other_user_rejected(
        self, order_service: OrderService, mock_supabase: MagicMock
    ) -> None:
        mock_order_lookup(mock_supabase, make_order())

        with pytest.raises(AuthorizationError):
            await order_service.cancel_order(ORDER_ID, requester_id=OTHER_USER_ID)

    @pytest.mark.asyncio
    async def test_refund_pending_order_rejected(
        self, order_service: OrderService, mock_supabase: MagicMock
    ) -> None:
        mock_order_lookup(mock_supabase, make_order(status="pending"))

        with pytest.raises(ValidationError):
            await order_service.refund_order(ORDER_ID)


class TestAdminQueries:
    """Tests for get_order_stats and search_orders."""

    @pytest.mark.asyncio
    async def test_order_stats(self, order_service: OrderService, mock_supabase: MagicMock) -> None:
        course_item = {
            "item_type": "course",
            "item_id": str(COURSE_ID),
            "item_title": "Intro to Breathwork",
            "price": 3000,
            "quantity": 1,
        }
        event_item = {
            "item_type": "event",
            "item_id": str(EVENT_ID),
            "item_title": "Full Moon Circle",
            "price": 2500,
            "quantity": 2,
        }
        mock_supabase.table.return_value.select.return_value.execute.return_value = MagicMock(
            data=[
                {"id": "o1", "status": "completed", "total": 3000, "order_items": [course_item]},
                {"id": "o2", "status": "completed", "total": 5000, "order_items": [event_item]},
                {"id": "o3", "status": "pending", "total": 9999, "order_items": [course_item]},
            ]
        )

        stats = await order_service.get_order_stats()

        assert stats["total_revenue"] == 8000
        assert stats["completed_orders"] == 2
        assert stats["average_order_value"] == Decimal("4000.00")
        assert stats["orders_by_status"] == {"completed": 2, "pending": 1}
        assert [item["item_id"] for item in stats["top_items"]] == [str(EVENT_ID), str(COURSE_ID)]
        assert stats["top_items"][0]["revenue"] == 5000

    @pytest.mark.asyncio
    async def test_order_stats_empty(self, order_service: OrderService, mock_supabase: MagicMock) -> None:
        mock_supabase.table.return_value.select.return_value.execute.return_value = MagicMock(data=[])

        stats = await order_service.get_order_stats()

        assert stats["total_revenue"] == 0
        assert stats["average_order_value"] == Decimal(0)
        assert stats["top_items"] == []

    @pytest.mark.asyncio
    async def test_search_by_email_fragment(
        self, order_service: OrderService, mock_supabase: MagicMock
    ) -> None:
        select = mock_supabase.table.return_value.select
        select.return_value.ilike.return_value.order.return_value.limit.return_value.execute.return_value = (
            MagicMock(data=[make_order()])
        )

        results = await order_service.search_orders(query=" alice ")

        assert "users!inner(email, name)" in select.call_args.args[0]
        select.return_value.ilike.assert_called_once_with("users.email", "%alice%")
        select.return_value.ilike.return_value.order.return_value.limit.assert_called_once_with(50)
        assert results[0]["user_email"] == "test@example.com"

    @pytest.mark.asyncio
    async def test_search_by_order_id(self, order_service: OrderService, mock_supabase: MagicMock) -> None:
        select = mock_supabase.table.return_value.select
        select.return_value.eq.return_value.order.return_value.limit.return_value.execute.return_value = (
            MagicMock(data=[])
        )

        results = await order_service.search_orders(query=str(ORDER_ID))

        select.return_value.eq.assert_called_once_with("id", str(ORDER_ID))
        assert results == []

    @pytest.mark.asyncio
    async def test_search_by_item_type_keeps_all_items(
        self, order_service: OrderService, mock_supabase: MagicMock
    ) -> None:
        """Test the item type filter selects orders without trimming their item list."""
        mixed_order = make_order(
            order_items=[
                make_order()["order_items"][0],
                {
                    "item_type": "event",
                    "item_id": str(EVENT_ID),
                    "item_title": "Full Moon Circle",
                    "price": 2500,
                    "quantity": 1,
                },
            ],
            item_match=[{"item_type": "event"}],
        )
        select = mock_supabase.table.return_value.select
        select.return_value.eq.return_value.order.return_value.limit.return_value.execute.return_value = (
            MagicMock(data=[mixed_order])
        )

        results = await order_service.search_orders(item_type="event")

        columns = select.call_args.args[0]
        assert "order_items(*)" in columns
        assert "order_items!inner(*)" not in columns
        assert "item_match:order_items!inner(item_type)" in columns
        select.return_value.eq.assert_called_once_with("item_match.item_type", "event")
        assert len(results[0]["order_items"]) == 2
        assert "item_match" not in results[0]
