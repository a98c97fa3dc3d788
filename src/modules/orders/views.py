"""Order API views.

Exposes the ``OrderService`` via HTTP using DRF ViewSets.
Domain exceptions are caught and translated into appropriate
HTTP status codes; the view never swallows generic exceptions.
"""

from __future__ import annotations

import csv

from django.http import HttpResponse
from django.utils import timezone
from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import status
from rest_framework.decorators import action
from rest_framework.filters import OrderingFilter, SearchFilter
from rest_framework.permissions import IsAdminUser, IsAuthenticated
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.throttling import BaseThrottle
from rest_framework.viewsets import GenericViewSet

from modules.analytics.recorder import CeleryAnalyticsRecorder
from modules.carts.repositories import CartDjangoRepository
from modules.catalog.exceptions import (
    InsufficientStock,
    ProductInactive,
    ProductNotFound,
)
from modules.catalog.repositories import ProductDjangoRepository
from modules.coupons.exceptions import (
    CouponExpired,
    CouponMinimumNotMet,
    CouponNotFound,
    CouponUsageExceeded,
)
from modules.coupons.repositories import CouponDjangoRepository
from modules.notifications.dispatcher import CeleryNotificationDispatcher
from modules.orders.constants import EXPORT_COLUMNS
from modules.orders.dtos import CreateOrderDTO
from modules.orders.exceptions import InvalidStateTransition, OrderNotFound
from modules.orders.filters import OrderFilter
from modules.orders.models import Order
from modules.orders.pricing import PricingCalculator
from modules.orders.repositories import OrderDjangoRepository
from modules.orders.serializers import (
    CancelOrderSerializer,
    CreateOrderSerializer,
    ExportQuerySerializer,
    OrderListSerializer,
    OrderSerializer,
    StatisticsQuerySerializer,
    UpdateStatusSerializer,
)
from modules.orders.services import OrderService
from modules.payments.exceptions import UnsupportedPaymentMethod
from modules.payments.registry import get_gateway

COUPON_ERRORS = (
    CouponNotFound,
    CouponExpired,
    CouponUsageExceeded,
    CouponMinimumNotMet,
)


def build_order_service() -> OrderService:
    product_repository = ProductDjangoRepository()
    coupon_repository = CouponDjangoRepository()
    return OrderService(
        order_repository=OrderDjangoRepository(),
        product_repository=product_repository,
        coupon_repository=coupon_repository,
        cart_repository=CartDjangoRepository(),
        pricing=PricingCalculator(product_repository, coupon_repository),
        gateway_resolver=get_gateway,
        notifier=CeleryNotificationDispatcher(),
        analytics=CeleryAnalyticsRecorder(),
    )


def _not_found() -> Response:
    return Response({"detail": "Order not found."}, status=status.HTTP_404_NOT_FOUND)


class OrderViewSet(GenericViewSet):
    """ViewSet for Order operations.

    Does **not** extend ``ModelViewSet``: every write goes through the
    service/repository layer.  Customers see and cancel only their own
    orders.  Admin-only actions are listed in ``get_permissions``.
    """

    queryset = Order.objects.none()
    filterset_class = OrderFilter
    search_fields = [
        "order_number",
        "customer__first_name",
        "customer__last_name",
        "customer__email",
    ]
    ordering_fields = ["created_at", "total", "status"]
    ordering = ["-created_at", "-id"]
    filter_backends = [DjangoFilterBackend, SearchFilter, OrderingFilter]

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._service = build_order_service()

    def get_permissions(self):
        if self.action in {"change_status", "statistics", "export"}:
            return [IsAdminUser()]
        return [IsAuthenticated()]

    def get_throttles(self) -> list[BaseThrottle]:
        throttle_scope: str | None
        if self.action == "create":
            throttle_scope = "order_creation"
        elif self.action in {"list", "retrieve"}:
            throttle_scope = "order_listing"
        else:
            throttle_scope = None
        self.throttle_scope = throttle_scope
        return super().get_throttles()

    def get_queryset(self):
        filters = None
        if not self.request.user.is_staff:
            filters = {"customer": self.request.user}
        return self._service.list_orders(filters)

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    def create(self, request: Request) -> Response:
        """POST /api/v1/orders/

        201 when the payment was captured, 402 when it was not (the order
        then exists as cancelled), 400 for catalog or coupon problems.
        """
        serializer = CreateOrderSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        dto = CreateOrderDTO.model_validate(serializer.validated_data)

        try:
            result = self._service.create_order(dto, request.user)
        except ProductNotFound as exc:
            return Response(
                {"detail": str(exc), "product_id": str(exc.product_id)},
                status=status.HTTP_400_BAD_REQUEST,
            )
        except ProductInactive as exc:
            return Response(
                {"detail": str(exc), "product_id": str(exc.product_id)},
                status=status.HTTP_400_BAD_REQUEST,
            )
        except InsufficientStock as exc:
            return Response(
                {
                    "detail": str(exc),
                    "product_id": str(exc.product_id),
                    "available": exc.available,
                },
                status=status.HTTP_400_BAD_REQUEST,
            )
        except COUPON_ERRORS as exc:
            return Response(
                {"detail": str(exc), "coupon_code": exc.code},
                status=status.HTTP_400_BAD_REQUEST,
            )
        except UnsupportedPaymentMethod:
            return Response(
                {"detail": "Unsupported payment method."},
                status=status.HTTP_400_BAD_REQUEST,
            )

        if not result.success:
            return Response(
                {
                    "detail": "Payment failed.",
                    "error": result.error,
                    "order_number": result.order_number,
                },
                status=status.HTTP_402_PAYMENT_REQUIRED,
            )

        return Response(
            {
                "id": str(result.order_id),
                "order_number": result.order_number,
                "total": str(result.total),
                "status": result.status,
                "payment_status": result.payment_status,
            },
            status=status.HTTP_201_CREATED,
        )

    # ------------------------------------------------------------------
    # List / Retrieve
    # ------------------------------------------------------------------

    def list(self, request: Request) -> Response:
        """GET /api/v1/orders/

        Filtering (status, payment status, date range, total range) is
        handled by ``OrderFilter``; search by order number or customer.
        """
        queryset = self.filter_queryset(self.get_queryset())
        page = self.paginate_queryset(queryset)
        serializer = OrderListSerializer(page, many=True)
        return self.get_paginated_response(serializer.data)

    def retrieve(self, request: Request, pk: str | None = None) -> Response:
        """GET /api/v1/orders/{pk}/"""
        try:
            order = self._service.get_order(pk, customer=request.user)
        except OrderNotFound:
            return _not_found()
        return Response(OrderSerializer(order).data)

    # ------------------------------------------------------------------
    # Cancel / status
    # ------------------------------------------------------------------

    @action(detail=True, methods=["post"])
    def cancel(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/orders/{pk}/cancel/"""
        serializer = CancelOrderSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            order = self._service.cancel_order(
                pk,
                reason=serializer.validated_data["reason"],
                user=request.user,
            )
        except OrderNotFound:
            return _not_found()
        except InvalidStateTransition as exc:
            return Response(
                {"detail": f"Order cannot be cancelled in status {exc.current}."},
                status=status.HTTP_400_BAD_REQUEST,
            )

        return Response(
            {
                "id": str(order.id),
                "order_number": order.order_number,
                "status": order.status,
                "payment_status": order.payment_status,
            }
        )

    @action(detail=True, methods=["patch"], url_path="status")
    def change_status(self, request: Request, pk: str | None = None) -> Response:
        """PATCH /api/v1/orders/{pk}/status/ (admin)"""
        serializer = UpdateStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            order = self._service.update_status(
                pk,
                data["status"],
                tracking_number=data.get("tracking_number") or None,
                notes=data["notes"],
                user=request.user,
            )
        except OrderNotFound:
            return _not_found()
        except InvalidStateTransition as exc:
            return Response(
                {"detail": str(exc)},
                status=status.HTTP_400_BAD_REQUEST,
            )

        return Response(
            {
                "id": str(order.id),
                "order_number": order.order_number,
                "status": order.status,
                "payment_status": order.payment_status,
                "tracking_number": order.tracking_number,
            }
        )

    @action(detail=False, methods=["get"])
    def statistics(self, request: Request) -> Response:
        """GET /api/v1/orders/statistics/?period=30d (admin)"""
        query = StatisticsQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        return Response(self._service.get_statistics(query.validated_data["period"]))

    @action(detail=False, methods=["get"])
    def export(self, request: Request) -> HttpResponse:
        """GET /api/v1/orders/export/?file_format=csv (admin)

        Accepts the same filters as the list (status, start_date, end_date,
        ...).  ``file_format=json`` returns the full order representations.
        """
        query = ExportQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        orders = self.filter_queryset(self.get_queryset())

        if query.validated_data["file_format"] == "json":
            data = OrderSerializer(orders, many=True).data
            return Response({"count": len(data), "orders": data})

        stamp = timezone.now().strftime("%Y%m%d%H%M%S")
        response = HttpResponse(content_type="text/csv")
        response["Content-Disposition"] = f'attachment; filename="orders-{stamp}.csv"'
        writer = csv.DictWriter(response, fieldnames=EXPORT_COLUMNS)
        writer.writeheader()
        writer.writerows(self._service.export_rows(orders))
        return response
