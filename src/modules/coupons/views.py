"""Coupon API views.

``ValidateCouponView`` is open to any signed-in customer.
``CouponViewSet`` is the admin surface; it does not extend
``ModelViewSet`` so every write goes through ``CouponService``.
"""

from __future__ import annotations

from django_filters.rest_framework import DjangoFilterBackend
from pydantic import ValidationError as PydanticValidationError
from rest_framework import status
from rest_framework.decorators import action
from rest_framework.filters import OrderingFilter, SearchFilter
from rest_framework.mixins import ListModelMixin
from rest_framework.permissions import IsAdminUser
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView
from rest_framework.viewsets import GenericViewSet

from modules.coupons.dtos import CreateCouponDTO, UpdateCouponDTO
from modules.coupons.exceptions import (
    CouponAlreadyExists,
    CouponExpired,
    CouponInUse,
    CouponMinimumNotMet,
    CouponNotFound,
    CouponUsageExceeded,
    InvalidCouponTerms,
)
from modules.coupons.filters import CouponFilter
from modules.coupons.models import Coupon
from modules.coupons.repositories import CouponDjangoRepository
from modules.coupons.serializers import CouponSerializer, ValidateCouponSerializer
from modules.coupons.services import CouponService


def _not_found() -> Response:
    return Response({"detail": "Coupon not found."}, status=status.HTTP_404_NOT_FOUND)


class ValidateCouponView(APIView):
    """POST /api/v1/coupons/validate/"""

    throttle_scope = "coupon_validation"

    def post(self, request: Request) -> Response:
        serializer = ValidateCouponSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        service = CouponService(CouponDjangoRepository())
        try:
            quote = service.quote(
                code=data["code"],
                order_amount=data["order_amount"],
                user_id=request.user.pk,
            )
        except CouponNotFound as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_404_NOT_FOUND)
        except CouponMinimumNotMet as exc:
            return Response(
                {"detail": str(exc), "minimum_amount": str(exc.minimum)},
                status=status.HTTP_400_BAD_REQUEST,
            )
        except (CouponExpired, CouponUsageExceeded) as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)

        return Response(quote.model_dump(mode="json"))


class CouponViewSet(ListModelMixin, GenericViewSet):
    """Admin CRUD for coupons plus activation toggle and usage stats."""

    permission_classes = [IsAdminUser]
    filterset_class = CouponFilter
    search_fields = ["code", "name", "description"]
    ordering_fields = ["created_at", "end_date", "usage_count"]
    ordering = ["-created_at", "-id"]
    filter_backends = [DjangoFilterBackend, SearchFilter, OrderingFilter]
    queryset = Coupon.objects.none()
    serializer_class = CouponSerializer

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._service = CouponService(CouponDjangoRepository())

    def get_queryset(self):
        return self._service.list_coupons()

    def retrieve(self, request: Request, pk: str | None = None) -> Response:
        """GET /api/v1/coupons/{pk}/"""
        try:
            coupon = self._service.get_coupon(pk)
        except CouponNotFound:
            return _not_found()
        return Response(CouponSerializer(coupon).data)

    def create(self, request: Request) -> Response:
        """POST /api/v1/coupons/"""
        try:
            dto = CreateCouponDTO.model_validate(request.data)
        except PydanticValidationError as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)

        try:
            coupon = self._service.create_coupon(dto)
        except CouponAlreadyExists as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_409_CONFLICT)
        except InvalidCouponTerms as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)

        return Response(CouponSerializer(coupon).data, status=status.HTTP_201_CREATED)

    def update(self, request: Request, pk: str | None = None) -> Response:
        """PUT/PATCH /api/v1/coupons/{pk}/"""
        try:
            dto = UpdateCouponDTO.model_validate(request.data)
        except PydanticValidationError as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)

        try:
            coupon = self._service.update_coupon(pk, dto)
        except CouponNotFound:
            return _not_found()
        except CouponAlreadyExists as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_409_CONFLICT)
        except InvalidCouponTerms as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)

        return Response(CouponSerializer(coupon).data)

    def partial_update(self, request: Request, pk: str | None = None) -> Response:
        return self.update(request, pk)

    def destroy(self, request: Request, pk: str | None = None) -> Response:
        """DELETE /api/v1/coupons/{pk}/"""
        try:
            self._service.delete_coupon(pk)
        except CouponNotFound:
            return _not_found()
        except CouponInUse as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=True, methods=["patch"], url_path="toggle-status")
    def toggle_status(self, request: Request, pk: str | None = None) -> Response:
        """PATCH /api/v1/coupons/{pk}/toggle-status/"""
        try:
            coupon = self._service.toggle_status(pk)
        except CouponNotFound:
            return _not_found()
        return Response(
            {"id": str(coupon.id), "code": coupon.code, "is_active": coupon.is_active}
        )

    @action(detail=True, methods=["get"])
    def stats(self, request: Request, pk: str | None = None) -> Response:
        """GET /api/v1/coupons/{pk}/stats/"""
        try:
            return Response(self._service.get_stats(pk))
        except CouponNotFound:
            return _not_found()
