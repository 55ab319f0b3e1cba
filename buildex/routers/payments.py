"""
Payment API endpoints: checkout, gateway callbacks, history and maintenance.
Service results are mapped to API errors with exception_from_error.
"""

from fastapi import APIRouter, Depends, status, Query
from typing import List, Optional

from buildex.models.user import User
from buildex.services.payment import PaymentService
from buildex.schemas.payment import (
    CheckoutRequest,
    CheckoutResponse,
    PaymentCompleteRequest,
    PaymentFailureRequest,
    PaymentAbandonRequest,
    PaymentResponse,
    PaymentOutcomeResponse,
    RentSubscriptionResponse,
    ExpirePaymentsResponse
)
from buildex.schemas.error import get_error_responses, get_payment_error_responses
from buildex.utils.dependencies import (
    get_payment_service,
    get_optional_current_user,
    get_current_active_user,
    get_current_builder_user,
    get_current_admin_user
)
from buildex.utils.exceptions import exception_from_error
from buildex.utils.result import Err


router = APIRouter(prefix="/payments", tags=["Payments"])


@router.post(
    "/checkout",
    response_model=CheckoutResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Start checkout",
    description="Create a gateway order and a PENDING payment for a property",
    responses=get_payment_error_responses()
)
async def checkout(
    checkout_data: CheckoutRequest,
    current_user: Optional[User] = Depends(get_optional_current_user),
    payment_service: PaymentService = Depends(get_payment_service)
) -> CheckoutResponse:
    """
    Start a purchase or rent checkout.

    An anonymous caller gets AUTH_REQUIRED rather than a generic 401 so the
    client can send the user to the login page.
    """
    result = await payment_service.initiate_checkout(
        current_user,
        checkout_data.property_id,
        checkout_data.payment_type,
        checkout_data.amount
    )
    if isinstance(result, Err):
        raise exception_from_error(result)

    return CheckoutResponse.model_validate(result.value.to_dict())


@router.post(
    "/complete",
    response_model=PaymentOutcomeResponse,
    status_code=status.HTTP_200_OK,
    summary="Complete payment",
    description="Verify the gateway signature and settle the payment",
    responses=get_payment_error_responses()
)
async def complete_payment(
    callback: PaymentCompleteRequest,
    payment_service: PaymentService = Depends(get_payment_service)
) -> PaymentOutcomeResponse:
    result = await payment_service.complete_payment(
        callback.order_id,
        callback.payment_id,
        callback.signature
    )
    if isinstance(result, Err):
        raise exception_from_error(result)

    outcome = result.value
    return PaymentOutcomeResponse(
        already_processed=outcome.already_processed,
        payment=PaymentResponse.from_payment(outcome.payment),
        subscription=(
            RentSubscriptionResponse.from_subscription(outcome.subscription)
            if outcome.subscription else None
        )
    )


@router.post(
    "/fail",
    status_code=status.HTTP_402_PAYMENT_REQUIRED,
    summary="Report payment failure",
    description="Mark the payment FAILED; always answers with an error body",
    responses=get_payment_error_responses()
)
async def fail_payment(
    failure: PaymentFailureRequest,
    payment_service: PaymentService = Depends(get_payment_service)
) -> None:
    error = await payment_service.fail_payment(failure.order_id, failure.error_description)
    raise exception_from_error(error)


@router.post(
    "/abandon",
    response_model=PaymentResponse,
    status_code=status.HTTP_200_OK,
    summary="Acknowledge dismissed checkout",
    description="The payment stays PENDING until it is completed, failed or expired",
    responses=get_error_responses(404)
)
async def abandon_checkout(
    abandon: PaymentAbandonRequest,
    payment_service: PaymentService = Depends(get_payment_service)
) -> PaymentResponse:
    result = await payment_service.abandon_checkout(abandon.order_id)
    if isinstance(result, Err):
        raise exception_from_error(result)

    return PaymentResponse.from_payment(result.value)


@router.get(
    "/me",
    response_model=List[PaymentResponse],
    status_code=status.HTTP_200_OK,
    summary="My payment history",
    responses=get_error_responses(401, 403)
)
async def my_payments(
    current_user: User = Depends(get_current_active_user),
    payment_service: PaymentService = Depends(get_payment_service)
) -> List[PaymentResponse]:
    result = await payment_service.list_user_payments(current_user.id)
    if isinstance(result, Err):
        raise exception_from_error(result)

    return [PaymentResponse.from_payment(payment) for payment in result.value]


@router.get(
    "/received",
    response_model=List[PaymentResponse],
    status_code=status.HTTP_200_OK,
    summary="Payments received",
    description="Payments made for the current builder's listings",
    responses=get_error_responses(401, 403)
)
async def received_payments(
    current_user: User = Depends(get_current_builder_user),
    payment_service: PaymentService = Depends(get_payment_service)
) -> List[PaymentResponse]:
    result = await payment_service.list_builder_payments(current_user.id)
    if isinstance(result, Err):
        raise exception_from_error(result)

    return [PaymentResponse.from_payment(payment) for payment in result.value]


@router.get(
    "/subscriptions",
    response_model=List[RentSubscriptionResponse],
    status_code=status.HTTP_200_OK,
    summary="My rent subscriptions",
    description="Active subscriptions first, then by next due date",
    responses=get_error_responses(401, 403)
)
async def my_subscriptions(
    current_user: User = Depends(get_current_active_user),
    payment_service: PaymentService = Depends(get_payment_service)
) -> List[RentSubscriptionResponse]:
    result = await payment_service.list_user_subscriptions(current_user.id)
    if isinstance(result, Err):
        raise exception_from_error(result)

    return [RentSubscriptionResponse.from_subscription(sub) for sub in result.value]


@router.post(
    "/expire-pending",
    response_model=ExpirePaymentsResponse,
    status_code=status.HTTP_200_OK,
    summary="Expire abandoned payments",
    description="Mark stale PENDING payments FAILED. Admin only.",
    responses=get_error_responses(401, 403, 500)
)
async def expire_pending_payments(
    older_than_minutes: Optional[int] = Query(None, ge=0, description="Defaults to the configured TTL"),
    current_user: User = Depends(get_current_admin_user),
    payment_service: PaymentService = Depends(get_payment_service)
) -> ExpirePaymentsResponse:
    result = await payment_service.expire_abandoned_payments(older_than_minutes)
    if isinstance(result, Err):
        raise exception_from_error(result)

    return ExpirePaymentsResponse(expired=result.value)
