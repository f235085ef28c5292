# sniket/domains/fcm/router/fcm_router.py
from fastapi import APIRouter, Depends, Header, Query, Request
from sqlalchemy.orm import Session

from sniket.db import get_db
from sniket.domains.fcm.exception import (
    FCM_CLEANUP_RESPONSES,
    FCM_REGISTER_RESPONSES,
    FCM_SEND_RESPONSES,
    FCM_UNREGISTER_RESPONSES,
    FCM_VERIFY_RESPONSES,
)
from sniket.domains.fcm.service.registration_service import FcmRegistrationService
from sniket.domains.fcm.service.send_service import FcmSendService
from sniket.schemas.fcm.register_schema import (
    CleanupTokenRequest,
    CleanupTokenResponse,
    RegisterRequest,
    RegisterResponse,
    SubscriptionListResponse,
    UnregisterRequest,
    UnregisterResponse,
    VerifyRegistrationRequest,
    VerifyRegistrationResponse,
)
from sniket.schemas.fcm.send_schema import SendRequest, SendResponse

router = APIRouter(prefix="/api/v1/fcm", tags=["FCM"])


@router.post(
    "/register",
    summary="Register a user role on a device token",
    description="Stores the device token and the (user, role) subscription, then subscribes the token to topics.",
    response_model=RegisterResponse,
    responses=FCM_REGISTER_RESPONSES,
)
def register(
    request: Request,
    body: RegisterRequest,
    db: Session = Depends(get_db)
):
    return FcmRegistrationService(db).register(request, body)


@router.post(
    "/unregister",
    summary="Remove a user role from a device",
    description="Idempotent: removing an unknown subscription succeeds with removed=0.",
    response_model=UnregisterResponse,
    responses=FCM_UNREGISTER_RESPONSES,
)
def unregister(
    request: Request,
    body: UnregisterRequest,
    db: Session = Depends(get_db)
):
    return FcmRegistrationService(db).unregister(request, body)


@router.post(
    "/send",
    summary="Send a push notification",
    description="Targets a user, a role, or (with no target) every active device.",
    response_model=SendResponse,
    responses=FCM_SEND_RESPONSES,
)
def send(
    request: Request,
    body: SendRequest,
    authorization: str | None = Header(None, description="Bearer <INTERNAL_API_KEY>"),
    db: Session = Depends(get_db)
):
    return FcmSendService(db).send(request, authorization, body)


@router.post(
    "/verify-registration",
    summary="Check whether a user role still has a live registration",
    response_model=VerifyRegistrationResponse,
    responses=FCM_VERIFY_RESPONSES,
)
def verify_registration(
    request: Request,
    body: VerifyRegistrationRequest,
    db: Session = Depends(get_db)
):
    return FcmRegistrationService(db).verify_registration(request, body)


@router.post(
    "/cleanup-token",
    summary="Deactivate a token the provider rotated out",
    response_model=CleanupTokenResponse,
    responses=FCM_CLEANUP_RESPONSES,
)
def cleanup_token(
    request: Request,
    body: CleanupTokenRequest,
    db: Session = Depends(get_db)
):
    return FcmRegistrationService(db).cleanup_token(request, body)


@router.get(
    "/subscriptions",
    summary="List active subscriptions of a device token",
    response_model=SubscriptionListResponse,
)
def list_subscriptions(
    token: str = Query(..., min_length=1),
    db: Session = Depends(get_db)
):
    return FcmRegistrationService(db).list_subscriptions(token)
