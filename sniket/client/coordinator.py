import re
import time
import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple, Union

import httpx
from loguru import logger

from sniket.client.channel import UPDATE_ACTIVE_USERS, MessageChannel
from sniket.client.push_provider import PushProvider, TokenUnavailableError
from sniket.client.registry import DEVICE_ID_KEY, TOKEN_KEY, RegistryWriteError, TokenRegistry
from sniket.client.storage import StorageError
from sniket.client.types import (
    PermissionState,
    RegistrationErrorCode,
    RegistrationResult,
    RegistrationState,
)
from sniket.core.firebase import short_token
from sniket.models.fcm_user_subscription import UserType
from sniket.schemas.fcm.register_schema import (
    CleanupTokenRequest,
    DeviceTokenSchema,
    RegisterRequest,
    UnregisterRequest,
    UserSubscriptionSchema,
)

API_PREFIX = "/api/v1/fcm"
HTTP_TIMEOUT = 10.0

_TOPIC_UNSAFE = re.compile(r"[^A-Za-z0-9\-_.~%]")


def browser_name(user_agent: Optional[str]) -> str:
    ua = user_agent or ""
    if "Edg/" in ua or "Edge" in ua:
        return "Edge"
    if "Chrome" in ua:
        return "Chrome"
    if "Firefox" in ua:
        return "Firefox"
    if "Safari" in ua:
        return "Safari"
    return "Unknown"


def topics_for(user_id: str, user_type: UserType, device_id: str) -> List[str]:
    """FCM topics a registration subscribes to (topic names allow [A-Za-z0-9-_.~%] only)."""
    topics = [
        f"user_{user_id}",
        f"{user_type.value}_notifications",
        f"{user_type.value}_{user_id}",
        f"device_{device_id}",
    ]
    return [_TOPIC_UNSAFE.sub("_", t) for t in topics]


class RegistrationCoordinator:
    """
    Ties a (user, role) sign-in to this browser's push token.

    Owns the permission prompt, token acquisition and rotation, the local
    TokenRegistry and the server-side registration. Every public flow returns
    a RegistrationResult; nothing raises across this boundary.
    """

    def __init__(
        self,
        provider: PushProvider,
        registry: TokenRegistry,
        api_base_url: str,
        http_client: Optional[httpx.AsyncClient] = None,
        channel: Optional[MessageChannel] = None,
        user_agent: Optional[str] = None,
        platform: Optional[str] = None,
    ):
        self.provider = provider
        self.registry = registry
        self.api_base_url = api_base_url.rstrip("/")
        self.http_client = http_client
        self.channel = channel
        self.user_agent = user_agent
        self.platform = platform

        self._states: Dict[Tuple[str, UserType], RegistrationState] = {}
        self._permission_denied = False
        self._device_id: Optional[str] = None

    # ============================
    # State
    # ============================
    def state(self, user_id: str, user_type: Union[UserType, str]) -> RegistrationState:
        return self._states.get((user_id, UserType(user_type)), RegistrationState.UNREGISTERED)

    def _set_state(self, user_id: str, user_type: UserType, state: RegistrationState) -> None:
        self._states[(user_id, user_type)] = state

    @property
    def token(self) -> Optional[str]:
        try:
            return self.registry.store.get(TOKEN_KEY)
        except StorageError:
            return None

    @property
    def device_id(self) -> str:
        """Stable per-browser id, created on first use."""
        store = self.registry.store
        try:
            device_id = store.get(DEVICE_ID_KEY)
        except StorageError:
            device_id = None
        if not device_id:
            device_id = self._device_id or f"device_{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}"
            self._device_id = device_id
            try:
                store.set(DEVICE_ID_KEY, device_id)
            except StorageError as e:
                logger.warning(f"[FCM Client] Device id not persisted: {e}")
        return device_id

    # ============================
    # HTTP
    # ============================
    async def _post(self, path: str, body: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """JSON reply of a successful call, None on transport or HTTP errors."""
        url = f"{self.api_base_url}{API_PREFIX}{path}"
        try:
            if self.http_client is not None:
                response = await self.http_client.post(url, json=body)
            else:
                async with httpx.AsyncClient(timeout=HTTP_TIMEOUT) as client:
                    response = await client.post(url, json=body)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as e:
            logger.warning(f"[FCM Client] {path} returned {e.response.status_code}")
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"[FCM Client] {path} failed: {e}")
        return None

    async def _sync_background(self) -> None:
        if self.channel is None:
            return
        await self.channel.post({"type": UPDATE_ACTIVE_USERS, "activeUsers": self.registry.snapshot()})

    # ============================
    # Permission
    # ============================
    async def request_permission(self) -> PermissionState:
        """GRANTED, DENIED or UNSUPPORTED. A denial is remembered and never re-prompted."""
        if not await self.provider.is_supported():
            return PermissionState.UNSUPPORTED
        if self._permission_denied:
            return PermissionState.DENIED

        current = await self.provider.permission_state()
        if current == PermissionState.GRANTED:
            return PermissionState.GRANTED
        if current == PermissionState.DENIED:
            self._permission_denied = True
            return PermissionState.DENIED

        answer = await self.provider.request_permission()
        if answer == PermissionState.GRANTED:
            return PermissionState.GRANTED
        if answer == PermissionState.DENIED:
            self._permission_denied = True
        # a dismissed prompt may be asked again later
        return PermissionState.DENIED

    # ============================
    # Token
    # ============================
    async def _current_token(self) -> str:
        token, _ = await self._sync_token()
        return token

    async def _sync_token(self) -> Tuple[str, int]:
        """
        Provider token, persisted under TOKEN_KEY.
        A token that differs from the stored one is a rotation.
        Returns (token, pairs that failed to re-register on rotation).
        Raises TokenUnavailableError / RegistryWriteError.
        """
        token = await self.provider.get_token()
        if not token:
            raise TokenUnavailableError("push provider returned an empty token")

        stored = self.token
        failed = 0
        if stored and stored != token:
            failed = await self._rotate(stored, token)
        if stored != token:
            try:
                self.registry.store.set(TOKEN_KEY, token)
            except StorageError as e:
                raise RegistryWriteError(str(e)) from e
        return token, failed

    async def _rotate(self, old_token: str, new_token: str) -> int:
        """
        Move local pairs to the new token, clean up the old device row,
        then register every moved pair again (cleanup deactivates them all).
        """
        logger.info(f"[FCM Client] Token rotated: {short_token(old_token)} -> {short_token(new_token)}")
        self.registry.replace_token(old_token, new_token)
        body = CleanupTokenRequest(old_token=old_token, device_id=self.device_id)
        await self._post("/cleanup-token", body.model_dump(mode="json", by_alias=True))

        failed = 0
        for subscription in self.registry.list_active_users(new_token):
            if not await self._register_on_server(new_token, subscription):
                failed += 1
                logger.warning(
                    f"[FCM Client] Re-register of {subscription.user_type.value} "
                    f"{subscription.user_id} on {short_token(new_token)} failed"
                )
        return failed

    def _device_token(self, token: str) -> DeviceTokenSchema:
        return DeviceTokenSchema(
            token=token,
            device_id=self.device_id,
            browser=browser_name(self.user_agent),
            platform=self.platform,
            user_agent=self.user_agent,
            registered_at=datetime.utcnow(),
        )

    async def _register_on_server(self, token: str, subscription: UserSubscriptionSchema) -> bool:
        body = RegisterRequest(
            device_token=self._device_token(token),
            user_subscription=subscription,
            topics=topics_for(subscription.user_id, subscription.user_type, self.device_id),
        )
        reply = await self._post("/register", body.model_dump(mode="json", by_alias=True))
        return bool(reply and reply.get("success"))

    # ============================
    # Register
    # ============================
    async def register(
        self,
        user_id: str,
        user_type: Union[UserType, str],
        user_info: Optional[Dict[str, Any]] = None,
    ) -> RegistrationResult:
        user_type = UserType(user_type)
        user_info = user_info or {}
        previous_state = self.state(user_id, user_type)

        self._set_state(user_id, user_type, RegistrationState.PERMISSION_PENDING)
        permission = await self.request_permission()
        if permission == PermissionState.UNSUPPORTED:
            self._set_state(user_id, user_type, RegistrationState.UNREGISTERED)
            return RegistrationResult.fail(
                RegistrationErrorCode.UNSUPPORTED_PLATFORM, "Push notifications are not supported here"
            )
        if permission != PermissionState.GRANTED:
            self._set_state(user_id, user_type, RegistrationState.PERMISSION_DENIED)
            return RegistrationResult.fail(
                RegistrationErrorCode.PERMISSION_DENIED, "Notification permission was not granted"
            )

        self._set_state(user_id, user_type, RegistrationState.TOKEN_PENDING)
        try:
            token = await self._current_token()
        except TokenUnavailableError as e:
            logger.error(f"[FCM Client] No push token: {e}")
            self._set_state(user_id, user_type, previous_state)
            return RegistrationResult.fail(RegistrationErrorCode.TOKEN_UNAVAILABLE, str(e))
        except RegistryWriteError as e:
            logger.error(f"[FCM Client] Could not persist push token: {e}")
            self._set_state(user_id, user_type, previous_state)
            return RegistrationResult.fail(RegistrationErrorCode.REGISTRY_WRITE_FAILED, str(e))

        previous = self.registry.get(token, user_id, user_type)
        subscription = UserSubscriptionSchema(
            user_id=user_id,
            user_type=user_type,
            email=user_info.get("email"),
            name=user_info.get("name"),
            active_session_id=f"session_{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}",
            last_active=datetime.utcnow(),
        )

        try:
            self.registry.upsert(token, subscription)
        except RegistryWriteError as e:
            logger.error(f"[FCM Client] Registry write failed for {user_type.value} {user_id}: {e}")
            self._set_state(user_id, user_type, previous_state)
            return RegistrationResult.fail(RegistrationErrorCode.REGISTRY_WRITE_FAILED, str(e))

        if not await self._register_on_server(token, subscription):
            self._rollback(token, user_id, user_type, previous)
            self._set_state(
                user_id,
                user_type,
                RegistrationState.REGISTERED if previous else RegistrationState.UNREGISTERED,
            )
            return RegistrationResult.fail(
                RegistrationErrorCode.NETWORK_ERROR, "Server registration failed"
            )

        self._set_state(user_id, user_type, RegistrationState.REGISTERED)
        await self._sync_background()
        logger.info(f"[FCM Client] Registered {user_type.value} {user_id} on {short_token(token)}")
        return RegistrationResult.ok(token=token)

    def _rollback(
        self,
        token: str,
        user_id: str,
        user_type: UserType,
        previous: Optional[UserSubscriptionSchema],
    ) -> None:
        try:
            if previous is not None:
                self.registry.upsert(token, previous)
            else:
                self.registry.remove(token, user_id, user_type)
        except RegistryWriteError as e:
            logger.error(f"[FCM Client] Rollback of {user_type.value} {user_id} failed: {e}")

    # ============================
    # Unregister
    # ============================
    async def unregister(self, user_id: str, user_type: Union[UserType, str]) -> RegistrationResult:
        """Local removal decides the outcome; the server is told best-effort."""
        user_type = UserType(user_type)

        registered = self.registry.is_active(user_id, user_type)
        if registered:
            try:
                self.registry.remove_user(user_id, user_type)
            except RegistryWriteError as e:
                logger.error(f"[FCM Client] Registry write failed unregistering {user_type.value} {user_id}: {e}")
                return RegistrationResult.fail(RegistrationErrorCode.REGISTRY_WRITE_FAILED, str(e))

        self._set_state(user_id, user_type, RegistrationState.UNREGISTERED)
        if registered:
            await self._sync_background()

        # sent even when the pair is not in the local registry
        body = UnregisterRequest(
            user_id=user_id,
            user_type=user_type,
            token=self.token,
            device_id=self.device_id,
        )
        if await self._post("/unregister", body.model_dump(mode="json", by_alias=True)) is None:
            logger.warning(f"[FCM Client] Server unregister failed for {user_type.value} {user_id}, kept local removal")

        if not registered:
            return RegistrationResult.ok(token=self.token, message="Not registered")
        return RegistrationResult.ok(token=self.token)

    # ============================
    # Maintenance
    # ============================
    async def heartbeat(self, user_id: str, user_type: Union[UserType, str]) -> bool:
        token = self.token
        if not token:
            return False
        try:
            touched = self.registry.touch(token, user_id, user_type)
        except RegistryWriteError as e:
            logger.warning(f"[FCM Client] Heartbeat not persisted: {e}")
            return False
        if touched:
            await self._sync_background()
        return touched

    async def handle_token_refresh(self) -> RegistrationResult:
        """Pick up a rotated provider token and re-register every local pair on it."""
        old_token = self.token
        try:
            token, failed = await self._sync_token()
        except TokenUnavailableError as e:
            return RegistrationResult.fail(RegistrationErrorCode.TOKEN_UNAVAILABLE, str(e))
        except RegistryWriteError as e:
            return RegistrationResult.fail(RegistrationErrorCode.REGISTRY_WRITE_FAILED, str(e))

        if old_token == token:
            return RegistrationResult.ok(token=token, message="Token unchanged")

        await self._sync_background()
        if failed:
            return RegistrationResult.fail(
                RegistrationErrorCode.NETWORK_ERROR,
                f"{failed} subscription(s) could not be re-registered",
            )
        return RegistrationResult.ok(token=token, message="Token refreshed")

    async def restore(self) -> List[Tuple[str, UserType]]:
        """
        Mark pairs already in the registry as registered (page reload).
        Needs granted permission. A rotated token re-registers every pair on the server.
        """
        if self.registry.is_empty():
            return []
        if await self.provider.permission_state() != PermissionState.GRANTED:
            return []
        try:
            token = await self._current_token()
        except (TokenUnavailableError, RegistryWriteError) as e:
            logger.warning(f"[FCM Client] Could not restore registrations: {e}")
            return []

        restored = []
        for subscription in self.registry.list_active_users(token):
            self._set_state(subscription.user_id, subscription.user_type, RegistrationState.REGISTERED)
            restored.append((subscription.user_id, subscription.user_type))
        await self._sync_background()
        return restored
