"""Notification dispatch: dedup, persist, fan out.

notify_progress() is the single entry point for event-driven messages
(lesson progress, deadlines, quiz and homework results).  It

  1. claims `notification:{user}:{fingerprint}` with an atomic
     set-if-absent and skips the message if the key already exists,
  2. persists an in-app Notification,
  3. tries every enabled channel independently,
  4. marks the record sent and extends the key to the dedup TTL.

A failing channel is logged and counted; it never stops the other
channels and never raises out of notify_progress.  Persistence errors
do propagate.

Bulk sends persist one record addressed to many recipients and attempt
each recipient in turn; per-recipient failures are collected, not
raised.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from uuid import UUID

from lms.core.clock import Clock, utcnow
from lms.core.metrics import (
    CHANNEL_DELIVERIES,
    NOTIFICATION_DEDUP_HITS,
    NOTIFICATIONS_CREATED,
)
from lms.models.notification import Notification
from lms.models.user import User
from lms.repos.base import DuplicateKeyError
from lms.repos.notification_repo import NotificationRepo
from lms.repos.user_repo import UserRepo
from lms.services.cache import CacheService
from lms.services.channels import NotificationChannel, OutboundMessage
from lms.services.errors import (
    ChannelError,
    Conflict,
    DeliveryFailed,
    NotificationNotFound,
    UserNotFound,
    ValidationFailed,
)
from lms.services.ids import parse_id
from lms.services.templates import TemplateStore

logger = logging.getLogger(__name__)

# Lifetime of the in-flight marker; replaced by the full dedup TTL once sent
DEDUP_CLAIM_TTL = 60


@dataclass(slots=True)
class BulkResult:
    notification: Notification
    delivered: list[UUID] = field(default_factory=list)
    failed: list[UUID] = field(default_factory=list)


class NotificationService:
    def __init__(
        self,
        *,
        users: UserRepo,
        notifications: NotificationRepo,
        cache: CacheService,
        channels: list[NotificationChannel],
        templates: TemplateStore,
        dedup_ttl_seconds: int = 3600,
        clock: Clock = utcnow,
    ) -> None:
        self._users = users
        self._notifications = notifications
        self._cache = cache
        self._channels = channels
        self._templates = templates
        self._dedup_ttl = dedup_ttl_seconds
        self._clock = clock

    @property
    def channel_names(self) -> list[str]:
        return [c.name for c in self._channels]

    # ------------------------------------------------------------------
    # Event-driven single-user notifications
    # ------------------------------------------------------------------

    async def notify_progress(
        self,
        user_id: str | UUID,
        message: str,
        settings: Mapping[str, bool] | None = None,
        *,
        title: str | None = None,
        fingerprint: str | None = None,
    ) -> None:
        uid = parse_id(user_id, "user_id")
        dedup_key = f"notification:{uid}:{fingerprint or message}"

        # Claim the key before any await so overlapping calls cannot both pass
        if not await self._cache.set_if_absent(dedup_key, "pending", DEDUP_CLAIM_TTL):
            NOTIFICATION_DEDUP_HITS.inc()
            logger.debug("Duplicate notification suppressed key=%s", dedup_key)
            return

        try:
            user = await self._users.get(uid)
            if user is None:
                logger.warning("Notification dropped: unknown user=%s", uid)
                await self._cache.delete(dedup_key)
                return

            notification = Notification.new(message=message, title=title, user_id=uid)
            await self._notifications.add(notification)
        except Exception:
            await self._cache.delete(dedup_key)
            raise
        NOTIFICATIONS_CREATED.labels(kind="single").inc()

        attempted, failures = await self._fan_out(
            user, _outbound(notification), settings
        )
        if attempted:
            await self._notifications.mark_sent(notification.id, self._clock())
        if failures:
            logger.info(
                "Notification %s: %d of %d channel(s) failed for user=%s",
                notification.id,
                len(failures),
                attempted,
                uid,
            )

        await self._cache.set(dedup_key, "1", self._dedup_ttl)

    async def notify_event(
        self,
        user_id: str | UUID,
        template_key: str,
        params: Mapping[str, object],
        *,
        fingerprint: str | None = None,
        settings: Mapping[str, bool] | None = None,
    ) -> None:
        """Render a template and dispatch it through notify_progress."""
        title, message = await self._templates.render(template_key, params)
        await self.notify_progress(
            user_id,
            message,
            settings,
            title=title,
            fingerprint=fingerprint or f"{template_key}:{message}",
        )

    # ------------------------------------------------------------------
    # Stored notifications
    # ------------------------------------------------------------------

    async def create_notification(
        self, *, user_id: str | UUID, message: str, title: str | None = None
    ) -> Notification:
        uid = parse_id(user_id, "user_id")
        if await self._users.get(uid) is None:
            raise UserNotFound(uid)
        notification = Notification.new(message=message, title=title, user_id=uid)
        await self._notifications.add(notification)
        NOTIFICATIONS_CREATED.labels(kind="single").inc()
        return notification

    async def create_bulk_notification(
        self,
        *,
        recipients: Iterable[str | UUID],
        message: str,
        title: str | None = None,
    ) -> BulkResult:
        ids = tuple(dict.fromkeys(parse_id(r, "recipient") for r in recipients))
        if not ids:
            raise ValidationFailed("recipients must not be empty")
        if not message.strip():
            raise ValidationFailed("message must not be empty")

        notification = Notification.new(message=message, title=title, recipients=ids)
        await self._notifications.add(notification)
        NOTIFICATIONS_CREATED.labels(kind="bulk").inc()
        logger.info(
            "Bulk notification %s created for %d recipient(s)",
            notification.id,
            len(ids),
        )
        return await self._deliver_bulk(notification, ids)

    async def send_notification_to_user(
        self, notification_id: str | UUID, user_id: str | UUID
    ) -> Notification:
        notification = await self.get(notification_id)
        if notification.is_sent:
            return notification
        uid = parse_id(user_id, "user_id")
        user = await self._users.get(uid)
        if user is None:
            raise UserNotFound(uid)

        try:
            attempted = await self._deliver(user, _outbound(notification))
        except DeliveryFailed as exc:
            logger.warning("%s", exc)
            attempted = len(exc.failures)

        if not attempted:
            return notification
        sent = await self._notifications.mark_sent(notification.id, self._clock())
        return sent or notification

    async def send_notification_to_bulk(
        self,
        notification_id: str | UUID,
        recipient_ids: Iterable[str | UUID] | None = None,
    ) -> BulkResult:
        notification = await self.get(notification_id)
        if notification.is_sent:
            return BulkResult(notification=notification)

        if recipient_ids is not None:
            ids = tuple(dict.fromkeys(parse_id(r, "recipient") for r in recipient_ids))
        elif notification.recipients:
            ids = notification.recipients
        elif notification.user_id is not None:
            ids = (notification.user_id,)
        else:
            raise ValidationFailed("notification has no recipients")
        return await self._deliver_bulk(notification, ids)

    async def get(self, notification_id: str | UUID) -> Notification:
        nid = parse_id(notification_id, "notification_id")
        notification = await self._notifications.get(nid)
        if notification is None:
            raise NotificationNotFound(nid)
        return notification

    async def list_for_user(self, user_id: str | UUID) -> list[Notification]:
        return await self._notifications.list_for_user(parse_id(user_id, "user_id"))

    async def mark_read(self, notification_id: str | UUID) -> Notification:
        notification = await self.get(notification_id)
        updated = await self._notifications.mark_read(notification.id)
        return updated or notification

    async def delete(self, notification_id: str | UUID) -> None:
        notification = await self.get(notification_id)
        await self._notifications.delete(notification.id)
        if notification.key is not None:
            await self._templates.invalidate(notification.key)

    # ------------------------------------------------------------------
    # Templates
    # ------------------------------------------------------------------

    async def list_templates(self) -> list[Notification]:
        return await self._notifications.list_templates()

    async def upsert_template(
        self, *, key: str, message: str, title: str | None = None
    ) -> Notification:
        existing = await self._notifications.get_template(key)
        if existing is None:
            record = Notification.new(message=message, title=title, key=key)
            try:
                await self._notifications.add(record)
            except DuplicateKeyError:
                raise Conflict(f"template {key!r} already exists") from None
        else:
            record = Notification(
                id=existing.id,
                message=message,
                title=title,
                key=key,
                created_at=existing.created_at,
            )
            await self._notifications.save(record)
        await self._templates.invalidate(key)
        logger.info("Notification template %r saved", key)
        return record

    # ------------------------------------------------------------------
    # Fan-out
    # ------------------------------------------------------------------

    async def _deliver_bulk(
        self, notification: Notification, recipient_ids: tuple[UUID, ...]
    ) -> BulkResult:
        result = BulkResult(notification=notification)
        users = {u.id: u for u in await self._users.get_many(list(recipient_ids))}
        message = _outbound(notification)

        for rid in recipient_ids:
            user = users.get(rid)
            if user is None:
                logger.warning(
                    "Bulk notification %s: unknown recipient=%s", notification.id, rid
                )
                result.failed.append(rid)
                continue
            try:
                await self._deliver(user, message)
            except DeliveryFailed as exc:
                logger.warning("Bulk notification %s: %s", notification.id, exc)
                result.failed.append(rid)
            else:
                result.delivered.append(rid)

        sent = await self._notifications.mark_sent(notification.id, self._clock())
        result.notification = sent or notification
        logger.info(
            "Bulk notification %s: delivered=%d failed=%d",
            notification.id,
            len(result.delivered),
            len(result.failed),
        )
        return result

    async def _deliver(
        self,
        user: User,
        message: OutboundMessage,
        settings: Mapping[str, bool] | None = None,
    ) -> int:
        """Fan out to one user.  Raises DeliveryFailed if every attempt failed."""
        attempted, failures = await self._fan_out(user, message, settings)
        if attempted and len(failures) == attempted:
            raise DeliveryFailed(user.id, failures)
        return attempted

    async def _fan_out(
        self,
        user: User,
        message: OutboundMessage,
        settings: Mapping[str, bool] | None,
    ) -> tuple[int, list[ChannelError]]:
        prefs = user.settings.merged(settings)
        attempted = 0
        failures: list[ChannelError] = []

        for channel in self._channels:
            if not prefs.allows(channel.name):
                continue
            target = channel.address_for(user)
            if not target:
                continue
            attempted += 1
            try:
                await channel.send(target, message)
            except ChannelError as exc:
                failures.append(exc)
                CHANNEL_DELIVERIES.labels(channel=channel.name, result="error").inc()
                logger.warning(
                    "Channel %s failed for user=%s: %s",
                    channel.name,
                    user.id,
                    exc.reason,
                    extra={"channel": channel.name, "user_id": str(user.id)},
                )
            except Exception as exc:
                failures.append(ChannelError(channel.name, repr(exc)))
                CHANNEL_DELIVERIES.labels(channel=channel.name, result="error").inc()
                logger.exception(
                    "Channel %s raised unexpectedly for user=%s",
                    channel.name,
                    user.id,
                    extra={"channel": channel.name, "user_id": str(user.id)},
                )
            else:
                CHANNEL_DELIVERIES.labels(channel=channel.name, result="ok").inc()

        return attempted, failures


def _outbound(notification: Notification) -> OutboundMessage:
    return OutboundMessage(
        body=notification.message,
        title=notification.title,
        notification_id=notification.id,
    )
