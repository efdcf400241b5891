# services/newsletter_service.py
import logging
import secrets
from typing import Optional

from repositories.subscriber_repo import SubscriberRepository

log = logging.getLogger(__name__)


class NewsletterService:
    """Double opt-in newsletter subscriptions. Emails are logged, not sent."""

    def __init__(self, subscriber_repo: SubscriberRepository, product_url: str, email_from: Optional[str] = None):
        self.subscriber_repo = subscriber_repo
        self.product_url = product_url.rstrip("/")
        self.email_from = email_from

    def _send_email(self, to: str, subject: str, body: str) -> None:
        if not self.email_from:
            log.info("[dev email] to=%s subject=%s\n%s", to, subject, body)
            return
        log.info("Would send email from %s to %s: %s", self.email_from, to, subject)

    async def subscribe(self, email: str) -> str:
        normalized = email.strip().lower()
        token = secrets.token_hex(32)
        existing = await self.subscriber_repo.get_by_email(normalized)
        if existing is None:
            await self.subscriber_repo.create(normalized, token)
        elif existing.confirmed:
            return "already_confirmed"
        else:
            await self.subscriber_repo.set_token(existing.id, token)

        confirm_url = f"{self.product_url}/api/newsletter/confirm?token={token}"
        unsubscribe_url = f"{self.product_url}/api/newsletter/unsubscribe?token={token}"
        self._send_email(
            normalized,
            "Confirm your subscription",
            f"Thanks for your interest! Please confirm your newsletter subscription: {confirm_url}\n"
            f"If you did not request this, ignore this email. You can unsubscribe any time: {unsubscribe_url}",
        )
        return "pending_confirmation"

    async def confirm(self, token: str) -> str:
        subscriber = await self.subscriber_repo.get_by_token(token)
        if subscriber is None:
            return "invalid"
        if subscriber.confirmed:
            return "already"
        await self.subscriber_repo.confirm(subscriber.id)
        return "confirmed"

    async def unsubscribe(self, token: str) -> str:
        subscriber = await self.subscriber_repo.get_by_token(token)
        if subscriber is None:
            return "invalid"
        await self.subscriber_repo.delete(subscriber.id)
        return "unsubscribed"
