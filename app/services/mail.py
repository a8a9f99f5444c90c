from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from loguru import logger
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from app.core.config import get_settings


@dataclass(frozen=True)
class MailMessage:
    to: str
    subject: str
    body: str
    link: str


class MailSender:
    """Delivery seam for account e-mails.

    Providers (SMTP, transactional APIs) subclass this and implement ``send``.
    The default sender only logs the message, which is enough for local
    development since the link carries everything the recipient needs.
    """

    def send(self, message: MailMessage) -> None:
        raise NotImplementedError


class LogMailSender(MailSender):
    def send(self, message: MailMessage) -> None:
        logger.info("Mail to {to}: {subject} ({link})", to=message.to, subject=message.subject, link=message.link)


class MailQueue:
    """Messages composed during a request, sent once the request has committed."""

    def __init__(self) -> None:
        self._pending: list[MailMessage] = []

    def emit(self, message: MailMessage) -> None:
        self._pending.append(message)

    @property
    def pending(self) -> list[MailMessage]:
        return list(self._pending)

    def drain(self) -> list[MailMessage]:
        drained, self._pending = self._pending, []
        return drained


def build_link(path: str, token: str) -> str:
    return f"{get_settings().base_url.rstrip('/')}/auth/{path}?token={token}"


def confirmation_mail(to: str, token: str) -> MailMessage:
    link = build_link("confirm-email", token)
    return MailMessage(to, "Confirm your account", f"Confirm your e-mail address: {link}", link)


def email_update_mail(to: str, token: str) -> MailMessage:
    link = build_link("confirm-email-update", token)
    return MailMessage(to, "Confirm your new e-mail address", f"Confirm the change of address: {link}", link)


def revert_email_mail(to: str, token: str) -> MailMessage:
    link = build_link("revert-email", token)
    return MailMessage(
        to,
        "Your e-mail address was changed",
        f"If you did not request this change, restore your previous address: {link}",
        link,
    )


def password_reset_mail(to: str, token: str) -> MailMessage:
    link = build_link("reset-password", token)
    return MailMessage(to, "Reset your password", f"Choose a new password: {link}", link)


def unlock_account_mail(to: str, token: str) -> MailMessage:
    link = build_link("unlock-account", token)
    return MailMessage(to, "Unlock your account", f"Unlock your account: {link}", link)


@retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=0.5, min=0.5, max=4),
    retry=retry_if_exception_type((ConnectionError, TimeoutError)),
    reraise=True,
)
def _send(message: MailMessage, sender: MailSender) -> None:
    sender.send(message)


def deliver_mail(messages: Iterable[MailMessage], sender: MailSender) -> int:
    sent = 0
    for message in messages:
        try:
            _send(message, sender)
            sent += 1
        except Exception as exc:  # noqa: BLE001
            logger.warning(
                "Failed to send '{subject}' to {to}: {error}",
                subject=message.subject,
                to=message.to,
                error=exc,
            )
    return sent
