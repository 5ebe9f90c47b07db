"""
Notifications par email (collaborateur externe du service d'écriture).

Ce module définit le contrat `Mailer` (`send(subject, body)`), deux implémentations (journal
structlog, SMTP) et `Notifier`, qui planifie les envois en mode fire-and-forget: un envoi en
échec est journalisé et compté, jamais propagé à l'appelant.
"""

from __future__ import annotations

import asyncio
import smtplib
from email.message import EmailMessage
from typing import Protocol

import structlog

from catalog.app.metrics import CATALOG_NOTIFICATIONS


class Mailer(Protocol):
    """Contrat minimal d'envoi d'une notification."""

    async def send(self, subject: str, body: str) -> None: ...


class LogMailer:
    """Mailer de développement: écrit la notification dans les logs."""

    def __init__(self, logger=None) -> None:
        self._log = logger or structlog.get_logger(__name__)

    async def send(self, subject: str, body: str) -> None:
        self._log.info("mail_sent", subject=subject, body=body)


class SmtpMailer:
    """Mailer SMTP; l'envoi bloquant est exécuté dans un thread dédié."""

    def __init__(
        self,
        host: str,
        port: int,
        sender: str,
        recipient: str,
        timeout: float = 10.0,
    ) -> None:
        self.host = host
        self.port = port
        self.sender = sender
        self.recipient = recipient
        self.timeout = timeout

    def _build_message(self, subject: str, body: str) -> EmailMessage:
        message = EmailMessage()
        message["Subject"] = subject
        message["From"] = self.sender
        message["To"] = self.recipient
        message.set_content(body, subtype="html")
        return message

    def _send_sync(self, message: EmailMessage) -> None:
        with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as client:
            client.send_message(message)

    async def send(self, subject: str, body: str) -> None:
        await asyncio.to_thread(self._send_sync, self._build_message(subject, body))


class Notifier:
    """Planifie des envois fire-and-forget sur la boucle asyncio courante.

    `notify` est synchrone (appelable depuis un hook post-commit); `drain` attend les envois en
    cours (arrêt propre, tests).
    """

    def __init__(self, mailer: Mailer, logger=None) -> None:
        self._mailer = mailer
        self._log = logger or structlog.get_logger(__name__)
        self._pending: set[asyncio.Task[None]] = set()

    def notify(self, subject: str, body: str) -> None:
        task = asyncio.get_running_loop().create_task(self._deliver(subject, body))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _deliver(self, subject: str, body: str) -> None:
        try:
            await self._mailer.send(subject, body)
        except Exception as err:
            CATALOG_NOTIFICATIONS.labels(result="failed").inc()
            self._log.warning("notification_failed", subject=subject, error=repr(err))
            return
        CATALOG_NOTIFICATIONS.labels(result="sent").inc()

    async def drain(self) -> None:
        if self._pending:
            await asyncio.gather(*list(self._pending))


def build_mailer(settings) -> Mailer:
    """Sélectionne l'implémentation selon `MAIL_BACKEND` (log | smtp)."""
    if settings.MAIL_BACKEND == "smtp":
        return SmtpMailer(
            host=settings.MAIL_HOST,
            port=settings.MAIL_PORT,
            sender=settings.MAIL_FROM,
            recipient=settings.MAIL_TO,
        )
    return LogMailer()
