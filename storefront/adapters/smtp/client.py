"""
SMTP email sender adapter - Implements EmailSender protocol.

One SMTP connection is opened lazily and reused across sends. Sends are
serialized with a lock since smtplib clients are not thread-safe; a send
that cannot take the lock within the timeout fails with DeliveryError. A
connection the server has dropped is re-opened once per send; any other
transport failure, including a socket timeout, is raised as DeliveryError.
"""

import logging
import smtplib
import ssl
import threading
from email.message import EmailMessage
from email.utils import formataddr, make_msgid

from storefront.domain.exceptions import DeliveryError

logger = logging.getLogger(__name__)


class SmtpEmailSender:
    """
    Implements EmailSender protocol via smtplib.

    Uses structural subtyping - no explicit inheritance from Protocol.
    Created once at application startup and closed on shutdown.
    """

    def __init__(
        self,
        host: str,
        port: int,
        from_address: str,
        username: str | None = None,
        password: str | None = None,
        starttls: bool = True,
        use_ssl: bool = False,
        timeout: float = 10.0,
    ) -> None:
        self.host = host
        self.port = port
        self.from_address = from_address
        self.username = username
        self.password = password
        self.starttls = starttls
        self.use_ssl = use_ssl
        self.timeout = timeout
        self._client: smtplib.SMTP | None = None
        self._lock = threading.Lock()

    def send(
        self,
        to: str,
        subject: str,
        html_body: str,
        text_body: str | None = None,
        from_name: str | None = None,
        reply_to: str | None = None,
    ) -> None:
        message = self._build_message(to, subject, html_body, text_body, from_name, reply_to)

        # Waiting for the connection counts against the same timeout as the transport
        if not self._lock.acquire(timeout=self.timeout):
            logger.error("SMTP sender busy, dropping email to %s", to)
            raise DeliveryError("SMTP sender busy")
        try:
            self._send_with_reconnect(message)
        except (smtplib.SMTPException, OSError) as exc:
            self._discard_client()
            logger.error("SMTP delivery to %s via %s:%s failed: %s", to, self.host, self.port, exc)
            raise DeliveryError(str(exc)) from exc
        finally:
            self._lock.release()

        logger.info("Email sent to %s (message id %s)", to, message["Message-ID"])

    def close(self) -> None:
        """Quit the pooled connection, if one is open."""
        with self._lock:
            if self._client is None:
                return
            try:
                self._client.quit()
            except (smtplib.SMTPException, OSError) as exc:
                logger.debug("SMTP quit failed: %s", exc)
            self._client = None

    def _send_with_reconnect(self, message: EmailMessage) -> None:
        if self._client is None:
            self._client = self._connect()
            self._client.send_message(message)
            return

        try:
            self._client.send_message(message)
        except smtplib.SMTPServerDisconnected:
            logger.info("SMTP connection to %s dropped, reconnecting", self.host)
            self._client = self._connect()
            self._client.send_message(message)

    def _connect(self) -> smtplib.SMTP:
        context = ssl.create_default_context()
        if self.use_ssl:
            client: smtplib.SMTP = smtplib.SMTP_SSL(
                self.host, self.port, timeout=self.timeout, context=context
            )
        else:
            client = smtplib.SMTP(self.host, self.port, timeout=self.timeout)
            if self.starttls:
                client.starttls(context=context)
        if self.username:
            client.login(self.username, self.password or "")
        return client

    def _discard_client(self) -> None:
        if self._client is not None:
            try:
                self._client.close()
            except OSError as exc:
                logger.debug("SMTP close failed: %s", exc)
        self._client = None

    def _build_message(
        self,
        to: str,
        subject: str,
        html_body: str,
        text_body: str | None,
        from_name: str | None,
        reply_to: str | None,
    ) -> EmailMessage:
        message = EmailMessage()
        message["Subject"] = subject
        message["From"] = formataddr((from_name, self.from_address)) if from_name else self.from_address
        message["To"] = to
        message["Message-ID"] = make_msgid()
        if reply_to:
            message["Reply-To"] = reply_to
        message.set_content(text_body or "This message requires an HTML-capable email client.")
        message.add_alternative(html_body, subtype="html")
        return message
