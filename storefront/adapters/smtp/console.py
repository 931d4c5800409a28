"""
Console email sender adapter - Implements EmailSender protocol.

This module provides a console-based implementation of the domain's
email sender port, logging messages to stdout for local development.
"""

import logging

logger = logging.getLogger(__name__)


class ConsoleEmailSender:
    """
    Implements EmailSender protocol via console logging.

    Uses structural subtyping - no explicit inheritance from Protocol.
    The text body is logged so one-time codes are readable in dev logs.
    """

    def __init__(self, from_address: str = "no-reply@localhost") -> None:
        self.from_address = from_address

    def send(
        self,
        to: str,
        subject: str,
        html_body: str,
        text_body: str | None = None,
        from_name: str | None = None,
        reply_to: str | None = None,
    ) -> None:
        """
        Log the message at INFO level (simulates email delivery).

        Args:
            to: Recipient email address
            subject: Subject line
            html_body: HTML part (not logged)
            text_body: Plain-text part, logged when present
            from_name: Sender display name
            reply_to: Optional Reply-To address
        """
        sender = f"{from_name} <{self.from_address}>" if from_name else self.from_address
        logger.info(
            "[EMAIL] From: %s To: %s Subject: %s\n%s",
            sender,
            to,
            subject,
            text_body or html_body,
        )
