"""Email delivery adapters."""

from .client import SmtpEmailSender
from .console import ConsoleEmailSender

__all__ = ["ConsoleEmailSender", "SmtpEmailSender"]
