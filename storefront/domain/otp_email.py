"""
OTP email rendering.

Builds the purpose-specific subject, HTML body and plain-text body for a
one-time code message.
"""

from dataclasses import dataclass
from html import escape

from .models import OtpPurpose


@dataclass(frozen=True)
class RenderedEmail:
    subject: str
    html_body: str
    text_body: str


_COPY = {
    OtpPurpose.REGISTRATION: {
        "subject": "Verify Your Account - {store}",
        "banner": "Account Verification",
        "heading": "Verify Your Account",
        "intro": "Thank you for registering with {store}. Your OTP code is:",
        "action": "verify your account",
    },
    OtpPurpose.PASSWORD_RESET: {
        "subject": "Reset Your Password - {store}",
        "banner": "Password Reset",
        "heading": "Reset Your Password",
        "intro": "We received a request to reset your password. Your OTP code is:",
        "action": "reset your password",
    },
}

_HTML_TEMPLATE = """\
<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto; padding: 20px;">
  <div style="background: #667eea; padding: 40px 20px; text-align: center; border-radius: 10px 10px 0 0;">
    <h1 style="color: white; margin: 0; font-size: 28px;">{store}</h1>
    <p style="color: white; margin: 10px 0 0 0;">{banner}</p>
  </div>
  <div style="background: white; padding: 40px 30px; border-radius: 0 0 10px 10px;">
    <h2 style="color: #333; margin-top: 0;">{heading}</h2>
    <p style="color: #666; font-size: 16px;">Hello!</p>
    <p style="color: #666; font-size: 16px;">{intro}</p>
    <div style="background-color: #f8f9fa; border: 2px dashed #667eea; padding: 20px; text-align: center; margin: 20px 0;">
      <span style="font-size: 32px; font-weight: bold; color: #667eea; letter-spacing: 8px; font-family: 'Courier New', monospace;">{code}</span>
    </div>
    <p style="color: #666; font-size: 14px;">
      This code will expire in <strong>{minutes} minutes</strong>. Please use it to {action}.
    </p>
    <p style="color: #856404; font-size: 14px;">
      <strong>Security Notice:</strong> If you didn't request this, please ignore this email.
      Your account remains secure.
    </p>
    <p style="color: #999; font-size: 12px; text-align: center;">
      This is an automated message from {store}. Please do not reply to this email.
    </p>
  </div>
</div>
"""

_TEXT_TEMPLATE = """\
{heading}

{intro} {code}

This code will expire in {minutes} minutes. Please use it to {action}.
If you didn't request this, please ignore this email.

-- {store}
"""


def render_otp_email(code: str, purpose: OtpPurpose, store_name: str, ttl_seconds: int) -> RenderedEmail:
    """Render the OTP message; the expiry notice is rounded down to whole minutes."""
    copy = _COPY[purpose]
    minutes = max(ttl_seconds // 60, 1)
    intro = copy["intro"].format(store=store_name)
    values = {
        "heading": copy["heading"],
        "banner": copy["banner"],
        "action": copy["action"],
        "code": code,
        "minutes": minutes,
    }
    html_body = _HTML_TEMPLATE.format(store=escape(store_name), intro=escape(intro), **values)
    text_body = _TEXT_TEMPLATE.format(store=store_name, intro=intro, **values)
    return RenderedEmail(
        subject=copy["subject"].format(store=store_name),
        html_body=html_body,
        text_body=text_body,
    )
