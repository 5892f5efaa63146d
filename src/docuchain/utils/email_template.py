# src/docuchain/utils/email_template.py
"""HTML body for transactional emails."""

from html import escape

EMAIL_TEMPLATE = """\
<!DOCTYPE html>
<html>
  <body style="font-family: Arial, sans-serif; background: #f4f4f7; margin: 0; padding: 24px;">
    <table role="presentation" width="100%" style="max-width: 560px; margin: 0 auto; background: #ffffff; border-radius: 6px;">
      <tr>
        <td style="padding: 24px; background: #1f3a5f; color: #ffffff; border-radius: 6px 6px 0 0;">
          <h1 style="margin: 0; font-size: 20px;">{headline}</h1>
        </td>
      </tr>
      <tr>
        <td style="padding: 24px; color: #333333;">
          <h2 style="margin-top: 0; font-size: 16px;">{subject}</h2>
          <p style="line-height: 1.5;">{body}</p>
        </td>
      </tr>
      <tr>
        <td style="padding: 16px 24px; font-size: 12px; color: #888888;">
          DocuChain Registry
        </td>
      </tr>
    </table>
  </body>
</html>
"""


def render_email(headline: str, subject: str, body_html: str) -> str:
    """Fill the template.

    ``headline`` and ``subject`` are escaped; ``body_html`` is inserted as-is
    so callers can emphasise the code.
    """
    return EMAIL_TEMPLATE.format(
        headline=escape(headline),
        subject=escape(subject),
        body=body_html,
    )


def code_email(headline: str, subject: str, purpose: str, code: str, ttl_minutes: int) -> tuple[str, str]:
    """Return ``(text, html)`` bodies for a one-time code message."""
    text = (
        f"Your code for {purpose} is: {code}. "
        f"This code is valid for {ttl_minutes} minutes."
    )
    html = render_email(
        headline,
        subject,
        f"Your code for {escape(purpose)} is: <strong>{escape(code)}</strong>. "
        f"This code is valid for {ttl_minutes} minutes. "
        "If you didn't request this code, please ignore this email.",
    )
    return text, html
