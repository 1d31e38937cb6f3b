"""
Email templates for NapFT.

Inline CSS only. Each template function returns (subject, html_body, text_body).
User-supplied text is HTML-escaped before it is placed in a body.
"""

from __future__ import annotations

from html import escape

BG_DARK = "#0B0D17"
BG_CARD = "#151827"
ACCENT = "#7C5CFF"
TEXT_PRIMARY = "#F5F6FA"
TEXT_SECONDARY = "#9AA0B4"
BORDER = "#262A3D"


def _base_layout(content: str, app_name: str = "NapFT") -> str:
    """Wrap content in the base email layout."""
    return f"""\
<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>{app_name}</title>
</head>
<body style="margin: 0; padding: 0; background-color: {BG_DARK}; font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif;">
    <table role="presentation" cellspacing="0" cellpadding="0" border="0" width="100%" style="background-color: {BG_DARK};">
        <tr>
            <td align="center" style="padding: 40px 20px;">
                <table role="presentation" cellspacing="0" cellpadding="0" border="0" width="600" style="max-width: 600px; width: 100%;">
                    <tr>
                        <td align="center" style="padding-bottom: 24px;">
                            <span style="font-size: 22px; font-weight: 700; color: {ACCENT};">{app_name}</span>
                        </td>
                    </tr>
                    <tr>
                        <td style="background-color: {BG_CARD}; border: 1px solid {BORDER}; border-radius: 12px; padding: 32px;">
                            {content}
                        </td>
                    </tr>
                </table>
            </td>
        </tr>
    </table>
</body>
</html>"""


def contact_notification(name: str, email: str, message: str) -> tuple[str, str, str]:
    """Message forwarded to the support inbox for each contact form submission."""
    subject = f"New contact form submission from {name}"
    safe_message = escape(message).replace("\n", "<br>")
    html_body = _base_layout(f"""\
<h1 style="color: {TEXT_PRIMARY}; font-size: 20px; margin: 0 0 16px;">New contact form submission</h1>
<p style="color: {TEXT_SECONDARY}; font-size: 14px; margin: 0 0 8px;"><strong>Name:</strong> {escape(name)}</p>
<p style="color: {TEXT_SECONDARY}; font-size: 14px; margin: 0 0 16px;"><strong>Email:</strong> {escape(email)}</p>
<p style="color: {TEXT_PRIMARY}; font-size: 14px; line-height: 1.6; margin: 0;">{safe_message}</p>""")
    text_body = f"New contact form submission\n\nName: {name}\nEmail: {email}\n\n{message}\n"
    return subject, html_body, text_body


def contact_acknowledgement(name: str) -> tuple[str, str, str]:
    subject = "We received your message"
    html_body = _base_layout(f"""\
<h1 style="color: {TEXT_PRIMARY}; font-size: 20px; margin: 0 0 16px;">Thanks, {escape(name)}!</h1>
<p style="color: {TEXT_SECONDARY}; font-size: 14px; line-height: 1.6; margin: 0;">
    We received your message and will get back to you as soon as possible.
</p>""")
    text_body = f"Thanks, {name}!\n\nWe received your message and will get back to you as soon as possible.\n"
    return subject, html_body, text_body
