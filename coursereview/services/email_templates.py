"""
coursereview/services/email_templates.py
Outbound email templates, one per template kind
"""
from enum import Enum
from html import escape
from typing import Any, Dict, NamedTuple


class EmailTemplateKind(str, Enum):
    verify_email = "verify_email"
    password_reset = "password_reset"
    academic_selection = "academic_selection"


class RenderedEmail(NamedTuple):
    subject: str
    text_body: str
    html_body: str


_LAYOUT = """
<div style="font-family: sans-serif; max-width: 600px; margin: 0 auto; color: #171817;">
    <h2 style="font-size: 24px; font-weight: bold; margin-bottom: 24px;">{title}</h2>
    <p style="font-size: 16px; line-height: 1.6; margin-bottom: 24px;">{body}</p>
    {cta}
    <p style="color: #17181799; font-size: 14px; margin-top: 32px; border-top: 1px solid #1718171A; padding-top: 16px;">
        If you didn't request this, you can safely ignore this email.
    </p>
</div>
"""

_CTA = (
    '<a href="{url}" style="display: inline-block; background: #171817; color: #FBFEF9; '
    'padding: 12px 24px; border-radius: 8px; text-decoration: none; font-weight: 700;">{text}</a>'
)


def _render(title: str, body: str, cta_text: str = None, cta_url: str = None) -> str:
    cta = ""
    if cta_text and cta_url:
        cta = _CTA.format(url=escape(cta_url, quote=True), text=escape(cta_text))
    return _LAYOUT.format(title=escape(title), body=escape(body), cta=cta)


def _verify_email(variables: Dict[str, Any]) -> RenderedEmail:
    url = variables["url"]
    body = "Welcome! Confirm your email address to activate your account and start reading reviews."
    return RenderedEmail(
        subject="Verify your email",
        text_body=f"{body}\n\nVerify your email: {url}\n",
        html_body=_render("Verify your email", body, "Verify email", url),
    )


def _password_reset(variables: Dict[str, Any]) -> RenderedEmail:
    url = variables["url"]
    body = "We received a request to reset your password. The link expires shortly."
    return RenderedEmail(
        subject="Reset your password",
        text_body=f"{body}\n\nReset your password: {url}\n",
        html_body=_render("Reset your password", body, "Reset password", url),
    )


def _academic_selection(variables: Dict[str, Any]) -> RenderedEmail:
    selection = variables.get("selection_name", "your selection")
    specialization = variables.get("specialization_name")
    body = f"Your academic selection has been saved: {selection}"
    if specialization:
        body += f" ({specialization})"
    body += ". This choice is permanent. Please sign in again to see your updated feed."
    url = variables.get("url")
    return RenderedEmail(
        subject="Your academic selection is confirmed",
        text_body=body + (f"\n\n{url}\n" if url else "\n"),
        html_body=_render("Academic selection confirmed", body, "Sign in" if url else None, url),
    )


_RENDERERS = {
    EmailTemplateKind.verify_email: _verify_email,
    EmailTemplateKind.password_reset: _password_reset,
    EmailTemplateKind.academic_selection: _academic_selection,
}


def render_email(kind: EmailTemplateKind, variables: Dict[str, Any]) -> RenderedEmail:
    return _RENDERERS[EmailTemplateKind(kind)](variables)
