"""Transactional email bodies.

Each builder returns subject, HTML and plain-text variants. Every
interpolated value that a user could influence is HTML-escaped.
"""

from dataclasses import dataclass
from html import escape

_BRAND = "CUET Sphere"
_FOOTER_HTML = (
    f"<p style=\"color:#6b7280;font-size:12px\">&copy; {_BRAND}. "
    "This is an automated email. Please do not reply.</p>"
)
_FOOTER_TEXT = f"(c) {_BRAND}. This is an automated email. Please do not reply."

_PREVIEW_LENGTH = 200


@dataclass(frozen=True)
class RenderedEmail:
    """A ready-to-send email.

    Attributes:
        subject: Subject line.
        html: HTML body.
        text: Plain-text body.
    """

    subject: str
    html: str
    text: str


def _wrap(title: str, body: str) -> str:
    return (
        "<!DOCTYPE html><html><head><meta charset=\"utf-8\">"
        f"<title>{escape(title)}</title></head>"
        "<body style=\"font-family:Arial,sans-serif;color:#111827\">"
        f"<h1>{_BRAND}</h1>{body}{_FOOTER_HTML}</body></html>"
    )


def _otp_email(
    *, subject: str, heading: str, intro: str, code: str, ttl_minutes: int
) -> RenderedEmail:
    html = _wrap(
        subject,
        f"<h2>{escape(heading)}</h2>"
        f"<p>{escape(intro)}</p>"
        f"<p>Your {len(code)}-digit code:</p>"
        "<p style=\"font-size:28px;letter-spacing:6px;font-weight:bold\">"
        f"{escape(code)}</p>"
        "<ul>"
        f"<li>This code is valid for <strong>{ttl_minutes} minutes only</strong></li>"
        "<li>Do not share this code with anyone</li>"
        f"<li>{_BRAND} will never ask for your code via phone or email</li>"
        "<li>If you didn't request this, you can safely ignore this email</li>"
        "</ul>",
    )
    text = (
        f"{_BRAND} - {heading}\n\n"
        f"{intro}\n\n"
        f"Your {len(code)}-digit code: {code}\n\n"
        f"- This code is valid for {ttl_minutes} minutes only\n"
        "- Do not share this code with anyone\n"
        "- If you didn't request this, you can safely ignore this email\n\n"
        f"{_FOOTER_TEXT}"
    )
    return RenderedEmail(subject=subject, html=html, text=text)


def password_reset_code(code: str, ttl_minutes: int) -> RenderedEmail:
    """Email carrying a password-reset code."""
    return _otp_email(
        subject=f"Password Reset OTP - {_BRAND}",
        heading="Password Reset Request",
        intro=(
            "We received a request to reset the password for your "
            f"{_BRAND} account."
        ),
        code=code,
        ttl_minutes=ttl_minutes,
    )


def signup_code(code: str, ttl_minutes: int) -> RenderedEmail:
    """Email carrying a signup verification code."""
    return _otp_email(
        subject=f"Verify your email - {_BRAND}",
        heading="Email Verification",
        intro=f"Use this code to finish creating your {_BRAND} account.",
        code=code,
        ttl_minutes=ttl_minutes,
    )


def _preview(text: str | None) -> str:
    if not text:
        return ""
    if len(text) <= _PREVIEW_LENGTH:
        return text
    return text[:_PREVIEW_LENGTH] + "..."


def new_post_admin_alert(
    *,
    admin_name: str | None,
    author_name: str,
    post_title: str,
    post_content: str | None = None,
) -> RenderedEmail:
    """Alert sent to each admin when a user creates a post.

    The post body is previewed up to 200 characters.
    """
    greeting = admin_name or "Admin"
    preview = _preview(post_content)
    subject = f"New Post Created - {_BRAND} Admin"
    html = _wrap(
        subject,
        f"<h2>Hello {escape(greeting)}!</h2>"
        f"<p><strong>{escape(author_name)}</strong> created a new post:</p>"
        f"<h3>&quot;{escape(post_title)}&quot;</h3>"
        + (f"<p>{escape(preview)}</p>" if preview else "")
        + "<p>Log in to review the post.</p>",
    )
    text = (
        f"Hello {greeting}!\n\n"
        f"{author_name} created a new post:\n\n"
        f"\"{post_title}\"\n\n"
        + (f"{preview}\n\n" if preview else "")
        + "Log in to review the post.\n\n"
        f"{_FOOTER_TEXT}"
    )
    return RenderedEmail(subject=subject, html=html, text=text)


def welcome(full_name: str | None) -> RenderedEmail:
    """Greeting sent once an account has been created."""
    greeting = full_name or "there"
    subject = f"Welcome to {_BRAND}!"
    perks = (
        "Stay updated with notices and announcements",
        "Connect with your classmates and batch mates",
        "Access and share academic resources",
        "Receive important notifications",
    )
    html = _wrap(
        subject,
        f"<h2>Hello {escape(greeting)}!</h2>"
        f"<p>Welcome to {_BRAND} - your academic community platform!</p>"
        "<p>You can now:</p>"
        "<ul>" + "".join(f"<li>{perk}</li>" for perk in perks) + "</ul>"
        "<p>Get started by logging into your account and exploring the "
        "platform.</p>",
    )
    text = (
        f"Hello {greeting}!\n\n"
        f"Welcome to {_BRAND} - your academic community platform!\n\n"
        "You can now:\n"
        + "".join(f"- {perk}\n" for perk in perks)
        + "\nGet started by logging into your account and exploring the "
        "platform.\n\n"
        f"{_FOOTER_TEXT}"
    )
    return RenderedEmail(subject=subject, html=html, text=text)
