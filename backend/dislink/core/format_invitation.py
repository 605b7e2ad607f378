"""Invitation Email Formatting: subject and body for the invite email.

Invariants:
    - PURE: string building only
    - The registration link carries the invitation id, never the raw email
    - The inviter is the disclosure-filtered view: the email reveals nothing
      the public profile page would not
"""

from dataclasses import dataclass

from dislink.core.disclosure import PublicViewModel


@dataclass(frozen=True)
class InvitationEmail:
    to: str
    subject: str
    body: str
    registration_url: str


def registration_url(base_url: str, invitation_id: str) -> str:
    return f"{base_url.rstrip('/')}/app/register?invitation={invitation_id}"


def format_invitation_email(
    *,
    to: str,
    inviter: PublicViewModel,
    invitation_id: str,
    base_url: str,
    validity_days: int,
    message: str | None = None,
) -> InvitationEmail:
    """Render the email sent to a visitor who asked to connect."""
    name = inviter.name or "A Dislink member"
    url = registration_url(base_url, invitation_id)
    lines = [
        "Hi there!",
        "",
        f"You met {name}{_headline(inviter)} and asked to stay in touch on Dislink.",
    ]
    if message:
        lines += ["", "Your note:", message]
    lines += [
        "",
        f"Create your Dislink account to connect with {name}:",
        url,
        "",
        "What happens next:",
        "1. Create your profile in under 2 minutes",
        f"2. Your connection with {name} is established automatically",
        "3. Keep the context of where you met for your follow-ups",
        "",
        f"This invitation expires in {validity_days} days.",
        "",
        "---",
        "Dislink - Building Meaningful Connections",
        base_url.rstrip("/"),
    ]
    return InvitationEmail(
        to=to,
        subject=f"{name} wants to connect with you on Dislink",
        body="\n".join(lines),
        registration_url=url,
    )


def _headline(inviter: PublicViewModel) -> str:
    """' (Engineer at Acme)' style suffix; empty when neither is known."""
    if inviter.job_title and inviter.company:
        return f" ({inviter.job_title} at {inviter.company})"
    if inviter.job_title or inviter.company:
        return f" ({inviter.job_title or inviter.company})"
    return ""
