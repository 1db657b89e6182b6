"""
Invitation email delivery.

The console backend only logs the message; a transactional mail provider can
replace ``send`` without touching callers.
"""
from typing import Optional

from structlog import get_logger

logger = get_logger(__name__)


class InvitationMailer:
    """Sends the invitation link to the invitee."""

    def __init__(self, from_name: str = "Docspace"):
        self.from_name = from_name

    def render(self, workspace_name: str, inviter_name: Optional[str], role: str, invite_url: str) -> str:
        inviter = inviter_name or "A teammate"
        return (
            f"{inviter} invited you to join the workspace '{workspace_name}' as {role}.\n\n"
            f"Accept the invitation: {invite_url}\n"
        )

    async def send(
        self,
        to_email: str,
        workspace_name: str,
        inviter_name: Optional[str],
        role: str,
        invite_url: str,
    ) -> bool:
        """
        Deliver the invitation email.

        Returns:
            True once the message has been handed off
        """
        body = self.render(workspace_name, inviter_name, role, invite_url)
        logger.info(
            "invitation_email",
            to_email=to_email,
            subject=f"You're invited to {workspace_name}",
            from_name=self.from_name,
            body=body,
        )
        return True


def get_invitation_mailer() -> InvitationMailer:
    """Dependency returning the configured mailer."""
    return InvitationMailer()
