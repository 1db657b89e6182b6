"""
Invitation lifecycle service.

Status transitions are conditional UPDATEs on ``status = 'pending'`` so two
racing requests cannot both move the same invitation. Expiry is detected
lazily on every read; the periodic sweep only tidies up rows nobody reads.
"""
from datetime import timedelta
from typing import List, Optional
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from structlog import get_logger

from docspace.core.config import settings
from docspace.core.exceptions import (
    AuthorizationException,
    ConflictException,
    GoneException,
    ResourceNotFoundException,
)
from docspace.core.metrics import record_invitation_transition
from docspace.core.models import utc_now
from docspace.core.security import generate_url_token
from docspace.modules.auth.models import User
from docspace.modules.invitations.models import InvitationStatus, WorkspaceInvitation
from docspace.modules.invitations.schemas import (
    PendingInvitationResponse,
    PublicInvitationResponse,
)
from docspace.modules.workspace.models import Workspace, WorkspaceMember, WorkspaceRole
from docspace.modules.workspace.service import WorkspaceService

logger = get_logger(__name__)

GONE_MESSAGES = {
    InvitationStatus.EXPIRED: "This invitation has expired",
    InvitationStatus.ACCEPTED: "This invitation has already been accepted",
    InvitationStatus.CANCELLED: "This invitation has been cancelled",
}


def mask_email(email: str) -> str:
    """
    Hide the local part of an address except its first and last character.

    ``alice@example.com`` becomes ``a***e@example.com``.
    """
    local, sep, domain = email.partition("@")
    if not sep:
        return "***"
    if len(local) <= 1:
        return f"{local}***@{domain}"
    return f"{local[0]}***{local[-1]}@{domain}"


def build_invite_url(token: str) -> str:
    return f"{settings.app_url.rstrip('/')}/invite/{token}"


class InvitationService:
    """Service class for the invitation lifecycle."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _expire_due(self, *conditions) -> int:
        """Move matching pending invitations past their expiry to ``expired``."""
        result = await self.db.execute(
            update(WorkspaceInvitation)
            .where(
                *conditions,
                WorkspaceInvitation.status == InvitationStatus.PENDING,
                WorkspaceInvitation.expires_at <= utc_now(),
            )
            .values(status=InvitationStatus.EXPIRED)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount:
            await self.db.commit()
            record_invitation_transition(InvitationStatus.EXPIRED.value, result.rowcount)
        return result.rowcount or 0

    async def _load(self, *conditions) -> Optional[WorkspaceInvitation]:
        result = await self.db.execute(
            select(WorkspaceInvitation)
            .where(*conditions)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def _has_live_pending(self, workspace_id: UUID, email: str) -> bool:
        await self._expire_due(
            WorkspaceInvitation.workspace_id == workspace_id,
            WorkspaceInvitation.email == email,
        )
        result = await self.db.execute(
            select(WorkspaceInvitation.id).where(
                WorkspaceInvitation.workspace_id == workspace_id,
                WorkspaceInvitation.email == email,
                WorkspaceInvitation.status == InvitationStatus.PENDING,
            ).limit(1)
        )
        return result.scalar_one_or_none() is not None

    async def create_invitation(
        self,
        workspace_id: UUID,
        email: str,
        role: WorkspaceRole,
        inviter: User,
    ) -> WorkspaceInvitation:
        """
        Create a pending invitation.

        Args:
            workspace_id: Workspace to invite into
            email: Invitee address
            role: admin or member
            inviter: User sending the invitation

        Returns:
            The new invitation

        Raises:
            ConflictException: If the address already belongs to a member or has a live invitation
        """
        email = email.lower()

        if await WorkspaceService(self.db).is_member_email(workspace_id, email):
            raise ConflictException("This user is already a member of the workspace")

        if await self._has_live_pending(workspace_id, email):
            raise ConflictException("A pending invitation already exists for this email")

        invitation = WorkspaceInvitation(
            workspace_id=workspace_id,
            inviter_id=inviter.id,
            email=email,
            role=role,
            token=generate_url_token(32),
            status=InvitationStatus.PENDING,
            expires_at=utc_now() + timedelta(days=settings.invitation_expire_days),
        )
        self.db.add(invitation)
        await self.db.commit()
        await self.db.refresh(invitation)

        record_invitation_transition(InvitationStatus.PENDING.value)
        logger.info(
            "Invitation created",
            invitation_id=str(invitation.id),
            workspace_id=str(workspace_id),
            role=role.value,
            invited_by=str(inviter.id),
        )
        return invitation

    async def resolve_invitation(self, token: str) -> Optional[WorkspaceInvitation]:
        """
        Look up an invitation by token, expiring it first if its time has passed.

        Returns:
            The invitation with its current status, or None for an unknown token
        """
        await self._expire_due(WorkspaceInvitation.token == token)
        return await self._load(WorkspaceInvitation.token == token)

    async def get_invitation_by_token(self, token: str) -> PublicInvitationResponse:
        """
        Public view of a usable invitation, with the invitee address masked.

        Raises:
            ResourceNotFoundException: If the token is unknown
            GoneException: If the invitation is no longer pending
        """
        invitation = await self.resolve_invitation(token)
        if invitation is None:
            raise ResourceNotFoundException("Invitation", "token")
        if invitation.status.is_terminal:
            raise GoneException(GONE_MESSAGES[invitation.status], details={"status": invitation.status.value})

        result = await self.db.execute(
            select(Workspace.name, User.full_name, User.email)
            .select_from(Workspace)
            .outerjoin(User, User.id == invitation.inviter_id)
            .where(Workspace.id == invitation.workspace_id)
        )
        workspace_name, inviter_full_name, inviter_email = result.one()

        return PublicInvitationResponse(
            workspace_id=invitation.workspace_id,
            workspace_name=workspace_name,
            inviter_name=inviter_full_name or inviter_email,
            email=mask_email(invitation.email),
            role=invitation.role,
            status=invitation.status,
            expires_at=invitation.expires_at,
        )

    async def accept_invitation(self, token: str, user: User) -> WorkspaceMember:
        """
        Join the invitation's workspace as ``user``.

        The status change and the membership insert commit together.

        Raises:
            ResourceNotFoundException: If the token is unknown
            GoneException: If the invitation is no longer pending
            AuthorizationException: If the invitation was sent to another address
            ConflictException: If the user is already a member
        """
        invitation = await self.resolve_invitation(token)
        if invitation is None:
            raise ResourceNotFoundException("Invitation", "token")
        if invitation.status.is_terminal:
            raise GoneException(GONE_MESSAGES[invitation.status], details={"status": invitation.status.value})

        if invitation.email != user.email.lower():
            raise AuthorizationException("This invitation was sent to a different email address")

        workspace_service = WorkspaceService(self.db)
        if await workspace_service.get_member(invitation.workspace_id, user.id):
            raise ConflictException("You are already a member of this workspace")

        now = utc_now()
        result = await self.db.execute(
            update(WorkspaceInvitation)
            .where(
                WorkspaceInvitation.id == invitation.id,
                WorkspaceInvitation.status == InvitationStatus.PENDING,
                WorkspaceInvitation.expires_at > now,
            )
            .values(status=InvitationStatus.ACCEPTED, accepted_at=now, accepted_by=user.id)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            await self.db.rollback()
            raise GoneException("This invitation is no longer valid")

        member = await workspace_service.add_member(invitation.workspace_id, user.id, invitation.role)
        await self.db.commit()

        record_invitation_transition(InvitationStatus.ACCEPTED.value)
        logger.info(
            "Invitation accepted",
            invitation_id=str(invitation.id),
            workspace_id=str(invitation.workspace_id),
            user_id=str(user.id),
        )
        return member

    async def cancel_invitation(self, invitation_id: UUID, workspace_id: UUID) -> WorkspaceInvitation:
        """
        Cancel a pending invitation.

        Raises:
            ResourceNotFoundException: If the invitation does not belong to the workspace
            ConflictException: If the invitation is no longer pending
        """
        await self._expire_due(
            WorkspaceInvitation.id == invitation_id,
            WorkspaceInvitation.workspace_id == workspace_id,
        )
        invitation = await self._load(
            WorkspaceInvitation.id == invitation_id,
            WorkspaceInvitation.workspace_id == workspace_id,
        )
        if invitation is None:
            raise ResourceNotFoundException("Invitation", invitation_id)
        if invitation.status.is_terminal:
            raise ConflictException(
                f"Invitation is already {invitation.status.value}",
                details={"status": invitation.status.value},
            )

        result = await self.db.execute(
            update(WorkspaceInvitation)
            .where(
                WorkspaceInvitation.id == invitation_id,
                WorkspaceInvitation.status == InvitationStatus.PENDING,
            )
            .values(status=InvitationStatus.CANCELLED)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            await self.db.rollback()
            raise ConflictException("Invitation is no longer pending")
        await self.db.commit()

        record_invitation_transition(InvitationStatus.CANCELLED.value)
        logger.info("Invitation cancelled", invitation_id=str(invitation_id), workspace_id=str(workspace_id))
        return await self._load(WorkspaceInvitation.id == invitation_id)

    async def list_pending_invitations(self, workspace_id: UUID) -> List[PendingInvitationResponse]:
        """
        Live pending invitations of a workspace, oldest first.
        """
        result = await self.db.execute(
            select(WorkspaceInvitation, User.full_name, User.email)
            .outerjoin(User, User.id == WorkspaceInvitation.inviter_id)
            .where(
                WorkspaceInvitation.workspace_id == workspace_id,
                WorkspaceInvitation.status == InvitationStatus.PENDING,
                WorkspaceInvitation.expires_at > utc_now(),
            )
            .order_by(WorkspaceInvitation.created_at, WorkspaceInvitation.id)
        )
        return [
            PendingInvitationResponse(
                id=invitation.id,
                email=invitation.email,
                role=invitation.role,
                inviter_name=full_name or email,
                expires_at=invitation.expires_at,
                created_at=invitation.created_at,
            )
            for invitation, full_name, email in result.all()
        ]

    async def expire_stale_invitations(self) -> int:
        """
        Bulk-expire every pending invitation past its expiry.

        Returns:
            Number of invitations expired
        """
        count = await self._expire_due()
        if count:
            logger.info("Expired stale invitations", count=count)
        return count
