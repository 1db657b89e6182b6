"""
Workspace service.

Business logic for workspaces and their membership.
"""
from typing import List, Optional
from uuid import UUID

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased
from structlog import get_logger

from docspace.core.exceptions import (
    AuthorizationException,
    ConflictException,
    ResourceNotFoundException,
    ValidationException,
)
from docspace.core.rbac import MemberContext
from docspace.modules.auth.models import User
from docspace.modules.workspace.models import Workspace, WorkspaceMember, WorkspaceRole
from docspace.modules.workspace.schemas import (
    MemberResponse,
    WorkspaceCreate,
    WorkspaceResponse,
    WorkspaceSummary,
    WorkspaceUpdate,
)

logger = get_logger(__name__)


class WorkspaceService:
    """Service class for workspace operations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_workspace_by_id(self, workspace_id: UUID) -> Optional[Workspace]:
        """
        Get workspace by ID.

        Args:
            workspace_id: Workspace ID

        Returns:
            Workspace if found, None otherwise
        """
        result = await self.db.execute(select(Workspace).where(Workspace.id == workspace_id))
        return result.scalar_one_or_none()

    async def get_workspace(self, workspace_id: UUID) -> Workspace:
        """Like ``get_workspace_by_id`` but raises when missing."""
        workspace = await self.get_workspace_by_id(workspace_id)
        if workspace is None:
            raise ResourceNotFoundException("Workspace", workspace_id)
        return workspace

    async def _name_taken(self, user_id: UUID, name: str, exclude_id: Optional[UUID] = None) -> bool:
        """True if ``user_id`` already belongs to a workspace called ``name`` (case-insensitive)."""
        query = (
            select(Workspace.id)
            .join(WorkspaceMember, WorkspaceMember.workspace_id == Workspace.id)
            .where(
                WorkspaceMember.user_id == user_id,
                func.lower(Workspace.name) == name.lower(),
            )
        )
        if exclude_id is not None:
            query = query.where(Workspace.id != exclude_id)
        result = await self.db.execute(query.limit(1))
        return result.scalar_one_or_none() is not None

    async def create_workspace(self, workspace_data: WorkspaceCreate, creator: User) -> Workspace:
        """
        Create a new workspace with the creator as its owner.

        Args:
            workspace_data: Workspace creation data
            creator: User creating the workspace

        Returns:
            Created workspace

        Raises:
            ConflictException: If the creator already has a workspace with this name
        """
        if await self._name_taken(creator.id, workspace_data.name):
            raise ConflictException(f"You already have a workspace named '{workspace_data.name}'")

        workspace = Workspace(
            name=workspace_data.name,
            description=workspace_data.description,
            icon=workspace_data.icon,
            color=workspace_data.color,
            created_by=creator.id,
        )
        self.db.add(workspace)
        await self.db.flush()

        self.db.add(WorkspaceMember(
            workspace_id=workspace.id,
            user_id=creator.id,
            role=WorkspaceRole.OWNER,
        ))

        await self.db.commit()
        await self.db.refresh(workspace)

        logger.info("Workspace created", workspace_id=str(workspace.id), owner_id=str(creator.id))
        return workspace

    async def list_user_workspaces(self, user_id: UUID) -> List[WorkspaceSummary]:
        """
        Get every workspace the user belongs to with their role and the member count.

        Args:
            user_id: User to list workspaces for

        Returns:
            Workspaces ordered by creation time
        """
        counted = aliased(WorkspaceMember)
        member_count = (
            select(func.count(counted.id))
            .where(counted.workspace_id == Workspace.id)
            .correlate(Workspace)
            .scalar_subquery()
        )

        result = await self.db.execute(
            select(Workspace, WorkspaceMember.role, member_count)
            .join(WorkspaceMember, WorkspaceMember.workspace_id == Workspace.id)
            .where(WorkspaceMember.user_id == user_id)
            .order_by(Workspace.created_at, Workspace.id)
        )

        return [
            WorkspaceSummary(
                **WorkspaceResponse.model_validate(workspace).model_dump(),
                current_user_role=role,
                member_count=count or 0,
            )
            for workspace, role, count in result.all()
        ]

    async def update_workspace(
        self,
        workspace_id: UUID,
        workspace_data: WorkspaceUpdate,
        actor_id: UUID,
    ) -> Workspace:
        """
        Update workspace details.

        Args:
            workspace_id: Workspace to update
            workspace_data: Fields to change
            actor_id: User making the change

        Returns:
            Updated workspace

        Raises:
            ConflictException: If the new name clashes with another of the actor's workspaces
        """
        workspace = await self.get_workspace(workspace_id)
        update_data = workspace_data.model_dump(exclude_unset=True)

        if update_data.get("name") is None:
            update_data.pop("name", None)
        elif await self._name_taken(actor_id, update_data["name"], exclude_id=workspace_id):
            raise ConflictException(f"You already have a workspace named '{update_data['name']}'")

        for field, value in update_data.items():
            setattr(workspace, field, value)

        await self.db.commit()
        await self.db.refresh(workspace)

        logger.info("Workspace updated", workspace_id=str(workspace_id), fields=sorted(update_data))
        return workspace

    async def delete_workspace(self, workspace_id: UUID) -> None:
        """
        Delete a workspace.

        Members, invitations, webhooks, deliveries, comments and activity go with it.
        """
        await self.db.execute(delete(Workspace).where(Workspace.id == workspace_id))
        await self.db.commit()

        logger.info("Workspace deleted", workspace_id=str(workspace_id))

    async def get_member(self, workspace_id: UUID, user_id: UUID) -> Optional[WorkspaceMember]:
        """
        Get a membership row.

        Returns:
            The membership if the user belongs to the workspace, None otherwise
        """
        result = await self.db.execute(
            select(WorkspaceMember).where(
                WorkspaceMember.workspace_id == workspace_id,
                WorkspaceMember.user_id == user_id,
            )
        )
        return result.scalar_one_or_none()

    async def is_member_email(self, workspace_id: UUID, email: str) -> bool:
        """True if a user with ``email`` already belongs to the workspace."""
        result = await self.db.execute(
            select(WorkspaceMember.id)
            .join(User, User.id == WorkspaceMember.user_id)
            .where(WorkspaceMember.workspace_id == workspace_id, User.email == email.lower())
        )
        return result.first() is not None

    async def count_members(self, workspace_id: UUID) -> int:
        return await self.db.scalar(
            select(func.count(WorkspaceMember.id)).where(WorkspaceMember.workspace_id == workspace_id)
        ) or 0

    async def list_members(self, workspace_id: UUID, user_id: Optional[UUID] = None) -> List[MemberResponse]:
        """
        List workspace members with user details, in join order.

        Args:
            workspace_id: Workspace to list
            user_id: Restrict the result to this user
        """
        query = (
            select(WorkspaceMember, User.email, User.full_name)
            .join(User, User.id == WorkspaceMember.user_id)
            .where(WorkspaceMember.workspace_id == workspace_id)
            .order_by(WorkspaceMember.joined_at, WorkspaceMember.id)
        )
        if user_id is not None:
            query = query.where(WorkspaceMember.user_id == user_id)
        result = await self.db.execute(query)
        return [
            MemberResponse(
                user_id=member.user_id,
                email=email,
                full_name=full_name,
                role=member.role,
                joined_at=member.joined_at,
            )
            for member, email, full_name in result.all()
        ]

    async def add_member(self, workspace_id: UUID, user_id: UUID, role: WorkspaceRole) -> WorkspaceMember:
        """
        Insert a membership without committing.

        Raises:
            ConflictException: If the user is already a member
        """
        member = WorkspaceMember(workspace_id=workspace_id, user_id=user_id, role=role)
        self.db.add(member)
        try:
            await self.db.flush()
        except IntegrityError:
            await self.db.rollback()
            raise ConflictException("User is already a member of this workspace")
        return member

    async def remove_member(self, actor: MemberContext, target_user_id: UUID) -> WorkspaceMember:
        """
        Remove a member from the workspace.

        Args:
            actor: Membership of the user performing the removal (admin or above)
            target_user_id: User to remove

        Returns:
            The removed membership

        Raises:
            ValidationException: If the actor targets themselves
            ResourceNotFoundException: If the target is not a member
            AuthorizationException: If a non-owner targets an owner
        """
        if target_user_id == actor.user_id:
            raise ValidationException("You cannot remove yourself from the workspace")

        member = await self.get_member(actor.workspace_id, target_user_id)
        if member is None:
            raise ResourceNotFoundException("Member", target_user_id)

        if member.role == WorkspaceRole.OWNER and not actor.at_least(WorkspaceRole.OWNER):
            raise AuthorizationException("Only owners can remove another owner")

        await self.db.delete(member)
        await self.db.commit()

        logger.info(
            "Member removed from workspace",
            workspace_id=str(actor.workspace_id),
            user_id=str(target_user_id),
            removed_by=str(actor.user_id),
        )
        return member

    async def update_member_role(
        self,
        actor: MemberContext,
        target_user_id: UUID,
        role: WorkspaceRole,
    ) -> WorkspaceMember:
        """
        Change a member's role (owner only).

        Demoting an owner only succeeds while another owner remains; the check
        and the write are a single conditional UPDATE.

        Raises:
            ResourceNotFoundException: If the target is not a member
            ConflictException: If the change would leave the workspace without an owner
        """
        member = await self.get_member(actor.workspace_id, target_user_id)
        if member is None:
            raise ResourceNotFoundException("Member", target_user_id)

        if member.role == role:
            return member

        stmt = update(WorkspaceMember).where(WorkspaceMember.id == member.id)
        if member.role == WorkspaceRole.OWNER:
            owners = aliased(WorkspaceMember)
            owner_count = (
                select(func.count(owners.id))
                .where(owners.workspace_id == actor.workspace_id, owners.role == WorkspaceRole.OWNER)
                .scalar_subquery()
            )
            stmt = stmt.where(owner_count > 1)

        result = await self.db.execute(
            stmt.values(role=role).execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            await self.db.rollback()
            raise ConflictException("A workspace must keep at least one owner")

        await self.db.commit()
        await self.db.refresh(member)

        logger.info(
            "Member role changed",
            workspace_id=str(actor.workspace_id),
            user_id=str(target_user_id),
            role=role.value,
            changed_by=str(actor.user_id),
        )
        return member
