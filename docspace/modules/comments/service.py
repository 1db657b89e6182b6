"""
Comment service.

Every operation resolves the caller's membership in the comment's workspace
before touching the comment.
"""
from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from structlog import get_logger

from docspace.core.exceptions import AuthorizationException, ConflictException, ResourceNotFoundException
from docspace.core.models import utc_now
from docspace.core.rbac import MemberContext, require_member
from docspace.modules.auth.models import User
from docspace.modules.comments.models import Comment, CommentTargetType
from docspace.modules.comments.schemas import CommentCreate, CommentResponse, CommentUpdate
from docspace.modules.workspace.models import WorkspaceRole

logger = get_logger(__name__)


class CommentService:
    """Service class for comment operations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _load(self, comment_id: UUID) -> Optional[Comment]:
        result = await self.db.execute(
            select(Comment)
            .where(Comment.id == comment_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_comment_for(self, comment_id: UUID, user_id: UUID) -> Tuple[Comment, MemberContext]:
        """
        Load a comment and the caller's membership in its workspace.

        Raises:
            ResourceNotFoundException: If the comment does not exist
            AuthorizationException: If the caller is not a member of its workspace
        """
        comment = await self._load(comment_id)
        if comment is None:
            raise ResourceNotFoundException("Comment", comment_id)
        member = await require_member(self.db, user_id, comment.workspace_id)
        return comment, member

    async def to_response(self, comment: Comment) -> CommentResponse:
        author = await self.db.get(User, comment.user_id)
        item = CommentResponse.model_validate(comment)
        item.author_name = author.display_name if author else None
        return item

    async def create_comment(self, data: CommentCreate, author_id: UUID) -> Comment:
        """
        Post a comment. The caller must already be a member of ``data.workspace_id``.
        """
        comment = Comment(
            workspace_id=data.workspace_id,
            target_type=data.target_type,
            target_id=data.target_id,
            user_id=author_id,
            content=data.content,
            mentions=[str(user_id) for user_id in data.mentions],
            resolved=False,
        )
        self.db.add(comment)
        await self.db.commit()
        await self.db.refresh(comment)

        logger.info(
            "Comment created",
            comment_id=str(comment.id),
            workspace_id=str(comment.workspace_id),
            target_type=comment.target_type.value,
        )
        return comment

    async def list_comments(
        self,
        workspace_id: UUID,
        target_type: CommentTargetType,
        target_id: str,
        include_resolved: bool = True,
        limit: int = 50,
        offset: int = 0,
    ) -> Tuple[List[CommentResponse], int]:
        """
        Comments on one resource, oldest first.

        Returns:
            Tuple of (comments, total matching)
        """
        conditions = [
            Comment.workspace_id == workspace_id,
            Comment.target_type == target_type,
            Comment.target_id == target_id,
        ]
        if not include_resolved:
            conditions.append(Comment.resolved.is_(False))

        total = await self.db.scalar(select(func.count(Comment.id)).where(*conditions))

        result = await self.db.execute(
            select(Comment, User.full_name, User.email)
            .join(User, User.id == Comment.user_id)
            .where(*conditions)
            .order_by(Comment.created_at, Comment.id)
            .limit(limit)
            .offset(offset)
        )

        comments = []
        for comment, full_name, email in result.all():
            item = CommentResponse.model_validate(comment)
            item.author_name = full_name or email
            comments.append(item)
        return comments, total or 0

    async def update_comment(self, comment_id: UUID, user_id: UUID, data: CommentUpdate) -> Comment:
        """
        Edit a comment's content or mentions.

        Raises:
            AuthorizationException: If the caller is not the author
        """
        comment, _ = await self.get_comment_for(comment_id, user_id)
        if comment.user_id != user_id:
            raise AuthorizationException("Only the author can edit this comment")

        if data.content is not None:
            comment.content = data.content
        if data.mentions is not None:
            comment.mentions = [str(mentioned) for mentioned in data.mentions]

        await self.db.commit()
        await self.db.refresh(comment)

        logger.info("Comment updated", comment_id=str(comment_id))
        return comment

    async def resolve_comment(self, comment_id: UUID, user_id: UUID) -> Comment:
        """
        Mark a comment resolved.

        Raises:
            ConflictException: If it is already resolved
        """
        comment, _ = await self.get_comment_for(comment_id, user_id)

        result = await self.db.execute(
            update(Comment)
            .where(Comment.id == comment.id, Comment.resolved.is_(False))
            .values(resolved=True, resolved_by=user_id, resolved_at=utc_now(), updated_at=utc_now())
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            await self.db.rollback()
            raise ConflictException("Comment is already resolved")
        await self.db.commit()

        logger.info("Comment resolved", comment_id=str(comment_id), resolved_by=str(user_id))
        return await self._load(comment_id)

    async def delete_comment(self, comment_id: UUID, user_id: UUID) -> Comment:
        """
        Delete a comment.

        Raises:
            AuthorizationException: If the caller is neither the author nor an admin
        """
        comment, member = await self.get_comment_for(comment_id, user_id)
        if comment.user_id != user_id and not member.at_least(WorkspaceRole.ADMIN):
            raise AuthorizationException("Only the author or a workspace admin can delete this comment")

        await self.db.delete(comment)
        await self.db.commit()

        logger.info("Comment deleted", comment_id=str(comment_id), deleted_by=str(user_id))
        return comment
