"""Notification producers for application events.

Thin builders over NotificationDispatcher.dispatch(): each one knows the
title, message and related ids for its event. Referenced text is cut to
50 characters plus "...".

Producers only persist. Once the caller has committed, it hands the
returned results to deliver() for the realtime and email fan-out.
"""

import logging
from collections.abc import Iterable

from sqlalchemy.ext.asyncio import AsyncSession

from app.core import email_templates
from app.models.notification import NotificationKind
from app.models.user import User
from app.repositories.base import UserDirectory
from app.repositories.user_repository import UserRepository
from app.services.notification_dispatcher import (
    DispatchResult,
    NotificationContent,
    NotificationDispatcher,
)

logger = logging.getLogger(__name__)

SNIPPET_LENGTH = 50


def truncate(text: str | None, max_length: int = SNIPPET_LENGTH) -> str:
    """Cut text to max_length characters, appending "..." when cut."""
    if not text:
        return ""
    if len(text) <= max_length:
        return text
    return text[:max_length] + "..."


def _display_name(user: User) -> str:
    return user.full_name or user.email


class NotificationEvents:
    """Builds and dispatches the notification for each application event.

    Args:
        dispatcher: Persists and fans out.
        users: Admin lookup for new-post broadcasts.
    """

    def __init__(
        self,
        dispatcher: NotificationDispatcher,
        *,
        users: UserDirectory = UserRepository,
    ) -> None:
        self._dispatcher = dispatcher
        self._users = users

    async def post_commented(
        self,
        db: AsyncSession,
        *,
        post_author: User,
        commenter: User,
        post_id: int,
        post_title: str,
        comment_id: int,
    ) -> DispatchResult:
        """Tell a post's author someone commented on it."""
        content = NotificationContent(
            title="New Comment on Your Post",
            message=(
                f"{_display_name(commenter)} commented on your post: "
                f"\"{truncate(post_title)}\""
            ),
            related_post_id=post_id,
            related_comment_id=comment_id,
        )
        return await self._dispatcher.dispatch(
            db, NotificationKind.POST_COMMENT, post_author, commenter, content
        )

    async def comment_replied(
        self,
        db: AsyncSession,
        *,
        comment_author: User,
        replier: User,
        post_id: int,
        comment_id: int,
        comment_text: str,
        reply_id: int,
    ) -> DispatchResult:
        """Tell a comment's author someone replied to it."""
        content = NotificationContent(
            title="New Reply to Your Comment",
            message=(
                f"{_display_name(replier)} replied to your comment: "
                f"\"{truncate(comment_text)}\""
            ),
            related_post_id=post_id,
            related_comment_id=comment_id,
            related_reply_id=reply_id,
        )
        return await self._dispatcher.dispatch(
            db, NotificationKind.COMMENT_REPLY, comment_author, replier, content
        )

    async def post_created(
        self,
        db: AsyncSession,
        *,
        author: User,
        post_id: int,
        post_title: str,
        post_content: str | None = None,
    ) -> list[DispatchResult]:
        """Alert every admin except the author about a new post.

        Each admin gets a persisted notification and, on delivery, a
        realtime push and an email previewing the post. Failed emails do
        not affect the other admins or the caller.

        Returns:
            One DispatchResult per admin notified.
        """
        admins = await self._users.list_admins(db)
        author_name = _display_name(author)
        message = f"{author_name} created a new post: \"{truncate(post_title)}\""

        results = []
        for admin in admins:
            if admin.id == author.id:
                continue
            content = NotificationContent(
                title="New Post Created",
                message=message,
                related_post_id=post_id,
                email=email_templates.new_post_admin_alert(
                    admin_name=admin.full_name,
                    author_name=author_name,
                    post_title=post_title,
                    post_content=post_content,
                ),
            )
            results.append(
                await self._dispatcher.dispatch(
                    db, NotificationKind.NEW_POST_ADMIN, admin, author, content
                )
            )
        logger.info("New post %s announced to %d admins", post_id, len(results))
        return results

    async def user_welcomed(self, db: AsyncSession, *, user: User) -> DispatchResult:
        """Greet a newly registered user (system notification, no actor)."""
        content = NotificationContent(
            title="Welcome to CUET Sphere!",
            message=(
                f"Welcome {_display_name(user)}! Thank you for joining CUET Sphere. "
                "Start exploring posts, connect with your classmates, "
                "and share academic resources."
            ),
        )
        return await self._dispatcher.dispatch(
            db, NotificationKind.WELCOME, user, None, content
        )

    async def deliver(self, results: Iterable[DispatchResult]) -> list[DispatchResult]:
        """Fan out committed results in order."""
        return [await self._dispatcher.deliver(result) for result in results]
