from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.logger import logger
from app.db.models import Notification

class NotificationService:
    """
    Records notifications per user identifier. Delivering them (push, SMS) is
    the job of whatever drains the notifications table.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def send_to_user(self, user_id: str, title: str, body: str, payload: Optional[dict] = None) -> Notification:
        notification = Notification(user_id=user_id, title=title, body=body, payload=payload)
        self.session.add(notification)
        await self.session.commit()
        logger.info(f"Notification queued for user {user_id}: {title}")
        return notification
