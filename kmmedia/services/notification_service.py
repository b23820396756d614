"""
In-app notifications with optional email delivery
"""

from functools import partial
from typing import List, Optional
from flask import current_app
from sqlalchemy import event
from sqlalchemy.orm import Session
from kmmedia.models import db, Notification, User
from kmmedia.services.email_service import EmailService
from kmmedia.utils.exceptions import EmailError, NotFoundError

OUTBOX_KEY = 'email_outbox'


def _queue_email(send, description: str) -> None:
    """Hold an email until the current transaction commits"""
    db.session.info.setdefault(OUTBOX_KEY, []).append((send, description))


@event.listens_for(Session, 'after_commit')
def _deliver_outbox(session):
    # Only plain values are queued; the session cannot load anything here
    for send, description in session.info.pop(OUTBOX_KEY, []):
        try:
            send()
        except EmailError as e:
            current_app.logger.error(f"{description} failed: {str(e)}")


@event.listens_for(Session, 'after_soft_rollback')
def _discard_outbox(session, previous_transaction):
    session.info.pop(OUTBOX_KEY, None)


class NotificationService:
    """Notification service class"""

    @staticmethod
    def notify(user: User, category: str, title: str, message: str, send_email: bool = True) -> Notification:
        """
        Queue a notification for the user. The row joins the caller's
        transaction; the email, when mail is enabled, goes out once that
        transaction commits and is dropped if it rolls back.
        """
        notification = Notification(user_id=user.id, category=category, title=title, message=message)
        db.session.add(notification)

        if send_email and EmailService.is_enabled():
            _queue_email(
                partial(EmailService.send_notification_email, user.email, user.full_name, title, message),
                f"Notification email to user {user.id}"
            )
        return notification

    @staticmethod
    def send_payment_receipt(user: User, payment) -> None:
        if not EmailService.is_enabled():
            return
        remaining = None
        if payment.remaining_balance is not None:
            remaining = f"{payment.remaining_balance:,.2f}"
        _queue_email(
            partial(
                EmailService.send_payment_receipt,
                user.email,
                user.full_name,
                payment.course.name if payment.course else '',
                payment.payment_type,
                f"{payment.amount:,.2f}",
                payment.currency,
                payment.reference,
                remaining
            ),
            f"Receipt email for {payment.reference}"
        )

    @staticmethod
    def list_for_user(user: User, unread_only: bool = False, limit: Optional[int] = None) -> List[Notification]:
        query = Notification.query.filter_by(user_id=user.id)
        if unread_only:
            query = query.filter_by(is_read=False)
        query = query.order_by(Notification.created_at.desc(), Notification.id.desc())
        if limit:
            query = query.limit(limit)
        return query.all()

    @staticmethod
    def mark_read(user: User, notification_id: int) -> Notification:
        notification = Notification.query.filter_by(id=notification_id, user_id=user.id).first()
        if not notification:
            raise NotFoundError("Notification not found")
        notification.is_read = True
        db.session.commit()
        return notification

    @staticmethod
    def mark_all_read(user: User) -> int:
        count = (Notification.query
                 .filter_by(user_id=user.id, is_read=False)
                 .update({'is_read': True}))
        db.session.commit()
        return count
