"""
Student and admin dashboards
"""

from decimal import Decimal
from typing import Any, Dict
from kmmedia.models import (
    db, Assignment, AssignmentSubmission, Course, Enquiry, InstallmentPlan, Payment,
    Registration, User
)
from kmmedia.models.registration import REGISTRATION_STATUSES
from kmmedia.services.access_service import AccessService
from kmmedia.services.installment_service import InstallmentService, PAYABLE_STATUSES
from kmmedia.services.material_service import MaterialService
from kmmedia.services.notification_service import NotificationService
from kmmedia.services.payment_service import PaymentService
from kmmedia.services.registration_service import RegistrationService
from kmmedia.utils.helpers import to_money, utcnow

RECENT_LIMIT = 10


class DashboardService:
    """Dashboard service class"""

    @staticmethod
    def payment_summary(user: User) -> Dict[str, Any]:
        """Totals paid and owed by a student, with the next installment due"""
        total_paid = db.session.query(db.func.coalesce(db.func.sum(Payment.amount), 0)).filter(
            Payment.user_id == user.id, Payment.status == 'success'
        ).scalar()

        plans = InstallmentPlan.query.filter_by(user_id=user.id).all()
        upcoming = sorted(
            (plan for plan in plans if plan.status in PAYABLE_STATUSES and plan.next_due_date),
            key=lambda plan: plan.next_due_date
        )
        next_due = None
        if upcoming:
            plan = upcoming[0]
            next_due = {
                'plan_id': plan.id,
                'course_id': plan.course_id,
                'course_name': plan.course.name if plan.course else None,
                'due_date': plan.next_due_date.isoformat(),
                'amount': to_money(InstallmentService.next_installment_amount(plan)),
                'installment_number': min(plan.paid_installments + 1, plan.total_installments),
                'overdue': plan.next_due_date < utcnow().date()
            }

        return {
            'total_paid': to_money(Decimal(str(total_paid or 0))),
            'outstanding_balance': to_money(InstallmentService.outstanding_balance(user.id)),
            'installment_plans': [plan.to_dict() for plan in plans],
            'next_due': next_due
        }

    @staticmethod
    def student_dashboard(user: User) -> Dict[str, Any]:
        courses = AccessService.accessible_courses(user)
        course_ids = [course.id for course in courses]

        enrolled = []
        for course in courses:
            data = course.to_dict()
            data['progress'] = MaterialService.course_progress(user, course.id)
            enrolled.append(data)

        upcoming_assignments = []
        if course_ids:
            submitted = db.select(AssignmentSubmission.assignment_id).where(
                AssignmentSubmission.student_id == user.id
            )
            assignments = (Assignment.query
                           .filter(Assignment.course_id.in_(course_ids),
                                   Assignment.is_active.is_(True),
                                   Assignment.due_date.isnot(None),
                                   Assignment.due_date >= utcnow(),
                                   Assignment.id.notin_(submitted))
                           .order_by(Assignment.due_date.asc())
                           .limit(RECENT_LIMIT)
                           .all())
            for assignment in assignments:
                data = assignment.to_dict()
                data['course_name'] = assignment.course.name
                upcoming_assignments.append(data)

        unread = NotificationService.list_for_user(user, unread_only=True)
        return {
            'profile': user.to_dict(),
            'courses': enrolled,
            'registrations': [r.to_dict() for r in RegistrationService.list_for_user(user)],
            'payments': DashboardService.payment_summary(user),
            'upcoming_assignments': upcoming_assignments,
            'unread_notifications': len(unread),
            'notifications': [n.to_dict() for n in unread[:RECENT_LIMIT]]
        }

    @staticmethod
    def admin_dashboard() -> Dict[str, Any]:
        status_rows = (db.session.query(Registration.status, db.func.count(Registration.id))
                       .group_by(Registration.status)
                       .all())
        registrations_by_status = {status: 0 for status in REGISTRATION_STATUSES}
        for status, count in status_rows:
            registrations_by_status[status] = count

        recent_payments = (Payment.query
                           .order_by(Payment.created_at.desc(), Payment.id.desc())
                           .limit(RECENT_LIMIT)
                           .all())
        recent_registrations = (Registration.query
                                .order_by(Registration.created_at.desc(), Registration.id.desc())
                                .limit(RECENT_LIMIT)
                                .all())

        return {
            'counts': {
                'students': User.query.filter_by(role='student').count(),
                'trainers': User.query.filter_by(role='trainer').count(),
                'courses': Course.query.count(),
                'active_courses': Course.query.filter(Course.is_active.is_(True)).count(),
                'enquiries': Enquiry.query.count()
            },
            'registrations_by_status': registrations_by_status,
            'revenue': {
                'total': to_money(PaymentService.total_revenue()),
                'by_type': PaymentService.revenue_by_type()
            },
            'outstanding_balance': to_money(InstallmentService.outstanding_balance()),
            'overdue_plans': len(InstallmentService.overdue_plans()),
            'recent_payments': [p.to_dict() for p in recent_payments],
            'recent_registrations': [r.to_dict() for r in recent_registrations]
        }
