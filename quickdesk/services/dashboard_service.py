# quickdesk/services/dashboard_service.py
"""Dashboard aggregations for requesters and staff"""
from datetime import timedelta
from typing import Any, Dict, List

from sqlalchemy import func
from sqlalchemy.orm import Session

from quickdesk.core.logger import get_logger
from quickdesk.models import Category, Ticket, TicketPriority, TicketStatus, User, UserRole, STAFF_ROLES
from quickdesk.services.aggregates import count_by, count_where, daily_counts, duration_summary, percent_change, percentage
from quickdesk.services.serializers import ticket_summary, user_summary
from quickdesk.utils.datetime_utils import days_ago, get_utc_now

logger = get_logger(__name__)

RECENT_TICKETS = 5
TREND_DAYS = 7
PERFORMANCE_WINDOW_DAYS = 30


class DashboardService:
    """Service for dashboard statistics, analytics and performance metrics"""

    @staticmethod
    def _recent(db: Session, *criteria) -> List[Dict[str, Any]]:
        tickets = (
            db.query(Ticket)
            .filter(*criteria)
            .order_by(Ticket.created_at.desc())
            .limit(RECENT_TICKETS)
            .all()
        )
        return [ticket_summary(t) for t in tickets]

    @staticmethod
    def get_stats(db: Session, user: User) -> Dict[str, Any]:
        """
        Staff get a system-wide overview; requesters get their own.

        Returns:
            Dict with overview, distribution, recent_activity (and trends for staff)
        """
        if user.is_staff:
            return DashboardService._staff_stats(db)

        mine = Ticket.created_by_id == user.id
        return {
            "overview": {
                "my_tickets": count_where(db, Ticket.id, mine),
                "my_open_tickets": count_where(db, Ticket.id, mine, Ticket.status == TicketStatus.OPEN),
                "my_in_progress_tickets": count_where(db, Ticket.id, mine, Ticket.status == TicketStatus.IN_PROGRESS),
                "my_resolved_tickets": count_where(db, Ticket.id, mine, Ticket.status == TicketStatus.RESOLVED),
            },
            "distribution": {
                "by_status": count_by(db, Ticket.status, mine),
            },
            "recent_activity": DashboardService._recent(db, mine),
        }

    @staticmethod
    def _staff_stats(db: Session) -> Dict[str, Any]:
        trend_rows = db.query(Ticket.created_at).filter(Ticket.created_at >= days_ago(TREND_DAYS)).all()
        return {
            "overview": {
                "total_tickets": count_where(db, Ticket.id),
                "open_tickets": count_where(db, Ticket.id, Ticket.status == TicketStatus.OPEN),
                "in_progress_tickets": count_where(db, Ticket.id, Ticket.status == TicketStatus.IN_PROGRESS),
                "resolved_tickets": count_where(db, Ticket.id, Ticket.status == TicketStatus.RESOLVED),
                "total_users": count_where(db, User.id, User.role == UserRole.USER),
                "total_categories": count_where(db, Category.id),
                "urgent_tickets": count_where(
                    db, Ticket.id,
                    Ticket.priority == TicketPriority.URGENT,
                    Ticket.status != TicketStatus.RESOLVED
                ),
            },
            "distribution": {
                "by_status": count_by(db, Ticket.status),
                "by_priority": count_by(db, Ticket.priority),
            },
            "recent_activity": DashboardService._recent(db),
            "trends": daily_counts(row[0] for row in trend_rows),
        }

    @staticmethod
    def get_analytics(db: Session, period: int = 30) -> Dict[str, Any]:
        """Daily created/resolved counts, resolution time and per-category volume over `period` days."""
        start = days_ago(period)

        created = db.query(Ticket.created_at).filter(Ticket.created_at >= start).all()
        resolved = (
            db.query(Ticket.created_at, Ticket.resolved_at)
            .filter(Ticket.status == TicketStatus.RESOLVED, Ticket.resolved_at >= start)
            .all()
        )
        by_category = (
            db.query(Category.id, Category.name, Category.color, func.count(Ticket.id))
            .join(Ticket, Ticket.category_id == Category.id)
            .filter(Ticket.created_at >= start)
            .group_by(Category.id, Category.name, Category.color)
            .order_by(func.count(Ticket.id).desc())
            .all()
        )

        resolution = duration_summary(resolved)
        return {
            "period": f"{period} days",
            "tickets_created": daily_counts(row[0] for row in created),
            "tickets_resolved": daily_counts(row[1] for row in resolved),
            "avg_resolution_time": {
                "avg_hours": resolution["avg_hours"],
                "count": resolution["count"],
            },
            "tickets_by_category": [
                {"category_id": str(cid), "category_name": name, "color": color, "count": count}
                for cid, name, color, count in by_category
            ],
        }

    @staticmethod
    def _period_totals(db: Session, *criteria) -> Dict[str, int]:
        return {
            "total": count_where(db, Ticket.id, *criteria),
            "resolved": count_where(db, Ticket.id, *criteria, Ticket.status == TicketStatus.RESOLVED),
            "urgent": count_where(db, Ticket.id, *criteria, Ticket.priority == TicketPriority.URGENT),
        }

    @staticmethod
    def get_performance(db: Session) -> Dict[str, Any]:
        """Last 30 days against the 30 before, plus per-agent workload."""
        now = get_utc_now()
        window = timedelta(days=PERFORMANCE_WINDOW_DAYS)
        current = DashboardService._period_totals(db, Ticket.created_at >= now - window)
        previous = DashboardService._period_totals(
            db, Ticket.created_at >= now - 2 * window, Ticket.created_at < now - window
        )

        def metric(key: str) -> Dict[str, Any]:
            return {
                "current": current[key],
                "previous": previous[key],
                "change": percent_change(current[key], previous[key]),
            }

        assigned = dict(
            db.query(Ticket.assigned_to_id, func.count(Ticket.id))
            .filter(Ticket.assigned_to_id.isnot(None))
            .group_by(Ticket.assigned_to_id)
            .all()
        )
        resolved = dict(
            db.query(Ticket.assigned_to_id, func.count(Ticket.id))
            .filter(
                Ticket.assigned_to_id.isnot(None),
                Ticket.status.in_((TicketStatus.RESOLVED, TicketStatus.CLOSED))
            )
            .group_by(Ticket.assigned_to_id)
            .all()
        )
        agents = (
            db.query(User)
            .filter(User.role.in_(STAFF_ROLES), User.is_active.is_(True))
            .order_by(User.name.asc())
            .all()
        )
        agent_performance = [
            {
                "agent": user_summary(agent),
                "assigned": assigned.get(agent.id, 0),
                "resolved": resolved.get(agent.id, 0),
                "resolution_rate": percentage(resolved.get(agent.id, 0), assigned.get(agent.id, 0), 1),
            }
            for agent in agents
        ]

        return {
            "metrics": {
                "total_tickets": metric("total"),
                "resolved_tickets": metric("resolved"),
                "urgent_tickets": metric("urgent"),
                "resolution_rate": {
                    "current": percentage(current["resolved"], current["total"], 1),
                    "previous": percentage(previous["resolved"], previous["total"], 1),
                },
            },
            "agent_performance": agent_performance,
        }
