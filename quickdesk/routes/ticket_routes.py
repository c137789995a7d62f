# quickdesk/routes/ticket_routes.py
"""Ticket routes: listing, multipart creation, updates, comments and resolution flow"""
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from sqlalchemy.orm import Session

from quickdesk.core.config import Settings
from quickdesk.core.database import get_db
from quickdesk.dependencies import get_app_settings, get_email_service
from quickdesk.middleware.auth_middleware import get_current_user, require_roles
from quickdesk.models import User, UserRole
from quickdesk.schemas.common import api_response
from quickdesk.schemas.ticket import (
    AddCommentRequest,
    AssignTicketRequest,
    CloseTicketRequest,
    RateTicketRequest,
    UpdateTicketRequest,
)
from quickdesk.services.email_service import EmailService
from quickdesk.services.ticket_service import TicketService

router = APIRouter(prefix="/api/tickets", tags=["Tickets"])

staff_only = require_roles(UserRole.ADMIN, UserRole.AGENT)
admin_only = require_roles(UserRole.ADMIN)


@router.get("/stats")
def get_ticket_stats(
    only_assigned: bool = Query(False, alias="onlyAssigned"),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Ticket counts and resolution times, scoped to the caller's role"""
    return api_response(TicketService.get_stats(db, user, only_assigned=only_assigned))


@router.get("")
def get_tickets(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    status: Optional[str] = Query(None),
    priority: Optional[str] = Query(None),
    category: Optional[str] = Query(None),
    assigned_to: Optional[str] = Query(None, alias="assignedTo"),
    my_tickets: bool = Query(False, alias="myTickets"),
    search: Optional[str] = Query(None),
    start_date: Optional[str] = Query(None, alias="startDate"),
    end_date: Optional[str] = Query(None, alias="endDate"),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    result = TicketService.list_tickets(
        db,
        user,
        page=page,
        limit=limit,
        status=status,
        priority=priority,
        category=category,
        assigned_to=assigned_to,
        my_tickets=my_tickets,
        search=search,
        start_date=start_date,
        end_date=end_date
    )
    return api_response(result)


@router.post("", status_code=201)
def create_ticket(
    title: Optional[str] = Form(None),
    subject: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    category: Optional[str] = Form(None),
    priority: Optional[str] = Form(None),
    tags: Optional[str] = Form(None),
    due_date: Optional[str] = Form(None, alias="dueDate"),
    attachments: Optional[List[UploadFile]] = File(None),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
    email_service: EmailService = Depends(get_email_service)
):
    """
    Create a ticket from a multipart form.

    The subject may be sent as either `title` or `subject`; up to five files
    go in the repeated `attachments` field.
    """
    ticket = TicketService.create_ticket(
        db,
        settings,
        email_service,
        user,
        title=title if title is not None else subject,
        description=description,
        category=category,
        priority=priority,
        tags=tags,
        due_date=due_date,
        attachments=attachments
    )
    return api_response({"ticket": ticket}, "Ticket created successfully")


@router.get("/{ticket_id}")
def get_ticket(
    ticket_id: str,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return api_response({"ticket": TicketService.get_ticket(db, user, ticket_id)})


@router.put("/{ticket_id}")
def update_ticket(
    ticket_id: str,
    req: UpdateTicketRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    email_service: EmailService = Depends(get_email_service)
):
    """Partial update; fields outside the caller's capabilities are ignored"""
    ticket = TicketService.update_ticket(
        db, email_service, user, ticket_id, req.model_dump(exclude_unset=True)
    )
    return api_response({"ticket": ticket}, "Ticket updated successfully")


@router.delete("/{ticket_id}")
def delete_ticket(
    ticket_id: str,
    admin: User = Depends(admin_only),
    db: Session = Depends(get_db)
):
    TicketService.delete_ticket(db, ticket_id)
    return api_response(message="Ticket deleted successfully")


@router.post("/{ticket_id}/comments", status_code=201)
def add_comment(
    ticket_id: str,
    req: AddCommentRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    comment = TicketService.add_comment(db, user, ticket_id, req.content, req.is_internal)
    return api_response({"comment": comment}, "Comment added successfully")


@router.post("/{ticket_id}/rate")
def rate_ticket(
    ticket_id: str,
    req: RateTicketRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    result = TicketService.rate_ticket(db, user, ticket_id, req.rating, req.feedback)
    return api_response(result, "Ticket rated successfully")


@router.put("/{ticket_id}/assign")
def assign_ticket(
    ticket_id: str,
    req: AssignTicketRequest,
    user: User = Depends(staff_only),
    db: Session = Depends(get_db)
):
    ticket = TicketService.assign_ticket(db, user, ticket_id, req.assigned_to)
    return api_response({"ticket": ticket}, "Ticket assigned successfully")


@router.put("/{ticket_id}/close")
def close_ticket(
    ticket_id: str,
    req: CloseTicketRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    email_service: EmailService = Depends(get_email_service)
):
    """Resolve a ticket with resolution text"""
    ticket = TicketService.close_ticket(db, email_service, user, ticket_id, req.resolution)
    return api_response({"ticket": ticket}, "Ticket resolved successfully")


@router.put("/{ticket_id}/reopen")
def reopen_ticket(
    ticket_id: str,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    email_service: EmailService = Depends(get_email_service)
):
    ticket = TicketService.reopen_ticket(db, email_service, user, ticket_id)
    return api_response({"ticket": ticket}, "Ticket reopened successfully")
