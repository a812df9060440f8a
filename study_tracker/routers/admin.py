"""Admin routes: inspect recipients, reset a recipient, trigger a report now."""

import logging

from fastapi import APIRouter, BackgroundTasks, Header, HTTPException

from study_tracker.config import ADMIN_SECRET
from study_tracker import supabase_client as db
from study_tracker.scheduler import trigger_report_for_user

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin")


def _check_admin(authorization: str) -> None:
    """Raise 401 unless the request carries the admin secret."""
    if not ADMIN_SECRET or authorization != f"Bearer {ADMIN_SECRET}":
        raise HTTPException(status_code=401, detail="Admin only")


@router.get("/users")
async def list_users(authorization: str = Header("")):
    _check_admin(authorization)

    users = db.get_users()
    for user in users:
        user["email_service_paused"] = bool(user.get("email_service_paused"))
        user["accountability_emails"] = [
            {"id": r["id"], "email": r["email"], "last_sent_date": r.get("last_sent_date")}
            for r in db.get_recipients(user["id"])
        ]
    return users


@router.post("/emails/{recipient_id}/reset")
async def reset_email(recipient_id: int, authorization: str = Header("")):
    _check_admin(authorization)

    if not db.reset_recipient(recipient_id):
        raise HTTPException(status_code=404, detail=f"Recipient {recipient_id} not found")

    logger.info("Admin reset last sent date for recipient %s", recipient_id)
    return {"message": "Email status reset."}


@router.post("/users/{user_id}/trigger-report")
async def trigger_report(user_id: int, background_tasks: BackgroundTasks,
                         authorization: str = Header("")):
    _check_admin(authorization)

    background_tasks.add_task(trigger_report_for_user, user_id)
    return {"message": "Report generation triggered. Check logs/email."}
