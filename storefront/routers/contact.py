from fastapi import APIRouter, Depends, HTTPException

from .. import schemas, worker
from ..ratelimit import contact_limiter

router = APIRouter(prefix="/contact", tags=["contact"])


@router.post("", response_model=schemas.Message, dependencies=[Depends(contact_limiter)])
async def contact(body: schemas.ContactMessage):
    queued = worker.enqueue(worker.send_contact_email, body.name, body.email, body.subject, body.message,
                            body.category)
    if not queued:
        raise HTTPException(status_code=503, detail="Failed to send message. Please try again later.")
    return {"message": "Message sent! We'll get back to you within 24 hours."}
