from typing import Optional

from fastapi import HTTPException, Request
from sqlalchemy.orm import Session

from marketstock.models.log import Log


def client_ip(request: Optional[Request]) -> Optional[str]:
    return request.client.host if request and request.client else None


def write_log(db: Session, *, action, resource, status="SUCCESS", ip=None, meta=None):
    entry = Log(action=action, resource=resource, status=status, ip=ip, meta=meta or {})
    db.add(entry)
    db.commit()


def failure(db: Session, request: Optional[Request], *, action, resource, status_code, detail, meta=None) -> HTTPException:
    """Audit a failed mutation and build the HTTP error to raise for it."""
    write_log(
        db, action=action, resource=resource, status="FAIL",
        ip=client_ip(request), meta={**(meta or {}), "error": str(detail)},
    )
    return HTTPException(status_code=status_code, detail=detail)
