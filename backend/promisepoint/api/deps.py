from fastapi import Header
from promisepoint.db.session import SessionLocal

def db():
    s = SessionLocal()
    try:
        yield s
    finally:
        s.close()

def actor(x_actor_id: str | None = Header(default=None)) -> str:
    # Authentication lives in the gateway in front of this service; it forwards the admin id.
    v = (x_actor_id or "").strip()
    return v[:64] or "system"
