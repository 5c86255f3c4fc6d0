"""
Shared endpoint dependencies.

The store and scheduler are created by the application lifespan and kept on
app.state.
"""

from fastapi import HTTPException, Request


def get_store(request: Request):
    store = getattr(request.app.state, "store", None)
    if store is None:
        raise HTTPException(status_code=503, detail="Store not initialized")
    return store


def get_scheduler(request: Request):
    scheduler = getattr(request.app.state, "scheduler", None)
    if scheduler is None:
        raise HTTPException(status_code=503, detail="Scheduler not initialized")
    return scheduler


def ok(data=None, message: str = "success") -> dict:
    """Standard success envelope."""
    return {"code": "ok", "message": message, "data": data}
