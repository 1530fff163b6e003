"""Control API routes."""

from pydantic import BaseModel
from fastapi import APIRouter, Depends, Header, HTTPException

from ...app import Application


class StatusResponse(BaseModel):
    """Response model for status."""

    status: str


class SweepResponse(BaseModel):
    status: str
    deleted: int


class ApprovalRequest(BaseModel):
    email: str


def create_control_router(app: Application) -> APIRouter:
    """Create control router (requires X-Control-Token)."""

    async def require_control_token(x_control_token: str | None = Header(None)) -> None:
        expected = app.settings.control_token
        if not expected or x_control_token != expected:
            raise HTTPException(status_code=403, detail="Control API disabled or token invalid")

    router = APIRouter(
        prefix="/api/control",
        tags=["control"],
        dependencies=[Depends(require_control_token)],
    )

    @router.post("/reset", response_model=StatusResponse)
    async def reset_system() -> dict:
        """Reset stored data between test runs."""
        try:
            await app.reset()
            return {"status": "ok"}
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    @router.post("/sweep", response_model=SweepResponse)
    async def sweep() -> dict:
        """Run one retention pass now."""
        deleted = await app.sweeper.sweep()
        return {"status": "ok", "deleted": deleted}

    @router.post("/approved-emails", response_model=StatusResponse)
    async def approve_email(request: ApprovalRequest) -> dict:
        await app.identity.approve_email(request.email)
        return {"status": "ok"}

    @router.delete("/approved-emails/{email}", response_model=StatusResponse)
    async def revoke_email(email: str) -> dict:
        if not await app.identity.revoke_email(email):
            raise HTTPException(status_code=404, detail="Email not on the list")
        return {"status": "ok"}

    return router
