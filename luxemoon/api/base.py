# luxemoon/api/base.py
import hmac
from fastapi import Header, HTTPException, Request
from ..config import Config

def get_services(request: Request):
    """Service registry built at start-up"""
    return request.app.state.services

def client_ip(request: Request) -> str:
    """First hop of X-Forwarded-For, else the socket peer"""
    forwarded_for = request.headers.get("x-forwarded-for")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip() or "unknown"
    if request.client and request.client.host:
        return request.client.host
    return "unknown"

async def require_admin(x_admin_token: str = Header(default="")):
    """Check the admin token header"""
    if not Config.ADMIN_TOKEN or not hmac.compare_digest(
        x_admin_token.encode(), Config.ADMIN_TOKEN.encode()
    ):
        raise HTTPException(status_code=401, detail="Unauthorized")
