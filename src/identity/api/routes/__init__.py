"""Identity API routes"""
from identity.api.routes.invitations import router as invitations_router

__all__ = ["invitations_router"]
