"""Identity attached to every authenticated request and connection."""
from enum import Enum

from pydantic import BaseModel, Field


class UserRole(str, Enum):
    """Role of a workflow user.

    Attributes:
        REVISOR: Reviewer working assigned processes.
        SUPERVISOR: Creates processes and assigns reviewers.
        ADMIN: Manages users.
    """
    REVISOR = "revisor"
    SUPERVISOR = "supervisor"
    ADMIN = "admin"


class Principal(BaseModel):
    """Verified identity claims carried by a bearer token.

    The core treats users as opaque principals; it never loads the user
    record itself.
    """
    id: str = Field(..., min_length=1, description="User ID")
    name: str = Field(default="", description="Display name")
    role: UserRole = Field(default=UserRole.REVISOR)
    email: str = Field(default="")
