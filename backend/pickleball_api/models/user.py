from datetime import datetime, timezone
from typing import Optional

from sqlmodel import Field, SQLModel


class User(SQLModel, table=True):
    __tablename__ = "users"

    id: str = Field(primary_key=True)  # Subject claim issued by the identity provider
    email: Optional[str] = Field(default=None, index=True)
    display_name: Optional[str] = None
    is_admin: bool = Field(default=False)
    dupr_id: Optional[str] = Field(default=None)  # Linked rating-provider account
    doubles_rating: Optional[float] = Field(default=None)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
