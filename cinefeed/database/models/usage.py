"""API usage event model.

Append-only log of API calls, aggregated by the analytics service.
"""

from datetime import datetime
from typing import Any

from sqlalchemy import DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from cinefeed.database.models.base import Base, JSONType, utcnow


class ApiUsage(Base):
    """One logged API request.

    Attributes:
        id: Primary key.
        endpoint: Endpoint path called (e.g. '/movies').
        username: Acting username.
        user_id: Acting user id, if known.
        status_code: HTTP response status.
        method: HTTP method.
        query_params: Request query parameters.
        timestamp: Request time reported by the caller.
        created_at: Ingestion time assigned by the server.
    """

    __tablename__ = "api_usage"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    endpoint: Mapped[str] = mapped_column(String(500), nullable=False, index=True)
    username: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    user_id: Mapped[str | None] = mapped_column(String(255))
    status_code: Mapped[int] = mapped_column(Integer, nullable=False, default=200)
    method: Mapped[str] = mapped_column(String(10), nullable=False, default="GET")
    query_params: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False, default=dict)
    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        index=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
    )

    def to_dict(self) -> dict[str, Any]:
        """Return the event as a plain dict."""
        return {
            "id": self.id,
            "endpoint": self.endpoint,
            "username": self.username,
            "user_id": self.user_id,
            "status_code": self.status_code,
            "method": self.method,
            "query_params": self.query_params,
            "timestamp": self.timestamp,
            "created_at": self.created_at,
        }

    def __repr__(self) -> str:
        """Return string representation."""
        return (
            f"<ApiUsage(id={self.id}, endpoint='{self.endpoint}', "
            f"username='{self.username}', status={self.status_code})>"
        )
