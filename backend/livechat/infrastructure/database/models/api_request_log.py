"""SQLAlchemy ORM model for metered API request logs."""

from datetime import datetime, timezone

from sqlalchemy import DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from livechat.infrastructure.database.base import Base


class ApiRequestLogModel(Base):
    """ORM model — maps to the 'api_request_logs' table."""

    __tablename__ = "api_request_logs"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
        index=True,
    )
    endpoint_type: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    method_name: Mapped[str] = mapped_column(String(100), nullable=False)
    request_params: Mapped[str | None] = mapped_column(Text, nullable=True)  # JSON object
    status: Mapped[str] = mapped_column(String(20), default="success", nullable=False)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    quota_cost: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    response_time_ms: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    def __repr__(self) -> str:
        return (
            f"<ApiRequestLogModel(id={self.id}, endpoint='{self.endpoint_type}', "
            f"method='{self.method_name}', cost={self.quota_cost}, status='{self.status}')>"
        )
