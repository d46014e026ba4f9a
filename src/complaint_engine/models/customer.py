"""Customer and insight models."""

from enum import Enum

from pydantic import BaseModel, Field


class CustomerSegment(str, Enum):
    """Customer segment, recomputed after each complaint."""

    ANONYMOUS = "anonimo"
    NEW = "nuevo"
    OCCASIONAL = "ocasional"
    FREQUENT = "frecuente"

    @classmethod
    def for_history(cls, total_complaints: int, has_phone: bool) -> "CustomerSegment":
        """Segment for a customer with the given complaint count."""
        if not has_phone:
            return cls.ANONYMOUS
        if total_complaints >= 4:
            return cls.FREQUENT
        if total_complaints >= 2:
            return cls.OCCASIONAL
        return cls.NEW


class Customer(BaseModel):
    """Customer identity. Deduplicated by phone only."""

    customer_id: int
    name: str | None = None
    phone: str | None = None
    segment: CustomerSegment = CustomerSegment.NEW
    total_complaints: int = Field(default=0, ge=0)


class Insight(BaseModel):
    """Operational alert generated for a high-urgency complaint."""

    kind: str = "queja_critica"
    title: str
    description: str
    impact: str = "alto"
    probability: float = Field(default=0.90, ge=0.0, le=1.0)
    suggested_actions: list[str] = Field(default_factory=list)

    # Context
    complaint_id: int | None = None
    branch_id: int | None = None
    category_id: int | None = None
