"""
Module: timekeeping_kernel.models.restaurant
Responsibility: ORM persistence for the organisational identifiers the
    timekeeping core depends on: restaurants, people and memberships.
Architecture position: Kernel > Models.  May import from db/ and domain/values.

Invariants enforced:
    - One membership per (user, restaurant).
    - Memberships are soft-deactivated via status, never removed while time
      entries reference them (FK without cascade).

Audit relevance:
    Membership role and rates feed every earnings figure in a report.
"""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from timekeeping_kernel.db.base import TrackedBase, UUIDString
from timekeeping_kernel.domain.values import MembershipRole, MembershipStatus


class Restaurant(TrackedBase):
    """A location.  ``timezone`` is the IANA zone its work dates are reckoned in."""

    __tablename__ = "restaurants"

    name: Mapped[str] = mapped_column(String(200), nullable=False)

    timezone: Mapped[str] = mapped_column(
        String(64),
        default="Europe/Warsaw",
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<Restaurant {self.name} ({self.timezone})>"


class AppUser(TrackedBase):
    """A person.  Carries the default hourly rate used outside manager duty."""

    __tablename__ = "app_users"

    __table_args__ = (UniqueConstraint("email", name="uq_app_user_email"),)

    name: Mapped[str] = mapped_column(String(200), nullable=False)

    email: Mapped[str | None] = mapped_column(String(320), nullable=True)

    hourly_rate_default: Mapped[Decimal | None] = mapped_column(nullable=True)

    def __repr__(self) -> str:
        return f"<AppUser {self.name}>"


class Membership(TrackedBase):
    """
    A worker's role-scoped attachment to one restaurant.

    Contract:
        ``hourly_rate_manager`` is only ever paid to MANAGER and OWNER roles
        (see domain/rates.py).
    """

    __tablename__ = "memberships"

    __table_args__ = (
        UniqueConstraint("user_id", "restaurant_id", name="uq_membership_user_restaurant"),
        Index("idx_membership_restaurant", "restaurant_id"),
    )

    user_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("app_users.id"),
        nullable=False,
    )

    restaurant_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("restaurants.id"),
        nullable=False,
    )

    role: Mapped[MembershipRole] = mapped_column(
        String(20),
        default=MembershipRole.EMPLOYEE,
        nullable=False,
    )

    status: Mapped[MembershipStatus] = mapped_column(
        String(20),
        default=MembershipStatus.ACTIVE,
        nullable=False,
    )

    hourly_rate_manager: Mapped[Decimal | None] = mapped_column(nullable=True)

    user: Mapped[AppUser] = relationship(lazy="joined")
    restaurant: Mapped[Restaurant] = relationship(lazy="joined")

    def __repr__(self) -> str:
        return f"<Membership {self.user_id}@{self.restaurant_id}: {self.role}>"

    @property
    def is_active(self) -> bool:
        return self.status == MembershipStatus.ACTIVE
