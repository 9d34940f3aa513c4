"""
RateResolver -- effective hourly pay rate for a worked interval.

Responsibility:
    Decide whether a worked interval is paid at the membership's
    manager-tier rate or at the person's default rate.

Architecture position:
    Kernel > Domain -- pure function of its inputs.

Invariants enforced:
    - Only MANAGER and OWNER roles may be paid the manager-tier rate, and
      only when they are working as manager.  EMPLOYEE and SUPER_ADMIN
      never see it, whatever the ``working_as_manager`` flag says.
    - Rates are Decimal.  Floats are rejected.
"""

from decimal import Decimal

from timekeeping_kernel.domain.values import MANAGER_RATE_ROLES, MembershipRole

ZERO_RATE = Decimal("0")


def _as_decimal(value: Decimal | int | str | None, name: str) -> Decimal | None:
    if value is None:
        return None
    if isinstance(value, float):
        raise TypeError(f"{name} must be Decimal, not float")
    return value if isinstance(value, Decimal) else Decimal(value)


def resolve_rate(
    user_default_rate: Decimal | None,
    membership_manager_rate: Decimal | None,
    membership_role: MembershipRole | str,
    working_as_manager: bool,
) -> Decimal:
    """
    Resolve the effective hourly rate.

    1. working as manager, role in {manager, owner} and a manager rate set
       -> the manager rate;
    2. otherwise the default rate when set;
    3. otherwise zero.
    """
    default_rate = _as_decimal(user_default_rate, "user_default_rate")
    manager_rate = _as_decimal(membership_manager_rate, "membership_manager_rate")
    role = MembershipRole(membership_role)

    if working_as_manager and role in MANAGER_RATE_ROLES and manager_rate is not None:
        return manager_rate
    if default_rate is not None:
        return default_rate
    return ZERO_RATE


def rate_for_report(
    user_default_rate: Decimal | None,
    membership_manager_rate: Decimal | None,
    membership_role: MembershipRole | str,
) -> Decimal:
    """Report rows pay managers and owners at their manager-tier rate."""
    role = MembershipRole(membership_role)
    return resolve_rate(
        user_default_rate,
        membership_manager_rate,
        role,
        working_as_manager=role in MANAGER_RATE_ROLES,
    )
