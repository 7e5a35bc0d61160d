"""Priority fee computation.

Fees are owed for expedited tiers and settled in person at the venue.
Loyalty customers get FAST_LANE at half price and VIP for free.
"""

from waitlist.domain.models import PriorityClass, Tenant
from waitlist.domain.value_objects import Money


def priority_fee(tenant: Tenant, priority: PriorityClass, is_loyal: bool) -> Money:
    if priority is PriorityClass.FAST_LANE:
        return tenant.fast_lane_fee.half() if is_loyal else tenant.fast_lane_fee
    if priority is PriorityClass.VIP:
        return Money.zero() if is_loyal else tenant.vip_fee
    return Money.zero()
