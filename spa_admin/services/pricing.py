import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, Iterable

from sqlalchemy import select

from spa_admin.errors import UnavailableError
from spa_admin.models import BranchServicePricing, Service

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResolvedLine:
    """Price list entry as it stands right now; copied into booking items."""

    service_id: int
    service_name: str
    unit_price: Decimal
    currency: str
    duration_min: int


class PricingResolver:
    """Answers "can these services be sold at this branch, and for how much"."""

    def __init__(self, session):
        self.session = session

    def resolve(self, branch_id: int, service_requests: Iterable) -> Dict[int, ResolvedLine]:
        """
        Return the active price snapshot for every requested service.

        All or nothing: if any requested service has no active pricing row at
        the branch, ``UnavailableError`` is raised and nothing is returned.
        Rows are read with a shared lock so they cannot be deactivated before
        the caller's transaction commits.
        """
        requested = {req.service_id for req in service_requests}
        if not requested:
            raise UnavailableError("No services requested")

        stmt = (
            select(BranchServicePricing, Service.name, Service.default_duration_min)
            .join(Service, Service.id == BranchServicePricing.service_id)
            .where(
                BranchServicePricing.branch_id == branch_id,
                BranchServicePricing.service_id.in_(requested),
                BranchServicePricing.is_active.is_(True),
            )
            .with_for_update(read=True, of=BranchServicePricing)
        )

        lines = {}
        for pricing, service_name, default_duration in self.session.execute(stmt):
            duration = pricing.duration_min
            if duration is None:
                duration = default_duration or 0
            lines[pricing.service_id] = ResolvedLine(
                service_id=pricing.service_id,
                service_name=service_name,
                unit_price=Decimal(pricing.price_amount),
                currency=pricing.currency,
                duration_min=int(duration),
            )

        if len(lines) != len(requested):
            missing = sorted(requested - set(lines))
            logger.info(
                "Branch %s cannot sell services %s", branch_id, missing
            )
            raise UnavailableError(
                "One or more services are not available for this branch",
                details={"service_ids": missing},
            )
        return lines
