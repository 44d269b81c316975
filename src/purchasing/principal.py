"""The authenticated caller, as asserted by the upstream auth layer."""

from dataclasses import dataclass
from enum import Enum


class Role(Enum):
    CUSTOMER = "customer"
    DISTRIBUTOR = "distributor"
    ADMIN = "admin"


@dataclass(frozen=True)
class Principal:
    user_id: str
    role: str = Role.CUSTOMER.value
    email: str | None = None

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN.value

    @property
    def is_distributor(self) -> bool:
        return self.role == Role.DISTRIBUTOR.value

    def owns(self, order) -> bool:
        return str(order.customer_id) == str(self.user_id)
