from __future__ import annotations

# Service catalog: the static set of service types a dispatcher offers.
#
# Loaded once at startup and read-only afterwards, so it needs no locking.

from typing import Iterable

from .errors import UnknownServiceType
from .models import ServiceTypeDef


BUILTIN_SERVICE_TYPES: tuple[ServiceTypeDef, ...] = (
    ServiceTypeDef(
        id="general",
        name="General Service",
        description="General inquiries and services",
        average_processing_minutes=10,
        default_priority=1,
        ticket_prefix="A",
    ),
    ServiceTypeDef(
        id="express",
        name="Express Service",
        description="Quick services under 5 minutes",
        average_processing_minutes=5,
        default_priority=2,
        ticket_prefix="E",
    ),
    ServiceTypeDef(
        id="vip",
        name="VIP Service",
        description="Priority services for VIP customers",
        average_processing_minutes=15,
        default_priority=3,
        ticket_prefix="V",
    ),
)


class ServiceCatalog:
    """Registry of service type definitions, keyed by id.

    Iteration order is the order definitions were given in; listings and the
    waiting-ticket view follow it.
    """

    def __init__(self, service_types: Iterable[ServiceTypeDef]) -> None:
        self._types: dict[str, ServiceTypeDef] = {}
        prefixes: set[str] = set()
        for st in service_types:
            if not st.id:
                raise ValueError("service type id must not be empty")
            if st.id in self._types:
                raise ValueError(f"duplicate service type id: {st.id!r}")
            if not st.ticket_prefix:
                raise ValueError(f"service type {st.id!r} has an empty ticket prefix")
            # Two types sharing a prefix would hand out identical numbers.
            if st.ticket_prefix in prefixes:
                raise ValueError(f"duplicate ticket prefix: {st.ticket_prefix!r}")
            if st.average_processing_minutes <= 0:
                raise ValueError(f"service type {st.id!r} needs average_processing_minutes > 0")
            self._types[st.id] = st
            prefixes.add(st.ticket_prefix)

    @classmethod
    def builtin(cls) -> "ServiceCatalog":
        return cls(BUILTIN_SERVICE_TYPES)

    def __contains__(self, service_type_id: object) -> bool:
        return service_type_id in self._types

    def __len__(self) -> int:
        return len(self._types)

    def get(self, service_type_id: str) -> ServiceTypeDef:
        try:
            return self._types[service_type_id]
        except KeyError:
            raise UnknownServiceType(service_type_id) from None

    def get_active(self, service_type_id: str) -> ServiceTypeDef:
        """Like `get`, but inactive service types count as unknown."""
        st = self.get(service_type_id)
        if not st.is_active:
            raise UnknownServiceType(service_type_id)
        return st

    def list_all(self) -> tuple[ServiceTypeDef, ...]:
        return tuple(self._types.values())

    def list_active(self) -> tuple[ServiceTypeDef, ...]:
        return tuple(st for st in self._types.values() if st.is_active)
