"""Static dispatcher configuration.

Service types and counters are fixed for the lifetime of a dispatcher process.
They come either from the built-in layout or from a JSON file:

    {
      "service_types": [
        {"id": "general", "name": "General Service", "ticket_prefix": "A",
         "average_processing_minutes": 10, "default_priority": 1}
      ],
      "counters": [
        {"number": 1, "name": "Counter 1", "service_types": ["general"]}
      ]
    }

`service_types` may be omitted to use the built-in catalog. A counter's
`service_types` list is ordered: earlier entries are called first.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from .catalog import ServiceCatalog
from .models import Counter, ServiceTypeDef


@dataclass(frozen=True)
class DispatcherConfig:
    catalog: ServiceCatalog
    counters: tuple[Counter, ...]


def default_counters() -> tuple[Counter, ...]:
    counters = [
        Counter(number=i, name=f"Counter {i}", service_types=("general", "express"))
        for i in range(1, 6)
    ]
    counters.append(Counter(number=6, name="VIP Counter", service_types=("vip",)))
    return tuple(counters)


def default_config() -> DispatcherConfig:
    return DispatcherConfig(catalog=ServiceCatalog.builtin(), counters=default_counters())


_REQUIRED = object()


def _field(raw: dict[str, Any], key: str, what: str, default: Any = _REQUIRED) -> Any:
    if key not in raw:
        if default is _REQUIRED:
            raise ValueError(f"{what} missing field {key!r}")
        return default
    return raw[key]


def _int_field(raw: dict[str, Any], key: str, what: str, default: Any = _REQUIRED) -> int:
    value = _field(raw, key, what, default)
    # bool is an int subclass; JSON true/false is never a count.
    if isinstance(value, bool) or not isinstance(value, (int, str)):
        raise ValueError(f"{what} field {key!r} must be an integer, got {value!r}")
    try:
        return int(value)
    except ValueError as e:
        raise ValueError(f"{what} field {key!r} must be an integer, got {value!r}") from e


def _str_field(raw: dict[str, Any], key: str, what: str, default: Any = _REQUIRED) -> str:
    value = _field(raw, key, what, default)
    if not isinstance(value, str):
        raise ValueError(f"{what} field {key!r} must be a string, got {value!r}")
    return value


def _service_type_from_dict(raw: Any) -> ServiceTypeDef:
    if not isinstance(raw, dict):
        raise ValueError(f"service type entry must be an object, got {raw!r}")
    what = "service type entry"
    sid = _str_field(raw, "id", what)
    is_active = _field(raw, "is_active", what, True)
    if not isinstance(is_active, bool):
        raise ValueError(f"service type {sid!r}: is_active must be true or false, got {is_active!r}")
    return ServiceTypeDef(
        id=sid,
        name=_str_field(raw, "name", what, sid),
        description=_str_field(raw, "description", what, ""),
        average_processing_minutes=_int_field(raw, "average_processing_minutes", what),
        default_priority=_int_field(raw, "default_priority", what, 1),
        ticket_prefix=_str_field(raw, "ticket_prefix", what),
        is_active=is_active,
    )


def _counter_from_dict(raw: Any) -> Counter:
    if not isinstance(raw, dict):
        raise ValueError(f"counter entry must be an object, got {raw!r}")
    number = _int_field(raw, "number", "counter entry")
    service_types = _field(raw, "service_types", "counter entry")
    if not isinstance(service_types, list) or not service_types:
        raise ValueError(f"counter {number} needs a non-empty service_types list")
    if not all(isinstance(s, str) for s in service_types):
        raise ValueError(f"counter {number}: service_types must be strings")
    return Counter(
        number=number,
        name=_str_field(raw, "name", "counter entry", f"Counter {number}"),
        service_types=tuple(service_types),
    )


def config_from_dict(data: dict[str, Any]) -> DispatcherConfig:
    raw_types = data.get("service_types")
    if raw_types is None:
        catalog = ServiceCatalog.builtin()
    else:
        if not isinstance(raw_types, list) or not raw_types:
            raise ValueError("service_types must be a non-empty list")
        catalog = ServiceCatalog(_service_type_from_dict(r) for r in raw_types)

    raw_counters = data.get("counters")
    if not isinstance(raw_counters, list) or not raw_counters:
        raise ValueError("counters must be a non-empty list")
    counters = tuple(_counter_from_dict(r) for r in raw_counters)

    for c in counters:
        unknown = [s for s in c.service_types if s not in catalog]
        if unknown:
            raise ValueError(f"counter {c.number} refers to unknown service types {unknown}")

    return DispatcherConfig(catalog=catalog, counters=counters)


def load_config(path: str | Path) -> DispatcherConfig:
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise ValueError(f"{path}: top-level JSON value must be an object")
    return config_from_dict(data)
