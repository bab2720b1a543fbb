from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple


@dataclass(frozen=True)
class SizeInfo:
    description: str
    sku: str
    ean: str
    has_stock: bool
    is_available: bool
    restocked: bool = False


@dataclass(frozen=True)
class SkuState:
    was_available: bool
    was_in_stock: bool


@dataclass(frozen=True)
class RestockEvent:
    """One restock notification for a product path.

    ``sizes`` lists every size that is currently available or in stock,
    not only the ones that just restocked; ``SizeInfo.restocked`` marks
    the transitions."""

    path: str
    name: str
    nickname: str
    code: str
    price: str
    picture: str
    sizes: Tuple[SizeInfo, ...] = ()

    @property
    def available_sizes(self) -> Tuple[SizeInfo, ...]:
        """Sizes that can be added to cart."""
        return tuple(s for s in self.sizes if s.is_available)

    @property
    def in_stock_sizes(self) -> Tuple[SizeInfo, ...]:
        """Sizes with stock that cannot be added to cart yet."""
        return tuple(s for s in self.sizes if not s.is_available)

    @property
    def restocked_sizes(self) -> Tuple[SizeInfo, ...]:
        return tuple(s for s in self.sizes if s.restocked)


@dataclass(frozen=True)
class Task:
    task_id: str
    path: str
    sink: Any = field(compare=False)


@dataclass
class Target:
    """Dispatcher-owned registry record for one monitored path."""

    path: str
    tasks: Dict[str, Task] = field(default_factory=dict)
    poller: Optional[Any] = None
    outboxes: Dict[str, Any] = field(default_factory=dict)
