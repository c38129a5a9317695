from __future__ import annotations
from dataclasses import dataclass, field
from typing import Optional, Union


@dataclass(frozen=True)
class Principal:
    user_id: str
    roles: frozenset[str] = frozenset()
    attributes: dict[str, list[str]] = field(default_factory=dict)

    def has_role(self, name: str) -> bool:
        return name in self.roles

    def attribute(self, name: str) -> Optional[Union[str, list[str]]]:
        return self.attributes.get(name)
