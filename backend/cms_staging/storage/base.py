"""The config storage capability shared by live and staged storage.

All config entity access goes through this interface so that call sites
(import/export, routes) never care whether they read live or a stage.
"""

from __future__ import annotations

from typing import Any, List, Optional, Protocol, runtime_checkable

from cms_staging.domain.entities import ConfigEntity, ConfigFilter


@runtime_checkable
class ConfigStorage(Protocol):
    def load(self, entity_type: str, entity_id: str) -> Optional[ConfigEntity]:
        ...

    def save(self, entity: ConfigEntity, *, author_id: Optional[str] = None) -> Any:
        ...

    def delete(self, entity_type: str, entity_id: str, *, author_id: Optional[str] = None) -> bool:
        ...

    def list(self, entity_type: str, filter: Optional[ConfigFilter] = None) -> List[ConfigEntity]:
        ...

    def exists(self, entity_type: str, entity_id: str) -> bool:
        ...
