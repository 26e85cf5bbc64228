"""Typed config entities handled by config storage.

A staged revision payload is the JSON dump of one of these models; the
``entity_type`` field discriminates between them on the way back in.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Annotated, Any, Literal, Optional, Union
from uuid import UUID

from pydantic import BaseModel, Field, TypeAdapter

from cms_staging.domain.exceptions import UnknownEntityType

ITEM_TYPE = "item_type"
SEARCH_FIELD_CONFIG = "search_field_config"
CATEGORY = "category"
TAG = "tag"
VARIABLE = "variable"

ENTITY_TYPES = (ITEM_TYPE, SEARCH_FIELD_CONFIG, CATEGORY, TAG, VARIABLE)


class ItemTypeEntity(BaseModel):
    """Content type definition (field definitions live in settings)."""

    entity_type: Literal["item_type"] = ITEM_TYPE
    type_name: str
    label: str
    description: Optional[str] = None
    has_title: bool = True
    title_label: Optional[str] = None
    plugin: str
    settings: dict[str, Any] = Field(default_factory=dict)

    @property
    def entity_id(self) -> str:
        return self.type_name

    @property
    def display_label(self) -> str:
        return self.label


class SearchFieldConfigEntity(BaseModel):
    entity_type: Literal["search_field_config"] = SEARCH_FIELD_CONFIG
    id: UUID
    bundle: str
    field_name: str
    weight: Literal["A", "B", "C", "D"] = "C"

    @property
    def entity_id(self) -> str:
        return str(self.id)

    @property
    def display_label(self) -> str:
        return f"{self.bundle}.{self.field_name}"


class CategoryEntity(BaseModel):
    entity_type: Literal["category"] = CATEGORY
    id: str
    label: str
    description: Optional[str] = None
    hierarchy: int = 0
    weight: int = 0

    @property
    def entity_id(self) -> str:
        return self.id

    @property
    def display_label(self) -> str:
        return self.label


class TagEntity(BaseModel):
    entity_type: Literal["tag"] = TAG
    id: UUID
    category_id: str
    label: str
    description: Optional[str] = None
    weight: int = 0

    @property
    def entity_id(self) -> str:
        return str(self.id)

    @property
    def display_label(self) -> str:
        return self.label


class VariableEntity(BaseModel):
    """Site configuration variable."""

    entity_type: Literal["variable"] = VARIABLE
    key: str
    value: Any = None

    @property
    def entity_id(self) -> str:
        return self.key

    @property
    def display_label(self) -> str:
        return self.key


ConfigEntity = Annotated[
    Union[
        ItemTypeEntity,
        SearchFieldConfigEntity,
        CategoryEntity,
        TagEntity,
        VariableEntity,
    ],
    Field(discriminator="entity_type"),
]

_entity_adapter: TypeAdapter = TypeAdapter(ConfigEntity)


def encode_entity(entity: ConfigEntity) -> dict[str, Any]:
    return entity.model_dump(mode="json")


def decode_entity(payload: Any) -> ConfigEntity:
    """Raises ``pydantic.ValidationError`` when the payload does not fit."""
    return _entity_adapter.validate_python(payload)


@dataclass
class ConfigFilter:
    """
    Filter for listing config entities.

    Matches one field by string equality, then windows the result.
    """

    field: Optional[str] = None
    value: Optional[str] = None
    limit: Optional[int] = None
    offset: Optional[int] = None

    def with_field(self, field: str, value: str) -> "ConfigFilter":
        self.field = field
        self.value = value
        return self

    def with_limit(self, limit: int) -> "ConfigFilter":
        self.limit = limit
        return self

    def with_offset(self, offset: int) -> "ConfigFilter":
        self.offset = offset
        return self

    def without_window(self) -> "ConfigFilter":
        return ConfigFilter(field=self.field, value=self.value)

    def matches(self, entity: ConfigEntity) -> bool:
        if self.field is None or self.value is None:
            return True
        if not hasattr(entity, self.field):
            return False
        return str(getattr(entity, self.field)) == self.value


def assert_entity_type(entity_type: str) -> str:
    if entity_type not in ENTITY_TYPES:
        raise UnknownEntityType(entity_type)
    return entity_type
