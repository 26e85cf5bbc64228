from .stage import Stage
from .config_revision import ConfigRevision
from .stage_association import StageAssociation
from .stage_deletion import StageDeletion
from .item import Item
from .url_alias import UrlAlias
from .menu_link import MenuLink
from .item_type import ItemType
from .category import Category
from .tag import Tag
from .search_field_config import SearchFieldConfig
from .variable import Variable
from .audit_log import AuditLog

__all__ = [
    "Stage",
    "ConfigRevision",
    "StageAssociation",
    "StageDeletion",
    "Item",
    "UrlAlias",
    "MenuLink",
    "ItemType",
    "Category",
    "Tag",
    "SearchFieldConfig",
    "Variable",
    "AuditLog",
]
