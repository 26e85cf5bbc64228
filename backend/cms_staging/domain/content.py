"""Content rows that carry their stage membership directly."""

ITEM = "item"
URL_ALIAS = "url_alias"
MENU_LINK = "menu_link"

DEPENDENT_TYPES = (URL_ALIAS, MENU_LINK)
CONTENT_TYPES = (ITEM, *DEPENDENT_TYPES)


def alias_key(alias: str, language: str) -> str:
    """URL aliases are identified by language + path, not by row id."""
    return f"{language}:{alias}"
