from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from .config import DEFAULT_CATEGORY_ORDER

SORT_FIELDS = ("stars", "name", "added_at")
SORT_DIRECTIONS = ("asc", "desc")


def _str_list(value: Any) -> List[str]:
    if not value:
        return []
    if isinstance(value, str):
        return [value]
    return [str(v) for v in value]


def _optional_str(value: Any) -> Optional[str]:
    if value is None or value == "":
        return None
    return str(value)


def _optional_int(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


@dataclass(frozen=True)
class Tool:
    """One catalogued tool, as serialized by the build step."""
    id: str
    name: str
    summary: str = ""
    description: Optional[str] = None
    categories: List[str] = field(default_factory=list)
    tags: List[str] = field(default_factory=list)
    platforms: List[str] = field(default_factory=list)
    license: str = ""
    maturity: str = "active"
    website: Optional[str] = None
    docs_url: Optional[str] = None
    download_url: Optional[str] = None
    github_repo: Optional[str] = None
    stars: Optional[int] = None
    image_url: Optional[str] = None
    pricing: Optional[Dict[str, Any]] = None
    installation: Optional[Dict[str, Any]] = None
    authors: List[str] = field(default_factory=list)
    maintainers: List[str] = field(default_factory=list)
    use_cases: List[str] = field(default_factory=list)
    compliance_mapping: Dict[str, List[str]] = field(default_factory=dict)
    related_tools: List[str] = field(default_factory=list)
    similar_tools: List[str] = field(default_factory=list)
    added_at: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Tool":
        compliance = data.get("compliance_mapping") or {}
        return cls(
            id=str(data["id"]),
            name=str(data.get("name") or data["id"]),
            summary=data.get("summary") or "",
            description=_optional_str(data.get("description")),
            categories=_str_list(data.get("categories")),
            tags=_str_list(data.get("tags")),
            platforms=_str_list(data.get("platforms")),
            license=data.get("license") or "",
            maturity=data.get("maturity") or "active",
            website=_optional_str(data.get("website")),
            docs_url=_optional_str(data.get("docs_url")),
            download_url=_optional_str(data.get("download_url")),
            github_repo=_optional_str(data.get("github_repo")),
            stars=_optional_int(data.get("stars")),
            image_url=_optional_str(data.get("image_url")),
            pricing=data.get("pricing"),
            installation=data.get("installation"),
            authors=_str_list(data.get("authors")),
            maintainers=_str_list(data.get("maintainers")),
            use_cases=_str_list(data.get("use_cases")),
            compliance_mapping={str(k): _str_list(v) for k, v in compliance.items()},
            related_tools=_str_list(data.get("related_tools")),
            similar_tools=_str_list(data.get("similar_tools")),
            # YAML-sourced records may carry a date object here
            added_at=_optional_str(data.get("added_at")),
        )


@dataclass(frozen=True)
class Category:
    id: str
    name: str = ""
    description: Optional[str] = None
    icon: Optional[str] = None
    order: int = DEFAULT_CATEGORY_ORDER

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Category":
        order = _optional_int(data.get("order"))
        return cls(
            id=str(data["id"]),
            name=data.get("name") or str(data["id"]),
            description=data.get("description"),
            icon=data.get("icon"),
            # 0 counts as missing, same as the build step
            order=order or DEFAULT_CATEGORY_ORDER,
        )


@dataclass(frozen=True)
class FilterOptions:
    """Facet selections; an empty selection does not restrict."""
    categories: Tuple[str, ...] = ()
    platforms: Tuple[str, ...] = ()
    licenses: Tuple[str, ...] = ()
    maturity: Tuple[str, ...] = ()

    @classmethod
    def of(cls, categories=(), platforms=(), licenses=(), maturity=()) -> "FilterOptions":
        return cls(tuple(categories), tuple(platforms), tuple(licenses), tuple(maturity))

    def is_empty(self) -> bool:
        return not (self.categories or self.platforms or self.licenses or self.maturity)


@dataclass(frozen=True)
class SortOption:
    field: str = "stars"
    direction: str = "desc"

    def __post_init__(self):
        if self.field not in SORT_FIELDS:
            raise ValueError(f"Unknown sort field: {self.field!r}")
        if self.direction not in SORT_DIRECTIONS:
            raise ValueError(f"Unknown sort direction: {self.direction!r}")

    @classmethod
    def parse(cls, value: Optional[str]) -> "SortOption":
        """Parse the ``<field>-<direction>`` form used by the sort control."""
        field_name, sep, direction = (value or "stars-desc").rpartition("-")
        if not sep:
            raise ValueError(f"Invalid sort option: {value!r}")
        return cls(field_name, direction)
