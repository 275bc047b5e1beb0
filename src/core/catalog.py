"""任务目录解析: 把用户写的列表名 / 负责人名解析为唯一的目录实体"""

from typing import List, Optional

from collaborators.base import CatalogKind, TaskService
from datamodel import CatalogEntity
from errors import AmbiguousMatchError, MissingList, NotFoundError, MAX_CANDIDATES_PREVIEW

__all__ = ["find_matches", "ensure_single_match", "resolve_catalog_entity", "resolve_list", "resolve_assignees"]

_LABELS = {"list": "list", "assignee": "assignee"}


def _norm(value: Optional[str]) -> str:
    return str(value or "").strip().lower()


def find_matches(items: List[CatalogEntity], query: str) -> List[CatalogEntity]:
    """依次按 id、名字完全相同、名字包含 匹配, 前一级有结果就返回"""
    needle = _norm(query)
    if not needle:
        return []
    by_id = [item for item in items if item.id == query.strip()]
    if by_id:
        return by_id
    exact = [item for item in items if _norm(item.name) == needle]
    if exact:
        return exact
    return [item for item in items if needle in _norm(item.name)]


def ensure_single_match(items: List[CatalogEntity], query: str, kind: str) -> CatalogEntity:
    matches = find_matches(items, query)
    if not matches:
        raise NotFoundError(f'No {kind} found for "{query}".')
    if len(matches) > 1:
        raise AmbiguousMatchError(
            kind, query, [f"{item.name} ({item.id})" for item in matches[:MAX_CANDIDATES_PREVIEW]]
        )
    return matches[0]


async def resolve_catalog_entity(tasks: TaskService, kind: CatalogKind, query: str) -> CatalogEntity:
    catalog = await tasks.list_catalog(kind)
    return ensure_single_match(catalog, query, _LABELS[kind])


async def resolve_list(tasks: TaskService, query: Optional[str], default: str = "") -> CatalogEntity:
    """解析任务列表

    没写列表时使用默认列表; 也没有默认列表时, 目录里只有一个列表就直接用它,
    否则抛出 MissingList 并附带候选列表名。
    """
    query = (query or "").strip() or default.strip()
    if query:
        return await resolve_catalog_entity(tasks, "list", query)
    catalog = await tasks.list_catalog("list")
    if len(catalog) == 1:
        return catalog[0]
    raise MissingList([
        f"{item.name} ({item.scope}, id={item.id})" if item.scope else f"{item.name} (id={item.id})"
        for item in catalog[:10]
    ])


async def resolve_assignees(tasks: TaskService, raw: Optional[str]) -> List[str]:
    """逗号分隔的负责人名 → id 列表"""
    names = [name.strip() for name in str(raw or "").split(",") if name.strip()]
    if not names:
        return []
    return [(await resolve_catalog_entity(tasks, "assignee", name)).id for name in names]
