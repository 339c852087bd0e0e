"""
Turns an include/exclude filter into listing query arguments.

Three query dialects are supported: item queries (``wp_query`` and its
alias ``get_posts``), page listings (``get_pages``) and taxonomy listings
(``get_categories``).
"""

from enum import Enum
from typing import Any, Dict, Mapping, Optional, Tuple

from .filters import FilterSetDeriver
from .models import SENTINEL_ID, ExcludeInclude
from .rule import Rule


class QueryDialect(str, Enum):
    """Listing query dialects."""
    WP_QUERY = "wp_query"
    GET_POSTS = "get_posts"
    GET_PAGES = "get_pages"
    GET_CATEGORIES = "get_categories"


_DEFAULTS: Dict[QueryDialect, Dict[str, Any]] = {
    QueryDialect.GET_PAGES: {
        "number": False,
        "hierarchical": 1,
        "sort_column": "post_title",
        "sort_order": "ASC",
        "post_type": "page",
    },
    QueryDialect.GET_CATEGORIES: {
        "get": "all",
    },
    QueryDialect.WP_QUERY: {
        "posts_per_page": -1,
        "ignore_sticky_posts": True,
        "offset": 0,
        "orderby": "ID",
        "order": "DESC",
        "post_status": "publish",
    },
}


def coerce_dialect(args_type: Any) -> QueryDialect:
    """Dialect for a type name; unknown names use the item query dialect."""
    if isinstance(args_type, QueryDialect):
        dialect = args_type
    else:
        try:
            dialect = QueryDialect(str(args_type).lower())
        except ValueError:
            return QueryDialect.WP_QUERY
    return QueryDialect.WP_QUERY if dialect == QueryDialect.GET_POSTS else dialect


def filter_keys(args_type: Any) -> Tuple[str, str]:
    """The (include, exclude) argument names of a dialect."""
    if coerce_dialect(args_type) in (QueryDialect.GET_PAGES, QueryDialect.GET_CATEGORIES):
        return "include", "exclude"
    return "post__in", "post__not_in"


def apply_filter(args: Optional[Mapping[str, Any]], id_filter: ExcludeInclude, args_type: Any = QueryDialect.WP_QUERY) -> Dict[str, Any]:
    """Merge an include/exclude filter and dialect defaults into ``args``."""
    dialect = coerce_dialect(args_type)
    args = dict(args or {})

    if dialect == QueryDialect.GET_CATEGORIES and "s" in args:
        args["search"] = args["s"]

    arg_incl, arg_excl = filter_keys(dialect)
    args[arg_excl] = id_filter.exclude
    args[arg_incl] = id_filter.include

    merged = dict(_DEFAULTS[dialect])
    merged.update(args)
    return validate_query_args(merged, dialect)


def prepare_query_args(
    deriver: FilterSetDeriver,
    rule: Rule,
    args: Optional[Mapping[str, Any]] = None,
    args_type: Any = QueryDialect.WP_QUERY
) -> Dict[str, Any]:
    """Listing query arguments restricted by the rule's membership/status filter."""
    id_filter = deriver.get_exclude_include(rule, args)
    return apply_filter(args, id_filter, args_type)


def validate_query_args(args: Mapping[str, Any], args_type: Any = QueryDialect.WP_QUERY) -> Dict[str, Any]:
    """Resolve include/exclude conflicts in listing query arguments.

    Include and exclude cannot be combined: excluded ids are removed from the
    include list and the exclude argument is dropped.
    """
    dialect = coerce_dialect(args_type)
    arg_incl, arg_excl = filter_keys(dialect)
    args = dict(args)

    if arg_incl in args and args[arg_incl] is None:
        del args[arg_incl]
    if arg_excl in args and args[arg_excl] is None:
        del args[arg_excl]

    if args.get(arg_incl) and args.get(arg_excl):
        excluded = set(args[arg_excl])
        args[arg_incl] = [item_id for item_id in args[arg_incl] if item_id not in excluded]
        del args[arg_excl]

    if arg_incl in args and len(args[arg_incl]) == 0:
        args[arg_incl] = [SENTINEL_ID]

    if dialect in (QueryDialect.GET_PAGES, QueryDialect.GET_CATEGORIES):
        if args.get("number"):
            # Paging only works on flat listings.
            args["hierarchical"] = False
            args["child_of"] = False
    elif args.get("show_all") or args.get("category__in"):
        args.pop("post__in", None)
        args.pop("post__not_in", None)
        args.pop("show_all", None)

    return args
