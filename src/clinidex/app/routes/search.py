import logging

from quart import Blueprint, Request, jsonify, request

from clinidex.app.routes.helpers import optional_int, optional_text, split_multi
from clinidex.app.services.container import (
    get_autocomplete,
    get_capabilities_cache,
    get_search_pipeline,
    get_services,
)
from clinidex.app.services.search_config import PaginationLimits
from clinidex.app.services.search_pipeline import (
    Pagination,
    SearchFilters,
    SearchQuery,
)


logger = logging.getLogger(__name__)

search_bp = Blueprint("search", __name__)


def resolve_search_query(req: Request, limits: PaginationLimits) -> SearchQuery:
    args = req.args
    year_from = optional_int(args.get("year_from"), "year_from")
    year_to = optional_int(args.get("year_to"), "year_to")

    pagination = Pagination.from_params(
        optional_int(args.get("page"), "page"),
        optional_int(args.get("size"), "size"),
        default_size=limits.default_page_size,
        max_size=limits.max_page_size,
    )
    filters = SearchFilters(
        types=split_multi(args.getlist("type")),
        region=optional_text(args.get("region")),
        field=optional_text(args.get("field")),
        year_from=year_from,
        year_to=year_to,
    )
    return SearchQuery(
        text=args.get("q"),
        slug=optional_text(args.get("slug")),
        filters=filters,
        pagination=pagination,
    )


@search_bp.get("/search")
async def search():
    query = resolve_search_query(request, get_services().config.pagination)
    page = await get_search_pipeline().execute(query)
    logger.debug("Route returning %d results", len(page.results))
    return jsonify(page.as_dict())


@search_bp.get("/search/capabilities")
async def capabilities():
    snapshot = await get_capabilities_cache().get()
    return jsonify(snapshot.as_dict())


@search_bp.get("/search/autocomplete")
async def autocomplete():
    suggestions = await get_autocomplete().suggest(request.args.get("q"))
    return jsonify({"suggestions": [suggestion.as_dict() for suggestion in suggestions]})
