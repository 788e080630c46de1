from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Query, Request, Response, status
from fastapi.responses import JSONResponse

from hypermedia.config.settings import settings
from hypermedia.models.document import DocumentFormat, RenderResult
from hypermedia.models.entity import EntityRef
from hypermedia.models.errors import InvalidIncludePath, NotFound
from hypermedia.services.graph import InMemoryResourceGraph
from hypermedia.services.traversal import TraversalEngine
from hypermedia.utils.etag import handle_conditional_request, set_etag_headers
from hypermedia.utils.negotiation import negotiate_format


router = APIRouter(
    tags=["Resources"],
)


# -----------------------------------------------------------------------------
# Dependencies
# -----------------------------------------------------------------------------
def get_graph(request: Request) -> InMemoryResourceGraph:
    graph = getattr(request.app.state, "graph", None)
    if graph is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="No resource graph configured",
        )
    return graph


def collection_type(graph: InMemoryResourceGraph, collection: str) -> str:
    for resource_type in graph.schema.types.values():
        if resource_type.collection_name == collection:
            return resource_type.type
    raise HTTPException(status_code=404, detail=f"Unknown collection: {collection}")


# -----------------------------------------------------------------------------
# Response helpers
# -----------------------------------------------------------------------------
def with_diagnostics(result: RenderResult) -> dict:
    document = dict(result.document)
    if not result.diagnostics:
        return document

    diagnostics = [d.model_dump(mode="json", exclude_none=True) for d in result.diagnostics]
    if result.format == DocumentFormat.JSONAPI:
        document["meta"] = {**document.get("meta", {}), "diagnostics": diagnostics}
    else:
        document["_diagnostics"] = diagnostics
    return document


def hypermedia_response(request: Request, result: RenderResult) -> Response:
    document = with_diagnostics(result)
    etag, not_modified = handle_conditional_request(request, document)

    if not_modified:
        response = Response(status_code=status.HTTP_304_NOT_MODIFIED)
    else:
        response = JSONResponse(content=document, media_type=result.media_type)
    set_etag_headers(response, etag)
    response.headers["Vary"] = "Accept"
    return response


# -----------------------------------------------------------------------------
# GET Endpoints
# -----------------------------------------------------------------------------
@router.get("/{collection}", name="list_resources")
def list_resources(
    request: Request,
    collection: str,
    graph: InMemoryResourceGraph = Depends(get_graph),
    accept: Optional[str] = Header(None),
    # Pagination
    page: int = Query(1, ge=1, description="Page number (1-based)"),
    size: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE, description="Page size"),
    # Representation
    include: Optional[str] = Query(None, description="Comma-separated relationship paths to embed"),
    format: Optional[str] = Query(None, description="Override content negotiation: 'hal' or 'jsonapi'"),
):
    """List one page of a collection with embedded relationships"""
    document_format = negotiate_format(accept, format)
    type = collection_type(graph, collection)
    engine = TraversalEngine.for_graph(graph)

    try:
        result = engine.render_collection(
            graph.list_entities(type),
            document_format,
            include,
            page=page,
            size=size,
            collection_href=request.url.path,
            name=collection,
        )
    except InvalidIncludePath as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    return hypermedia_response(request, result)


@router.get("/{collection}/{resource_id}", name="get_resource")
def get_resource(
    request: Request,
    collection: str,
    resource_id: str,
    graph: InMemoryResourceGraph = Depends(get_graph),
    accept: Optional[str] = Header(None),
    include: Optional[str] = Query(None, description="Comma-separated relationship paths to embed"),
    format: Optional[str] = Query(None, description="Override content negotiation: 'hal' or 'jsonapi'"),
):
    """Get one resource as HAL or JSON:API"""
    document_format = negotiate_format(accept, format)
    type = collection_type(graph, collection)
    engine = TraversalEngine.for_graph(graph)

    try:
        result = engine.render(EntityRef(type=type, id=resource_id), document_format, include)
    except NotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except InvalidIncludePath as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    return hypermedia_response(request, result)
