"""Read-only scheme catalog routes."""

from typing import Optional

from fastapi import APIRouter, HTTPException

from mitr.dependencies import CatalogCacheDep
from mitr.models import Scheme, SchemeCategory
from mitr.services.catalog import CatalogLoadError

router = APIRouter()


@router.get("", response_model=list[Scheme])
async def list_schemes(
    catalog: CatalogCacheDep,
    category: Optional[SchemeCategory] = None,
    audience: Optional[str] = None,
    search: Optional[str] = None,
):
    try:
        snapshot = await catalog.get()
    except CatalogLoadError as exc:
        raise HTTPException(503, str(exc)) from exc

    schemes = snapshot.search(search) if search else list(snapshot.schemes)
    if category is not None:
        schemes = [scheme for scheme in schemes if scheme.category == category]
    if audience:
        wanted = {scheme.id for scheme in snapshot.by_audience(audience)}
        schemes = [scheme for scheme in schemes if scheme.id in wanted]
    return schemes


@router.get("/{scheme_id}", response_model=Scheme)
async def get_scheme(scheme_id: str, catalog: CatalogCacheDep):
    try:
        snapshot = await catalog.get()
    except CatalogLoadError as exc:
        raise HTTPException(503, str(exc)) from exc

    scheme = snapshot.get(scheme_id)
    if scheme is None:
        raise HTTPException(404, f"Scheme not found: {scheme_id}")
    return scheme
