"""
Routes REST du catalogue de séries.

Ce module regroupe les endpoints `/rest`: lecture par id (avec ETag), recherche paginée par
critères, téléchargement du fichier binaire, création, mise à jour conditionnelle (`If-Match`),
suppression et dépôt de fichier.
"""

from fastapi import APIRouter, Depends, File, Header, HTTPException, Request, UploadFile
from fastapi.responses import Response

from catalog.api.deps import get_read_service, get_settings, get_write_service
from catalog.api.errors import precondition_required
from catalog.api.schemas import SeriesDTO, SeriesPage, SeriesUpdateDTO, SeriesView
from catalog.core.constants import (
    HTTP_CREATED,
    HTTP_NO_CONTENT,
    HTTP_NOT_FOUND,
    HTTP_NOT_MODIFIED,
)
from catalog.core.settings import Settings
from catalog.domain.criteria import create_pageable
from catalog.services.read_service import SeriesReadService
from catalog.services.write_service import SeriesWriteService

router = APIRouter(prefix="/rest", tags=["series"])
read_dep = Depends(get_read_service)
write_dep = Depends(get_write_service)
settings_dep = Depends(get_settings)
upload_dep = File(...)
if_match_dep = Header(default=None)
if_none_match_dep = Header(default=None)

PAGE_PARAM = "page"
SIZE_PARAM = "size"


def _etag(version: int | None) -> str:
    return f'"{version}"'


@router.get("/file/{series_id}")
async def get_file(series_id: int, read: SeriesReadService = read_dep):
    """Retourne le fichier binaire de la série; 404 si aucun fichier n'est associé."""
    record = await read.find_file_by_series_id(series_id)
    if record is None:
        raise HTTPException(
            status_code=HTTP_NOT_FOUND, detail=f"No file for series {series_id}"
        )
    return Response(
        content=record.data,
        media_type=record.mimetype or "application/octet-stream",
        headers={"Content-Disposition": f'inline; filename="{record.filename}"'},
    )


@router.get("/{series_id}", response_model=SeriesView)
async def get_by_id(
    series_id: int,
    response: Response,
    if_none_match: str | None = if_none_match_dep,
    read: SeriesReadService = read_dep,
):
    """
    Retourne une série par id avec son ETag (`"<version>"`).

    Retour: 304 sans corps si `If-None-Match` correspond à la version courante.
    """
    series = await read.find_by_id(series_id)
    etag = _etag(series.version)
    if if_none_match == etag:
        return Response(status_code=HTTP_NOT_MODIFIED, headers={"ETag": etag})
    response.headers["ETag"] = etag
    return SeriesView.model_validate(series)


@router.get("", response_model=SeriesPage)
async def find(
    request: Request,
    read: SeriesReadService = read_dep,
    settings: Settings = settings_dep,
):
    """
    Recherche paginée: chaque paramètre de requête (hors `page`/`size`) est un critère.

    Exemple: `/rest?title=a&rating=3&python=true&page=0&size=10`.
    """
    criteria = dict(request.query_params)
    pageable = create_pageable(
        criteria.pop(PAGE_PARAM, None),
        criteria.pop(SIZE_PARAM, None),
        default_size=settings.DEFAULT_PAGE_SIZE,
        max_size=settings.MAX_PAGE_SIZE,
    )
    result = await read.find(criteria, pageable)
    return SeriesPage.from_slice(result, number=pageable.number, size=pageable.size)


@router.post("", status_code=HTTP_CREATED)
async def create(
    payload: SeriesDTO,
    request: Request,
    write: SeriesWriteService = write_dep,
):
    """Crée une série; la réponse porte `Location: <url>/<id>` et un corps vide."""
    series_id = await write.create(payload.to_domain())
    location = f"{str(request.url).rstrip('/')}/{series_id}"
    return Response(status_code=HTTP_CREATED, headers={"Location": location})


@router.put("/{series_id}", status_code=HTTP_NO_CONTENT)
async def update(
    series_id: int,
    payload: SeriesUpdateDTO,
    if_match: str | None = if_match_dep,
    write: SeriesWriteService = write_dep,
):
    """Met à jour une série; `If-Match: "<version>"` obligatoire, nouvel ETag en réponse."""
    if if_match is None:
        raise precondition_required("Header If-Match is missing")
    version = await write.update(series_id, payload.to_domain(), if_match)
    return Response(status_code=HTTP_NO_CONTENT, headers={"ETag": _etag(version)})


@router.delete("/{series_id}", status_code=HTTP_NO_CONTENT)
async def delete(series_id: int, write: SeriesWriteService = write_dep):
    """Supprime une série (idempotent: 204 même si elle n'existe pas)."""
    await write.delete(series_id)
    return Response(status_code=HTTP_NO_CONTENT)


@router.post("/{series_id}/file", status_code=HTTP_CREATED)
async def upload_file(
    series_id: int,
    request: Request,
    file: UploadFile = upload_dep,
    write: SeriesWriteService = write_dep,
):
    """Associe un fichier binaire à la série (remplace le fichier existant)."""
    data = await file.read()
    await write.add_file(series_id, data, file.filename or "upload", file.content_type)
    location = str(request.url_for("get_file", series_id=series_id))
    return Response(status_code=HTTP_CREATED, headers={"Location": location})
