"""POST /api/convert — SVG markup or URL → layered PSD download."""

from __future__ import annotations

from pathlib import Path

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import FileResponse
from starlette.background import BackgroundTask

from svg2psd.dependencies import get_converter
from svg2psd.engine.converter import LayeredImageConverter
from svg2psd.errors import CompositionError, ConversionError, FetchError, HandleCreationError
from svg2psd.models.requests import ConvertRequest, ConvertUrlRequest

router = APIRouter()

PSD_MEDIA_TYPE = "image/vnd.adobe.photoshop"

_STATUS_BY_ERROR: list[tuple[type[ConversionError], int]] = [
    (CompositionError, 422),
    (FetchError, 502),
    (HandleCreationError, 503),
]


def _http_error(error: ConversionError) -> HTTPException:
    for error_type, status in _STATUS_BY_ERROR:
        if isinstance(error, error_type):
            return HTTPException(status_code=status, detail=str(error))
    return HTTPException(status_code=500, detail=str(error))


def _psd_response(path: Path, converter: LayeredImageConverter) -> FileResponse:
    return FileResponse(
        path,
        media_type=PSD_MEDIA_TYPE,
        filename="layers.psd",
        background=BackgroundTask(converter.cleanup_temp_file, path),
    )


@router.post("/convert")
async def convert(
    req: ConvertRequest,
    converter: LayeredImageConverter = Depends(get_converter),
) -> FileResponse:
    try:
        path = await converter.convert_document(req.svg, req.options)
    except ConversionError as e:
        raise _http_error(e) from e
    return _psd_response(path, converter)


@router.post("/convert/url")
async def convert_url(
    req: ConvertUrlRequest,
    converter: LayeredImageConverter = Depends(get_converter),
) -> FileResponse:
    try:
        path = await converter.convert_url(req.url, req.options)
    except ConversionError as e:
        raise _http_error(e) from e
    return _psd_response(path, converter)
