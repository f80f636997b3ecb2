"""
FastAPI routes for the ficha service.
"""
from typing import Optional

from fastapi import FastAPI, Query
from fastapi.responses import JSONResponse, PlainTextResponse, Response

from .config import Settings, get_settings
from .errors import FichaError, UpstreamNotFound
from .ficha_service import FichaService
from .utils import get_logger

logger = get_logger(__name__)

NOT_IMPLEMENTED_TITLE = "Búsqueda Avanzada No Implementada"
DNI_ONLY_NOTICE = "La API externa que utiliza esta aplicación solo soporta la consulta por número de DNI."


def _not_implemented(detail: str, requested: dict) -> JSONResponse:
    return JSONResponse(
        status_code=501,
        content={
            "error": NOT_IMPLEMENTED_TITLE,
            "message": f"{DNI_ONLY_NOTICE} {detail}",
            "solicitado": requested,
        },
    )


def create_app(settings: Optional[Settings] = None, service: Optional[FichaService] = None) -> FastAPI:
    """Build the app; ``service`` defaults to one wired from ``settings``."""
    settings = settings or get_settings()
    service = service or FichaService.from_settings(settings)

    app = FastAPI(
        title="Ficha Card Service",
        description="Renders DNI lookup results as downloadable PNG cards",
        version="1.0.0",
    )

    @app.get("/health")
    def health():
        return {"status": "ok"}

    @app.get("/generar-ficha")
    def generar_ficha(dni: Optional[str] = Query(None)):
        """Render (or reuse) the cards for a DNI and return proxy download links"""
        try:
            return service.generate(dni)
        except UpstreamNotFound as e:
            return JSONResponse(status_code=404, content={"error": e.message, "fields": {"dni": dni}})
        except FichaError as e:
            if e.status_code == 400:
                return JSONResponse(status_code=400, content={"error": e.message})
            logger.error(f"Ficha generation failed for DNI {dni}: [{e.code}] {e.message} {e.detail or ''}")
            return JSONResponse(
                status_code=500,
                content={
                    "error": f"Error al generar las fichas o subir a GitHub ({e.code})",
                    "detalle": e.detail or e.message,
                },
            )
        except Exception as e:
            logger.exception(f"Unexpected error generating ficha for DNI {dni}")
            return JSONResponse(
                status_code=500,
                content={"error": "Error al generar las fichas o subir a GitHub", "detalle": str(e)},
            )

    @app.get("/descargar-ficha")
    def descargar_ficha(url: Optional[str] = Query(None)):
        """Proxy a stored card back to the client as an attachment"""
        try:
            filename, content = service.download(url)
        except FichaError as e:
            if e.status_code == 400:
                return PlainTextResponse(e.message, status_code=400)
            return PlainTextResponse(e.message, status_code=500)

        return Response(
            content=content,
            media_type="image/png",
            headers={
                "Content-Disposition": f'attachment; filename="{filename}"',
                "Content-Length": str(len(content)),
            },
        )

    @app.get("/buscar-por-nombre")
    def buscar_por_nombre(nombres: Optional[str] = Query(None), apellidos: Optional[str] = Query(None)):
        if not nombres or not apellidos:
            return JSONResponse(
                status_code=400,
                content={"error": "Faltan parámetros: 'nombres' y 'apellidos' son requeridos para esta consulta."},
            )
        return _not_implemented(
            "No es posible realizar búsquedas inversas por nombres y apellidos.",
            {"nombres": nombres, "apellidos": apellidos},
        )

    @app.get("/buscar-por-padres")
    def buscar_por_padres(nomPadre: Optional[str] = Query(None), nomMadre: Optional[str] = Query(None)):
        if not nomPadre and not nomMadre:
            return JSONResponse(
                status_code=400,
                content={"error": "Faltan parámetros: Se requiere al menos 'nomPadre' o 'nomMadre' para esta consulta."},
            )
        return _not_implemented(
            "No es posible realizar búsquedas por nombres de padres.",
            {"nomPadre": nomPadre, "nomMadre": nomMadre},
        )

    @app.get("/buscar-por-edad")
    def buscar_por_edad(edad: Optional[str] = Query(None)):
        if not edad:
            return JSONResponse(
                status_code=400,
                content={"error": "Falta el parámetro 'edad' para esta consulta."},
            )
        return _not_implemented("No es posible realizar búsquedas por edad.", {"edad": edad})

    return app
