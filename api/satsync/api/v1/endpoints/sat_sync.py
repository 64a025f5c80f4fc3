"""
Endpoints de descarga masiva de CFDI.

Cada etapa del pipeline (solicitar, verificar, descargar, procesar) se
dispara por separado; `/sync` planea y crea las solicitudes de ambos tipos
de descarga y se combina (debounce) por RFC.
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response, status

from satsync.application.dto.sat_sync_dto import (
    AuditEntryDTO,
    CreateRequestDTO,
    InvoiceEditDTO,
    InvoiceEditResponseDTO,
    PackageInfoDTO,
    PlanResponseDTO,
    ResetSyncResponseDTO,
    SyncRequestResponseDTO,
    SyncStatusResponseDTO,
    SyncSubjectRequestDTO,
    SyncSubjectResponseDTO,
)
from satsync.application.use_cases.sat_sync_use_cases import SatSyncUseCases
from satsync.api.v1.dependencies.sat_deps import get_sat_context, get_sat_use_cases
from satsync.core.context import SatSyncContext
from satsync.shared.constants.sat_constants import Direction

router = APIRouter(prefix="/sat/{rfc}", tags=["SAT Sync"])


@router.get("/plan", response_model=PlanResponseDTO, summary="Siguiente rango a solicitar")
async def get_plan(
    rfc: str,
    direction: Direction = Query(..., description="issued o received"),
    use_cases: SatSyncUseCases = Depends(get_sat_use_cases),
):
    return await use_cases.plan(rfc, direction)


@router.get("/sync-status", response_model=SyncStatusResponseDTO)
async def get_sync_status(rfc: str, use_cases: SatSyncUseCases = Depends(get_sat_use_cases)):
    """
    Ultima fecha sincronizada, dias de atraso y solicitudes en curso por tipo.
    """
    return await use_cases.get_sync_status(rfc)


@router.delete("/sync-status", response_model=ResetSyncResponseDTO, summary="Reiniciar sincronizacion")
async def reset_sync_status(
    rfc: str,
    direction: Optional[Direction] = Query(None, description="Si se omite, reinicia ambos tipos"),
    use_cases: SatSyncUseCases = Depends(get_sat_use_cases),
):
    return await use_cases.reset_sync(rfc, direction)


@router.post(
    "/sync",
    response_model=SyncSubjectResponseDTO,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Sincronizar emitidas y recibidas",
)
async def sync_subject(
    rfc: str,
    dto: Optional[SyncSubjectRequestDTO] = None,
    use_cases: SatSyncUseCases = Depends(get_sat_use_cases),
    context: SatSyncContext = Depends(get_sat_context),
):
    """
    Planea y crea solicitudes para ambos tipos de descarga.

    Disparos repetidos para el mismo RFC dentro de la ventana de debounce se
    combinan en una sola ejecucion; todos reciben la misma respuesta.
    """
    dto = dto or SyncSubjectRequestDTO()
    return await context.debouncer.trigger(
        rfc.strip().upper(),
        lambda: use_cases.sync_subject(
            rfc,
            force_full_sync=dto.force_full_sync,
            custom_start_date=dto.custom_start_date,
            created_by=dto.created_by,
        ),
    )


@router.post(
    "/requests",
    response_model=SyncRequestResponseDTO,
    status_code=status.HTTP_201_CREATED,
    summary="Crear solicitud de descarga",
)
async def create_request(
    rfc: str,
    dto: CreateRequestDTO,
    use_cases: SatSyncUseCases = Depends(get_sat_use_cases),
):
    """
    Crea una solicitud para un rango explicito.

    Responde 409 si se excede la cuota de solicitudes activas o el rango se
    traslapa con una solicitud en curso.
    """
    return await use_cases.create_request(rfc, dto.direction, dto.date_from, dto.date_to, dto.created_by)


@router.get("/requests", response_model=List[SyncRequestResponseDTO])
async def list_requests(
    rfc: str,
    direction: Optional[Direction] = Query(None),
    limit: int = Query(100, ge=1, le=500),
    use_cases: SatSyncUseCases = Depends(get_sat_use_cases),
):
    return await use_cases.list_requests(rfc, direction, limit)


@router.get("/requests/{request_id}", response_model=SyncRequestResponseDTO)
async def get_request(rfc: str, request_id: str, use_cases: SatSyncUseCases = Depends(get_sat_use_cases)):
    return await use_cases.get_request(rfc, request_id)


@router.post("/requests/{request_id}/verify", response_model=SyncRequestResponseDTO)
async def verify_request(rfc: str, request_id: str, use_cases: SatSyncUseCases = Depends(get_sat_use_cases)):
    """
    Consulta al SAT el estado de la solicitud (VerificaSolicitudDescarga).
    """
    return await use_cases.verify(rfc, request_id)


@router.post("/requests/{request_id}/download", response_model=SyncRequestResponseDTO)
async def download_request(rfc: str, request_id: str, use_cases: SatSyncUseCases = Depends(get_sat_use_cases)):
    """
    Descarga los paquetes pendientes; los ya guardados no se vuelven a pedir.
    """
    return await use_cases.download(rfc, request_id)


@router.post("/requests/{request_id}/import", response_model=SyncRequestResponseDTO)
async def import_request(rfc: str, request_id: str, use_cases: SatSyncUseCases = Depends(get_sat_use_cases)):
    """
    Procesa los XML de los paquetes descargados y guarda las facturas.
    """
    return await use_cases.import_packages(rfc, request_id)


@router.get("/requests/{request_id}/packages", response_model=List[PackageInfoDTO])
async def list_packages(rfc: str, request_id: str, use_cases: SatSyncUseCases = Depends(get_sat_use_cases)):
    """
    Paquetes reportados por el SAT y si ya estan descargados.
    """
    return await use_cases.list_packages(rfc, request_id)


@router.get(
    "/requests/{request_id}/packages/{package_id}",
    response_class=Response,
    responses={200: {"content": {"application/zip": {}}}},
    summary="Descargar paquete ZIP",
)
async def get_package(
    rfc: str,
    request_id: str,
    package_id: str,
    use_cases: SatSyncUseCases = Depends(get_sat_use_cases),
):
    package = await use_cases.get_package(rfc, request_id, package_id)
    return Response(
        content=package.content,
        media_type="application/zip",
        headers={"Content-Disposition": f'attachment; filename="{package.package_id}.zip"'},
    )


@router.get("/requests/{request_id}/logs", response_model=List[AuditEntryDTO])
async def list_request_logs(
    rfc: str,
    request_id: str,
    limit: int = Query(100, ge=1, le=1000),
    use_cases: SatSyncUseCases = Depends(get_sat_use_cases),
):
    return await use_cases.list_request_logs(rfc, request_id, limit)


@router.get("/logs", response_model=List[AuditEntryDTO], summary="Bitacora del RFC")
async def list_logs(
    rfc: str,
    limit: int = Query(100, ge=1, le=1000),
    use_cases: SatSyncUseCases = Depends(get_sat_use_cases),
):
    return await use_cases.list_logs(rfc, limit)


@router.patch("/invoices/{uuid}", response_model=InvoiceEditResponseDTO, summary="Editar montos gravados")
async def edit_invoice(
    rfc: str,
    uuid: str,
    dto: InvoiceEditDTO,
    use_cases: SatSyncUseCases = Depends(get_sat_use_cases),
):
    """
    Edita manualmente los montos gravados de ISR/IVA.

    La factura queda marcada como modificada y las reimportaciones no la
    sobrescriben. `reset_to_computed` descarta la edicion.
    """
    return await use_cases.edit_invoice(
        rfc,
        uuid,
        dto.taxable_isr,
        dto.taxable_iva,
        reset_to_computed=dto.reset_to_computed,
        edited_by=dto.edited_by,
    )
